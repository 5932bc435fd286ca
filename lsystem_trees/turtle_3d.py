import enum
import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, NamedTuple, Optional, Sequence, Union

import numpy as np

logger = logging.getLogger(__name__)

# Segments grow along the local +Y axis of the turtle orientation
GROWTH_AXIS = np.array([0.0, 1.0, 0.0])


class Symbol(enum.Enum):
    """Closed turtle alphabet. Unknown characters map to NOOP."""

    FORWARD = "f"
    LEAF = "l"
    PUSH = "["
    POP = "]"
    TURN_LEFT = "+"
    TURN_RIGHT = "-"
    PITCH_UP = "^"
    PITCH_DOWN = "v"
    ROLL_LEFT = "<"
    ROLL_RIGHT = ">"
    NOOP = ""

    @classmethod
    def _missing_(cls, value):
        return cls.NOOP


def rotation_matrix(axis: str, angle_deg: float) -> np.ndarray:
    """
    Unit rotation about one local axis of the turtle frame.

    Args:
        axis: 'H' (local X), 'L' (local Y) or 'U' (local Z)
        angle_deg: Rotation angle in degrees

    Returns:
        (3, 3) rotation matrix
    """
    a = np.radians(angle_deg)
    c, s = np.cos(a), np.sin(a)
    if axis == "U":
        return np.array([
            [c, s, 0.0],
            [-s, c, 0.0],
            [0.0, 0.0, 1.0]
        ])
    if axis == "L":
        return np.array([
            [c, 0.0, -s],
            [0.0, 1.0, 0.0],
            [s, 0.0, c]
        ])
    if axis == "H":
        return np.array([
            [1.0, 0.0, 0.0],
            [0.0, c, -s],
            [0.0, s, c]
        ])
    raise ValueError(f"Unknown rotation axis {axis!r}")


# symbol -> (axis, sign applied to the turtle angle)
ROTATIONS = {
    Symbol.TURN_LEFT: ("U", 1.0),
    Symbol.TURN_RIGHT: ("U", -1.0),
    Symbol.PITCH_UP: ("L", 1.0),
    Symbol.PITCH_DOWN: ("L", -1.0),
    Symbol.ROLL_LEFT: ("H", -1.0),
    Symbol.ROLL_RIGHT: ("H", 1.0),
}


@dataclass(frozen=True)
class SegmentPlaced:
    """One branch piece produced by an `f` symbol."""

    index: int
    parent_index: int  # -1 when attached to the synthetic root
    base: np.ndarray
    top: np.ndarray
    orientation: np.ndarray
    base_radius: float
    top_radius: float
    depth: int
    height: float  # the branch length as given, not measured from base and top

    @property
    def direction(self) -> np.ndarray:
        return self.top - self.base


@dataclass(frozen=True)
class LeafPlaced:
    position: np.ndarray
    radius: float
    segment_index: int  # -1 when no segment has been placed yet


TurtleEvent = Union[SegmentPlaced, LeafPlaced]


class TurtleSnapshot(NamedTuple):
    position: np.ndarray
    orientation: np.ndarray
    radius: float
    segment_index: int


@dataclass
class TurtleState:
    position: np.ndarray
    orientation: np.ndarray = field(default_factory=lambda: np.eye(3))
    radius: float = 1.0
    segment_index: int = -1
    stack: List[TurtleSnapshot] = field(default_factory=list)
    underflows: int = 0

    def push(self) -> None:
        self.stack.append(TurtleSnapshot(
            self.position.copy(), self.orientation.copy(), self.radius, self.segment_index
        ))

    def pop(self) -> bool:
        """Restore the last snapshot. Returns False (and does nothing) on an empty stack."""
        if not self.stack:
            self.underflows += 1
            return False
        snapshot = self.stack.pop()
        self.position = snapshot.position
        self.orientation = snapshot.orientation
        self.radius = snapshot.radius
        self.segment_index = snapshot.segment_index
        return True

    def rotate(self, axis: str, angle_deg: float) -> None:
        self.orientation = self.orientation @ rotation_matrix(axis, angle_deg)

    @property
    def heading(self) -> np.ndarray:
        return self.orientation @ GROWTH_AXIS


class TurtleInterpreter:
    """
    Replays a symbol string over a 3D turtle and yields placement events.

    The interpreter does not build geometry: segment and leaf events are
    consumed by the geometry assembler or the skeleton builder.
    """

    def __init__(
        self,
        start_radius: float = 1.0,
        radius_reduction: float = 0.8,
        branch_length: float = 1.0,
        angle: float = 10.0,
        position: Optional[Sequence[float]] = None,
    ):
        """
        Args:
            start_radius: Radius of the first segment
            radius_reduction: Factor applied to the radius after every segment
            branch_length: Height of every segment
            angle: Rotation angle in degrees for the turn symbols
            position: Turtle start position (default: origin)
        """
        self.start_radius = start_radius
        self.radius_reduction = radius_reduction
        self.branch_length = branch_length
        self.angle = angle
        self.position = np.zeros(3) if position is None else np.asarray(position, dtype=float)
        self.state: Optional[TurtleState] = None

    def reset(self) -> TurtleState:
        self.state = TurtleState(position=self.position.copy(), radius=self.start_radius)
        return self.state

    def interpret(self, lstring: Iterable[str]) -> Iterator[TurtleEvent]:
        """
        Walk `lstring` left to right.

        Commands:
            f: Emit a segment and move forward, shrinking the radius
            l: Emit a leaf at the current position
            []: Save/restore state (a stray ']' is ignored)
            +/-: Rotate about the local U axis
            ^v: Rotate about the local L axis
            <>: Rotate about the local H axis

        Yields:
            SegmentPlaced and LeafPlaced events in string order
        """
        state = self.reset()
        segment_count = 0
        skipped = 0

        for char in lstring:
            symbol = Symbol(char)

            if symbol is Symbol.FORWARD:
                top_radius = state.radius * self.radius_reduction
                direction = state.orientation @ (GROWTH_AXIS * self.branch_length)
                base = state.position.copy()
                top = base + direction
                yield SegmentPlaced(
                    index=segment_count,
                    parent_index=state.segment_index,
                    base=base,
                    top=top,
                    orientation=state.orientation.copy(),
                    base_radius=state.radius,
                    top_radius=top_radius,
                    depth=len(state.stack),
                    height=self.branch_length,
                )
                state.position = top
                state.radius = top_radius
                state.segment_index = segment_count
                segment_count += 1

            elif symbol is Symbol.LEAF:
                yield LeafPlaced(
                    position=state.position.copy(),
                    radius=state.radius,
                    segment_index=state.segment_index,
                )

            elif symbol is Symbol.PUSH:
                state.push()

            elif symbol is Symbol.POP:
                if not state.pop():
                    logger.debug("Ignoring ']' with an empty state stack")

            elif symbol in ROTATIONS:
                axis, sign = ROTATIONS[symbol]
                state.rotate(axis, sign * self.angle)

            else:
                skipped += 1

        logger.debug(
            "Interpreted %d segments, %d passive symbols, %d unmatched pops",
            segment_count, skipped, state.underflows
        )


def interpret_to_events(lstring: str, **kwargs) -> List[TurtleEvent]:
    """Convenience wrapper returning all events of `lstring` as a list."""
    return list(TurtleInterpreter(**kwargs).interpret(lstring))
