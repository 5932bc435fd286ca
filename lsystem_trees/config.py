"""
Build parameters and JSON configuration files.

A configuration file describes one tree:

    {
      "name": "Default",
      "axiom": "fffffA",
      "iterations": 6,
      "rules": {"A": "^fB+^^B+vvB<<<<B", "B": "[^^ff--A]"},
      "tree": {"start_radius": 1, "radius_reduction": 0.8,
               "branch_length": 1.0, "angle": 10, "mode": "static"},
      "wind": {"direction": [1, 0, 0], "strength": 1.0}
    }

Every section except "axiom" is optional.
"""
from __future__ import annotations

import enum
import json
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from lsystem_trees.errors import MalformedParameter
from lsystem_trees.wind import WindParameters


class BuildMode(enum.Enum):
    STATIC = "static"
    SKINNED = "skinned"


@dataclass(frozen=True)
class TreeParams:
    """Geometry parameters for one build; defaults match the interactive panel."""

    start_radius: float = 1.0
    radius_reduction: float = 0.8
    branch_length: float = 1.0
    angle: float = 10.0
    mode: BuildMode = BuildMode.STATIC
    position: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    radial_segments: int = 8
    leaf_radius: float = 0.3
    leaf_segments: int = 8

    def validate(self) -> None:
        for name in ("start_radius", "radius_reduction", "branch_length", "angle", "leaf_radius"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise MalformedParameter(f"{name} must be finite, got {value}")
        if len(self.position) != 3:
            raise MalformedParameter("position must have three components")
        if not all(math.isfinite(v) for v in self.position):
            raise MalformedParameter(f"position must be finite, got {self.position}")
        if not self.start_radius > 0:
            raise MalformedParameter(f"start_radius must be > 0, got {self.start_radius}")
        if not 0 < self.radius_reduction <= 1:
            raise MalformedParameter(
                f"radius_reduction must be in (0, 1], got {self.radius_reduction}"
            )
        if not self.branch_length > 0:
            raise MalformedParameter(f"branch_length must be > 0, got {self.branch_length}")
        if self.radial_segments < 3:
            raise MalformedParameter(f"radial_segments must be >= 3, got {self.radial_segments}")
        if not self.leaf_radius > 0:
            raise MalformedParameter(f"leaf_radius must be > 0, got {self.leaf_radius}")
        if self.leaf_segments < 3:
            raise MalformedParameter(f"leaf_segments must be >= 3, got {self.leaf_segments}")


@dataclass
class TreeConfig:
    axiom: str
    iterations: int = 6
    rules: Dict[str, str] = field(default_factory=dict)
    name: str = "Tree"
    tree: TreeParams = field(default_factory=TreeParams)
    wind: WindParameters = field(default_factory=WindParameters)


# -------------------------
# Validation helpers
# -------------------------


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise MalformedParameter(msg)


def _as_float(x: Any, path: str) -> float:
    _require(isinstance(x, (int, float)) and not isinstance(x, bool), f"{path} must be a number")
    return float(x)


def _as_int(x: Any, path: str) -> int:
    _require(isinstance(x, int) and not isinstance(x, bool), f"{path} must be an integer")
    return int(x)


def _as_str(x: Any, path: str) -> str:
    _require(isinstance(x, str), f"{path} must be a string")
    return x


def _as_dict(x: Any, path: str) -> Dict[str, Any]:
    _require(isinstance(x, dict), f"{path} must be an object")
    return x


def _as_vec3(x: Any, path: str) -> Tuple[float, float, float]:
    _require(isinstance(x, (list, tuple)) and len(x) == 3, f"{path} must be a list of 3 numbers")
    return tuple(_as_float(v, f"{path}[{i}]") for i, v in enumerate(x))


def _parse_tree(obj: Dict[str, Any]) -> TreeParams:
    defaults = TreeParams()
    mode_name = _as_str(obj.get("mode", defaults.mode.value), "tree.mode")
    try:
        mode = BuildMode(mode_name)
    except ValueError:
        raise MalformedParameter(
            f"tree.mode must be one of {[m.value for m in BuildMode]}, got {mode_name!r}"
        ) from None

    params = TreeParams(
        start_radius=_as_float(obj.get("start_radius", defaults.start_radius), "tree.start_radius"),
        radius_reduction=_as_float(
            obj.get("radius_reduction", defaults.radius_reduction), "tree.radius_reduction"
        ),
        branch_length=_as_float(obj.get("branch_length", defaults.branch_length), "tree.branch_length"),
        angle=_as_float(obj.get("angle", defaults.angle), "tree.angle"),
        mode=mode,
        position=_as_vec3(obj.get("position", defaults.position), "tree.position"),
        radial_segments=_as_int(
            obj.get("radial_segments", defaults.radial_segments), "tree.radial_segments"
        ),
        leaf_radius=_as_float(obj.get("leaf_radius", defaults.leaf_radius), "tree.leaf_radius"),
        leaf_segments=_as_int(obj.get("leaf_segments", defaults.leaf_segments), "tree.leaf_segments"),
    )
    params.validate()
    return params


def _parse_wind(obj: Dict[str, Any]) -> WindParameters:
    defaults = WindParameters()
    noise = obj.get("noise_sample")
    wind = WindParameters(
        direction=_as_vec3(obj.get("direction", defaults.direction), "wind.direction"),
        strength=_as_float(obj.get("strength", defaults.strength), "wind.strength"),
        noise_sample=None if noise is None else _as_float(noise, "wind.noise_sample"),
    )
    wind.validate()
    return wind


def parse_config(obj: Dict[str, Any]) -> TreeConfig:
    obj = _as_dict(obj, "root")

    axiom = _as_str(obj.get("axiom", ""), "axiom")
    _require(len(axiom) > 0, "axiom must be non-empty")

    iterations = _as_int(obj.get("iterations", 6), "iterations")
    _require(iterations >= 0, "iterations must be >= 0")

    rules: Dict[str, str] = {}
    for k, v in _as_dict(obj.get("rules", {}), "rules").items():
        _require(len(k) == 1, "rules keys must be single-character strings")
        rules[k] = _as_str(v, f"rules['{k}']")

    return TreeConfig(
        axiom=axiom,
        iterations=iterations,
        rules=rules,
        name=_as_str(obj.get("name", "Tree"), "name"),
        tree=_parse_tree(_as_dict(obj.get("tree", {}), "tree")),
        wind=_parse_wind(_as_dict(obj.get("wind", {}), "wind")),
    )


def load_config(path: str) -> TreeConfig:
    with open(path, encoding="utf-8") as f:
        try:
            obj = json.load(f)
        except json.JSONDecodeError as e:
            raise MalformedParameter(f"Invalid JSON in {path}: {e}") from e
    return parse_config(obj)


def config_from_preset(name: str, **tree_overrides: Any) -> TreeConfig:
    """Build a config from an entry of LSYSTEM_PRESETS."""
    from lsystem_trees.preset import LSYSTEM_PRESETS

    if name not in LSYSTEM_PRESETS:
        raise MalformedParameter(
            f"Unknown preset {name!r}, choose from {sorted(LSYSTEM_PRESETS)}"
        )
    preset = LSYSTEM_PRESETS[name]
    tree = dict(angle=preset["angle"])
    for key, value in tree_overrides.items():
        tree[key] = value.value if isinstance(value, BuildMode) else value
    return parse_config({
        "name": name,
        "axiom": preset["axiom"],
        "iterations": preset["iterations"],
        "rules": preset["rules"],
        "tree": tree,
    })
