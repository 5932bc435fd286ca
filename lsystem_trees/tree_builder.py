import logging
from dataclasses import dataclass
from typing import Iterator, Optional, Union

import numpy as np

from lsystem_trees.config import BuildMode, TreeParams
from lsystem_trees.errors import AssetDisposedError
from lsystem_trees.geometry import GeometryAssembler, Mesh
from lsystem_trees.l_system import LSystemGenerator
from lsystem_trees.skeleton import Skeleton, SkeletonBuilder
from lsystem_trees.turtle_3d import SegmentPlaced, TurtleInterpreter
from lsystem_trees.wind import (
    BoneSwaySettings,
    VertexSwaySettings,
    WindParameters,
    bone_sway,
    vertex_sway,
)

logger = logging.getLogger(__name__)


@dataclass
class TreeAsset:
    """A built tree: mesh, optional skeleton and the parameters it was built with."""

    mesh: Optional[Mesh]
    skeleton: Optional[Skeleton]
    params: TreeParams
    n_symbols: int
    n_segments: int
    n_leaves: int
    underflows: int = 0
    disposed: bool = False

    @property
    def mode(self) -> BuildMode:
        return self.params.mode

    def dispose(self) -> None:
        """Release the buffers. The asset can no longer be posed or swayed."""
        self.mesh = None
        self.skeleton = None
        self.disposed = True

    def require_mesh(self) -> Mesh:
        if self.disposed or self.mesh is None:
            raise AssetDisposedError("asset has been cleared")
        return self.mesh


def evaluate_sway(
    asset: TreeAsset,
    time: float,
    wind: WindParameters,
    vertex_settings: VertexSwaySettings = VertexSwaySettings(),
    bone_settings: BoneSwaySettings = BoneSwaySettings(),
    phase: float = 0.0,
) -> np.ndarray:
    """
    Sway of one asset at `time`.

    Returns:
        (N, 3) vertex displacements for static assets,
        (B, 3) bone rotations for skinned assets
    """
    mesh = asset.require_mesh()
    wind.validate()
    if asset.mode is BuildMode.SKINNED:
        return bone_sway(asset.skeleton.radii, time, wind, bone_settings, phase=phase)
    return vertex_sway(
        mesh.attribute("branch_radius"),
        mesh.attribute("vertex_height"),
        time + phase,
        wind,
        vertex_settings,
    )


class TreeBuilder:
    """
    Owns the current tree asset.

    `build` replaces the asset atomically: parameters are validated and the
    new mesh is assembled before the previous asset is disposed, so a failed
    build leaves the previous asset in place.
    """

    def __init__(self):
        self.asset: Optional[TreeAsset] = None

    def clear(self) -> None:
        if self.asset is not None:
            self.asset.dispose()
            self.asset = None

    def build(self, lstring: str, params: TreeParams = TreeParams()) -> TreeAsset:
        params.validate()

        interpreter = TurtleInterpreter(
            start_radius=params.start_radius,
            radius_reduction=params.radius_reduction,
            branch_length=params.branch_length,
            angle=params.angle,
            position=params.position,
        )
        events = list(interpreter.interpret(lstring))
        assembler = GeometryAssembler(params.radial_segments, params.leaf_radius, params.leaf_segments)

        skeleton = None
        if params.mode is BuildMode.SKINNED:
            mesh, skeleton = SkeletonBuilder(assembler, params.position).build(events)
        else:
            mesh = assembler.assemble(events)

        n_segments = sum(isinstance(event, SegmentPlaced) for event in events)
        asset = TreeAsset(
            mesh=mesh,
            skeleton=skeleton,
            params=params,
            n_symbols=len(lstring),
            n_segments=n_segments,
            n_leaves=len(events) - n_segments,
            underflows=interpreter.state.underflows,
        )

        self.clear()
        self.asset = asset
        logger.info(
            "Built %s tree: %d symbols, %d segments, %d leaves, %d vertices",
            params.mode.value, asset.n_symbols, asset.n_segments, asset.n_leaves, mesh.n_vertices
        )
        if asset.underflows:
            logger.debug("%d unmatched ']' ignored", asset.underflows)
        return asset

    def build_from_grammar(
        self,
        grammar: LSystemGenerator,
        axiom: str,
        iterations: int,
        params: TreeParams = TreeParams(),
    ) -> TreeAsset:
        params.validate()
        return self.build(grammar.generate(axiom, iterations), params)

    def grow(
        self,
        grammar: LSystemGenerator,
        axiom: str,
        iterations: int,
        params: TreeParams = TreeParams(),
    ) -> Iterator[TreeAsset]:
        """Rebuild the tree once per generation, yielding every intermediate asset."""
        params.validate()
        for lstring in grammar.iterate(axiom, iterations):
            yield self.build(lstring, params)

    def evaluate_sway(
        self,
        time: float,
        wind: WindParameters,
        asset: Optional[TreeAsset] = None,
        phase: float = 0.0,
        **settings: Union[VertexSwaySettings, BoneSwaySettings],
    ) -> np.ndarray:
        if asset is None:
            asset = self.asset
        if asset is None:
            raise AssetDisposedError("no tree has been built")
        return evaluate_sway(asset, time, wind, phase=phase, **settings)
