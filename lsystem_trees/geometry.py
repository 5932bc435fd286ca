import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from lsystem_trees.errors import AttributeSchemaMismatch
from lsystem_trees.turtle_3d import LeafPlaced, SegmentPlaced, TurtleEvent

logger = logging.getLogger(__name__)

# Attributes every merged vertex carries in static mode
STATIC_SCHEMA = {
    "branch_radius": np.float32,
    "vertex_height": np.float32,
}


def _freeze(array: np.ndarray) -> np.ndarray:
    array.flags.writeable = False
    return array


@dataclass
class GeometryChunk:
    """Geometry of one segment or leaf before merging."""

    positions: np.ndarray  # (N, 3)
    normals: np.ndarray  # (N, 3)
    indices: np.ndarray  # (M, 3)
    attributes: Dict[str, np.ndarray] = field(default_factory=dict)

    @property
    def n_vertices(self) -> int:
        return len(self.positions)

    def set_attribute(self, name: str, value, dtype=np.float32) -> None:
        """Attach a per-vertex attribute holding the same value on every vertex."""
        self.attributes[name] = np.full(self.n_vertices, value, dtype=dtype)


@dataclass(frozen=True)
class Mesh:
    """Merged, indexed tree mesh in world space. Buffers are read-only."""

    positions: np.ndarray
    normals: np.ndarray
    indices: np.ndarray
    attributes: Dict[str, np.ndarray]

    @property
    def n_vertices(self) -> int:
        return len(self.positions)

    @property
    def n_triangles(self) -> int:
        return len(self.indices)

    @property
    def is_empty(self) -> bool:
        return self.n_vertices == 0

    def attribute(self, name: str) -> np.ndarray:
        return self.attributes[name]

    def bounds(self):
        if self.is_empty:
            return np.zeros(3), np.zeros(3)
        return self.positions.min(axis=0), self.positions.max(axis=0)


# -------------------------
# Primitive builders
# -------------------------


def cylinder_chunk(
    base: np.ndarray,
    orientation: np.ndarray,
    base_radius: float,
    top_radius: float,
    height: float,
    radial_segments: int = 8,
) -> GeometryChunk:
    """
    Capped frustum whose axis is the local +Y of `orientation`.

    Vertex layout: side bottom ring, side top ring, bottom cap ring + center,
    top cap ring + center.
    """
    n = radial_segments
    theta = np.arange(n) * 2 * np.pi / n
    cos_t, sin_t = np.cos(theta), np.sin(theta)
    zeros, ones = np.zeros(n), np.ones(n)

    bottom = np.stack([base_radius * cos_t, zeros, base_radius * sin_t], axis=1)
    top = np.stack([top_radius * cos_t, height * ones, top_radius * sin_t], axis=1)

    # Side normals lean towards the narrow end of the frustum
    slope = (base_radius - top_radius) / height
    side_normals = np.stack([cos_t, slope * ones, sin_t], axis=1)
    side_normals /= np.linalg.norm(side_normals, axis=1, keepdims=True)

    local = np.vstack([
        bottom,
        top,
        bottom, [[0.0, 0.0, 0.0]],
        top, [[0.0, height, 0.0]],
    ])
    local_normals = np.vstack([
        side_normals,
        side_normals,
        np.tile([0.0, -1.0, 0.0], (n + 1, 1)),
        np.tile([0.0, 1.0, 0.0], (n + 1, 1)),
    ])

    faces = []
    for i in range(n):
        j = (i + 1) % n
        # side quad between ring i and ring j
        faces.append([i, n + i, j])
        faces.append([j, n + i, n + j])
    bottom_start, bottom_center = 2 * n, 3 * n
    top_start, top_center = 3 * n + 1, 4 * n + 1
    for i in range(n):
        j = (i + 1) % n
        faces.append([bottom_center, bottom_start + i, bottom_start + j])
        faces.append([top_center, top_start + j, top_start + i])

    positions = local @ orientation.T + base
    normals = local_normals @ orientation.T
    return GeometryChunk(
        positions=positions.astype(np.float32),
        normals=normals.astype(np.float32),
        indices=np.asarray(faces, dtype=np.uint32),
    )


def sphere_chunk(center: np.ndarray, radius: float, segments: int = 8, rings: int = 8) -> GeometryChunk:
    """UV sphere around `center` with (rings + 1) * (segments + 1) vertices."""
    phi = np.linspace(0.0, np.pi, rings + 1)
    theta = np.linspace(0.0, 2 * np.pi, segments + 1)
    phi_grid, theta_grid = np.meshgrid(phi, theta, indexing="ij")

    unit = np.stack([
        np.sin(phi_grid) * np.cos(theta_grid),
        np.cos(phi_grid),
        np.sin(phi_grid) * np.sin(theta_grid),
    ], axis=-1).reshape(-1, 3)

    faces = []
    for r in range(rings):
        for s in range(segments):
            curr = r * (segments + 1) + s
            next_s = curr + 1
            next_r = curr + (segments + 1)
            next_both = next_r + 1
            if r != 0:
                faces.append([curr, next_s, next_r])
            if r != rings - 1:
                faces.append([next_s, next_both, next_r])

    return GeometryChunk(
        positions=(center + radius * unit).astype(np.float32),
        normals=unit.astype(np.float32),
        indices=np.asarray(faces, dtype=np.uint32),
    )


# -------------------------
# Merging
# -------------------------


def _check_schema(chunks: Sequence[GeometryChunk], schema: Dict[str, np.dtype]) -> None:
    expected = set(schema)
    for k, chunk in enumerate(chunks):
        names = set(chunk.attributes)
        if names != expected:
            raise AttributeSchemaMismatch(
                f"chunk {k} has attributes {sorted(names)}, expected {sorted(expected)}"
            )
        if len(chunk.normals) != chunk.n_vertices:
            raise AttributeSchemaMismatch(
                f"chunk {k} has {len(chunk.normals)} normals for {chunk.n_vertices} vertices"
            )
        for name, values in chunk.attributes.items():
            if len(values) != chunk.n_vertices:
                raise AttributeSchemaMismatch(
                    f"attribute {name!r} of chunk {k} has {len(values)} entries "
                    f"for {chunk.n_vertices} vertices"
                )
            if values.dtype != np.dtype(schema[name]):
                raise AttributeSchemaMismatch(
                    f"attribute {name!r} of chunk {k} has dtype {values.dtype}, "
                    f"expected {np.dtype(schema[name])}"
                )
            if values.shape[1:] != chunks[0].attributes[name].shape[1:]:
                raise AttributeSchemaMismatch(
                    f"attribute {name!r} of chunk {k} has item shape {values.shape[1:]}"
                )


def merge_chunks(chunks: Sequence[GeometryChunk], schema: Optional[Dict[str, np.dtype]] = None) -> Mesh:
    """
    Concatenate chunks into one indexed mesh.

    Args:
        chunks: Per-segment / per-leaf geometry
        schema: Attribute name -> dtype every chunk must carry
            (default: the attributes of the first chunk)

    Returns:
        Mesh with indices offset to the merged vertex buffer

    Raises:
        AttributeSchemaMismatch: if any chunk deviates from the schema
    """
    if schema is None:
        schema = {name: values.dtype for name, values in chunks[0].attributes.items()} if chunks else {}
    _check_schema(chunks, schema)

    if not chunks:
        return Mesh(
            positions=_freeze(np.zeros((0, 3), dtype=np.float32)),
            normals=_freeze(np.zeros((0, 3), dtype=np.float32)),
            indices=_freeze(np.zeros((0, 3), dtype=np.uint32)),
            attributes={name: _freeze(np.zeros(0, dtype=dtype)) for name, dtype in schema.items()},
        )

    offsets = np.cumsum([0] + [chunk.n_vertices for chunk in chunks[:-1]])
    indices = np.vstack([chunk.indices + offset for chunk, offset in zip(chunks, offsets)])

    return Mesh(
        positions=_freeze(np.vstack([chunk.positions for chunk in chunks])),
        normals=_freeze(np.vstack([chunk.normals for chunk in chunks])),
        indices=_freeze(indices.astype(np.uint32)),
        attributes={
            name: _freeze(np.concatenate([chunk.attributes[name] for chunk in chunks]))
            for name in schema
        },
    )


class GeometryAssembler:
    """Turns turtle events into one merged static mesh."""

    schema = STATIC_SCHEMA

    def __init__(self, radial_segments: int = 8, leaf_radius: float = 0.3, leaf_segments: int = 8):
        self.radial_segments = radial_segments
        self.leaf_radius = leaf_radius
        self.leaf_segments = leaf_segments

    def segment_chunk(self, event: SegmentPlaced) -> GeometryChunk:
        chunk = cylinder_chunk(
            event.base,
            event.orientation,
            event.base_radius,
            event.top_radius,
            event.height,
            self.radial_segments,
        )
        chunk.set_attribute("branch_radius", event.base_radius)
        chunk.attributes["vertex_height"] = chunk.positions[:, 1].copy()
        return chunk

    def leaf_chunk(self, event: LeafPlaced) -> GeometryChunk:
        chunk = sphere_chunk(event.position, self.leaf_radius, self.leaf_segments, self.leaf_segments)
        chunk.set_attribute("branch_radius", event.radius)
        chunk.attributes["vertex_height"] = chunk.positions[:, 1].copy()
        return chunk

    def chunks(self, events: Iterable[TurtleEvent]) -> List[GeometryChunk]:
        result = []
        for event in events:
            if isinstance(event, SegmentPlaced):
                result.append(self.segment_chunk(event))
            else:
                result.append(self.leaf_chunk(event))
        return result

    def assemble(self, events: Iterable[TurtleEvent]) -> Mesh:
        mesh = merge_chunks(self.chunks(events), self.schema)
        logger.debug("Assembled mesh with %d vertices, %d triangles", mesh.n_vertices, mesh.n_triangles)
        return mesh
