import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
from scipy.spatial.transform import Rotation

from lsystem_trees.geometry import STATIC_SCHEMA, GeometryAssembler, Mesh, merge_chunks
from lsystem_trees.turtle_3d import SegmentPlaced, TurtleEvent

logger = logging.getLogger(__name__)

SKINNED_SCHEMA = dict(STATIC_SCHEMA, skin_index=np.int32, skin_weight=np.float32)

ROOT = 0


@dataclass
class Bone:
    """
    One joint of the tree skeleton.

    The bone head sits at the base of its segment, `offset` points from the
    head to the tip of the segment. Bone 0 is the synthetic root.
    """

    index: int
    parent: int  # -1 for the root
    head: np.ndarray
    offset: np.ndarray
    radius: float
    children: List[int] = field(default_factory=list)

    @property
    def name(self) -> str:
        return "root" if self.parent < 0 else f"bone_{self.index:04d}"

    @property
    def tail(self) -> np.ndarray:
        return self.head + self.offset


class Skeleton:
    """Ordered bone list; every parent comes before its children."""

    def __init__(self, bones: Sequence[Bone]):
        self.bones = list(bones)
        for bone in self.bones:
            if bone.parent >= bone.index:
                raise ValueError(f"bone {bone.index} has parent {bone.parent} that is not before it")

    def __len__(self) -> int:
        return len(self.bones)

    def __getitem__(self, index: int) -> Bone:
        return self.bones[index]

    @property
    def parents(self) -> np.ndarray:
        return np.array([bone.parent for bone in self.bones], dtype=np.int32)

    @property
    def radii(self) -> np.ndarray:
        return np.array([bone.radius for bone in self.bones])

    @property
    def offsets(self) -> np.ndarray:
        return np.array([bone.offset for bone in self.bones]).reshape(-1, 3)

    @property
    def heads(self) -> np.ndarray:
        return np.array([bone.head for bone in self.bones]).reshape(-1, 3)

    def local_translation(self, index: int) -> np.ndarray:
        """Head position relative to the parent's head (the world head for the root)."""
        bone = self.bones[index]
        if bone.parent < 0:
            return bone.head.copy()
        return bone.head - self.bones[bone.parent].head

    def descendants(self, index: int) -> List[int]:
        result = []
        pending = list(self.bones[index].children)
        while pending:
            child = pending.pop()
            result.append(child)
            pending.extend(self.bones[child].children)
        return sorted(result)

    def world_matrices(self, rotations: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Forward kinematics.

        Args:
            rotations: (B, 3) local Euler rotations (xyz, radians), None for the rest pose

        Returns:
            (B, 4, 4) world transforms of every bone
        """
        n = len(self.bones)
        if rotations is None:
            rotations = np.zeros((n, 3))
        local_rot = Rotation.from_euler("xyz", np.asarray(rotations).reshape(n, 3)).as_matrix()

        world = np.zeros((n, 4, 4))
        for bone in self.bones:
            local = np.eye(4)
            local[:3, :3] = local_rot[bone.index]
            local[:3, 3] = self.local_translation(bone.index)
            if bone.parent < 0:
                world[bone.index] = local
            else:
                world[bone.index] = world[bone.parent] @ local
        return world

    def skinning_matrices(self, rotations: Optional[np.ndarray] = None) -> np.ndarray:
        """World transform times inverse bind transform for every bone."""
        world = self.world_matrices(rotations)
        inverse_bind = np.tile(np.eye(4), (len(self.bones), 1, 1))
        inverse_bind[:, :3, 3] = -self.heads
        return world @ inverse_bind

    def skin(self, mesh: Mesh, rotations: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Linear blend skinning with one bone per vertex.

        Returns:
            (N, 3) posed vertex positions
        """
        matrices = self.skinning_matrices(rotations)
        bone_index = mesh.attribute("skin_index")
        weight = mesh.attribute("skin_weight").astype(np.float64)

        per_vertex = matrices[bone_index]
        positions = mesh.positions.astype(np.float64)
        posed = np.einsum("nij,nj->ni", per_vertex[:, :3, :3], positions) + per_vertex[:, :3, 3]
        return weight[:, None] * posed


class SkeletonBuilder:
    """
    Builds a skinned mesh plus a bone hierarchy mirroring the turtle's branches.

    Every segment gets its own bone, parented to the bone of the segment that
    was active when its branch was opened. Vertices are bound rigidly
    (weight 1.0) to the bone of their own segment; leaves follow the bone of
    the segment they grow on.
    """

    def __init__(self, assembler: Optional[GeometryAssembler] = None, position=None):
        self.assembler = assembler or GeometryAssembler()
        self.position = np.zeros(3) if position is None else np.asarray(position, dtype=float)

    def build(self, events: Iterable[TurtleEvent]) -> Tuple[Mesh, Skeleton]:
        root = Bone(index=ROOT, parent=-1, head=self.position.copy(), offset=np.zeros(3), radius=0.0)
        bones = [root]
        chunks = []

        for event in events:
            if isinstance(event, SegmentPlaced):
                parent = event.parent_index + 1
                bone = Bone(
                    index=len(bones),
                    parent=parent,
                    head=event.base.copy(),
                    offset=event.direction.copy(),
                    radius=event.base_radius,
                )
                bones[parent].children.append(bone.index)
                bones.append(bone)
                chunk = self.assembler.segment_chunk(event)
                owner = bone.index
            else:
                chunk = self.assembler.leaf_chunk(event)
                owner = event.segment_index + 1
            chunk.set_attribute("skin_index", owner, dtype=np.int32)
            chunk.set_attribute("skin_weight", 1.0)
            chunks.append(chunk)

        mesh = merge_chunks(chunks, SKINNED_SCHEMA)
        skeleton = Skeleton(bones)
        logger.debug("Built skeleton with %d bones for %d vertices", len(skeleton), mesh.n_vertices)
        return mesh, skeleton
