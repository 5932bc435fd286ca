import logging
from dataclasses import dataclass
from typing import List

import numpy as np

from lsystem_trees.config import BuildMode
from lsystem_trees.errors import MalformedParameter
from lsystem_trees.tree_builder import TreeAsset
from lsystem_trees.wind import BoneSwaySettings, WindParameters, bone_sway

logger = logging.getLogger(__name__)


@dataclass
class SwayInstance:
    asset: TreeAsset
    phase: float = 0.0


class TreeAnimator:
    """
    Drives the bone sway of many skinned trees.

    Instances may share one built asset; each keeps its own phase so a crowd
    of identical trees does not move in lockstep.
    """

    def __init__(self, settings: BoneSwaySettings = BoneSwaySettings()):
        self.settings = settings
        self.instances: List[SwayInstance] = []

    def add_instance(self, asset: TreeAsset, phase: float = 0.0) -> SwayInstance:
        if asset.mode is not BuildMode.SKINNED:
            raise MalformedParameter("only skinned trees can be animated by bone sway")
        asset.require_mesh()
        instance = SwayInstance(asset, phase)
        self.instances.append(instance)
        return instance

    def clear(self) -> None:
        self.instances.clear()

    def animate(self, time: float, wind: WindParameters) -> List[np.ndarray]:
        """Bone rotations of every instance at `time`."""
        if not self.instances:
            return []
        wind.validate()
        return [
            bone_sway(instance.asset.skeleton.radii, time, wind, self.settings, phase=instance.phase)
            for instance in self.instances
        ]

    def posed_positions(self, time: float, wind: WindParameters) -> List[np.ndarray]:
        """Skinned vertex positions of every instance at `time`."""
        poses = []
        for instance, rotations in zip(self.instances, self.animate(time, wind)):
            mesh = instance.asset.require_mesh()
            poses.append(instance.asset.skeleton.skin(mesh, rotations))
        return poses
