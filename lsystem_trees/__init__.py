"""Procedural 3D trees from L-system grammars."""
from lsystem_trees.animator import TreeAnimator
from lsystem_trees.config import BuildMode, TreeConfig, TreeParams, load_config, parse_config
from lsystem_trees.errors import (
    AssetDisposedError,
    AttributeSchemaMismatch,
    MalformedParameter,
    TreeBuildError,
)
from lsystem_trees.geometry import GeometryAssembler, Mesh
from lsystem_trees.l_system import LSystemGenerator
from lsystem_trees.preset import LSYSTEM_PRESETS
from lsystem_trees.skeleton import Bone, Skeleton, SkeletonBuilder
from lsystem_trees.tree_builder import TreeAsset, TreeBuilder, evaluate_sway
from lsystem_trees.turtle_3d import LeafPlaced, SegmentPlaced, Symbol, TurtleInterpreter
from lsystem_trees.wind import BoneSwaySettings, VertexSwaySettings, WindParameters

__version__ = "0.1.0"
