"""
Wind sway for built trees.

Two strategies are provided and picked by the build mode of the asset:

- vertex_sway: per-vertex lateral displacement for static meshes, driven by
  the `branch_radius` and `vertex_height` attributes (what a vertex shader
  would compute on the GPU).
- bone_sway: per-bone local rotation for skinned meshes.

Both are pure functions of time, the static per-element attributes and the
wind parameters, so replaying the same times gives the same sway.
"""
import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from lsystem_trees.errors import MalformedParameter


@dataclass(frozen=True)
class WindParameters:
    direction: Tuple[float, float, float] = (1.0, 0.0, 0.0)
    strength: float = 1.0
    noise_sample: Optional[float] = None

    def validate(self) -> None:
        if len(self.direction) != 3:
            raise MalformedParameter("wind direction must have three components")
        direction = np.asarray(self.direction, dtype=float)
        if not np.all(np.isfinite(direction)) or not math.isfinite(self.strength):
            raise MalformedParameter(
                f"wind direction and strength must be finite, got {self.direction}, {self.strength}"
            )
        # sway happens in the XZ plane, a purely vertical wind has nothing to push
        if direction[0] == 0 and direction[2] == 0:
            raise MalformedParameter(
                f"wind direction must have a horizontal (x or z) component, got {self.direction}"
            )

    def with_noise(self, noise_sample: Optional[float]) -> "WindParameters":
        return WindParameters(self.direction, self.strength, noise_sample)

    def horizontal_axes(self) -> Tuple[np.ndarray, np.ndarray]:
        """Unit wind direction in the XZ plane and its horizontal perpendicular."""
        d = np.array([self.direction[0], 0.0, self.direction[2]], dtype=float)
        norm = np.linalg.norm(d)
        if norm == 0:
            raise MalformedParameter(
                f"wind direction must have a horizontal (x or z) component, got {self.direction}"
            )
        primary = d / norm
        secondary = np.array([-primary[2], 0.0, primary[0]])
        return primary, secondary


@dataclass(frozen=True)
class VertexSwaySettings:
    """Uniforms of the static sway; defaults match the tree material."""

    speed: float = 1.0
    amplitude: float = 0.025
    base_threshold: float = 0.0
    use_noise: bool = True
    move_circular: bool = True
    radius_falloff: bool = False


@dataclass(frozen=True)
class BoneSwaySettings:
    branch_flexibility: float = 1.0
    phase_step: float = 0.1
    strength_scale: float = 0.01


def vertex_sway(
    branch_radius: np.ndarray,
    vertex_height: np.ndarray,
    time: float,
    wind: WindParameters,
    settings: VertexSwaySettings = VertexSwaySettings(),
) -> np.ndarray:
    """
    Displacement of every vertex of a static tree mesh.

    Args:
        branch_radius: (N,) radius of the branch owning each vertex
        vertex_height: (N,) world height of each vertex
        time: Seconds since start
        wind: Shared wind parameters
        settings: Sway uniforms

    Returns:
        (N, 3) float32 displacement to add to the vertex positions
    """
    wind.validate()
    height = np.asarray(vertex_height, dtype=np.float64)
    factor = np.where(height < settings.base_threshold, 0.0, height)
    if settings.radius_falloff:
        factor = factor / (np.asarray(branch_radius, dtype=np.float64) + 1.0)

    angle = time * settings.speed
    if settings.use_noise and wind.noise_sample is not None:
        angle += wind.noise_sample * np.pi

    amplitude = settings.amplitude * wind.strength
    primary, secondary = wind.horizontal_axes()

    offset = np.outer(np.sin(angle) * amplitude * factor, primary)
    if settings.move_circular:
        offset += np.outer(np.cos(angle) * amplitude * factor, secondary)
    return offset.astype(np.float32)


def bone_sway(
    radii: np.ndarray,
    time: float,
    wind: WindParameters,
    settings: BoneSwaySettings = BoneSwaySettings(),
    phase: float = 0.0,
) -> np.ndarray:
    """
    Local Euler rotations (x, y, z in radians) for every bone of a skeleton.

    Thinner bones sway more; every bone lags the previous one by
    `settings.phase_step`. Row 0 (the synthetic root) stays at rest.

    Args:
        radii: (B,) bone radii, index 0 is the root
        time: Seconds since start
        wind: Shared wind parameters
        settings: Flexibility and phase settings
        phase: Per-instance phase offset

    Returns:
        (B, 3) rotations
    """
    wind.validate()
    radii = np.asarray(radii, dtype=np.float64)
    index = np.arange(len(radii))
    influence = settings.branch_flexibility / (radii + 1.0)
    t = time + phase + index * settings.phase_step
    strength = wind.strength * settings.strength_scale

    rotations = np.zeros((len(radii), 3))
    rotations[:, 0] = wind.direction[0] * strength * influence * np.sin(t)
    rotations[:, 2] = wind.direction[2] * strength * influence * np.cos(t)
    if len(radii):
        rotations[0] = 0.0
    return rotations
