import logging
import os
from typing import Optional

import matplotlib
import matplotlib.pyplot as plt
import numpy as np
import pyvista as pv
from mpl_toolkits.mplot3d.art3d import Poly3DCollection

from lsystem_trees.geometry import Mesh
from lsystem_trees.skeleton import Skeleton

logger = logging.getLogger(__name__)


def mesh_to_polydata(mesh: Mesh, positions: Optional[np.ndarray] = None) -> pv.PolyData:
    """
    Convert a tree mesh to a pyvista PolyData with its vertex attributes.

    Args:
        mesh: Built tree mesh
        positions: Optional (N, 3) posed positions replacing the rest positions
    """
    points = mesh.positions if positions is None else positions
    faces = np.hstack([
        np.full((mesh.n_triangles, 1), 3, dtype=np.int64),
        mesh.indices.astype(np.int64),
    ]).ravel()
    poly = pv.PolyData(np.asarray(points, dtype=np.float32), faces)
    poly.point_data["Normals"] = mesh.normals
    for name, values in mesh.attributes.items():
        poly.point_data[name] = values
    return poly


def skeleton_to_polydata(skeleton: Skeleton) -> pv.PolyData:
    """One line per bone from head to tail, root excluded."""
    bones = [bone for bone in skeleton.bones if bone.parent >= 0]
    if not bones:
        return pv.PolyData()
    points = np.array([p for bone in bones for p in (bone.head, bone.tail)])
    lines = np.array([[2, 2 * i, 2 * i + 1] for i in range(len(bones))], dtype=np.int64).ravel()
    poly = pv.PolyData(points, lines=lines)
    poly.cell_data["bone_index"] = np.array([bone.index for bone in bones], dtype=np.int32)
    poly.cell_data["parent_index"] = np.array([bone.parent for bone in bones], dtype=np.int32)
    return poly


def save_mesh(mesh: Mesh, filepath: str) -> None:
    """Write the mesh to any format pyvista can save (.vtk, .vtp, .ply, .stl, .obj)."""
    os.makedirs(os.path.dirname(os.path.abspath(filepath)) or ".", exist_ok=True)
    mesh_to_polydata(mesh).save(filepath)
    logger.info("Mesh saved to %s", filepath)


def save_skeleton(skeleton: Skeleton, filepath: str) -> None:
    """Store bone parents, heads, offsets and radii as a compressed .npz archive."""
    os.makedirs(os.path.dirname(os.path.abspath(filepath)) or ".", exist_ok=True)
    np.savez_compressed(
        filepath,
        parents=skeleton.parents,
        heads=skeleton.heads,
        offsets=skeleton.offsets,
        radii=skeleton.radii,
    )
    logger.info("Skeleton saved to %s", filepath)


def render(
    mesh: Mesh,
    positions: Optional[np.ndarray] = None,
    elev: float = 20,
    azim: float = 45,
    save_path: Optional[str] = None,
    show: bool = False,
    color: str = "saddlebrown",
):
    """
    Static matplotlib preview of the tree mesh.

    Args:
        mesh: Built tree mesh
        positions: Optional posed positions
        elev: Elevation angle for 3D view
        azim: Azimuth angle for 3D view
        save_path: Optional path to save figure
        show: Open an interactive window
        color: Face color

    Returns:
        The matplotlib figure
    """
    if not show:
        matplotlib.use("Agg")
    points = mesh.positions if positions is None else np.asarray(positions)

    fig = plt.figure(figsize=(8, 10))
    ax = fig.add_subplot(111, projection='3d')

    if not mesh.is_empty:
        # Tree grows along +Y, matplotlib draws Z upwards
        xzy = points[:, [0, 2, 1]]
        ax.add_collection3d(Poly3DCollection(
            xzy[mesh.indices], facecolor=color, edgecolor='none', alpha=0.9
        ))
        lo, hi = xzy.min(axis=0), xzy.max(axis=0)
        center = (lo + hi) / 2
        half = max((hi - lo).max() / 2, 1e-6)
        ax.set_xlim(center[0] - half, center[0] + half)
        ax.set_ylim(center[1] - half, center[1] + half)
        ax.set_zlim(center[2] - half, center[2] + half)

    ax.set_xlabel('X')
    ax.set_ylabel('Z')
    ax.set_zlabel('Y (up)')
    ax.view_init(elev=elev, azim=azim)
    plt.tight_layout()

    if save_path:
        os.makedirs(os.path.dirname(os.path.abspath(save_path)) or ".", exist_ok=True)
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info("Preview saved to %s", save_path)
    if show:
        plt.show()
    return fig


def plot_tree(mesh: Mesh, skeleton: Optional[Skeleton] = None, color: str = "tan") -> None:
    """Interactive pyvista view of the mesh, with the bones drawn on top if given."""
    plotter = pv.Plotter()
    if not mesh.is_empty:
        plotter.add_mesh(mesh_to_polydata(mesh), color=color, smooth_shading=True)
    if skeleton is not None and len(skeleton) > 1:
        plotter.add_mesh(skeleton_to_polydata(skeleton), color="red", line_width=3)
    plotter.add_axes()
    try:
        plotter.show()
    except Exception as e:
        logger.warning("Could not display 3D plot (no display available): %s", e)
