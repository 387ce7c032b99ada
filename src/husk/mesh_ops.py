"""
Mesh operation utilities.

Checks on finished husk meshes, using trimesh.
"""

import logging
from typing import Any, Dict

import trimesh

from .mesh import Mesh

logger = logging.getLogger(__name__)


def to_trimesh(mesh: Mesh, merge_seams: bool = True) -> trimesh.Trimesh:
    """
    Convert a husk mesh to a trimesh object.

    Args:
        mesh: Finished mesh
        merge_seams: Weld vertices that were split along shading seams, so
            topology checks see one connected surface

    Returns:
        Trimesh mesh object
    """
    tm = trimesh.Trimesh(
        vertices=mesh.vertices,
        faces=mesh.faces,
        process=False
    )
    if merge_seams:
        tm.merge_vertices()
    return tm


def compute_mesh_stats(mesh: Mesh) -> Dict[str, Any]:
    """
    Compute mesh statistics.

    Args:
        mesh: Finished mesh

    Returns:
        Dictionary of mesh statistics
    """
    tm = to_trimesh(mesh)
    bounds = tm.bounds
    extents = tm.extents

    stats = {
        "n_vertices": mesh.n_vertices,
        "n_faces": mesh.n_faces,
        "bounds": {
            "min": bounds[0].tolist(),
            "max": bounds[1].tolist()
        },
        "extents": extents.tolist(),
        "max_extent": float(max(extents)),
        "volume": float(tm.volume) if tm.is_watertight else None,
        "surface_area": float(tm.area),
        "is_watertight": bool(tm.is_watertight),
        "is_winding_consistent": bool(tm.is_winding_consistent),
        "euler_number": int(tm.euler_number)
    }
    logger.debug(f"Mesh stats: watertight={stats['is_watertight']}, "
                 f"faces={stats['n_faces']}")
    return stats
