"""
Husk - procedural tube surfaces from ring declarations.

Rings of spokes are stitched into a closed, branching triangle mesh and
exported as a GLB container.

Usage:
    from husk import Husk, Ring
    husk = Husk()
    husk.add_ring(Ring().add_spoke(1.0).add_spoke(1.0).add_spoke(1.0).add_spoke(1.0))
    husk.add_ring(Ring().add_spoke(0.0))
    with open("pyramid.glb", "wb") as f:
        husk.write_export(f)
"""

from .config import HuskConfig, MeshMetadata, Shading
from .errors import (
    HuskError, UnknownBranchLabel, ConsumedBranchLabel,
    InvalidBranches, InvalidRing, ExportError,
)
from .ring import Ring, Spoke, Point
from .branch import Branch, Edge
from .mesh import Face, Mesh, MeshBuilder
from .builder import Husk
from .gltf_exporter import GLBExporter, export
from .io import save_glb, load_glb, read_glb_chunks
from .mesh_ops import to_trimesh, compute_mesh_stats
from .presets import pyramid, tree

__version__ = "0.1.0"

__all__ = [
    'HuskConfig', 'MeshMetadata', 'Shading',
    'HuskError', 'UnknownBranchLabel', 'ConsumedBranchLabel',
    'InvalidBranches', 'InvalidRing', 'ExportError',
    'Ring', 'Spoke', 'Point',
    'Branch', 'Edge',
    'Face', 'Mesh', 'MeshBuilder',
    'Husk',
    'GLBExporter', 'export',
    'save_glb', 'load_glb', 'read_glb_chunks',
    'to_trimesh', 'compute_mesh_stats',
    'pyramid', 'tree',
]
