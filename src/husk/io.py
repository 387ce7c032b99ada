"""
Husk I/O utilities.

Saves husks as GLB with a JSON metadata sidecar, and reads GLB containers
back into meshes.
"""

import json
import logging
import struct
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np
from pygltflib import GLTF2

from .builder import Husk
from .config import MeshMetadata
from .errors import ExportError
from .gltf_exporter import GLBExporter
from .mesh import Mesh
from .mesh_ops import compute_mesh_stats

logger = logging.getLogger(__name__)

COMPONENT_DTYPES = {
    5121: np.dtype('<u1'),
    5123: np.dtype('<u2'),
    5125: np.dtype('<u4'),
    5126: np.dtype('<f4'),
}

TYPE_WIDTHS = {"SCALAR": 1, "VEC2": 2, "VEC3": 3, "VEC4": 4}

GLB_MAGIC = b'glTF'
GLB_VERSION = 2
CHUNK_JSON = b'JSON'
CHUNK_BIN = b'BIN\x00'


def save_glb(
    husk: Husk,
    path: Path,
    generation_params: Optional[Dict[str, Any]] = None
) -> Tuple[Mesh, MeshMetadata]:
    """
    Finish a husk and save it as GLB with a metadata sidecar.

    Args:
        husk: Husk to finish (it cannot be extended afterward)
        path: Output path (should end in .glb)
        generation_params: Free-form parameters recorded in the metadata

    Returns:
        Tuple of (mesh, metadata)
    """
    path = Path(path)
    mesh = husk.build_mesh()
    stats = compute_mesh_stats(mesh)
    metadata = MeshMetadata(
        n_vertices=mesh.n_vertices,
        n_triangles=mesh.n_faces,
        bounds_min=stats["bounds"]["min"],
        bounds_max=stats["bounds"]["max"],
        is_watertight=stats["is_watertight"],
        generator=husk.config.generator,
        generation_params=generation_params or {}
    )
    exporter = GLBExporter(
        generator=husk.config.generator,
        embed_metadata=husk.config.embed_metadata
    )
    exporter.export(mesh, path, metadata.to_dict())

    meta_path = path.with_suffix('.json')
    try:
        metadata.save(meta_path)
    except OSError as e:
        raise ExportError(f"Failed to save metadata {meta_path}: {e}") from e
    logger.info(f"Saved metadata: {meta_path}")
    return mesh, metadata


def read_glb_chunks(data: bytes) -> Tuple[Dict[str, Any], bytes]:
    """
    Split a GLB container into its JSON document and BIN payload.

    Raises:
        ValueError: if the header or chunk layout is malformed
    """
    if len(data) < 12:
        raise ValueError("GLB data too short for header")
    magic, version, total = struct.unpack_from('<4sII', data, 0)
    if magic != GLB_MAGIC:
        raise ValueError(f"Bad GLB magic: {magic!r}")
    if version != GLB_VERSION:
        raise ValueError(f"Unsupported GLB version: {version}")
    if total != len(data):
        raise ValueError(f"GLB length mismatch: header {total}, actual {len(data)}")

    chunks = {}
    offset = 12
    while offset < total:
        if offset + 8 > total:
            raise ValueError(f"Truncated GLB chunk header at byte {offset}")
        length, ctype = struct.unpack_from('<I4s', data, offset)
        offset += 8
        if offset + length > total:
            raise ValueError(f"GLB chunk {ctype!r} overruns the container")
        chunks[ctype] = data[offset:offset + length]
        offset += length
    if CHUNK_JSON not in chunks:
        raise ValueError("GLB has no JSON chunk")
    document = json.loads(chunks[CHUNK_JSON].decode('utf-8'))
    return document, chunks.get(CHUNK_BIN, b'')


def _read_accessor(gltf: GLTF2, blob: bytes, index: int) -> np.ndarray:
    accessor = gltf.accessors[index]
    view = gltf.bufferViews[accessor.bufferView]
    dtype = COMPONENT_DTYPES[accessor.componentType]
    width = TYPE_WIDTHS[accessor.type]
    start = (view.byteOffset or 0) + (accessor.byteOffset or 0)
    values = np.frombuffer(blob, dtype=dtype, count=accessor.count * width, offset=start)
    return values.reshape(-1, width) if width > 1 else values


def load_glb(path: Union[str, Path]) -> Mesh:
    """
    Load the first mesh primitive of a GLB file.

    Args:
        path: Path to .glb file

    Returns:
        Mesh with positions, faces and normals (zero normals if absent)
    """
    path = Path(path)
    gltf = GLTF2.load_binary(str(path))
    blob = gltf.binary_blob()
    primitive = gltf.meshes[0].primitives[0]

    vertices = _read_accessor(gltf, blob, primitive.attributes.POSITION)
    indices = _read_accessor(gltf, blob, primitive.indices)
    if primitive.attributes.NORMAL is not None:
        normals = _read_accessor(gltf, blob, primitive.attributes.NORMAL)
    else:
        normals = np.zeros_like(vertices)

    logger.info(f"Loaded {path}: {len(vertices)} verts, {len(indices) // 3} faces")
    return Mesh(
        vertices=vertices.astype(np.float32),
        faces=indices.reshape(-1, 3).astype(np.uint32),
        normals=normals.astype(np.float32),
    )
