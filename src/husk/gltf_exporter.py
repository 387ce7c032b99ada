"""
glTF/GLB Export Module

Writes a finished husk mesh as a single-mesh, single-buffer GLB container
using pygltflib. The binary buffer holds the index, position and normal
views, each starting 4-byte aligned.
"""

import logging
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional

import numpy as np
from pygltflib import (
    ARRAY_BUFFER,
    ELEMENT_ARRAY_BUFFER,
    FLOAT,
    GLTF2,
    UNSIGNED_SHORT,
    Accessor,
    Asset,
    Attributes,
    Buffer,
    BufferView,
    Mesh as GLTFMesh,
    Node,
    Primitive,
    Scene,
)

from .errors import ExportError
from .mesh import Mesh

logger = logging.getLogger(__name__)


class _BufferBuilder:
    """Packs buffer views into one binary blob, each starting 4-byte aligned."""

    def __init__(self):
        self.blob = bytearray()
        self.views: List[BufferView] = []

    def push_view(self, data: np.ndarray, target: int, stride: Optional[int] = None) -> int:
        self.blob.extend(b'\x00' * (-len(self.blob) % 4))
        raw = np.ascontiguousarray(data).tobytes()
        # no byteStride for index views
        self.views.append(BufferView(
            buffer=0,
            byteOffset=len(self.blob),
            byteLength=len(raw),
            byteStride=stride,
            target=target
        ))
        self.blob.extend(raw)
        return len(self.views) - 1

    def finish(self) -> bytes:
        self.blob.extend(b'\x00' * (-len(self.blob) % 4))
        return bytes(self.blob)


class GLBExporter:
    """
    Exports husk meshes to GLB format.

    Layout is fixed: accessor/view 0 holds uint16 indices, 1 holds float
    positions with bounds, 2 holds float normals.
    """

    def __init__(self, generator: str = "husk", embed_metadata: bool = True):
        """
        Initialize exporter.

        Args:
            generator: glTF asset generator string
            embed_metadata: Whether to embed caller metadata in glTF extras
        """
        self.generator = generator
        self.embed_metadata = embed_metadata

    def to_gltf(self, mesh: Mesh, metadata: Optional[Dict[str, Any]] = None) -> GLTF2:
        """
        Build the glTF document with its binary blob attached.

        Args:
            mesh: Finished mesh
            metadata: Optional metadata dictionary for glTF extras

        Returns:
            GLTF2 document
        """
        if mesh.n_faces == 0 or mesh.n_vertices == 0:
            raise ValueError("Cannot export an empty mesh")

        indices = mesh.indices.astype('<u2')
        vertices = np.asarray(mesh.vertices, dtype='<f4')
        normals = np.asarray(mesh.normals, dtype='<f4')

        buffers = _BufferBuilder()
        idx_view = buffers.push_view(indices, ELEMENT_ARRAY_BUFFER)
        pos_view = buffers.push_view(vertices, ARRAY_BUFFER, stride=12)
        norm_view = buffers.push_view(normals, ARRAY_BUFFER, stride=12)
        blob = buffers.finish()

        gltf = GLTF2(
            asset=Asset(version="2.0", generator=self.generator),
            scene=0,
            scenes=[Scene(nodes=[0])],
            nodes=[Node(mesh=0)],
            meshes=[GLTFMesh(primitives=[
                Primitive(
                    attributes=Attributes(POSITION=pos_view, NORMAL=norm_view),
                    indices=idx_view
                )
            ])],
            accessors=[
                # Indices
                Accessor(
                    bufferView=idx_view,
                    componentType=UNSIGNED_SHORT,
                    count=int(len(indices)),
                    type="SCALAR"
                ),
                # Vertex positions
                Accessor(
                    bufferView=pos_view,
                    componentType=FLOAT,
                    count=mesh.n_vertices,
                    type="VEC3",
                    max=[float(v) for v in vertices.max(axis=0)],
                    min=[float(v) for v in vertices.min(axis=0)]
                ),
                # Normals
                Accessor(
                    bufferView=norm_view,
                    componentType=FLOAT,
                    count=mesh.n_vertices,
                    type="VEC3"
                ),
            ],
            bufferViews=buffers.views,
            buffers=[Buffer(byteLength=len(blob))]
        )

        # Embed metadata in extras
        if self.embed_metadata and metadata:
            gltf.extras = metadata

        gltf.set_binary_blob(blob)
        return gltf

    def build(self, mesh: Mesh, metadata: Optional[Dict[str, Any]] = None) -> bytes:
        """Complete GLB container bytes for ``mesh``."""
        return b''.join(self.to_gltf(mesh, metadata).save_to_bytes())

    def write(
        self,
        mesh: Mesh,
        writer: BinaryIO,
        metadata: Optional[Dict[str, Any]] = None
    ) -> int:
        """
        Write a mesh as GLB to a binary stream.

        Returns:
            Number of bytes written
        """
        data = self.build(mesh, metadata)
        try:
            writer.write(data)
            writer.flush()
        except (OSError, ValueError) as e:
            raise ExportError(f"Failed to write GLB: {e}") from e
        logger.debug(f"Wrote {len(data)} GLB bytes")
        return len(data)

    def export(
        self,
        mesh: Mesh,
        output_path: Path,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Path:
        """
        Export a mesh to a GLB file.

        Args:
            mesh: Finished mesh
            output_path: Output file path (.glb)
            metadata: Optional metadata dictionary to embed

        Returns:
            Path to exported file
        """
        output_path = Path(output_path)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, 'wb') as f:
                self.write(mesh, f, metadata)
        except OSError as e:
            raise ExportError(f"Failed to export {output_path}: {e}") from e
        logger.info(f"Exported GLB to {output_path}")
        return output_path


def export(writer: BinaryIO, mesh: Mesh) -> None:
    """Write ``mesh`` to ``writer`` as GLB with default settings."""
    GLBExporter().write(mesh, writer)
