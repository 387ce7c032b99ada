"""
Tests for the GLB container writer.
"""

import io
import struct
import sys
from pathlib import Path

import numpy as np
import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from husk import ExportError, GLBExporter, Husk, HuskConfig, Ring, export, read_glb_chunks
from husk.gltf_exporter import (
    ARRAY_BUFFER,
    ELEMENT_ARRAY_BUFFER,
    FLOAT,
    UNSIGNED_SHORT,
)
from husk.mesh import Face, Mesh, MeshBuilder
from husk.presets import pyramid


@pytest.fixture
def triangle_mesh():
    """One triangle, so the index view is not a multiple of 4 bytes."""
    builder = MeshBuilder()
    for pos in [(0, 0, 0), (1, 0, 0), (0, 1, 0)]:
        builder.push_vtx(pos)
    builder.push_face(Face([0, 1, 2]))
    return builder.build()


@pytest.fixture
def pyramid_mesh():
    return pyramid().build_mesh()


class FailingWriter(io.RawIOBase):
    def writable(self):
        return True

    def write(self, data):
        raise OSError("disk full")


# ============== Container Tests ==============

class TestContainer:
    """Test header and chunk layout."""

    def test_header(self, pyramid_mesh):
        data = GLBExporter().build(pyramid_mesh)
        magic, version, total = struct.unpack_from('<4sII', data, 0)
        assert magic == b'glTF'
        assert version == 2
        assert total == len(data)

    def test_chunks_aligned(self, triangle_mesh):
        data = GLBExporter().build(triangle_mesh)
        json_len, json_type = struct.unpack_from('<I4s', data, 12)
        assert json_type == b'JSON'
        assert json_len % 4 == 0
        bin_len, bin_type = struct.unpack_from('<I4s', data, 20 + json_len)
        assert bin_type == b'BIN\x00'
        assert bin_len % 4 == 0
        assert 28 + json_len + bin_len == len(data)

    def test_json_padded_with_spaces(self, triangle_mesh):
        data = GLBExporter().build(triangle_mesh)
        json_len = struct.unpack_from('<I', data, 12)[0]
        chunk = data[20:20 + json_len]
        assert chunk.rstrip(b' ').endswith(b'}')

    def test_empty_mesh_rejected(self):
        mesh = Mesh(
            vertices=np.zeros((0, 3), dtype=np.float32),
            faces=np.zeros((0, 3), dtype=np.uint32),
            normals=np.zeros((0, 3), dtype=np.float32),
        )
        with pytest.raises(ValueError):
            GLBExporter().build(mesh)


# ============== Document Tests ==============

class TestDocument:
    """Test the glTF JSON document."""

    def test_single_mesh_scene(self, pyramid_mesh):
        doc, _ = read_glb_chunks(GLBExporter().build(pyramid_mesh))
        assert doc["asset"]["version"] == "2.0"
        assert doc["scene"] == 0
        assert doc["scenes"][0]["nodes"] == [0]
        assert doc["nodes"][0]["mesh"] == 0
        primitive = doc["meshes"][0]["primitives"][0]
        assert primitive["indices"] == 0
        assert primitive["attributes"]["POSITION"] == 1
        assert primitive["attributes"]["NORMAL"] == 2

    def test_accessors(self, pyramid_mesh):
        doc, _ = read_glb_chunks(GLBExporter().build(pyramid_mesh))
        indices, positions, normals = doc["accessors"]
        assert indices["componentType"] == UNSIGNED_SHORT
        assert indices["type"] == "SCALAR"
        assert indices["count"] == 3 * pyramid_mesh.n_faces
        assert positions["componentType"] == FLOAT
        assert positions["type"] == "VEC3"
        assert positions["count"] == pyramid_mesh.n_vertices
        np.testing.assert_allclose(positions["min"], [-1.0, 0.0, -1.0], atol=1e-6)
        np.testing.assert_allclose(positions["max"], [1.0, 1.0, 1.0], atol=1e-6)
        assert normals["count"] == pyramid_mesh.n_vertices
        assert normals.get("min") is None

    def test_buffer_views(self, triangle_mesh):
        doc, bin_data = read_glb_chunks(GLBExporter().build(triangle_mesh))
        idx_view, pos_view, norm_view = doc["bufferViews"]
        assert idx_view["target"] == ELEMENT_ARRAY_BUFFER
        assert idx_view.get("byteStride") is None
        assert idx_view["byteOffset"] == 0
        assert idx_view["byteLength"] == 6
        assert pos_view["target"] == ARRAY_BUFFER
        assert pos_view["byteStride"] == 12
        assert pos_view["byteOffset"] == 8
        assert pos_view["byteLength"] == 36
        assert norm_view["byteOffset"] == 44
        assert doc["buffers"][0]["byteLength"] == len(bin_data)

    def test_binary_payload(self, triangle_mesh):
        doc, bin_data = read_glb_chunks(GLBExporter().build(triangle_mesh))
        idx_view, pos_view, _ = doc["bufferViews"]
        indices = np.frombuffer(bin_data, dtype='<u2', count=3, offset=idx_view["byteOffset"])
        np.testing.assert_array_equal(indices, [0, 1, 2])
        positions = np.frombuffer(bin_data, dtype='<f4', count=9, offset=pos_view["byteOffset"])
        np.testing.assert_allclose(positions.reshape(3, 3), triangle_mesh.vertices)

    def test_generator_and_extras(self, triangle_mesh):
        exporter = GLBExporter(generator="test-gen")
        doc, _ = read_glb_chunks(exporter.build(triangle_mesh, {"seed": 7}))
        assert doc["asset"]["generator"] == "test-gen"
        assert doc["extras"] == {"seed": 7}

    def test_document_carries_blob(self, triangle_mesh):
        gltf = GLBExporter().to_gltf(triangle_mesh)
        blob = gltf.binary_blob()
        assert len(blob) % 4 == 0
        assert gltf.buffers[0].byteLength == len(blob)
        assert gltf.accessors[1].count == 3

    def test_extras_disabled(self, triangle_mesh):
        exporter = GLBExporter(embed_metadata=False)
        doc, _ = read_glb_chunks(exporter.build(triangle_mesh, {"seed": 7}))
        assert not doc.get("extras")


# ============== Writer Tests ==============

class TestWriter:
    """Test writing to streams."""

    def test_write_returns_size(self, triangle_mesh):
        buf = io.BytesIO()
        size = GLBExporter().write(triangle_mesh, buf)
        assert size == len(buf.getvalue())

    def test_module_export(self, triangle_mesh):
        buf = io.BytesIO()
        export(buf, triangle_mesh)
        assert buf.getvalue()[:4] == b'glTF'

    def test_write_failure_wrapped(self, triangle_mesh):
        with pytest.raises(ExportError):
            GLBExporter().write(triangle_mesh, FailingWriter())

    def test_husk_write_export(self):
        husk = pyramid()
        buf = io.BytesIO()
        mesh = husk.write_export(buf, {"name": "pyramid"})
        doc, _ = read_glb_chunks(buf.getvalue())
        assert doc["accessors"][0]["count"] == 3 * mesh.n_faces
        assert doc["extras"] == {"name": "pyramid"}

    def test_husk_generator_from_config(self):
        husk = Husk(HuskConfig(generator="trees"))
        husk.add_ring(Ring().add_spoke(1.0).add_spoke(1.0).add_spoke(1.0))
        buf = io.BytesIO()
        husk.write_export(buf)
        doc, _ = read_glb_chunks(buf.getvalue())
        assert doc["asset"]["generator"] == "trees"
