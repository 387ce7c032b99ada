"""
Tests for the mesh builder: faces, seam splitting and normals.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from husk.mesh import MAX_VERTICES, Face, MeshBuilder, build_normals


@pytest.fixture
def folded_quad():
    """Two triangles sharing edge 1-2, folded along it."""
    builder = MeshBuilder()
    for pos in [(0, 0, 0), (1, 0, 0), (0, 1, 0), (1, 1, 1)]:
        builder.push_vtx(pos)
    return builder


# ============== Face Tests ==============

class TestFace:
    """Test face validation."""

    def test_with_weight(self):
        face = Face.with_weight([0, 1, 2], 0.0)
        assert face.weights == (0.0, 0.0, 0.0)
        assert face.corner_weight(1) == 0.0
        assert face.corner_weight(7) is None

    def test_repeated_vertex_rejected(self):
        with pytest.raises(ValueError):
            Face([0, 1, 1])

    def test_wrong_size_rejected(self):
        with pytest.raises(ValueError):
            Face([0, 1])

    def test_push_face_out_of_range(self):
        builder = MeshBuilder()
        builder.push_vtx((0, 0, 0))
        builder.push_vtx((1, 0, 0))
        with pytest.raises(IndexError):
            builder.push_face(Face([0, 1, 2]))


# ============== Seam Tests ==============

class TestSeams:
    """Test vertex splitting along shading seams."""

    def test_same_smooth_weight_stays_welded(self, folded_quad):
        folded_quad.push_face(Face.with_weight([0, 1, 2], 1.0))
        folded_quad.push_face(Face.with_weight([2, 1, 3], 1.0))
        mesh = folded_quad.build()
        assert mesh.n_vertices == 4
        np.testing.assert_array_equal(mesh.faces, [[0, 1, 2], [2, 1, 3]])

    def test_mixed_weights_split(self, folded_quad):
        folded_quad.push_face(Face.with_weight([0, 1, 2], 1.0))
        folded_quad.push_face(Face.with_weight([2, 1, 3], 0.5))
        mesh = folded_quad.build()
        assert mesh.n_vertices == 6
        np.testing.assert_array_equal(mesh.faces[0], [0, 1, 2])
        np.testing.assert_array_equal(mesh.faces[1], [5, 4, 3])
        np.testing.assert_allclose(mesh.vertices[4], mesh.vertices[1])
        np.testing.assert_allclose(mesh.vertices[5], mesh.vertices[2])

    def test_mixed_weights_normals(self, folded_quad):
        folded_quad.push_face(Face.with_weight([0, 1, 2], 1.0))
        folded_quad.push_face(Face.with_weight([2, 1, 3], 0.5))
        mesh = folded_quad.build()
        for v in (0, 1, 2):
            np.testing.assert_allclose(mesh.normals[v], [0.0, 0.0, 1.0], atol=1e-6)
        expected = np.array([-1.0, -1.0, 1.0]) / np.sqrt(3.0)
        for v in (3, 4, 5):
            np.testing.assert_allclose(mesh.normals[v], expected, atol=1e-6)

    def test_two_sharp_faces_split(self, folded_quad):
        folded_quad.push_face(Face.with_weight([0, 1, 2], 0.0))
        folded_quad.push_face(Face.with_weight([2, 1, 3], 0.0))
        mesh = folded_quad.build()
        assert mesh.n_vertices == 6
        assert len(np.unique(mesh.faces)) == 6

    def test_build_is_repeatable(self, folded_quad):
        folded_quad.push_face(Face.with_weight([0, 1, 2], 0.0))
        folded_quad.push_face(Face.with_weight([2, 1, 3], 0.0))
        first = folded_quad.build()
        second = folded_quad.build()
        np.testing.assert_array_equal(first.faces, second.faces)
        assert folded_quad.n_vertices == 4


# ============== Normal Tests ==============

class TestNormals:
    """Test angle-weighted normals."""

    def test_shared_vertex_blends(self, folded_quad):
        folded_quad.push_face(Face.with_weight([0, 1, 2], 1.0))
        folded_quad.push_face(Face.with_weight([2, 1, 3], 1.0))
        mesh = folded_quad.build()
        np.testing.assert_allclose(np.linalg.norm(mesh.normals, axis=1), 1.0, atol=1e-6)
        # shared vertices lean between both face normals
        assert 0.0 < mesh.normals[1][2] < 1.0

    def test_degenerate_face_gives_zero_normals(self):
        vertices = np.array([[0, 0, 0], [1, 0, 0], [2, 0, 0]], dtype=np.float64)
        normals = build_normals(vertices, np.array([[0, 1, 2]]))
        np.testing.assert_array_equal(normals, np.zeros((3, 3)))

    def test_unused_vertex_zero_normal(self):
        vertices = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0], [5, 5, 5]], dtype=np.float64)
        normals = build_normals(vertices, np.array([[0, 1, 2]]))
        np.testing.assert_array_equal(normals[3], [0.0, 0.0, 0.0])


# ============== Mesh Tests ==============

class TestMesh:
    """Test finished mesh buffers."""

    def test_indices_flat_uint16(self, folded_quad):
        folded_quad.push_face(Face([0, 1, 2]))
        mesh = folded_quad.build()
        assert mesh.indices.dtype == np.uint16
        np.testing.assert_array_equal(mesh.indices, [0, 1, 2])

    def test_dtypes(self, folded_quad):
        folded_quad.push_face(Face([0, 1, 2]))
        mesh = folded_quad.build()
        assert mesh.vertices.dtype == np.float32
        assert mesh.normals.dtype == np.float32

    def test_bounds(self, folded_quad):
        folded_quad.push_face(Face([0, 1, 2]))
        folded_quad.push_face(Face([2, 1, 3]))
        mesh = folded_quad.build()
        np.testing.assert_allclose(mesh.pos_min(), [0, 0, 0])
        np.testing.assert_allclose(mesh.pos_max(), [1, 1, 1])

    def test_vertex_overflow(self):
        builder = MeshBuilder()
        for i in range(MAX_VERTICES + 1):
            builder.push_vtx((float(i), 0.0, 0.0))
        with pytest.raises(OverflowError):
            builder.build()
