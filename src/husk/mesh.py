"""
Mesh Module

Collects vertex positions and triangle faces while a husk is built, then
splits vertices along shading seams and computes angle-weighted normals.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .geometry import VectorLike, vec3

logger = logging.getLogger(__name__)

# Largest vertex count addressable by the uint16 index buffer
MAX_VERTICES = int(np.iinfo(np.uint16).max) + 1


@dataclass
class Face:
    """
    Triangle face with a shading weight for each corner.

    ::

        v0______v2
          \\    /
           \\  /
            \\/
            v1

    A corner weight of 0.0 is a hard corner; faces meeting at a hard corner
    do not share a vertex normal.
    """
    vtx: List[int]
    weights: Tuple[float, float, float] = (1.0, 1.0, 1.0)

    def __post_init__(self):
        self.vtx = [int(v) for v in self.vtx]
        if len(self.vtx) != 3:
            raise ValueError(f"Face needs 3 vertices, got {self.vtx}")
        if len(set(self.vtx)) != 3:
            raise ValueError(f"Face vertices must be distinct: {self.vtx}")
        self.weights = tuple(float(w) for w in self.weights)

    @classmethod
    def with_weight(cls, vtx: Sequence[int], weight: float) -> "Face":
        return cls(list(vtx), (weight, weight, weight))

    def corner_weight(self, idx: int) -> Optional[float]:
        """Shading weight at vertex ``idx``, or None if not a corner."""
        for v, w in zip(self.vtx, self.weights):
            if v == idx:
                return w
        return None

    def replace_vertex(self, idx: int, new_idx: int) -> None:
        self.vtx[self.vtx.index(idx)] = new_idx


@dataclass
class Mesh:
    """A finished triangular mesh."""
    vertices: np.ndarray  # (N, 3) float32 vertex positions
    faces: np.ndarray     # (M, 3) triangle indices
    normals: np.ndarray   # (N, 3) float32 vertex normals

    @property
    def n_vertices(self) -> int:
        return len(self.vertices)

    @property
    def n_faces(self) -> int:
        return len(self.faces)

    @property
    def indices(self) -> np.ndarray:
        """Flat index buffer ``[v0, v1, v2, v0, v1, v2, ...]``."""
        return self.faces.reshape(-1).astype(np.uint16)

    def pos_min(self) -> np.ndarray:
        return self.vertices.min(axis=0)

    def pos_max(self) -> np.ndarray:
        return self.vertices.max(axis=0)


class MeshBuilder:
    """
    Growing set of vertices and faces.

    Faces may only reference vertices that were already pushed.
    """

    def __init__(self):
        self.positions: List[np.ndarray] = []
        self.faces: List[Face] = []

    @property
    def n_vertices(self) -> int:
        return len(self.positions)

    @property
    def n_faces(self) -> int:
        return len(self.faces)

    def vertex(self, idx: int) -> np.ndarray:
        return self.positions[idx].copy()

    def push_vtx(self, pos: VectorLike) -> int:
        """Push a vertex position, returning its index."""
        self.positions.append(vec3(pos))
        return len(self.positions) - 1

    def push_face(self, face: Face) -> None:
        count = len(self.positions)
        if any(v < 0 or v >= count for v in face.vtx):
            raise IndexError(f"Invalid vertex in face {face.vtx} ({count} vertices)")
        self.faces.append(face)

    def build(self) -> Mesh:
        """
        Finalize into a Mesh.

        Runs on copies, so building twice from the same faces gives the
        same result.
        """
        positions = [p.copy() for p in self.positions]
        faces = [Face(list(f.vtx), f.weights) for f in self.faces]
        n_before = len(positions)
        split_edge_seams(positions, faces)
        if len(positions) > MAX_VERTICES:
            raise OverflowError(
                f"Too many vertices for uint16 indices: {len(positions)}"
            )
        vertices = np.array(positions, dtype=np.float64).reshape(-1, 3)
        tris = np.array([f.vtx for f in faces], dtype=np.int64).reshape(-1, 3)
        normals = build_normals(vertices, tris)
        logger.debug(f"Split {len(positions) - n_before} seam vertices")
        return Mesh(
            vertices=vertices.astype(np.float32),
            faces=tris.astype(np.uint32),
            normals=normals.astype(np.float32),
        )


def _needs_split(touching: List[Face], idx: int) -> bool:
    sharp = 0
    weights = set()
    for face in touching:
        w = face.corner_weight(idx)
        if w == 0.0:
            sharp += 1
        weights.add(w)
        if sharp > 1 or len(weights) > 1:
            return True
    return False


def _split_vertex(positions: List[np.ndarray], touching: List[Face], idx: int) -> None:
    keep = touching[0].corner_weight(idx)
    for face in touching[1:]:
        w = face.corner_weight(idx)
        if w == 0.0 or w != keep:
            break
    else:
        return
    new_idx = len(positions)
    positions.append(positions[idx].copy())
    if w == 0.0:
        face.replace_vertex(idx, new_idx)
        return
    # smooth corners with the same weight stay welded together
    for other in touching:
        if other.corner_weight(idx) == w:
            other.replace_vertex(idx, new_idx)


def split_edge_seams(positions: List[np.ndarray], faces: List[Face]) -> None:
    """
    Split vertices along hard shading seams, in place.

    A vertex is split while more than one face has a hard corner at it, or
    while faces with different corner weights meet at it.
    """
    touching = defaultdict(list)
    for face in faces:
        for v in face.vtx:
            touching[v].append(face)
    for idx in range(len(positions)):
        group = touching.get(idx, [])
        while _needs_split(group, idx):
            _split_vertex(positions, group, idx)
            group = [f for f in group if idx in f.vtx]


def _corner_angles(u: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Row-wise unsigned angles between two (M, 3) edge arrays."""
    denom = np.linalg.norm(u, axis=1) * np.linalg.norm(v, axis=1)
    cos = np.einsum('ij,ij->i', u, v) / np.where(denom == 0.0, 1.0, denom)
    angles = np.arccos(np.clip(cos, -1.0, 1.0))
    return np.where(denom == 0.0, 0.0, angles)


def build_normals(vertices: np.ndarray, tris: np.ndarray) -> np.ndarray:
    """
    Angle-weighted vertex normals.

    Each face normal is added to its corners weighted by the interior angle
    at that corner, then every vertex sum is normalized.
    """
    normals = np.zeros_like(vertices, dtype=np.float64)
    if len(tris) == 0:
        return normals
    p0 = vertices[tris[:, 0]]
    p1 = vertices[tris[:, 1]]
    p2 = vertices[tris[:, 2]]
    trin = np.cross(p0 - p1, p0 - p2)
    lengths = np.linalg.norm(trin, axis=1, keepdims=True)
    trin = np.where(lengths > 0.0, trin / np.where(lengths > 0.0, lengths, 1.0), 0.0)
    a0 = _corner_angles(p1 - p0, p2 - p0)
    a1 = _corner_angles(p2 - p1, p0 - p1)
    a2 = _corner_angles(p0 - p2, p1 - p2)
    np.add.at(normals, tris[:, 0], trin * a0[:, None])
    np.add.at(normals, tris[:, 1], trin * a1[:, None])
    np.add.at(normals, tris[:, 2], trin * a2[:, None])
    norms = np.linalg.norm(normals, axis=1, keepdims=True)
    return np.where(norms > 0.0, normals / np.where(norms > 0.0, norms, 1.0), 0.0)
