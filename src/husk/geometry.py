"""
Geometry primitives.

Vectors are plain numpy arrays of shape (3,). The affine ``Transform``
carries the position/orientation state that is threaded from one ring to the
next while a husk is built.
"""

import math
from dataclasses import dataclass, field
from typing import Sequence, Union

import numpy as np

VectorLike = Union[np.ndarray, Sequence[float]]

X_AXIS = np.array([1.0, 0.0, 0.0])
Y_AXIS = np.array([0.0, 1.0, 0.0])


def vec3(v: VectorLike) -> np.ndarray:
    """Convert to a float64 3-vector."""
    arr = np.asarray(v, dtype=np.float64).reshape(3)
    return arr.copy()


def dot(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.dot(a, b))


def cross(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return np.cross(a, b)


def length(v: np.ndarray) -> float:
    return float(np.linalg.norm(v))


def normalize(v: np.ndarray) -> np.ndarray:
    """Unit vector in the direction of ``v`` (zero vector stays zero)."""
    norm = np.linalg.norm(v)
    if norm == 0.0 or not np.isfinite(norm):
        return np.zeros(3)
    return v / norm


def angle_between(a: np.ndarray, b: np.ndarray) -> float:
    """
    Unsigned angle between two vectors, in radians.

    Zero-length input gives 0.0.
    """
    denom = np.linalg.norm(a) * np.linalg.norm(b)
    if denom == 0.0:
        return 0.0
    cos = np.clip(np.dot(a, b) / denom, -1.0, 1.0)
    return float(np.arccos(cos))


def rotation_x(angle: float) -> np.ndarray:
    c, s = math.cos(angle), math.sin(angle)
    return np.array([
        [1.0, 0.0, 0.0],
        [0.0, c, -s],
        [0.0, s, c],
    ])


def rotation_y(angle: float) -> np.ndarray:
    c, s = math.cos(angle), math.sin(angle)
    return np.array([
        [c, 0.0, s],
        [0.0, 1.0, 0.0],
        [-s, 0.0, c],
    ])


def rotation_z(angle: float) -> np.ndarray:
    c, s = math.cos(angle), math.sin(angle)
    return np.array([
        [c, -s, 0.0],
        [s, c, 0.0],
        [0.0, 0.0, 1.0],
    ])


@dataclass
class Transform:
    """
    Affine local-to-global transform.

    ``a @ b`` composes so that ``b`` is applied first.
    """
    matrix: np.ndarray = field(default_factory=lambda: np.eye(3))
    translation: np.ndarray = field(default_factory=lambda: np.zeros(3))

    @classmethod
    def identity(cls) -> "Transform":
        return cls()

    @classmethod
    def from_translation(cls, offset: VectorLike) -> "Transform":
        return cls(translation=vec3(offset))

    def __matmul__(self, other: "Transform") -> "Transform":
        return Transform(
            matrix=self.matrix @ other.matrix,
            translation=self.matrix @ other.translation + self.translation,
        )

    def transform_point(self, point: VectorLike) -> np.ndarray:
        return self.matrix @ vec3(point) + self.translation

    def inverse(self) -> "Transform":
        inv = np.linalg.inv(self.matrix)
        return Transform(matrix=inv, translation=-(inv @ self.translation))

    def translate_local(self, offset: VectorLike) -> "Transform":
        """Move the origin by ``offset`` expressed in this frame."""
        return Transform(
            matrix=self.matrix.copy(),
            translation=self.translation + self.matrix @ vec3(offset),
        )

    def rotate_to_axis(self, axis: VectorLike) -> "Transform":
        """
        Rotate this frame so that its local +Y points along ``axis``.

        The rotation is built from two plane rotations: first about Z
        (tilting +Y within the XY plane), then about X (lifting it toward Z).
        """
        direction = normalize(vec3(axis))
        if not direction.any():
            raise ValueError(f"Cannot rotate to zero-length axis {axis}")
        x, y, z = direction
        tilt = math.atan2(-x, y)
        lift = math.asin(float(np.clip(z, -1.0, 1.0)))
        matrix = self.matrix @ rotation_z(tilt) @ rotation_x(lift)
        return Transform(matrix=matrix, translation=self.translation.copy())

    @property
    def origin(self) -> np.ndarray:
        return self.translation.copy()

    @property
    def up(self) -> np.ndarray:
        """Global direction of the local +Y axis."""
        return normalize(self.matrix @ Y_AXIS)
