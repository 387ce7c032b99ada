"""
Ring Module

A ring is one circular cross-section of a husk: a set of spokes spread
evenly around a local axis. Ring fields are deltas against the previous ring;
any field left unset is inherited.

Local frame: the ring axis is +Y, spoke 0 points along +X and spoke angles
increase right-handed about +Y.
"""

import math
from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple

import numpy as np

from .config import Shading
from .geometry import Transform, VectorLike, rotation_y, vec3, length


def to_degrees(angle: float) -> int:
    """Angular order (0-359) of an angle in radians."""
    return int(round(math.degrees(angle) % 360.0)) % 360


def _check_distance(value: float, what: str) -> float:
    value = float(value)
    if not math.isfinite(value) or value < 0.0:
        raise ValueError(f"{what} must be finite and non-negative, got {value}")
    return value


@dataclass(frozen=True)
class Spoke:
    """Distance from the ring axis, or a placeholder for a branch."""
    distance: float = 1.0
    label: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "distance", _check_distance(self.distance, "Spoke distance"))


# A ring declared without any spokes collapses to its center
EMPTY_RING = (Spoke(0.0),)


@dataclass(frozen=True)
class Point:
    """
    A resolved point on a ring.

    Either a mesh vertex (``vid``) or a branch placeholder (``label`` and
    the position it would have had).
    """
    order: int
    ring_id: int
    vid: Optional[int] = None
    label: Optional[str] = None
    pos: Optional[Tuple[float, float, float]] = None

    @property
    def is_branch(self) -> bool:
        return self.label is not None

    def offset(self, degrees: int) -> "Point":
        # no wrap, so both rings keep their 0 degree point first
        return replace(self, order=self.order + degrees)


@dataclass(eq=False)
class Ring:
    """
    Ring declaration, built up with chained setters::

        ring = Ring().with_axis((0, 2, 0)).with_scale(0.5).add_spoke(1.0).add_spoke(1.0, "arm")

    Setters return ``self``.
    """
    axis: Optional[np.ndarray] = None
    scale: Optional[float] = None
    shading: Optional[Shading] = None
    spokes: List[Spoke] = field(default_factory=list)
    transform: Transform = field(default_factory=Transform.identity)
    points: List[Point] = field(default_factory=list)
    ring_id: int = -1

    def with_axis(self, axis: VectorLike) -> "Ring":
        """
        Set ring axis.

        The axis length is the spacing from the previous ring; its direction
        rotates this ring relative to the previous ring's frame.
        """
        axis = vec3(axis)
        if not np.all(np.isfinite(axis)):
            raise ValueError(f"Axis components must be finite, got {axis}")
        if length(axis) == 0.0:
            raise ValueError("Axis must not be zero-length")
        self.axis = axis
        self.transform = Transform.identity().rotate_to_axis(axis)
        return self

    def with_scale(self, scale: float) -> "Ring":
        """Set the factor applied to every spoke distance."""
        self.scale = _check_distance(scale, "Scale")
        return self

    def with_shading(self, shading: Shading) -> "Ring":
        self.shading = Shading(shading)
        return self

    def add_spoke(self, distance: float = 1.0, label: Optional[str] = None) -> "Ring":
        """
        Add a spoke.

        A spoke with a ``label`` makes no vertex; it marks where the named
        branch will attach.
        """
        self.spokes.append(Spoke(distance, label))
        return self

    @property
    def spacing(self) -> Optional[float]:
        return length(self.axis) if self.axis is not None else None

    @property
    def scale_or_default(self) -> float:
        return self.scale if self.scale is not None else 1.0

    def shading_or(self, default: Shading) -> Shading:
        return self.shading if self.shading is not None else default

    def spokes_or_default(self) -> List[Spoke]:
        return list(self.spokes) if self.spokes else list(EMPTY_RING)

    @property
    def n_spokes(self) -> int:
        return len(self.spokes_or_default())

    def angle(self, i: int) -> float:
        """Angle of spoke ``i``, in radians."""
        return 2.0 * math.pi * i / self.n_spokes

    @property
    def half_step(self) -> int:
        """Half the angular step between spokes, in whole degrees."""
        return 180 // self.n_spokes

    def update_with(self, other: "Ring", default_spacing: float = 1.0) -> "Ring":
        """
        Make the next ring from ``other``, inheriting unset fields from self.

        The new transform continues from this ring's frame, rotated by
        ``other``'s axis (if set) and advanced along the resulting local +Y
        by the inherited spacing.
        """
        axis = other.axis if other.axis is not None else self.axis
        spacing = length(axis) if axis is not None else default_spacing
        transform = (self.transform @ other.transform).translate_local((0.0, spacing, 0.0))
        return Ring(
            axis=None if axis is None else axis.copy(),
            scale=other.scale if other.scale is not None else self.scale,
            shading=other.shading if other.shading is not None else self.shading,
            spokes=list(other.spokes) if other.spokes else list(self.spokes),
            transform=transform,
        )

    def make_point(self, i: int, spoke: Spoke) -> Tuple[int, np.ndarray]:
        """Angular order and global position of spoke ``i``."""
        angle = self.angle(i)
        distance = spoke.distance * self.scale_or_default
        local = rotation_y(angle) @ np.array([distance, 0.0, 0.0])
        return to_degrees(angle), self.transform.transform_point(local)

    def make_hub(self) -> Tuple[int, np.ndarray]:
        """Angular order and global position of the ring center."""
        return 0, self.transform.transform_point(np.zeros(3))

    def push_point(self, point: Point) -> None:
        self.points.append(point)

    def points_offset(self, degrees: int) -> List[Point]:
        """Points shifted by ``degrees``, in ascending angular order."""
        return sorted((p.offset(degrees) for p in self.points), key=lambda p: p.order)
