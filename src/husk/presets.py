"""
Procedural husk presets.

Small generators that drive the builder the way a ring-definition document
would: a pyramid and a randomly branching tree.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from .builder import Husk
from .config import HuskConfig, Shading
from .ring import Ring

logger = logging.getLogger(__name__)

# Branches stop growing below this scale
MIN_SCALE = 0.05


def pyramid(sides: int = 4, height: float = 1.0, config: Optional[HuskConfig] = None) -> Husk:
    """
    Flat-shaded pyramid: one base ring and an apex ring with a single point.

    Args:
        sides: Number of base vertices (at least 3)
        height: Distance from base to apex
        config: Builder config

    Returns:
        Husk ready to export
    """
    if sides < 3:
        raise ValueError(f"A pyramid needs at least 3 sides, got {sides}")
    husk = Husk(config)
    base = Ring().with_shading(Shading.FLAT)
    for _ in range(sides):
        base.add_spoke(1.0)
    husk.add_ring(base)
    husk.add_ring(Ring().with_axis((0.0, height, 0.0)).add_spoke(0.0))
    return husk


@dataclass
class _PendingBranch:
    label: str
    scale: float


def _tree_ring(rng: np.random.Generator, spokes: int, label: Optional[str]) -> Ring:
    ring = Ring()
    labeled = int(rng.integers(spokes))
    for i in range(spokes):
        if label is not None and i == labeled:
            ring.add_spoke(1.0, label)
        else:
            ring.add_spoke(1.0)
    return ring


def _grow_limb(
    husk: Husk,
    rng: np.random.Generator,
    scale: float,
    spokes: int
) -> List[_PendingBranch]:
    """Add rings to the open limb until it tapers out, returning new forks."""
    forks = []
    i = 0
    while scale > MIN_SCALE:
        fork_scale = scale * 0.5
        label = None
        if i % 3 == 1 and rng.random() > scale and fork_scale > MIN_SCALE:
            label = f"B{husk.vertex_count}"
            forks.append(_PendingBranch(label, fork_scale))
        ring = _tree_ring(rng, spokes, label)
        x = rng.random() * 0.01 - 0.005
        z = rng.random() * 0.04 - 0.02
        husk.add_ring(ring.with_axis((x, scale, z)).with_scale(scale))
        scale *= 0.96
        i += 1
    return forks


def tree(seed: Optional[int] = None, spokes: int = 6, config: Optional[HuskConfig] = None) -> Husk:
    """
    Randomly branching tree.

    The trunk tapers ring by ring; every third ring may fork a labeled
    branch, which is entered once the current limb is finished.

    Args:
        seed: Random seed for reproducible trees
        spokes: Points per ring
        config: Builder config

    Returns:
        Husk ready to export
    """
    rng = np.random.default_rng(seed)
    husk = Husk(config)
    pending = _grow_limb(husk, rng, 1.0, spokes)
    n_branches = 0
    while pending:
        fork = pending.pop()
        husk.branch(fork.label)
        pending.extend(_grow_limb(husk, rng, fork.scale, spokes))
        n_branches += 1
    logger.info(f"Grew tree with {n_branches} branches, {husk.face_count} faces")
    return husk
