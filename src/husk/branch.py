"""
Branch accumulator.

While rings are stitched, every branch-labeled spoke contributes its would-be
position, and every face with one branch corner contributes the opposite
edge. Together the edges outline the hole where the branch tube attaches.
"""

from dataclasses import dataclass, field
from typing import Callable, List, NamedTuple, Tuple

import numpy as np

from .errors import InvalidBranches, UnknownBranchLabel
from .geometry import Transform, X_AXIS, angle_between, normalize
from .ring import to_degrees

# Vertex index -> global position
VertexLookup = Callable[[int], np.ndarray]


class Edge(NamedTuple):
    """Directed edge between two vertex indices."""
    v0: int
    v1: int


@dataclass
class Branch:
    """Points and base edges collected for one branch label."""
    label: str
    internal_points: List[np.ndarray] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)

    def push_internal(self, pos: np.ndarray) -> None:
        self.internal_points.append(np.asarray(pos, dtype=np.float64))

    def push_edge(self, v0: int, v1: int) -> None:
        self.edges.append(Edge(v0, v1))

    def vertex_ids(self) -> List[int]:
        """Distinct vertex indices on the branch base, sorted."""
        return sorted({v for edge in self.edges for v in edge})

    def center(self) -> np.ndarray:
        """Mean of the internal points."""
        if not self.internal_points:
            raise UnknownBranchLabel(self.label)
        return np.mean(self.internal_points, axis=0)

    def axis(self, vertex: VertexLookup, center: np.ndarray) -> np.ndarray:
        """
        Outward normal of the base edge loop.

        Sum of ``(v0 - center) x (v1 - center)`` over all edges, normalized.
        """
        norm = np.zeros(3)
        for edge in self.edges:
            norm += np.cross(vertex(edge.v0) - center, vertex(edge.v1) - center)
        return normalize(norm)

    def edge_vids(self, start: int) -> List[int]:
        """
        Vertex indices of the edge loop, starting with edge ``start``.

        The edges must form exactly one directed cycle; anything else raises
        InvalidBranches.
        """
        successors = {}
        for edge in self.edges:
            if edge.v0 in successors:
                raise InvalidBranches(
                    f"Branch {self.label}: vertex {edge.v0} starts more than one edge"
                )
            successors[edge.v0] = edge.v1
        first = self.edges[start].v0
        vids = [first]
        vid = successors[first]
        while vid != first:
            if vid not in successors:
                raise InvalidBranches(f"Branch {self.label}: edge loop is open at vertex {vid}")
            vids.append(vid)
            if len(vids) > len(self.edges):
                break
            vid = successors[vid]
        if len(vids) != len(self.edges):
            raise InvalidBranches(
                f"Branch {self.label}: edges form more than one loop "
                f"({len(vids)} of {len(self.edges)} edges reached)"
            )
        return vids

    def edge_angles(
        self,
        transform: Transform,
        vertex: VertexLookup
    ) -> List[Tuple[int, int]]:
        """
        Angular order of each base vertex around a ring frame.

        Vertices are projected onto the frame's XZ plane. The loop starts at
        the vertex nearest 0 degrees (+X) and angles accumulate along it.

        Returns:
            List of (order, vertex index) pairs in loop order
        """
        inverse = transform.inverse()

        def project(vid: int) -> np.ndarray:
            pos = inverse.transform_point(vertex(vid))
            return np.array([pos[0], 0.0, pos[2]])

        start = min(
            range(len(self.edges)),
            key=lambda i: angle_between(X_AXIS, project(self.edges[i].v0))
        )
        angles = []
        total = 0.0
        prev = X_AXIS
        for vid in self.edge_vids(start):
            pos = project(vid)
            total += angle_between(prev, pos)
            angles.append((to_degrees(total), vid))
            prev = pos
        return angles
