"""
Husk Builder

A husk is the shell of a model: a sequence of rings stitched together by
triangle bands, optionally forking into named branches, closed with caps at
every open end and exported as a GLB container.

Usage:
    husk = Husk()
    husk.add_ring(Ring().add_spoke(1.0).add_spoke(1.0).add_spoke(1.0))
    husk.add_ring(Ring().add_spoke(0.0))
    with open("pyramid.glb", "wb") as f:
        husk.write_export(f)
"""

import logging
from typing import BinaryIO, Dict, List, Optional, Set, Any

from .branch import Branch
from .config import HuskConfig, DEFAULT_CONFIG
from .errors import ConsumedBranchLabel, HuskError, InvalidBranches, InvalidRing, UnknownBranchLabel
from .geometry import Transform, VectorLike, length, vec3
from .gltf_exporter import GLBExporter
from .mesh import Face, Mesh, MeshBuilder
from .ring import Point, Ring, Spoke

logger = logging.getLogger(__name__)


class Husk:
    """
    Stateful builder for one closed surface.

    The husk owns the mesh builder, the branch accumulators and the single
    open ring that the next band is stitched against.
    """

    def __init__(self, config: Optional[HuskConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self.builder = MeshBuilder()
        self.ring: Optional[Ring] = None
        self.branches: Dict[str, Branch] = {}
        self.consumed: Set[str] = set()
        self._next_ring_id = 0
        self._finished = False

    # ============== State ==============

    @property
    def vertex_count(self) -> int:
        return self.builder.n_vertices

    @property
    def face_count(self) -> int:
        return self.builder.n_faces

    @property
    def branch_labels(self) -> List[str]:
        """Labels of branches that can still be entered."""
        return sorted(self.branches)

    @property
    def current_ring(self) -> Optional[Ring]:
        return self.ring

    def _check_open(self) -> None:
        if self._finished:
            raise HuskError("Husk was already exported")

    def _take_ring_id(self) -> int:
        ring_id = self._next_ring_id
        self._next_ring_id += 1
        return ring_id

    def _branch(self, label: str) -> Branch:
        if label in self.consumed:
            raise ConsumedBranchLabel(label)
        if label not in self.branches:
            self.branches[label] = Branch(label)
        return self.branches[label]

    # ============== Rings ==============

    def add_ring(self, ring: Ring) -> None:
        """
        Add a ring to the current branch.

        Unset fields (axis, scale, shading, spokes) are copied from the
        previous ring.
        """
        self._check_open()
        prev = self.ring
        self.ring = None
        if prev is not None:
            ring = prev.update_with(ring, self.config.default_spacing)
        ring.ring_id = self._take_ring_id()
        self._make_points(ring)
        if prev is not None:
            self.make_band(prev, ring)
            if prev.ring_id == 0 and self.config.cap_base:
                self.cap_ring(prev, reverse=True)
        self.ring = ring
        logger.debug(
            f"Ring {ring.ring_id}: {len(ring.points)} points at {ring.transform.origin.round(3)}"
        )

    def _make_points(self, ring: Ring) -> None:
        """Create vertices for plain spokes; record branch spokes as internal points."""
        ring.points = []
        for i, spoke in enumerate(ring.spokes_or_default()):
            order, pos = ring.make_point(i, spoke)
            if spoke.label is None:
                vid = self.builder.push_vtx(pos)
                ring.push_point(Point(order, ring.ring_id, vid=vid))
            else:
                self._branch(spoke.label).push_internal(pos)
                ring.push_point(Point(order, ring.ring_id, label=spoke.label, pos=tuple(pos)))

    def make_band(self, ring0: Ring, ring1: Ring) -> None:
        """
        Stitch a band of faces between two rings.

        Each ring's points are offset by the other ring's half step, so rings
        with different point counts interleave into one sweep.
        """
        pts0 = ring0.points_offset(ring1.half_step)
        pts1 = ring1.points_offset(ring0.half_step)
        if not pts0:
            raise InvalidRing(ring0.ring_id, "no points to band")
        if not pts1:
            raise InvalidRing(ring1.ring_id, "no points to band")
        first0 = pts0.pop(0)
        first1 = pts1.pop(0)
        # at equal order the later ring's point goes first
        band = sorted(pts0 + pts1, key=lambda p: (p.order, p.ring_id == ring0.ring_id))
        weight = ring0.shading_or(self.config.default_shading).weight
        pt0, pt1 = first0, first1
        for pt in band:
            self.add_face(pt1, pt0, pt, weight)
            if pt.ring_id == ring0.ring_id:
                pt0 = pt
            else:
                pt1 = pt
        # close back to the anchors
        if pt1 != first1:
            self.add_face(pt1, pt0, first1, weight)
        if pt0 != first0:
            self.add_face(first0, first1, pt0, weight)

    def cap(self) -> None:
        """Close the currently open ring, if any."""
        ring = self.ring
        self.ring = None
        if ring is not None:
            self.cap_ring(ring)

    def cap_ring(self, ring: Ring, reverse: bool = False) -> None:
        """
        Fan-triangulate a ring around a new hub vertex at its center.

        A ring of k points gets k faces, one per point. Rings with fewer
        than 2 points are left open (no error): a single point is already
        closed by its band. A 2-point ring gets two coincident faces of
        opposite winding, so the hub still closes both edges.
        ``reverse`` flips the winding, for a cap that faces back along the
        ring axis.
        """
        pts = ring.points_offset(0)
        if len(pts) < 2:
            logger.debug(f"Ring {ring.ring_id}: {len(pts)} point(s), not capped")
            return
        anchor = pts.pop(0)
        order, pos = ring.make_hub()
        hub = Point(order, ring.ring_id, vid=self.builder.push_vtx(pos))
        ring.push_point(hub)
        weight = ring.shading_or(self.config.default_shading).weight
        prev = anchor
        for pt in reversed(pts):
            self._add_cap_face(pt, prev, hub, weight, reverse)
            prev = pt
        self._add_cap_face(anchor, prev, hub, weight, reverse)
        logger.debug(f"Capped ring {ring.ring_id} with {len(pts) + 1} faces")

    def _add_cap_face(self, pt: Point, prev: Point, hub: Point, weight: float, reverse: bool) -> None:
        if reverse:
            self.add_face(prev, pt, hub, weight)
        else:
            self.add_face(pt, prev, hub, weight)

    # ============== Branches ==============

    def branch(self, label: str, axis: Optional[VectorLike] = None) -> None:
        """
        End the current branch and start the ``label`` branch.

        The open ring is capped first. The new ring is centered on the
        branch's internal points, points along ``axis`` (or the outward
        normal of the branch base) and is made of the base edge vertices.
        """
        self._check_open()
        self.cap()
        if label in self.consumed:
            raise ConsumedBranchLabel(label)
        branch = self.branches.pop(label, None)
        if branch is None:
            raise UnknownBranchLabel(label)
        self.consumed.add(label)
        ring_id = self._take_ring_id()
        if not branch.edges:
            raise InvalidRing(ring_id, f"branch {label} has no base edges")
        center = branch.center()
        if axis is None:
            axis = branch.axis(self.builder.vertex, center)
        axis = vec3(axis)
        if length(axis) == 0.0:
            raise InvalidBranches(f"Branch {label}: base edges have no outward direction")
        count = len(branch.vertex_ids())
        ring = Ring(
            axis=axis,
            spokes=[Spoke(self.config.branch_spoke_distance)] * count,
            transform=Transform.from_translation(center).rotate_to_axis(axis),
            ring_id=ring_id,
        )
        for order, vid in branch.edge_angles(ring.transform, self.builder.vertex):
            ring.push_point(Point(order, ring_id, vid=vid))
        self.ring = ring
        logger.debug(f"Entered branch {label}: {count} base vertices at {center.round(3)}")

    def add_face(self, p0: Point, p1: Point, p2: Point, weight: float) -> None:
        """
        Add a triangle between three ring points.

        Faces with branch corners add no geometry; a face with exactly one
        branch corner records the opposite edge for that branch.
        """
        corners = (p0, p1, p2)
        labels = [p.label for p in corners if p.is_branch]
        if not labels:
            self.builder.push_face(Face.with_weight([p.vid for p in corners], weight))
        elif len(labels) == 1:
            i = next(i for i, p in enumerate(corners) if p.is_branch)
            v0, v1 = corners[(i + 1) % 3].vid, corners[(i + 2) % 3].vid
            self._branch(labels[0]).push_edge(v0, v1)
        else:
            for other in labels[1:]:
                if other != labels[0]:
                    raise InvalidBranches(f"{labels[0]} != {other}")

    # ============== Export ==============

    def build_mesh(self) -> Mesh:
        """
        Cap the open ring and finalize the mesh.

        This ends the husk; no rings can be added afterward.
        """
        self._check_open()
        self.cap()
        self._finished = True
        if self.branches:
            logger.info(f"Unused branches: {', '.join(self.branch_labels)}")
        mesh = self.builder.build()
        logger.info(f"Built husk: {mesh.n_vertices} verts, {mesh.n_faces} faces")
        return mesh

    def write_export(self, writer: BinaryIO, metadata: Optional[Dict[str, Any]] = None) -> Mesh:
        """
        Cap, build and write the husk as GLB to ``writer``.

        Returns:
            The exported mesh
        """
        mesh = self.build_mesh()
        exporter = GLBExporter(
            generator=self.config.generator,
            embed_metadata=self.config.embed_metadata
        )
        exporter.write(mesh, writer, metadata)
        return mesh
