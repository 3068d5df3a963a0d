# facetorient/closest_facet.py

"""Nearest-facet resolution with exact tie-breaking.

For every query point the resolver returns the facet the point "belongs" to
and whether the point sits on that facet's front side. The closest point on
the candidate surface can land on a vertex or an edge shared by many
facets, so distance alone does not pick a winner. The closest location is
classified as VERTEX, EDGE or FACE with exact predicates and every case is
funnelled into an edge decision:

* EDGE (s, d): collect the candidate facets touched by the segment from the
  edge midpoint to the query. A single facet means a boundary edge and the
  answer is a plain plane-side test. Otherwise the facets are ordered by
  dihedral angle around the edge, pivoting on the query; the first and last
  facets bound the wedge containing the query.
* FACE: resolved as the EDGE case on the facet's first edge, preferring the
  facet itself.
* VERTEX s: find a second vertex d such that the plane through s and two
  neighbouring vertices separates the query from all neighbours (the last
  such neighbour in id order), then resolve the EDGE case on (s, d).
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from facetorient.errors import AmbiguousGeometryError, MalformedInputError
from facetorient.geometry import as_triangle_mesh
from facetorient.kernel.edge_fan import IncidentFacet, edge_incidence, order_facets_around_edge
from facetorient.kernel.predicates import (
    Orientation,
    Plane,
    Point,
    collinear,
    exact_point,
    midpoint,
    orientation,
)
from facetorient.kernel.triangle_index import TriangleIndex

logger = logging.getLogger(__name__)


class ElementType(Enum):
    VERTEX = "vertex"
    EDGE = "edge"
    FACE = "face"


class FacetHit(NamedTuple):
    """Resolved facet (global id) and whether the query is on its front side."""

    facet: int
    front: bool


def classify_closest_point(p: Point, triangle: Tuple[Point, Point, Point]) -> Tuple[ElementType, int]:
    """Locate ``p`` (a point on ``triangle``) as a vertex, edge or interior point.

    Returns
    -------
    element_type : ElementType
    element_index : int
        Vertex position for VERTEX; for EDGE the position of the vertex
        opposite the edge; 0 for FACE.
    """
    p0, p1, p2 = triangle
    if p == p0:
        return ElementType.VERTEX, 0
    if p == p1:
        return ElementType.VERTEX, 1
    if p == p2:
        return ElementType.VERTEX, 2
    if collinear(p0, p1, p):
        return ElementType.EDGE, 2
    if collinear(p1, p2, p):
        return ElementType.EDGE, 0
    if collinear(p2, p0, p):
        return ElementType.EDGE, 1
    return ElementType.FACE, 0


class ClosestFacetResolver:
    """Per-invocation context: mesh, candidate subset and the exact index.

    The object holds no state that changes between queries, so
    :meth:`resolve_point` can be called from several threads at once.

    Parameters
    ----------
    vertices : (N, 3) float array
    faces    : (M, 3) int array
    candidates : (K,) int array or None
        Global ids of the facets that may be returned. ``None`` means all.
    """

    def __init__(self, vertices, faces, candidates: Optional[Sequence[int]] = None):
        self.vertices, self.faces = as_triangle_mesh(vertices, faces)
        self.index = TriangleIndex(self.vertices, self.faces, candidates)

    # ---------------------------------------------------------
    #  Helpers
    # ---------------------------------------------------------
    def _intersected_facets(self, a: Point, b: Point) -> List[int]:
        return [self.index.facet(i) for i in self.index.all_intersected_primitives(a, b)]

    def _front_side(self, fid: int, query: Point) -> bool:
        v0, v1, v2 = (self.index.point(int(v)) for v in self.faces[fid])
        ori = orientation(v0, v1, v2, query)
        if ori == Orientation.POSITIVE:
            return True
        if ori == Orientation.NEGATIVE:
            return False
        raise AmbiguousGeometryError(
            f"It seems input mesh contains self intersection (query coplanar with facet {fid})."
        )

    # ---------------------------------------------------------
    #  Cases
    # ---------------------------------------------------------
    def process_edge_case(self, query: Point, s: int, d: int, preferred_facet: int) -> FacetHit:
        mid = midpoint(self.index.point(s), self.index.point(d))
        facets = self._intersected_facets(mid, query)
        if not facets:
            raise AmbiguousGeometryError(f"No candidate facet touches edge ({s}, {d}).")

        incident = [IncidentFacet(fid, edge_incidence(self.faces[fid], s, d)) for fid in facets]

        if len(incident) == 1:
            # Boundary edge: only the plane side matters.
            fid = incident[0].facet
            return FacetHit(fid, self._front_side(fid, query))

        order = order_facets_around_edge(self.index.point, self.faces, s, d, incident, query)
        first = incident[order[0]]
        last = incident[order[-1]]

        # First and last both bound the query's wedge; honour the preferred
        # facet so entry through a face or vertex agrees with the edge path.
        if first.facet == preferred_facet:
            return FacetHit(first.facet, first.along)
        if last.facet == preferred_facet:
            return FacetHit(last.facet, not last.along)
        return FacetHit(first.facet, first.along)

    def process_face_case(self, query: Point, fid: int) -> FacetHit:
        f = self.faces[fid]
        return self.process_edge_case(query, int(f[0]), int(f[1]), fid)

    def separating_vertex(self, query: Point, s: int) -> int:
        """Neighbour ``d`` of vertex ``s`` such that edge (s, d) bounds the query's wedge.

        Neighbours are scanned in ascending id order. For each neighbour
        ``i`` the planes through ``s``, ``i`` and every later neighbour are
        tried until one leaves all neighbours on one side and the query
        strictly on the other; the last neighbour with such a plane wins.

        Raises
        ------
        MalformedInputError
            If ``s`` and two of its neighbours are collinear.
        AmbiguousGeometryError
            If no separating plane exists.
        """
        closest = self.index.point(s)
        facets = self._intersected_facets(closest, query)

        adj_vertices = sorted({int(v) for fid in facets for v in self.faces[fid] if v != s})
        adj_points = [self.index.point(v) for v in adj_vertices]

        def is_on_exterior(separator: Plane) -> bool:
            sides = [separator.oriented_side(p) for p in adj_points]
            query_side = separator.oriented_side(query)
            positive = sides.count(Orientation.POSITIVE)
            negative = sides.count(Orientation.NEGATIVE)
            return (positive == 0 and query_side == Orientation.POSITIVE) or (
                negative == 0 and query_side == Orientation.NEGATIVE
            )

        d = None
        for i in range(len(adj_vertices)):
            for j in range(i + 1, len(adj_vertices)):
                separator = Plane(closest, adj_points[i], adj_points[j])
                if separator.is_degenerate():
                    raise MalformedInputError(
                        f"Input mesh contains degenerated faces around vertex {s}."
                    )
                if is_on_exterior(separator):
                    d = adj_vertices[i]
                    break

        if d is None:
            raise AmbiguousGeometryError(f"No separating plane found around vertex {s}.")
        logger.debug("vertex %d: separating edge (%d, %d)", s, s, d)
        return d

    def process_vertex_case(self, query: Point, s: int, preferred_facet: int) -> FacetHit:
        d = self.separating_vertex(query, s)
        return self.process_edge_case(query, s, d, preferred_facet)

    # ---------------------------------------------------------
    #  Queries
    # ---------------------------------------------------------
    def resolve_point(self, point) -> FacetHit:
        """Resolve one query point to (facet id, front side flag)."""
        query = exact_point(point)
        closest, local = self.index.closest_point_and_primitive(query)
        fid = self.index.facet(local)
        f = self.faces[fid]

        element_type, element_index = classify_closest_point(closest, self.index.triangles[local])
        logger.debug("query %s: closest on facet %d (%s)", point, fid, element_type.value)

        if element_type is ElementType.VERTEX:
            return self.process_vertex_case(query, int(f[element_index]), fid)
        if element_type is ElementType.EDGE:
            s = int(f[(element_index + 1) % 3])
            d = int(f[(element_index + 2) % 3])
            return self.process_edge_case(query, s, d, fid)
        return self.process_face_case(query, fid)

    def resolve(self, points, workers: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray]:
        """Resolve every row of ``points``.

        Returns
        -------
        facets : (Q,) int64 array
        front  : (Q,) bool array
        """
        points = np.asarray(points, dtype=float).reshape(-1, 3)

        if workers is not None and workers > 1 and len(points) > 1:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                hits = list(pool.map(self.resolve_point, points))
        else:
            hits = [self.resolve_point(p) for p in points]

        facets = np.array([h.facet for h in hits], dtype=np.int64)
        front = np.array([h.front for h in hits], dtype=bool)
        return facets, front


def closest_facet(
    vertices,
    faces,
    points,
    candidates: Optional[Sequence[int]] = None,
    workers: Optional[int] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """Find the facet associated with each query point and its orientation.

    Parameters
    ----------
    vertices : (N, 3) float array
    faces    : (M, 3) int array
    points   : (Q, 3) float array
        Query points.
    candidates : (K,) int array or None
        Subset of facet ids to choose from. ``None`` uses every facet.
    workers : int or None
        Thread pool size for spreading queries. ``None`` or 1 runs serially.

    Returns
    -------
    facets : (Q,) int64 array
        Global facet id per query.
    front : (Q,) bool array
        True where the query lies on the front side of its facet, i.e. the
        side the facet's stored winding faces.

    Raises
    ------
    MalformedInputError
        Empty candidate set, degenerate candidate facet, or connectivity that
        contradicts a queried edge.
    AmbiguousGeometryError
        Coplanar tie at a boundary edge or no separating plane at a vertex,
        typically caused by self-intersection.
    """
    resolver = ClosestFacetResolver(vertices, faces, candidates)
    return resolver.resolve(points, workers=workers)
