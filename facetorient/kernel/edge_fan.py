# facetorient/kernel/edge_fan.py

"""Circular ordering of the facets incident to an edge."""

from functools import cmp_to_key
from typing import Callable, List, NamedTuple, Sequence, Tuple

from facetorient.errors import AmbiguousGeometryError, MalformedInputError
from facetorient.kernel.predicates import Point, cross, dot, is_zero, scale, sub


class IncidentFacet(NamedTuple):
    """A facet touching edge (s, d); ``along`` is True when it winds s -> d."""

    facet: int
    along: bool


def edge_incidence(face: Sequence[int], s: int, d: int) -> bool:
    """Return True if ``face`` traverses s -> d, False if it traverses d -> s.

    Raises
    ------
    MalformedInputError
        If (s, d) is not an edge of ``face``.
    """
    f = [int(v) for v in face]
    for k in range(3):
        a, b = f[k], f[(k + 1) % 3]
        if a == s and b == d:
            return True
        if a == d and b == s:
            return False
    raise MalformedInputError(
        f"Cannot compute orientation due to incorrect connectivity: "
        f"edge ({s}, {d}) is not on facet {tuple(f)}."
    )


def _opposite_vertex(face: Sequence[int], s: int, d: int) -> int:
    for v in face:
        if v != s and v != d:
            return int(v)
    raise MalformedInputError(f"Facet {tuple(face)} has no vertex opposite edge ({s}, {d}).")


def _half(v: Tuple) -> int:
    # 0 for angles in [0, pi), 1 for [pi, 2 pi)
    x, y = v
    return 0 if (y > 0 or (y == 0 and x > 0)) else 1


def _compare_angle(u: Tuple, v: Tuple) -> int:
    hu, hv = _half(u), _half(v)
    if hu != hv:
        return -1 if hu < hv else 1
    c = u[0] * v[1] - u[1] * v[0]
    if c > 0:
        return -1
    if c < 0:
        return 1
    return 0


def order_facets_around_edge(
    point: Callable[[int], Point],
    faces,
    s: int,
    d: int,
    incident: Sequence[IncidentFacet],
    pivot: Point,
) -> List[int]:
    """Order facets around edge (s, d) starting from the half-plane through ``pivot``.

    Angles are measured clockwise about the axis ``d - s`` (right-hand rule),
    so the first facet returned is the one whose front side is reached by
    turning counter-clockwise toward the pivot, and the last one is reached
    by turning clockwise. Together they bound the wedge holding the pivot.

    Parameters
    ----------
    point : callable
        Maps a vertex id to its exact coordinates.
    faces : (M, 3) int array
    s, d : int
        Edge endpoints.
    incident : sequence of IncidentFacet
    pivot : Point
        Must not lie on the line through s and d.

    Returns
    -------
    order : list of int
        Positions into ``incident``. Facets at equal angle keep ascending
        facet id order.
    """
    ps = point(s)
    axis = sub(point(d), ps)
    to_pivot = sub(pivot, ps)

    # Pivot direction projected onto the plane perpendicular to the edge.
    e1 = sub(scale(to_pivot, dot(axis, axis)), scale(axis, dot(to_pivot, axis)))
    if is_zero(e1):
        raise AmbiguousGeometryError("Pivot point is collinear with the outer edge!")
    e2 = cross(axis, e1)

    keys = []
    for item in incident:
        o = sub(point(_opposite_vertex(faces[item.facet], s, d)), ps)
        x, y = dot(o, e1), dot(o, e2)
        if x == 0 and y == 0:
            raise MalformedInputError(f"Facet {item.facet} is degenerate along edge ({s}, {d}).")
        # reflect so counter-clockwise comparison yields clockwise order
        keys.append((x, -y))

    def compare(i: int, j: int) -> int:
        c = _compare_angle(keys[i], keys[j])
        if c != 0:
            return c
        return (incident[i].facet > incident[j].facet) - (incident[i].facet < incident[j].facet)

    return sorted(range(len(incident)), key=cmp_to_key(compare))
