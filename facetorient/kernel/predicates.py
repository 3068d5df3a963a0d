# facetorient/kernel/predicates.py

"""Exact geometric predicates over rational coordinates.

Every point is a tuple of three ``fractions.Fraction`` values built from the
input floats without rounding, so equality, collinearity and orientation
answers are mathematically exact.
"""

import math
from enum import IntEnum
from fractions import Fraction
from typing import Sequence, Tuple

from facetorient.errors import MalformedInputError

Point = Tuple[Fraction, Fraction, Fraction]


class Orientation(IntEnum):
    NEGATIVE = -1
    COPLANAR = 0
    POSITIVE = 1
    # plane-side answers use the same values
    ON_BOUNDARY = 0


def _sign(value) -> Orientation:
    if value > 0:
        return Orientation.POSITIVE
    if value < 0:
        return Orientation.NEGATIVE
    return Orientation.COPLANAR


# ---------------------------------------------------------
#  Points and vectors
# ---------------------------------------------------------
def exact_point(coords: Sequence[float]) -> Point:
    """Convert three float coordinates to an exact point."""
    if len(coords) != 3:
        raise MalformedInputError(f"Expected 3 coordinates, got {len(coords)}.")
    values = []
    for c in coords:
        if isinstance(c, Fraction):
            values.append(c)
            continue
        c = float(c)
        if not math.isfinite(c):
            raise MalformedInputError(f"Non-finite coordinate {c!r}.")
        values.append(Fraction(c))
    return values[0], values[1], values[2]


def sub(p: Point, q: Point) -> Point:
    return p[0] - q[0], p[1] - q[1], p[2] - q[2]


def add(p: Point, q: Point) -> Point:
    return p[0] + q[0], p[1] + q[1], p[2] + q[2]


def scale(p: Point, k) -> Point:
    return p[0] * k, p[1] * k, p[2] * k


def dot(p: Point, q: Point) -> Fraction:
    return p[0] * q[0] + p[1] * q[1] + p[2] * q[2]


def cross(p: Point, q: Point) -> Point:
    return (
        p[1] * q[2] - p[2] * q[1],
        p[2] * q[0] - p[0] * q[2],
        p[0] * q[1] - p[1] * q[0],
    )


def midpoint(p: Point, q: Point) -> Point:
    half = Fraction(1, 2)
    return (p[0] + q[0]) * half, (p[1] + q[1]) * half, (p[2] + q[2]) * half


def squared_distance(p: Point, q: Point) -> Fraction:
    d = sub(p, q)
    return dot(d, d)


def is_zero(v: Point) -> bool:
    return v[0] == 0 and v[1] == 0 and v[2] == 0


def to_float(p: Point) -> Tuple[float, float, float]:
    return float(p[0]), float(p[1]), float(p[2])


# ---------------------------------------------------------
#  Predicates
# ---------------------------------------------------------
def orientation(p: Point, q: Point, r: Point, s: Point) -> Orientation:
    """Side of the oriented plane (p, q, r) that ``s`` lies on.

    POSITIVE when ``s`` is on the side the normal ``(q-p) x (r-p)`` points
    to, NEGATIVE on the opposite side, COPLANAR when all four points lie in
    one plane.
    """
    return _sign(dot(cross(sub(q, p), sub(r, p)), sub(s, p)))


def collinear(p: Point, q: Point, r: Point) -> bool:
    return is_zero(cross(sub(q, p), sub(r, p)))


class Plane:
    """Oriented plane through three points; the positive side is the normal side."""

    def __init__(self, p: Point, q: Point, r: Point):
        self.origin = p
        self.normal = cross(sub(q, p), sub(r, p))

    def is_degenerate(self) -> bool:
        return is_zero(self.normal)

    def oriented_side(self, x: Point) -> Orientation:
        return _sign(dot(self.normal, sub(x, self.origin)))


# ---------------------------------------------------------
#  Triangle tests
# ---------------------------------------------------------
def _orient_in_plane(normal: Point, u: Point, v: Point, w: Point) -> Orientation:
    # 2D orientation of (u, v, w) seen from the tip of ``normal``
    return _sign(dot(cross(sub(v, u), sub(w, u)), normal))


def point_in_triangle(x: Point, a: Point, b: Point, c: Point) -> bool:
    """Closed point-in-triangle test for a point already in the triangle's plane."""
    n = cross(sub(b, a), sub(c, a))
    return (
        _orient_in_plane(n, a, b, x) >= 0
        and _orient_in_plane(n, b, c, x) >= 0
        and _orient_in_plane(n, c, a, x) >= 0
    )


def _on_collinear_segment(p: Point, q: Point, x: Point) -> bool:
    return all(min(p[i], q[i]) <= x[i] <= max(p[i], q[i]) for i in range(3))


def _coplanar_segments_intersect(normal: Point, p: Point, q: Point, r: Point, s: Point) -> bool:
    o1 = _orient_in_plane(normal, p, q, r)
    o2 = _orient_in_plane(normal, p, q, s)
    o3 = _orient_in_plane(normal, r, s, p)
    o4 = _orient_in_plane(normal, r, s, q)

    if o1 * o2 < 0 and o3 * o4 < 0:
        return True
    if o1 == 0 and _on_collinear_segment(p, q, r):
        return True
    if o2 == 0 and _on_collinear_segment(p, q, s):
        return True
    if o3 == 0 and _on_collinear_segment(r, s, p):
        return True
    if o4 == 0 and _on_collinear_segment(r, s, q):
        return True
    return False


def segment_intersects_triangle(p: Point, q: Point, a: Point, b: Point, c: Point) -> bool:
    """Whether the closed segment [p, q] touches the closed triangle (a, b, c).

    The triangle must be non-degenerate. A zero-length segment is treated as
    a point.
    """
    op = orientation(a, b, c, p)
    oq = orientation(a, b, c, q)

    if op == oq and op != Orientation.COPLANAR:
        return False

    if op == Orientation.COPLANAR and oq == Orientation.COPLANAR:
        if point_in_triangle(p, a, b, c) or point_in_triangle(q, a, b, c):
            return True
        if p == q:
            return False
        n = cross(sub(b, a), sub(c, a))
        return (
            _coplanar_segments_intersect(n, p, q, a, b)
            or _coplanar_segments_intersect(n, p, q, b, c)
            or _coplanar_segments_intersect(n, p, q, c, a)
        )

    if op == Orientation.COPLANAR:
        return point_in_triangle(p, a, b, c)
    if oq == Orientation.COPLANAR:
        return point_in_triangle(q, a, b, c)

    # Segment crosses the plane strictly: the crossing point is inside the
    # closed triangle iff the line pq does not separate the edges.
    o1 = orientation(p, q, a, b)
    o2 = orientation(p, q, b, c)
    o3 = orientation(p, q, c, a)
    signs = {o1, o2, o3}
    return not (Orientation.POSITIVE in signs and Orientation.NEGATIVE in signs)


def closest_point_on_triangle(x: Point, a: Point, b: Point, c: Point) -> Point:
    """Exact closest point on the closed triangle (a, b, c) to ``x``.

    Voronoi-region walk (Ericson, Real-Time Collision Detection 5.1.5).
    Vertex regions return the vertex itself so equality tests stay exact.
    """
    ab = sub(b, a)
    ac = sub(c, a)
    ax = sub(x, a)
    d1 = dot(ab, ax)
    d2 = dot(ac, ax)
    if d1 <= 0 and d2 <= 0:
        return a

    bx = sub(x, b)
    d3 = dot(ab, bx)
    d4 = dot(ac, bx)
    if d3 >= 0 and d4 <= d3:
        return b

    vc = d1 * d4 - d3 * d2
    if vc <= 0 and d1 >= 0 and d3 <= 0:
        return add(a, scale(ab, d1 / (d1 - d3)))

    cx = sub(x, c)
    d5 = dot(ab, cx)
    d6 = dot(ac, cx)
    if d6 >= 0 and d5 <= d6:
        return c

    vb = d5 * d2 - d1 * d6
    if vb <= 0 and d2 >= 0 and d6 <= 0:
        return add(a, scale(ac, d2 / (d2 - d6)))

    va = d3 * d6 - d5 * d4
    if va <= 0 and (d4 - d3) >= 0 and (d5 - d6) >= 0:
        w = (d4 - d3) / ((d4 - d3) + (d5 - d6))
        return add(b, scale(sub(c, b), w))

    denom = va + vb + vc
    v = vb / denom
    w = vc / denom
    return add(a, add(scale(ab, v), scale(ac, w)))
