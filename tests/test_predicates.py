"""Tests for the exact predicate kernel."""

from fractions import Fraction

import pytest

from facetorient.errors import MalformedInputError
from facetorient.kernel.predicates import (
    Orientation,
    Plane,
    closest_point_on_triangle,
    collinear,
    exact_point,
    midpoint,
    orientation,
    point_in_triangle,
    segment_intersects_triangle,
)


def P(x, y, z):
    return exact_point((x, y, z))


A, B, C = P(0, 0, 0), P(1, 0, 0), P(0, 1, 0)


def test_exact_point_keeps_float_value():
    p = exact_point((0.1, 0.5, -2.0))
    assert p[0] == Fraction(0.1)
    assert p[1] == Fraction(1, 2)
    assert p[2] == -2


def test_exact_point_rejects_nan():
    with pytest.raises(MalformedInputError):
        exact_point((0.0, float("nan"), 0.0))


def test_orientation_signs():
    assert orientation(A, B, C, P(0.2, 0.2, 1.0)) == Orientation.POSITIVE
    assert orientation(A, B, C, P(0.2, 0.2, -1e-300)) == Orientation.NEGATIVE
    assert orientation(A, B, C, P(5.0, -3.0, 0.0)) == Orientation.COPLANAR


def test_collinear_is_exact():
    assert collinear(A, P(3, 3, 3), P(0.1, 0.1, 0.1))
    assert not collinear(A, P(3, 3, 3), P(0.1, 0.1, 0.1 + 2 ** -50))


def test_plane_side_and_degeneracy():
    plane = Plane(A, B, C)
    assert not plane.is_degenerate()
    assert plane.oriented_side(P(0, 0, 2)) == Orientation.POSITIVE
    assert plane.oriented_side(P(0, 0, -2)) == Orientation.NEGATIVE
    assert plane.oriented_side(P(7, 7, 0)) == Orientation.ON_BOUNDARY
    assert Plane(A, B, P(2, 0, 0)).is_degenerate()


def test_midpoint_exact():
    assert midpoint(P(0.1, 0, 0), P(0.2, 0, 0))[0] == (Fraction(0.1) + Fraction(0.2)) / 2


def test_point_in_triangle_closed():
    assert point_in_triangle(P(0.25, 0.25, 0), A, B, C)
    assert point_in_triangle(P(0.5, 0.5, 0), A, B, C)  # on hypotenuse
    assert point_in_triangle(B, A, B, C)
    assert not point_in_triangle(P(0.6, 0.6, 0), A, B, C)


def test_segment_crossing_triangle():
    assert segment_intersects_triangle(P(0.2, 0.2, -1), P(0.2, 0.2, 1), A, B, C)
    assert not segment_intersects_triangle(P(0.8, 0.8, -1), P(0.8, 0.8, 1), A, B, C)
    assert not segment_intersects_triangle(P(0.2, 0.2, 0.5), P(0.2, 0.2, 1), A, B, C)


def test_segment_touching_triangle_at_endpoint():
    assert segment_intersects_triangle(P(0.5, 0, 0), P(0.5, -1, 1), A, B, C)
    assert segment_intersects_triangle(P(0.2, 0.2, 1), P(0.2, 0.2, 0), A, B, C)


def test_segment_through_triangle_edge():
    assert segment_intersects_triangle(P(0.5, 0.5, -1), P(0.5, 0.5, 1), A, B, C)


def test_coplanar_segment():
    # crosses the triangle inside its plane without an endpoint inside
    assert segment_intersects_triangle(P(-1, 0.25, 0), P(2, 0.25, 0), A, B, C)
    assert not segment_intersects_triangle(P(-1, 2, 0), P(2, 2, 0), A, B, C)
    # collinear overlap with an edge
    assert segment_intersects_triangle(P(-1, 0, 0), P(0.5, 0, 0), A, B, C)


def test_degenerate_segment_is_a_point():
    assert segment_intersects_triangle(P(0.1, 0.1, 0), P(0.1, 0.1, 0), A, B, C)
    assert not segment_intersects_triangle(P(0.1, 0.1, 1), P(0.1, 0.1, 1), A, B, C)


def test_closest_point_regions():
    assert closest_point_on_triangle(P(-1, -1, 3), A, B, C) == A
    assert closest_point_on_triangle(P(2, -1, 0), A, B, C) == B
    assert closest_point_on_triangle(P(0.5, -1, 0), A, B, C) == P(0.5, 0, 0)
    assert closest_point_on_triangle(P(1, 1, 0), A, B, C) == P(0.5, 0.5, 0)
    assert closest_point_on_triangle(P(0.2, 0.3, 4), A, B, C) == P(0.2, 0.3, 0)
