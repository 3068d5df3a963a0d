"""Tests for mesh validation and facet normals / areas."""

import numpy as np
import pytest

from facetorient.errors import InvalidConfigurationError
from facetorient.geometry import as_triangle_mesh, face_normals_and_areas


def test_normals_and_areas(tetrahedron):
    V, F = tetrahedron
    normals, areas = face_normals_and_areas(V, F)

    np.testing.assert_allclose(normals[0], [0, 0, -1])
    np.testing.assert_allclose(normals[1], [0, -1, 0])
    np.testing.assert_allclose(normals[2], [-1, 0, 0])
    np.testing.assert_allclose(normals[3], np.ones(3) / np.sqrt(3))
    np.testing.assert_allclose(areas[:3], 0.5)
    assert areas[3] == pytest.approx(np.sqrt(3) / 2)


def test_cube_area(unit_cube):
    V, F = unit_cube
    _, areas = face_normals_and_areas(V, F)
    assert areas.sum() == pytest.approx(6.0)


def test_empty_faces():
    normals, areas = face_normals_and_areas(np.zeros((3, 3)), np.zeros((0, 3), dtype=int))
    assert normals.shape == (0, 3)
    assert areas.shape == (0,)


@pytest.mark.parametrize(
    "vertices, faces",
    [
        (np.zeros((4, 2)), [[0, 1, 2]]),
        (np.zeros((4, 3)), [[0, 1, 2, 3]]),
        (np.zeros((4, 3)), [[0, 1, 4]]),
        (np.zeros((4, 3)), [[0, -1, 2]]),
    ],
)
def test_invalid_mesh_rejected(vertices, faces):
    with pytest.raises(InvalidConfigurationError):
        as_triangle_mesh(vertices, faces)
