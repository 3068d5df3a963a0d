"""
Shared test fixtures for facet orientation tests.
"""
import numpy as np
import pytest
import trimesh


# Unit corner tetrahedron, every facet wound outward.
TETRA_VERTICES = np.array(
    [
        [0.0, 0.0, 0.0],
        [1.0, 0.0, 0.0],
        [0.0, 1.0, 0.0],
        [0.0, 0.0, 1.0],
    ]
)
TETRA_FACES = np.array(
    [
        [0, 2, 1],  # z = 0, normal -Z
        [0, 1, 3],  # y = 0, normal -Y
        [0, 3, 2],  # x = 0, normal -X
        [1, 2, 3],  # slanted, normal (1, 1, 1)
    ]
)


@pytest.fixture
def tetrahedron():
    return TETRA_VERTICES.copy(), TETRA_FACES.copy()


@pytest.fixture
def unit_cube():
    """12-triangle unit cube centred at the origin, outward winding."""
    mesh = trimesh.creation.box(extents=[1.0, 1.0, 1.0])
    return np.asarray(mesh.vertices, dtype=float), np.asarray(mesh.faces, dtype=np.int64)


@pytest.fixture
def two_cubes():
    """Two disjoint unit cubes; the second one has every facet inverted."""
    a = trimesh.creation.box(extents=[1.0, 1.0, 1.0])
    b = trimesh.creation.box(extents=[1.0, 1.0, 1.0])
    b.apply_translation([3.0, 0.0, 0.0])

    vertices = np.vstack([a.vertices, b.vertices])
    faces_b = np.asarray(b.faces)[:, ::-1] + len(a.vertices)
    faces = np.vstack([a.faces, faces_b]).astype(np.int64)
    return vertices, faces
