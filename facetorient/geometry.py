"""Per-facet normal and area computation."""

from typing import Tuple
import numpy as np
import trimesh

from facetorient.errors import InvalidConfigurationError


def as_triangle_mesh(vertices, faces) -> Tuple[np.ndarray, np.ndarray]:
    """Validate and normalise a vertex / face pair.

    Returns
    -------
    vertices : (N, 3) float64 array
    faces    : (M, 3) int64 array

    Raises
    ------
    InvalidConfigurationError
        If the vertices are not 3D points or the facets are not triangles
        indexing into the vertex array.
    """
    vertices = np.asarray(vertices, dtype=np.float64)
    faces = np.asarray(faces, dtype=np.int64)

    if vertices.ndim != 2 or vertices.shape[1] != 3:
        raise InvalidConfigurationError(
            f"Vertices must be an (N, 3) array, got shape {vertices.shape}."
        )
    if faces.ndim != 2 or faces.shape[1] != 3:
        raise InvalidConfigurationError(
            f"Faces must be an (M, 3) triangle array, got shape {faces.shape}."
        )
    if faces.size and (faces.min() < 0 or faces.max() >= len(vertices)):
        raise InvalidConfigurationError("Face indices fall outside the vertex array.")
    return vertices, faces


def face_normals_and_areas(vertices: np.ndarray, faces: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Compute unit face normals and face areas.

    Parameters
    ----------
    vertices : (N, 3) float array
    faces    : (M, 3) int array

    Returns
    -------
    face_normals : (M, 3) np.ndarray
        Unit normals following each facet's winding; zero rows for facets
        with zero area.
    face_areas : (M,) np.ndarray
    """
    vertices, faces = as_triangle_mesh(vertices, faces)
    if len(faces) == 0:
        return np.zeros((0, 3)), np.zeros(0)

    # process=False keeps the caller's vertex order and winding untouched
    mesh = trimesh.Trimesh(vertices=vertices, faces=faces, process=False, validate=False)
    return np.asarray(mesh.face_normals, dtype=float), np.asarray(mesh.area_faces, dtype=float)
