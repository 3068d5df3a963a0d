"""Mesh loading utilities for facetorient."""

from pathlib import Path
from typing import Tuple

import numpy as np
import trimesh

from facetorient.errors import MalformedInputError


def load_mesh(path: str) -> Tuple[np.ndarray, np.ndarray]:
    """Load a triangle mesh from an STL (or other supported) file.

    Parameters
    ----------
    path : str
        Path to the mesh file.

    Returns
    -------
    vertices : (N, 3) float64 np.ndarray
    faces : (M, 3) int64 np.ndarray

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    MalformedInputError
        If the loaded geometry is empty or not a triangle mesh.
    """
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"Mesh file not found: {p}")

    tri_mesh = trimesh.load_mesh(str(p))
    if isinstance(tri_mesh, trimesh.Scene):
        tri_mesh = trimesh.util.concatenate(list(tri_mesh.geometry.values()))
    if not isinstance(tri_mesh, trimesh.Trimesh) or tri_mesh.is_empty:
        raise MalformedInputError(f"Loaded mesh is empty: {p}")

    vertices = np.asarray(tri_mesh.vertices, dtype=np.float64)
    faces = np.asarray(tri_mesh.faces, dtype=np.int64)
    return vertices, faces
