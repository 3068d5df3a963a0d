# facetorient/kernel/ray_index.py

"""Ray casting against a whole triangle mesh (trimesh ray/triangle queries)."""

import threading
from typing import List, NamedTuple

import numpy as np
import trimesh
from trimesh.ray.ray_triangle import ray_triangle_id


class Hit(NamedTuple):
    facet: int
    t: float


class RayMeshIndex:
    """All-hits ray queries over every facet of a mesh.

    Every hit is reported, so a ray crossing an edge counts once per facet
    sharing it. Each thread gets its own R-tree over the facet bounds.

    Parameters
    ----------
    vertices : (N, 3) float array
    faces    : (M, 3) int array
    """

    def __init__(self, vertices: np.ndarray, faces: np.ndarray):
        mesh = trimesh.Trimesh(
            vertices=np.asarray(vertices, dtype=np.float64),
            faces=np.asarray(faces, dtype=np.int64),
            process=False,
            validate=False,
        )
        self._triangles = np.asarray(mesh.triangles, dtype=np.float64)
        # zero rows for degenerate facets, which then never report a hit
        self._normals = np.asarray(mesh.face_normals, dtype=np.float64)
        self._local = threading.local()

    def __len__(self) -> int:
        return len(self._triangles)

    def _tree(self):
        tree = getattr(self._local, "tree", None)
        if tree is None:
            tree = trimesh.triangles.bounds_tree(self._triangles)
            self._local.tree = tree
        return tree

    def intersect_rays(self, origins: np.ndarray, directions: np.ndarray) -> List[List[Hit]]:
        """Hits of every ray ``origins[i] + t * directions[i]`` with t >= 0.

        Returns one list per ray, sorted by ``t`` then facet id. The facet a
        ray starts on may appear as a hit at t ~ 0; callers filter it.
        """
        origins = np.asarray(origins, dtype=np.float64).reshape(-1, 3)
        directions = np.asarray(directions, dtype=np.float64).reshape(-1, 3)
        hits: List[List[Hit]] = [[] for _ in range(len(origins))]
        if len(origins) == 0 or len(self._triangles) == 0:
            return hits

        index_tri, index_ray, locations = ray_triangle_id(
            triangles=self._triangles,
            ray_origins=origins,
            ray_directions=directions,
            triangles_normal=self._normals,
            tree=self._tree(),
            multiple_hits=True,
        )
        if len(index_tri) == 0:
            return hits

        # parametric distance along each (not necessarily unit) direction
        offsets = locations - origins[index_ray]
        dirs = directions[index_ray]
        t = np.einsum("ij,ij->i", offsets, dirs) / np.einsum("ij,ij->i", dirs, dirs)
        t = np.maximum(t, 0.0)

        order = np.lexsort((index_tri, t, index_ray))
        for k in order:
            hits[int(index_ray[k])].append(Hit(int(index_tri[k]), float(t[k])))
        return hits

    def intersect_ray(self, origin: np.ndarray, direction: np.ndarray) -> List[Hit]:
        """Every facet hit by the ray ``origin + t * direction`` for t >= 0."""
        return self.intersect_rays(np.reshape(origin, (1, 3)), np.reshape(direction, (1, 3)))[0]
