# facetorient/kernel/triangle_index.py

"""Exact closest-point and segment queries over a subset of mesh facets."""

from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from facetorient.errors import MalformedInputError
from facetorient.kernel.predicates import (
    Point,
    closest_point_on_triangle,
    collinear,
    exact_point,
    segment_intersects_triangle,
    squared_distance,
    to_float,
)

# Relative slack applied to float bounds before the exact test decides.
_FLOAT_SLACK = 1e-9


class TriangleIndex:
    """Exact triangles for a candidate facet subset, with float box culling.

    Parameters
    ----------
    vertices : (N, 3) float array
    faces    : (M, 3) int array
    candidates : (K,) int array or None
        Global facet ids making up the candidate set. ``None`` uses every
        facet. Local index ``i`` refers to facet ``candidates[i]``.

    Raises
    ------
    MalformedInputError
        If the candidate set is empty, references a facet outside ``faces``,
        or contains a degenerate (zero area) triangle.
    """

    def __init__(self, vertices: np.ndarray, faces: np.ndarray, candidates: Optional[Sequence[int]] = None):
        vertices = np.asarray(vertices, dtype=float)
        faces = np.asarray(faces, dtype=np.int64)

        if faces.ndim != 2 or faces.shape[0] == 0:
            raise MalformedInputError("Closest facet cannot be computed on empty mesh.")
        if candidates is None:
            candidates = np.arange(faces.shape[0], dtype=np.int64)
        candidates = np.asarray(candidates, dtype=np.int64).reshape(-1)
        if candidates.size == 0:
            raise MalformedInputError("Closest facet cannot be computed on empty candidate set.")
        if candidates.min() < 0 or candidates.max() >= faces.shape[0]:
            raise MalformedInputError("Candidate facet index out of range.")

        if faces.shape[1] != 3 or faces.min() < 0 or faces.max() >= len(vertices):
            raise MalformedInputError("Faces must be vertex index triples into the vertex array.")

        self.candidates = candidates
        self.faces = faces

        self._vertices = vertices
        self._points: Dict[int, Point] = {}
        self.triangles: List[Tuple[Point, Point, Point]] = []
        for fid in candidates:
            tri = tuple(self.point(int(v)) for v in faces[fid])
            if collinear(*tri):
                raise MalformedInputError(
                    f"Input facet components contains degenerated triangles (facet {int(fid)})."
                )
            self.triangles.append(tri)

        corners = vertices[faces[candidates]]  # (K, 3, 3)
        self._lo = corners.min(axis=1)
        self._hi = corners.max(axis=1)
        self._scale = float(np.abs(corners).max()) + 1.0

    def __len__(self) -> int:
        return len(self.triangles)

    def point(self, vid: int) -> Point:
        """Exact coordinates of vertex ``vid`` (cached)."""
        p = self._points.get(vid)
        if p is None:
            p = exact_point(self._vertices[vid])
            self._points[vid] = p
        return p

    def facet(self, local_index: int) -> int:
        """Global facet id for a local index."""
        return int(self.candidates[local_index])

    # ---------------------------------------------------------
    #  Queries
    # ---------------------------------------------------------
    def closest_point_and_primitive(self, query: Point) -> Tuple[Point, int]:
        """Closest point on the triangle set and the local index owning it.

        Exact ties go to the lowest local index.
        """
        q = np.array(to_float(query))

        # Lower bound: distance to each triangle's bounding box.
        gap = np.maximum(np.maximum(self._lo - q, q - self._hi), 0.0)
        lower = np.einsum("ij,ij->i", gap, gap)
        order = np.lexsort((np.arange(len(lower)), lower))

        best_point: Optional[Point] = None
        best_index = -1
        best_sq = None
        best_sq_float = np.inf
        for i in order:
            if lower[i] > best_sq_float * (1.0 + _FLOAT_SLACK):
                break
            cp = closest_point_on_triangle(query, *self.triangles[i])
            sq = squared_distance(cp, query)
            if best_sq is None or sq < best_sq or (sq == best_sq and i < best_index):
                best_point, best_index, best_sq = cp, int(i), sq
                best_sq_float = float(sq)

        return best_point, best_index

    def all_intersected_primitives(self, a: Point, b: Point) -> List[int]:
        """Ascending local indices of triangles touched by the closed segment [a, b]."""
        fa = np.array(to_float(a))
        fb = np.array(to_float(b))
        pad = _FLOAT_SLACK * self._scale
        seg_lo = np.minimum(fa, fb) - pad
        seg_hi = np.maximum(fa, fb) + pad

        overlap = np.all((self._lo <= seg_hi) & (self._hi >= seg_lo), axis=1)
        return [
            int(i)
            for i in np.nonzero(overlap)[0]
            if segment_intersects_triangle(a, b, *self.triangles[i])
        ]
