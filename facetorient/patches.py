"""Patch labeling and consistent per-patch winding."""

from collections import deque
from typing import Tuple

import numpy as np
from scipy.sparse import coo_matrix
from scipy.sparse.csgraph import connected_components

from facetorient.errors import InvalidConfigurationError


def face_adjacency(faces: np.ndarray) -> np.ndarray:
    """Pairs of facets sharing an edge that is used by exactly two facets.

    Non-manifold edges (three or more facets) and boundary edges do not
    connect anything.

    Returns
    -------
    pairs : (P, 2) int array
        Facet index pairs, smaller index first, sorted.
    """
    # Build edge -> face adjacency map
    edge_to_faces = {}
    for f_idx, (i0, i1, i2) in enumerate(np.asarray(faces, dtype=np.int64)):
        for a, b in ((i0, i1), (i1, i2), (i2, i0)):
            e = (min(a, b), max(a, b))
            edge_to_faces.setdefault(e, []).append(f_idx)

    pairs = set()
    for f_list in edge_to_faces.values():
        if len(f_list) == 2 and f_list[0] != f_list[1]:
            pairs.add((min(f_list), max(f_list)))

    if not pairs:
        return np.zeros((0, 2), dtype=np.int64)
    return np.array(sorted(pairs), dtype=np.int64)


def label_patches(faces: np.ndarray) -> Tuple[np.ndarray, int]:
    """Label connected facet patches.

    Returns
    -------
    labels : (M,) int array
        Patch id per facet, numbered in order of each patch's lowest facet.
    num_patches : int
    """
    faces = np.asarray(faces, dtype=np.int64)
    m = len(faces)
    if m == 0:
        return np.zeros(0, dtype=np.int64), 0

    pairs = face_adjacency(faces)
    graph = coo_matrix(
        (np.ones(len(pairs), dtype=np.int8), (pairs[:, 0], pairs[:, 1])),
        shape=(m, m),
    )
    num_patches, raw = connected_components(graph, directed=False)

    # renumber so patch ids follow facet order
    remap = np.full(num_patches, -1, dtype=np.int64)
    next_id = 0
    for c in raw:
        if remap[c] < 0:
            remap[c] = next_id
            next_id += 1
    return remap[raw], int(num_patches)


def _shares_direction(fa: np.ndarray, fb: np.ndarray) -> bool:
    # True when some edge is traversed the same way by both facets
    edges_a = {(fa[k], fa[(k + 1) % 3]) for k in range(3)}
    return any((fb[k], fb[(k + 1) % 3]) in edges_a for k in range(3))


def bfs_orient(faces: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Make winding consistent inside every patch.

    Each patch is walked breadth-first from its lowest facet, which keeps
    its input winding; a neighbour whose shared edge runs in the same
    direction as the current facet's is flipped.

    Returns
    -------
    oriented : (M, 3) int array
    labels   : (M,) int array
        Same labels as :func:`label_patches`.
    """
    faces = np.asarray(faces, dtype=np.int64)
    if faces.ndim != 2 or faces.shape[1] != 3:
        raise InvalidConfigurationError(
            f"Faces must be an (M, 3) triangle array, got shape {faces.shape}."
        )
    oriented = faces.copy()
    labels, _ = label_patches(faces)

    neighbours = [[] for _ in range(len(faces))]
    for a, b in face_adjacency(faces):
        neighbours[a].append(b)
        neighbours[b].append(a)

    seen = np.zeros(len(faces), dtype=bool)
    for seed in range(len(faces)):
        if seen[seed]:
            continue
        seen[seed] = True
        queue = deque([seed])
        while queue:
            f = queue.popleft()
            for nb in sorted(neighbours[f]):
                if seen[nb]:
                    continue
                seen[nb] = True
                if _shares_direction(oriented[f], oriented[nb]):
                    oriented[nb] = oriented[nb][::-1]
                queue.append(nb)

    return oriented, labels
