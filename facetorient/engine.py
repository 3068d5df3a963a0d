# facetorient/engine.py

import logging
import numpy as np
from typing import Optional

from facetorient.geometry import as_triangle_mesh
from facetorient.loader import load_mesh
from facetorient.reorient import (
    DEFAULT_RAYS_MINIMUM,
    DEFAULT_RAYS_TOTAL,
    reorient_facets_raycast,
)

logger = logging.getLogger(__name__)


def run_orientation(
    vertices: np.ndarray,
    faces: np.ndarray,
    rays_total: int = DEFAULT_RAYS_TOTAL,
    rays_minimum: int = DEFAULT_RAYS_MINIMUM,
    use_parity: bool = False,
    rng=None,
    workers: Optional[int] = None,
) -> dict:
    """
    Outward-orientation pipeline for a triangle mesh made of closed patches.

    Parameters
    ----------
    vertices : (N, 3) float array
    faces    : (M, 3) int array
    rays_total, rays_minimum : int
        Ray budget, see reorient_facets_raycast().
    use_parity : bool
        Parity voting instead of distance voting.
    rng : None, int or numpy Generator
    workers : int or None

    Returns
    -------
    results : dict
        {
          "triangles": int,
          "bbox": {"min", "max", "extents"},
          "patches": {"count", "flipped", "rays"},
          "faces": (M, 3) int array, outward wound,
          "flips": (M,) bool array, relative to the patch-consistent winding,
          "status": "OK" or "REORIENTED",
          "message": str,
          "summary": str,
        }
    """
    vertices, faces = as_triangle_mesh(vertices, faces)
    results: dict = {}

    # -----------------------------------------------
    # Geometry
    # -----------------------------------------------
    results["triangles"] = int(faces.shape[0])
    if len(vertices):
        min_bounds = vertices.min(axis=0)
        max_bounds = vertices.max(axis=0)
    else:
        min_bounds = max_bounds = np.zeros(3)
    results["bbox"] = {
        "min": min_bounds,
        "max": max_bounds,
        "extents": max_bounds - min_bounds,
    }

    # -----------------------------------------------
    # Raycast reorientation
    # -----------------------------------------------
    reoriented = reorient_facets_raycast(
        vertices,
        faces,
        rays_total=rays_total,
        rays_minimum=rays_minimum,
        use_parity=use_parity,
        rng=rng,
        workers=workers,
    )

    out_faces = reoriented.faces.copy()
    out_faces[reoriented.flips] = out_faces[reoriented.flips][:, ::-1]
    flipped = [int(c) for c in np.nonzero(reoriented.patch_flips)[0]]

    results["patches"] = {
        "count": reoriented.num_patches,
        "flipped": flipped,
        "rays": reoriented.num_rays,
    }
    results["faces"] = out_faces
    results["flips"] = reoriented.flips

    # Facets whose final winding differs from the input
    num_changed = int(np.any(out_faces != faces, axis=1).sum()) if len(faces) else 0

    if flipped or num_changed:
        status = "REORIENTED"
        msg = (
            f"{len(flipped)} of {reoriented.num_patches} patches flipped; "
            f"{num_changed} facets changed winding."
        )
    else:
        status = "OK"
        msg = f"All {reoriented.num_patches} patches already face outward."

    results["status"] = status
    results["message"] = msg
    results["summary"] = (
        f"Orientation – {status}. "
        f"Triangles: {results['triangles']}. "
        f"Patches: {reoriented.num_patches}. "
        f"Rays: {reoriented.num_rays}."
    )
    logger.info(results["summary"])

    return results


def orient_mesh_file(path: str, **kwargs) -> dict:
    """Load a mesh file and run run_orientation() on it."""
    vertices, faces = load_mesh(path)
    results = run_orientation(vertices, faces, **kwargs)
    results["vertices"] = vertices
    return results
