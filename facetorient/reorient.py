# facetorient/reorient.py

"""Outward orientation of closed patches by random ray casting.

Every patch (edge-connected facet component) receives rays sampled on its
facets. Each ray is cast both along the facet normal ("front") and against
it ("back"). Evidence is tallied per patch and one flip decision is made for
the whole patch:

* parity mode: sum of (hit count mod 2) for front and back rays. A correctly
  oriented patch leaves through the outside, so its front parity sum is the
  smaller one.
* distance mode: rays that escape to infinity are counted, the others add
  their first hit distance. Fewer front escapes, or equal escapes and a
  shorter front distance, means the normals point inward.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional

import numpy as np

from facetorient.errors import InvalidConfigurationError
from facetorient.geometry import as_triangle_mesh, face_normals_and_areas
from facetorient.kernel.ray_index import RayMeshIndex
from facetorient.patches import bfs_orient

logger = logging.getLogger(__name__)

DEFAULT_RAYS_TOTAL = 10000
DEFAULT_RAYS_MINIMUM = 10

# Directions with |cos| below this against the normal are resampled (~5.7 deg from grazing)
GRAZING_COS = 0.1

# Rays per casting task; fixed so tallies do not depend on the worker count
RAY_CHUNK_SIZE = 256


class Ray(NamedTuple):
    facet: int
    origin: np.ndarray
    direction: np.ndarray


@dataclass
class VoteTally:
    """Front/back evidence accumulated for one patch."""

    parity_front: int = 0
    parity_back: int = 0
    distance_front: float = 0.0
    distance_back: float = 0.0
    infinity_front: int = 0
    infinity_back: int = 0

    def merge(self, other: "VoteTally") -> None:
        self.parity_front += other.parity_front
        self.parity_back += other.parity_back
        self.distance_front += other.distance_front
        self.distance_back += other.distance_back
        self.infinity_front += other.infinity_front
        self.infinity_back += other.infinity_back

    def should_flip(self, use_parity: bool) -> bool:
        if use_parity:
            return self.parity_front > self.parity_back
        if self.infinity_front < self.infinity_back:
            return True
        return self.infinity_front == self.infinity_back and self.distance_front < self.distance_back


@dataclass
class ReorientResult:
    """Output of :func:`reorient_facets_raycast`.

    Flip flags refer to ``faces``, the input winding made consistent inside
    each patch.
    """

    faces: np.ndarray
    patches: np.ndarray
    patch_flips: np.ndarray
    flips: np.ndarray
    tallies: List[VoteTally] = field(default_factory=list)
    num_rays: int = 0

    @property
    def num_patches(self) -> int:
        return len(self.patch_flips)


# ---------------------------------------------------------
#  Ray budget and sampling
# ---------------------------------------------------------
def allocate_rays(patch_areas: np.ndarray, rays_total: int, rays_minimum: int) -> np.ndarray:
    """Rays per patch, proportional to area and floored at ``rays_minimum``."""
    patch_areas = np.asarray(patch_areas, dtype=float)
    area_total = patch_areas.sum()
    if area_total <= 0:
        return np.full(len(patch_areas), rays_minimum, dtype=np.int64)
    share = (rays_total * patch_areas / area_total).astype(np.int64)
    return np.maximum(share, rays_minimum)


def random_direction(rng: np.random.Generator) -> np.ndarray:
    """Uniformly distributed unit vector."""
    z = rng.uniform(-1.0, 1.0)
    theta = rng.uniform(0.0, 2.0 * np.pi)
    r = np.sqrt(max(0.0, 1.0 - z * z))
    return np.array([r * np.cos(theta), r * np.sin(theta), z])


def sample_rays(
    vertices: np.ndarray,
    faces: np.ndarray,
    patches: np.ndarray,
    normals: np.ndarray,
    areas: np.ndarray,
    rays_per_patch: np.ndarray,
    rng: np.random.Generator,
) -> List[Ray]:
    """Draw rays for every patch from one random stream.

    A facet is picked with probability proportional to its area, a point
    uniformly inside it (square-root barycentric transform), and a direction
    in the normal's hemisphere away from grazing. Patches with zero area get
    no rays; a pick landing on a facet with zero normal is skipped.
    """
    rays: List[Ray] = []
    for c, count in enumerate(rays_per_patch):
        members = np.nonzero(patches == c)[0]
        member_areas = areas[members]
        patch_area = member_areas.sum()
        if patch_area == 0:
            continue
        weights = member_areas / patch_area

        for _ in range(int(count)):
            f = members[rng.choice(len(members), p=weights)]
            s = rng.uniform()
            t = rng.uniform()
            sqrt_t = np.sqrt(t)
            a = 1.0 - sqrt_t
            b = (1.0 - s) * sqrt_t
            w = s * sqrt_t
            i0, i1, i2 = faces[f]
            p = a * vertices[i0] + b * vertices[i1] + w * vertices[i2]

            n = normals[f]
            if not n.any():
                continue
            while True:
                d = random_direction(rng)
                ndotd = float(n @ d)
                if abs(ndotd) < GRAZING_COS:
                    continue
                if ndotd < 0:
                    d = -d
                break
            rays.append(Ray(int(f), p, d))
    return rays


# ---------------------------------------------------------
#  Casting and voting
# ---------------------------------------------------------
def _cast_chunk(
    index: RayMeshIndex,
    rays: List[Ray],
    patches: np.ndarray,
    num_patches: int,
    use_parity: bool,
) -> List[VoteTally]:
    tallies = [VoteTally() for _ in range(num_patches)]
    if not rays:
        return tallies

    origins = np.array([ray.origin for ray in rays])
    directions = np.array([ray.direction for ray in rays])
    front = index.intersect_rays(origins, directions)
    back = index.intersect_rays(origins, -directions)

    for ray, hits_front, hits_back in zip(rays, front, back):
        tally = tallies[patches[ray.facet]]

        if hits_front and hits_front[0].facet == ray.facet:
            hits_front = hits_front[1:]
        if hits_back and hits_back[0].facet == ray.facet:
            hits_back = hits_back[1:]

        if use_parity:
            tally.parity_front += len(hits_front) % 2
            tally.parity_back += len(hits_back) % 2
            continue

        if hits_front:
            tally.distance_front += hits_front[0].t
        else:
            tally.infinity_front += 1
        if hits_back:
            tally.distance_back += hits_back[0].t
        else:
            tally.infinity_back += 1
    return tallies


def cast_rays(
    index: RayMeshIndex,
    rays: List[Ray],
    patches: np.ndarray,
    num_patches: int,
    use_parity: bool,
    workers: Optional[int] = None,
) -> List[VoteTally]:
    """Cast rays and reduce the per-chunk tallies in chunk order."""
    chunks = [rays[k:k + RAY_CHUNK_SIZE] for k in range(0, len(rays), RAY_CHUNK_SIZE)]

    def run(chunk):
        return _cast_chunk(index, chunk, patches, num_patches, use_parity)

    if workers is not None and workers > 1 and len(chunks) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            partials = list(pool.map(run, chunks))
    else:
        partials = [run(chunk) for chunk in chunks]

    totals = [VoteTally() for _ in range(num_patches)]
    for partial in partials:
        for total, tally in zip(totals, partial):
            total.merge(tally)
    return totals


# ---------------------------------------------------------
#  Public API
# ---------------------------------------------------------
def reorient_facets_raycast(
    vertices,
    faces,
    rays_total: int = DEFAULT_RAYS_TOTAL,
    rays_minimum: int = DEFAULT_RAYS_MINIMUM,
    use_parity: bool = False,
    rng=None,
    workers: Optional[int] = None,
) -> ReorientResult:
    """Decide per patch whether its winding must be flipped to face outward.

    Parameters
    ----------
    vertices : (N, 3) float array
    faces    : (M, 3) int array
    rays_total : int
        Nominal number of rays, shared between patches by area.
    rays_minimum : int
        Lower bound on rays per patch.
    use_parity : bool
        Parity voting instead of distance voting.
    rng : None, int or numpy.random.Generator
        Random source for ray sampling.
    workers : int or None
        Thread pool size for casting. ``None`` or 1 casts serially.

    Returns
    -------
    ReorientResult

    Raises
    ------
    InvalidConfigurationError
        Non-triangular facets, non-3D vertices or a negative ray budget.
    """
    vertices, faces = as_triangle_mesh(vertices, faces)
    if rays_total < 0 or rays_minimum < 0:
        raise InvalidConfigurationError(
            f"Ray counts must be non-negative (rays_total={rays_total}, rays_minimum={rays_minimum})."
        )
    rng = np.random.default_rng(rng)

    logger.info("extracting patches...")
    oriented, patches = bfs_orient(faces)
    num_patches = int(patches.max()) + 1 if len(patches) else 0
    logger.info("%d components.", num_patches)

    normals, areas = face_normals_and_areas(vertices, oriented)
    patch_areas = np.bincount(patches, weights=areas, minlength=num_patches)
    rays_per_patch = allocate_rays(patch_areas, rays_total, rays_minimum)

    logger.info("generating rays...")
    rays = sample_rays(vertices, oriented, patches, normals, areas, rays_per_patch, rng)
    logger.info("%d rays.", len(rays))

    logger.info("shooting rays...")
    index = RayMeshIndex(vertices, oriented)
    tallies = cast_rays(index, rays, patches, num_patches, use_parity, workers=workers)

    patch_flips = np.array([t.should_flip(use_parity) for t in tallies], dtype=bool)
    flips = patch_flips[patches] if len(patches) else np.zeros(0, dtype=bool)
    logger.info("done! %d of %d patches flipped.", int(patch_flips.sum()), num_patches)

    return ReorientResult(
        faces=oriented,
        patches=patches,
        patch_flips=patch_flips,
        flips=flips,
        tallies=tallies,
        num_rays=len(rays),
    )


def orient_outward(
    vertices,
    faces,
    rays_total: int = DEFAULT_RAYS_TOTAL,
    rays_minimum: int = DEFAULT_RAYS_MINIMUM,
    use_parity: bool = False,
    rng=None,
    workers: Optional[int] = None,
):
    """Return faces with every patch wound outward, and the patch labels."""
    result = reorient_facets_raycast(
        vertices,
        faces,
        rays_total=rays_total,
        rays_minimum=rays_minimum,
        use_parity=use_parity,
        rng=rng,
        workers=workers,
    )
    oriented = result.faces.copy()
    oriented[result.flips] = oriented[result.flips][:, ::-1]
    return oriented, result.patches
