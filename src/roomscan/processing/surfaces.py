"""
Surface Clustering Module

Groups sample points into candidate planar surfaces with a greedy,
single-pass, seeded algorithm:

1. Seeds are visited in index order; a claimed point is never a seed.
2. Every later unclaimed point is compared against the seed only (never
   against other members): it joins when its distance to the seed is
   strictly below ``distance_threshold`` and the absolute dot product of
   the two normals is strictly above ``normal_similarity_threshold``.
3. The cluster is emitted only with more than ``min_members`` members;
   the seed is claimed either way.

The pass is O(n^2). For large all-finite inputs a KD-tree radius query
pre-selects candidates, and the final decision is made with exactly the
same predicate, so both paths produce identical surfaces.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Any, List, Optional, Sequence, Tuple

import numpy as np
from scipy.spatial import cKDTree

from ..acquisition.store import Point
from ..common.geometry import Bounds, Vector3, finite_or_none

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Surface:
    """
    A cluster of points on one approximately planar patch.

    ``member_indices`` index into the point store snapshot the surface
    was computed from; the first entry is the seed. ``normal`` and
    ``bounds`` are those of the seed point.
    """
    member_indices: Tuple[int, ...]
    normal: Vector3
    bounds: Bounds

    @property
    def seed_index(self) -> int:
        return self.member_indices[0]

    def __len__(self) -> int:
        return len(self.member_indices)

    def member_bounds(self, points: Sequence[Point]) -> Bounds:
        """Bounds over every member, not just the seed."""
        positions = np.array(
            [points[i].position.as_tuple() for i in self.member_indices],
            dtype=np.float64
        )
        return Bounds.from_array(positions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "memberIndices": list(self.member_indices),
            "normal": {k: finite_or_none(v) for k, v in self.normal.to_dict().items()},
            "bounds": self.bounds.to_dict(),
        }


class SurfaceClusterer:
    """
    Stateless surface clusterer.

    ``recompute`` is a pure function of its input sequence: the same
    points in the same order always give the same surfaces in the same
    order.
    """

    def __init__(
        self,
        distance_threshold: float = 0.5,
        normal_similarity_threshold: float = 0.8,
        min_members: int = 3,
        spatial_index_min_points: Optional[int] = 2000
    ):
        """
        Initialize clusterer.

        Args:
            distance_threshold: Candidates must be strictly closer than this to the seed
            normal_similarity_threshold: |dot(seed normal, candidate normal)| must exceed this
            min_members: Clusters need strictly more members than this to be emitted
            spatial_index_min_points: Use a KD-tree at or above this many points (None disables)
        """
        self.distance_threshold = distance_threshold
        self.normal_similarity_threshold = normal_similarity_threshold
        self.min_members = min_members
        self.spatial_index_min_points = spatial_index_min_points

    @classmethod
    def from_config(cls, config) -> "SurfaceClusterer":
        return cls(
            distance_threshold=config.distance_threshold,
            normal_similarity_threshold=config.normal_similarity_threshold,
            min_members=config.min_surface_members,
            spatial_index_min_points=config.spatial_index_min_points,
        )

    def recompute(self, points: Sequence[Point]) -> Tuple[Surface, ...]:
        """
        Cluster ``points`` into surfaces.

        Args:
            points: Points in store order (a fixed-length snapshot)

        Returns:
            Surfaces in seed-index order
        """
        n = len(points)
        if n == 0:
            return ()

        positions = np.array([p.position.as_tuple() for p in points], dtype=np.float64)
        normals = np.array([p.normal.as_tuple() for p in points], dtype=np.float64)

        tree = None
        if (
            self.spatial_index_min_points is not None
            and n >= self.spatial_index_min_points
            and np.isfinite(positions).all()
        ):
            tree = cKDTree(positions)
            logger.debug(f"Clustering {n} points with spatial index")

        claimed = np.zeros(n, dtype=bool)
        surfaces: List[Surface] = []

        with np.errstate(invalid="ignore", over="ignore"):
            for i in range(n):
                if claimed[i]:
                    continue

                if tree is not None:
                    # Padded radius: the exact test below decides membership
                    near = tree.query_ball_point(
                        positions[i], self.distance_threshold * (1.0 + 1e-9)
                    )
                    candidates = np.array(sorted(j for j in near if j > i), dtype=np.intp)
                else:
                    candidates = np.arange(i + 1, n, dtype=np.intp)

                if len(candidates):
                    candidates = candidates[~claimed[candidates]]

                members = [i]
                if len(candidates):
                    accepted = candidates[self._accepts(
                        positions[i], normals[i],
                        positions[candidates], normals[candidates]
                    )]
                    claimed[accepted] = True
                    members.extend(int(j) for j in accepted)

                if len(members) > self.min_members:
                    seed = points[i]
                    surfaces.append(Surface(
                        member_indices=tuple(members),
                        normal=seed.normal,
                        bounds=Bounds.from_point(seed.position)
                    ))

                claimed[i] = True

        logger.debug(f"Clustered {n} points into {len(surfaces)} surfaces")
        return tuple(surfaces)

    def _accepts(
        self,
        seed_position: np.ndarray,
        seed_normal: np.ndarray,
        positions: np.ndarray,
        normals: np.ndarray
    ) -> np.ndarray:
        """
        Boolean mask of candidates that join the seed.

        Any NaN in a distance or similarity compares false, so non-finite
        samples never join a cluster.
        """
        d = positions - seed_position
        distance = np.sqrt(d[:, 0] * d[:, 0] + d[:, 1] * d[:, 1] + d[:, 2] * d[:, 2])
        similarity = np.abs(
            seed_normal[0] * normals[:, 0]
            + seed_normal[1] * normals[:, 1]
            + seed_normal[2] * normals[:, 2]
        )
        return (distance < self.distance_threshold) & (similarity > self.normal_similarity_threshold)
