"""
Tests for surface clustering.

Tests cover:
- Reference scenarios (one line cluster, far-apart points)
- Strict thresholds and the > 3 membership cutoff
- Seed-only comparison
- Determinism and claimed-once invariants
- Spatial index equivalence
- Non-finite input
"""

import math

import numpy as np
import pytest

from roomscan.acquisition.store import PointStore
from roomscan.common.config import ScanConfig
from roomscan.common.geometry import Bounds
from roomscan.processing.surfaces import SurfaceClusterer

from conftest import make_point


@pytest.fixture
def clusterer():
    return SurfaceClusterer(spatial_index_min_points=None)


@pytest.fixture
def random_room():
    """Dense random cloud with a handful of dominant normal directions."""
    rng = np.random.default_rng(42)
    axes = np.array([[1, 0, 0], [0, 1, 0], [0, 0, 1]], dtype=float)
    points = []
    for i in range(600):
        pos = rng.random(3) * [3.0, 1.5, 3.0]
        normal = axes[rng.integers(0, 3)] + (rng.random(3) - 0.5) * 0.3
        points.append(make_point(*pos, *normal, timestamp=i))
    return points


# ============== Scenario Tests ==============

class TestScenarios:
    """Reference clustering scenarios."""

    def test_four_close_points_one_surface(self, clusterer, line_points):
        surfaces = clusterer.recompute(line_points)
        assert len(surfaces) == 1
        assert surfaces[0].member_indices == (0, 1, 2, 3)

    def test_far_points_no_surface(self, clusterer, far_points):
        assert clusterer.recompute(far_points) == ()

    def test_empty_input(self, clusterer):
        assert clusterer.recompute([]) == ()

    def test_two_patches(self, clusterer, two_walls):
        surfaces = clusterer.recompute(two_walls)
        assert [s.member_indices for s in surfaces] == [(0, 1, 2, 3, 4), (5, 6, 7, 8, 9)]

    def test_surface_carries_seed_normal_and_bounds(self, clusterer, two_walls):
        wall = clusterer.recompute(two_walls)[1]
        seed = two_walls[5]
        assert wall.seed_index == 5
        assert wall.normal == seed.normal
        assert wall.bounds == Bounds(seed.position, seed.position)

    def test_member_bounds(self, clusterer, two_walls):
        wall = clusterer.recompute(two_walls)[1]
        b = wall.member_bounds(two_walls)
        assert b.min.y == 0
        assert b.max.y == pytest.approx(0.4)


# ============== Threshold Tests ==============

class TestThresholds:
    """Strict comparisons and the membership cutoff."""

    def test_three_members_not_emitted(self, clusterer):
        points = [make_point(0.1 * i, 0, 0) for i in range(3)]
        assert clusterer.recompute(points) == ()

    def test_distance_threshold_is_strict(self, clusterer):
        """A candidate at exactly 0.5 does not join."""
        points = [make_point(0, 0, 0), make_point(0.1, 0, 0), make_point(0.2, 0, 0),
                  make_point(0.5, 0, 0)]
        assert clusterer.recompute(points) == ()

    def test_similarity_threshold_is_strict(self, clusterer):
        """|dot| of exactly 0.8 does not join; anti-parallel normals do."""
        points = [
            make_point(0, 0, 0, 0, 1, 0),
            make_point(0.1, 0, 0, 0, -1, 0),
            make_point(0.2, 0, 0, 0, 1, 0),
            make_point(0.3, 0, 0, 0.6, 0.8, 0),
        ]
        assert clusterer.recompute(points) == ()

        points[3] = make_point(0.3, 0, 0, 0, -1, 0)
        surfaces = clusterer.recompute(points)
        assert surfaces[0].member_indices == (0, 1, 2, 3)

    def test_normals_not_renormalized(self, clusterer):
        """Short normals reduce the dot product below the threshold."""
        points = [make_point(0.1 * i, 0, 0, 0, 0.5, 0) for i in range(5)]
        assert clusterer.recompute(points) == ()

    def test_custom_thresholds_from_config(self):
        config = ScanConfig(distance_threshold=2.0, min_surface_members=1)
        clusterer = SurfaceClusterer.from_config(config)
        points = [make_point(0, 0, 0), make_point(1.5, 0, 0)]
        assert clusterer.recompute(points)[0].member_indices == (0, 1)


# ============== Seed-only Comparison Tests ==============

class TestSeedOnly:
    """Candidates are compared against the seed, never other members."""

    def test_chain_is_not_transitive(self, clusterer):
        """Points 0.4 apart in a chain only join when close to the seed."""
        points = [make_point(0.4 * i, 0, 0) for i in range(6)]
        # Only index 1 is within 0.5 of seed 0; later seeds fare the same
        assert clusterer.recompute(points) == ()

    def test_claimed_points_are_not_seeds(self, clusterer):
        """Index 1 would seed a cluster of 2, 3, 4 but is claimed by seed 0."""
        points = [
            make_point(0, 0, 0),
            make_point(0.4, 0, 0),
            make_point(0.8, 0, 0),
            make_point(0.85, 0, 0),
            make_point(0.9, 0, 0),
            make_point(0.1, 0, 0),
            make_point(0.2, 0, 0),
        ]
        surfaces = clusterer.recompute(points)
        assert [s.member_indices for s in surfaces] == [(0, 1, 5, 6)]

    def test_members_in_index_order(self, clusterer):
        points = [make_point(0, 0, 0), make_point(5, 0, 0), make_point(0.1, 0, 0),
                  make_point(5.1, 0, 0), make_point(0.2, 0, 0), make_point(0.3, 0, 0)]
        surfaces = clusterer.recompute(points)
        assert [s.member_indices for s in surfaces] == [(0, 2, 4, 5)]


# ============== Invariant Tests ==============

class TestInvariants:
    """Determinism and the claimed-once invariant."""

    def test_deterministic(self, clusterer, random_room):
        assert clusterer.recompute(random_room) == clusterer.recompute(random_room)

    def test_members_unique_and_claimed_once(self, clusterer, random_room):
        surfaces = clusterer.recompute(random_room)
        assert len(surfaces) > 0
        seen = set()
        for s in surfaces:
            assert len(s.member_indices) > 3
            assert len(set(s.member_indices)) == len(s.member_indices)
            assert seen.isdisjoint(s.member_indices)
            seen.update(s.member_indices)

    def test_seed_order(self, clusterer, random_room):
        seeds = [s.seed_index for s in clusterer.recompute(random_room)]
        assert seeds == sorted(seeds)

    def test_accepts_point_view(self, clusterer, line_points):
        store = PointStore(line_points)
        assert clusterer.recompute(store.snapshot()) == clusterer.recompute(line_points)


# ============== Spatial Index Tests ==============

class TestSpatialIndex:
    """KD-tree candidate selection must not change the output."""

    def test_matches_brute_force(self, random_room):
        brute = SurfaceClusterer(spatial_index_min_points=None).recompute(random_room)
        indexed = SurfaceClusterer(spatial_index_min_points=1).recompute(random_room)
        assert indexed == brute

    def test_boundary_distance_with_index(self):
        points = [make_point(0, 0, 0), make_point(0.1, 0, 0), make_point(0.2, 0, 0),
                  make_point(0.5, 0, 0)]
        assert SurfaceClusterer(spatial_index_min_points=1).recompute(points) == ()

    def test_non_finite_falls_back(self, line_points):
        points = line_points + [make_point(math.nan, 0, 0)]
        surfaces = SurfaceClusterer(spatial_index_min_points=1).recompute(points)
        assert [s.member_indices for s in surfaces] == [(0, 1, 2, 3)]


# ============== Non-finite Input Tests ==============

class TestNonFinite:
    """NaN and infinity are accepted and never join a cluster."""

    def test_nan_position_never_joins(self, clusterer, line_points):
        points = line_points[:2] + [make_point(math.nan, 0, 0)] + line_points[2:]
        surfaces = clusterer.recompute(points)
        assert [s.member_indices for s in surfaces] == [(0, 1, 3, 4)]

    def test_nan_normal_never_joins(self, clusterer, line_points):
        points = line_points + [make_point(0.05, 0, 0, math.nan, 1, 0)]
        surfaces = clusterer.recompute(points)
        assert surfaces[0].member_indices == (0, 1, 2, 3)

    def test_infinite_position_never_joins(self, clusterer, line_points):
        points = [make_point(math.inf, 0, 0)] + line_points
        surfaces = clusterer.recompute(points)
        assert [s.member_indices for s in surfaces] == [(1, 2, 3, 4)]
