"""
Tests for geometry primitives and room metrics.

Tests cover:
- Vector3 arithmetic and serialization
- Bounds construction, empty sentinel, legacy form
- compute_bounds / compute_dimensions / compute_room_metrics
- Scan statistics
"""

import math

import numpy as np
import pytest

from roomscan.common.errors import EmptyGeometry
from roomscan.common.geometry import Bounds, Vector3, format_number
from roomscan.processing.metrics import (
    RoomMetrics,
    compute_bounds,
    compute_dimensions,
    compute_room_metrics,
    compute_scan_stats,
    is_degenerate,
    require_bounds,
)

from conftest import make_point


# ============== Vector3 Tests ==============

class TestVector3:
    """Test the vector value type."""

    def test_dot_and_distance(self):
        a = Vector3(1, 2, 3)
        b = Vector3(4, 6, 3)
        assert a.dot(b) == 1 * 4 + 2 * 6 + 3 * 3
        assert a.distance_to(b) == 5.0

    def test_immutable(self):
        v = Vector3(1, 2, 3)
        with pytest.raises(AttributeError):
            v.x = 5

    def test_dict_round_trip(self):
        v = Vector3(0.1, -2.5, 3e-7)
        assert Vector3.from_dict(v.to_dict()) == v

    def test_is_finite(self):
        assert Vector3(1, 2, 3).is_finite
        assert not Vector3(math.nan, 0, 0).is_finite
        assert not Vector3(0, math.inf, 0).is_finite


# ============== Bounds Tests ==============

class TestBounds:
    """Test bounding boxes and the empty sentinel."""

    def test_empty_sentinel(self):
        b = Bounds.empty()
        assert b.is_empty
        assert b.min == Vector3(math.inf, math.inf, math.inf)
        assert b.max == Vector3(-math.inf, -math.inf, -math.inf)

    def test_from_array_ignores_non_finite_rows(self):
        positions = np.array([[0, 0, 0], [np.nan, 5, 5], [1, 2, 3], [np.inf, 0, 0]])
        b = Bounds.from_array(positions)
        assert b.min == Vector3(0, 0, 0)
        assert b.max == Vector3(1, 2, 3)

    def test_all_non_finite_is_empty(self):
        b = Bounds.from_array(np.array([[np.nan, 0, 0]]))
        assert b.is_empty

    def test_nested_dict_round_trip(self):
        b = Bounds(Vector3(-1, 0, 2), Vector3(3, 4, 5))
        assert Bounds.from_dict(b.to_dict()) == b

    def test_empty_dict_round_trip(self):
        """Infinities are serialized as null and restored as the sentinel."""
        d = Bounds.empty().to_dict()
        assert d["min"]["x"] is None
        assert Bounds.from_dict(d) == Bounds.empty()

    def test_legacy_flat_form(self):
        flat = {"minX": 0, "minY": 1, "minZ": 2, "maxX": 3, "maxY": 4, "maxZ": 5}
        b = Bounds.from_dict(flat)
        assert b.min == Vector3(0, 1, 2)
        assert b.max == Vector3(3, 4, 5)
        assert b.to_flat_dict() == flat


# ============== Number Formatting Tests ==============

class TestFormatNumber:
    """Test coordinate formatting for text exports."""

    def test_integral_values_have_no_fraction(self):
        assert format_number(1.0) == "1"
        assert format_number(-3.0) == "-3"
        assert format_number(0.0) == "0"

    def test_fractional_values_round_trip(self):
        assert format_number(0.1) == "0.1"
        assert float(format_number(1 / 3)) == 1 / 3

    @pytest.mark.parametrize("value,text", [
        (1e-7, "1e-7"),
        (1.5e-10, "1.5e-10"),
        (1e-6, "0.000001"),
        (0.000123, "0.000123"),
        (1e16, "10000000000000000"),
        (1.5e20, "150000000000000000000"),
        (1e21, "1e+21"),
        (-2.5e22, "-2.5e+22"),
        (-0.0, "0"),
        (123.456, "123.456"),
    ])
    def test_javascript_number_forms(self, value, text):
        assert format_number(value) == text

    def test_non_finite(self):
        assert format_number(math.nan) == "nan"
        assert format_number(math.inf) == "inf"
        assert format_number(-math.inf) == "-inf"


# ============== Room Metrics Tests ==============

class TestRoomMetrics:
    """Test bounds and dimension derivation."""

    def test_single_point_bounds(self):
        """min == max == the point position."""
        p = make_point(1.5, -2, 3)
        b = compute_bounds([p])
        assert b.min == p.position
        assert b.max == p.position

    def test_empty_bounds_is_sentinel(self):
        """No crash on empty input, the documented sentinel instead."""
        assert compute_bounds([]) == Bounds.empty()

    def test_require_bounds_raises_on_empty(self):
        with pytest.raises(EmptyGeometry):
            require_bounds([])

    def test_dimensions(self, two_walls):
        metrics = compute_dimensions(compute_bounds(two_walls))
        assert metrics.width == pytest.approx(5.0)
        assert metrics.height == pytest.approx(0.4)
        assert metrics.depth == pytest.approx(0.2)
        assert metrics.volume == pytest.approx(5.0 * 0.4 * 0.2)

    def test_dimensions_of_sentinel_not_clamped(self):
        metrics = compute_dimensions(Bounds.empty())
        assert metrics.width == -math.inf
        assert metrics.volume == -math.inf
        assert is_degenerate(metrics)

    def test_room_metrics_absent_for_empty(self):
        assert compute_room_metrics([]) is None

    def test_room_metrics_present(self, line_points):
        metrics = compute_room_metrics(line_points)
        assert metrics is not None
        assert metrics.width == pytest.approx(0.3)
        assert metrics.volume == 0.0
        assert not is_degenerate(metrics)

    def test_metrics_dict_round_trip(self):
        m = RoomMetrics(width=4.0, height=2.5, depth=3.0, volume=30.0)
        assert RoomMetrics.from_dict(m.to_dict()) == m


# ============== Scan Stats Tests ==============

class TestScanStats:
    """Test summary statistics."""

    def test_stats_for_points(self, two_walls):
        stats = compute_scan_stats(two_walls)
        assert stats["n_points"] == 10
        assert stats["n_finite_points"] == 10
        assert stats["n_surfaces"] == 0
        np.testing.assert_allclose(stats["bounds"]["min"], [0, 0, 0])
        np.testing.assert_allclose(stats["bounds"]["max"], [5, 0.4, 0.2])
        assert stats["max_extent"] == pytest.approx(5.0)
        assert stats["mean_confidence"] == pytest.approx(1.0)

    def test_stats_for_empty(self):
        stats = compute_scan_stats([])
        assert stats["n_points"] == 0
        assert stats["bounds"] is None
        assert stats["clustered_fraction"] == 0.0
