"""
Room Metrics Module

Derives the axis-aligned room bounding box and scalar room dimensions
from the captured points, plus summary statistics for a finished scan.

Empty input: ``compute_bounds`` returns the ``Bounds.empty()`` sentinel,
``require_bounds`` raises EmptyGeometry, and ``compute_room_metrics``
returns None.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

import numpy as np
import trimesh

from ..acquisition.store import Point
from ..common.errors import EmptyGeometry
from ..common.geometry import Bounds, finite_or_none, float_or_nan

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoomMetrics:
    """Room extents along each axis and the box volume."""
    width: float
    height: float
    depth: float
    volume: float

    def to_dict(self) -> Dict[str, Optional[float]]:
        return {
            "width": finite_or_none(self.width),
            "height": finite_or_none(self.height),
            "depth": finite_or_none(self.depth),
            "volume": finite_or_none(self.volume),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RoomMetrics":
        return cls(
            width=float_or_nan(data.get("width")),
            height=float_or_nan(data.get("height")),
            depth=float_or_nan(data.get("depth")),
            volume=float_or_nan(data.get("volume")),
        )


def _positions(points: Sequence[Point]) -> np.ndarray:
    if hasattr(points, "positions"):
        return points.positions()
    if len(points) == 0:
        return np.empty((0, 3))
    return np.array([p.position.as_tuple() for p in points], dtype=np.float64)


def compute_bounds(points: Sequence[Point]) -> Bounds:
    """
    Bounding box of the finite point positions.

    Returns the ``Bounds.empty()`` sentinel when there is no point with a
    finite position.
    """
    return Bounds.from_array(_positions(points))


def require_bounds(points: Sequence[Point]) -> Bounds:
    """Like ``compute_bounds`` but raises EmptyGeometry instead of returning the sentinel."""
    bounds = compute_bounds(points)
    if bounds.is_empty:
        raise EmptyGeometry(f"No finite positions among {len(points)} points")
    return bounds


def compute_dimensions(bounds: Bounds) -> RoomMetrics:
    """
    Room dimensions from a bounding box.

    Values are not clamped: the empty sentinel yields negative infinities.
    """
    width = bounds.max.x - bounds.min.x
    height = bounds.max.y - bounds.min.y
    depth = bounds.max.z - bounds.min.z
    return RoomMetrics(
        width=width,
        height=height,
        depth=depth,
        volume=width * height * depth
    )


def compute_room_metrics(points: Sequence[Point]) -> Optional[RoomMetrics]:
    """Room dimensions for a point set, or None when it has no finite points."""
    try:
        bounds = require_bounds(points)
    except EmptyGeometry as e:
        logger.info(f"Room metrics unavailable: {e}")
        return None

    metrics = compute_dimensions(bounds)
    logger.info(
        f"Room: {metrics.width:.2f} x {metrics.height:.2f} x {metrics.depth:.2f}, "
        f"volume {metrics.volume:.2f}"
    )
    return metrics


def compute_scan_stats(points: Sequence[Point], surfaces: Sequence = ()) -> Dict[str, Any]:
    """
    Summary statistics for a scan.

    Args:
        points: Point snapshot
        surfaces: Surfaces computed from that snapshot

    Returns:
        Dictionary of scan statistics
    """
    positions = _positions(points)
    finite = positions[np.isfinite(positions).all(axis=1)] if len(positions) else positions
    n_clustered = sum(len(s.member_indices) for s in surfaces)

    confidences = np.array([p.confidence for p in points], dtype=np.float64)
    confidences = confidences[np.isfinite(confidences)]

    stats = {
        "n_points": len(positions),
        "n_finite_points": len(finite),
        "n_surfaces": len(surfaces),
        "clustered_fraction": n_clustered / len(positions) if len(positions) else 0.0,
        "mean_confidence": float(confidences.mean()) if len(confidences) else None,
        "bounds": None,
        "extents": None,
        "max_extent": None,
        "centroid": None,
    }

    if len(finite):
        cloud = trimesh.PointCloud(finite)
        bounds = cloud.bounds
        extents = cloud.extents
        stats.update({
            "bounds": {"min": bounds[0].tolist(), "max": bounds[1].tolist()},
            "extents": extents.tolist(),
            "max_extent": float(max(extents)),
            "centroid": cloud.centroid.tolist(),
        })

    return stats


def is_degenerate(metrics: Optional[RoomMetrics]) -> bool:
    """True for absent metrics or metrics derived from the empty sentinel."""
    if metrics is None:
        return True
    return not all(math.isfinite(v) for v in (metrics.width, metrics.height, metrics.depth))
