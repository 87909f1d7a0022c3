"""
Processing modules for surface clustering and room metrics.
"""

from .surfaces import Surface, SurfaceClusterer
from .metrics import RoomMetrics, compute_bounds, compute_dimensions, compute_room_metrics

__all__ = [
    "Surface",
    "SurfaceClusterer",
    "RoomMetrics",
    "compute_bounds",
    "compute_dimensions",
    "compute_room_metrics",
]
