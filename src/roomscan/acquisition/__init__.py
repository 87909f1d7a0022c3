"""
Point acquisition: the append-only point store and capture strategies.
"""

from .store import Point, PointStore, PointView, PointStoreStats
from .sources import (
    PointSource,
    SimulatedRoomSource,
    HitResult,
    HitTestSource,
    ViewPose,
    ViewPoseSource,
    RecordedSource,
)

__all__ = [
    "Point", "PointStore", "PointView", "PointStoreStats",
    "PointSource", "SimulatedRoomSource",
    "HitResult", "HitTestSource",
    "ViewPose", "ViewPoseSource",
    "RecordedSource",
]
