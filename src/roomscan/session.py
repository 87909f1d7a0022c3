"""
Scan session aggregate.

A ScanSession holds the points of one scan, the surfaces most recently
computed from them and the session metadata. It is an explicit object
owned by whoever drives the scan; there is no module-level current
session.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from .acquisition.store import PointStore
from .common.geometry import json_safe
from .processing.metrics import RoomMetrics
from .processing.surfaces import Surface

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class SessionMetadata:
    """Scan timing, opaque device information and the finalized room dimensions."""
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    device_info: Dict[str, Any] = field(default_factory=dict)
    room_dimensions: Optional[RoomMetrics] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "startTime": self.start_time,
            "endTime": self.end_time,
            "deviceInfo": json_safe(dict(self.device_info)),
            "roomDimensions": self.room_dimensions.to_dict() if self.room_dimensions else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionMetadata":
        dims = data.get("roomDimensions")
        return cls(
            start_time=data.get("startTime"),
            end_time=data.get("endTime"),
            device_info=dict(data.get("deviceInfo") or {}),
            room_dimensions=RoomMetrics.from_dict(dims) if dims else None,
        )


@dataclass
class ScanSession:
    """
    Top-level scan state.

    Mutated only by appends to ``points`` and by wholesale replacement of
    ``surfaces`` and of the metadata. Surfaces index into ``points`` and
    are meaningless once the store is replaced.
    """
    points: PointStore = field(default_factory=PointStore)
    surfaces: Tuple[Surface, ...] = ()
    metadata: SessionMetadata = field(default_factory=SessionMetadata)

    @classmethod
    def start(cls, device_info: Optional[Dict[str, Any]] = None) -> "ScanSession":
        return cls(metadata=SessionMetadata(
            start_time=utc_now_iso(),
            device_info=dict(device_info or {})
        ))

    def replace_surfaces(self, surfaces: Tuple[Surface, ...]) -> None:
        self.surfaces = tuple(surfaces)

    def update_metadata(self, **changes) -> None:
        self.metadata = replace(self.metadata, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Snapshot document for this session (current snapshot version)."""
        return {
            "version": SNAPSHOT_VERSION,
            "points": [p.to_dict() for p in self.points.snapshot()],
            "surfaces": [s.to_dict() for s in self.surfaces],
            "metadata": self.metadata.to_dict(),
        }

    def __repr__(self) -> str:
        return (
            f"ScanSession(points={len(self.points)}, surfaces={len(self.surfaces)}, "
            f"start_time={self.metadata.start_time!r})"
        )
