"""
Point Store

Ordered, append-only collection of captured sample points. Insertion
order is the canonical sequence: surfaces and export formats refer to
points by their index in it.
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Dict, Any, Iterable, Iterator, List, Optional

import numpy as np

from ..common.errors import OutOfRange
from ..common.geometry import Vector3, finite_or_none, float_or_nan

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Point:
    """One captured sample: position, normal, capture time (ms) and confidence."""
    position: Vector3
    normal: Vector3
    timestamp: int
    confidence: float

    @property
    def is_finite(self) -> bool:
        return (
            self.position.is_finite
            and self.normal.is_finite
            and math.isfinite(self.confidence)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "position": {k: finite_or_none(v) for k, v in self.position.to_dict().items()},
            "normal": {k: finite_or_none(v) for k, v in self.normal.to_dict().items()},
            "timestamp": self.timestamp,
            "confidence": finite_or_none(self.confidence),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Point":
        position = data["position"]
        normal = data["normal"]
        return cls(
            position=Vector3(*(float_or_nan(position.get(k)) for k in "xyz")),
            normal=Vector3(*(float_or_nan(normal.get(k)) for k in "xyz")),
            timestamp=int(data.get("timestamp") or 0),
            confidence=float_or_nan(data.get("confidence")),
        )


class PointView(Sequence):
    """
    Read-only view over the points of a store.

    With a ``length`` the view is bounded to the first ``length`` points:
    the store only ever appends, so every index below it stays valid and
    points appended later are not visible. Without one the view follows
    the store as it grows.
    """

    def __init__(self, items: List[Point], length: Optional[int] = None):
        self._items = items
        self._bound = length

    @property
    def _length(self) -> int:
        return len(self._items) if self._bound is None else self._bound

    def __len__(self) -> int:
        return self._length

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [self._items[i] for i in range(*index.indices(self._length))]
        if index < 0:
            index += self._length
        if not 0 <= index < self._length:
            raise OutOfRange(index, self._length)
        return self._items[index]

    def __iter__(self) -> Iterator[Point]:
        for i in range(self._length):
            yield self._items[i]

    def positions(self) -> np.ndarray:
        """Nx3 float64 array of positions."""
        if self._length == 0:
            return np.empty((0, 3))
        return np.array([p.position.as_tuple() for p in self], dtype=np.float64)

    def normals(self) -> np.ndarray:
        """Nx3 float64 array of normals."""
        if self._length == 0:
            return np.empty((0, 3))
        return np.array([p.normal.as_tuple() for p in self], dtype=np.float64)


@dataclass
class PointStoreStats:
    """Running statistics maintained on every append."""
    count: int = 0
    non_finite_count: int = 0
    confidence_sum: float = 0.0
    first_timestamp: Optional[int] = None
    last_timestamp: Optional[int] = None

    @property
    def mean_confidence(self) -> Optional[float]:
        finite = self.count - self.non_finite_count
        if finite <= 0:
            return None
        return self.confidence_sum / finite

    @property
    def duration_ms(self) -> int:
        if self.first_timestamp is None or self.last_timestamp is None:
            return 0
        return self.last_timestamp - self.first_timestamp

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "non_finite_count": self.non_finite_count,
            "mean_confidence": self.mean_confidence,
            "first_timestamp": self.first_timestamp,
            "last_timestamp": self.last_timestamp,
            "duration_ms": self.duration_ms,
        }


class PointStore:
    """
    Append-only point collection owned by a single scan session.

    Capture is the only writer. Readers take a ``snapshot()`` before a
    long computation so that points appended meanwhile are not observed.
    """

    def __init__(self, points: Optional[Iterable[Point]] = None):
        self._points: List[Point] = []
        self._stats = PointStoreStats()
        if points is not None:
            self.extend(points)

    def append(self, point: Point) -> None:
        """Append one point. No deduplication; non-finite values are kept."""
        self._points.append(point)
        self._update_stats(point)

    def extend(self, points: Iterable[Point]) -> int:
        """Append a batch in order. Returns the number of points added."""
        added = 0
        for point in points:
            self.append(point)
            added += 1
        return added

    def size(self) -> int:
        return len(self._points)

    def __len__(self) -> int:
        return len(self._points)

    def at(self, index: int) -> Point:
        """Point at ``index``; raises OutOfRange unless 0 <= index < size()."""
        if not 0 <= index < len(self._points):
            raise OutOfRange(index, len(self._points))
        return self._points[index]

    def all(self) -> PointView:
        """Lazy, restartable view over the store in insertion order, including later appends."""
        return PointView(self._points)

    def snapshot(self) -> PointView:
        """View fixed to the current length; later appends stay invisible."""
        return PointView(self._points, len(self._points))

    def __iter__(self) -> Iterator[Point]:
        return iter(self.all())

    def stats(self) -> PointStoreStats:
        s = self._stats
        return PointStoreStats(
            count=s.count,
            non_finite_count=s.non_finite_count,
            confidence_sum=s.confidence_sum,
            first_timestamp=s.first_timestamp,
            last_timestamp=s.last_timestamp,
        )

    def _update_stats(self, point: Point) -> None:
        s = self._stats
        s.count += 1
        if point.is_finite:
            s.confidence_sum += point.confidence
        else:
            s.non_finite_count += 1
            logger.debug(f"Non-finite sample accepted at index {s.count - 1}")
        if s.first_timestamp is None or point.timestamp < s.first_timestamp:
            s.first_timestamp = point.timestamp
        if s.last_timestamp is None or point.timestamp > s.last_timestamp:
            s.last_timestamp = point.timestamp

    def __eq__(self, other) -> bool:
        if not isinstance(other, PointStore):
            return NotImplemented
        return self._points == other._points

    def __repr__(self) -> str:
        return f"PointStore(size={len(self._points)})"
