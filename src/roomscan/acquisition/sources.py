"""
Point sources: acquisition strategies that turn capture events into Points.

Every strategy feeds the same pipeline; they differ only in how a
position, a normal and a confidence are derived from the raw event.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from .store import Point
from ..common.geometry import Vector3

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def wall_clock_ms() -> int:
    """Milliseconds since the epoch."""
    return int(time.time() * 1000)


class PointSource(ABC):
    """
    Base class for acquisition strategies.

    ``poll`` returns the points produced since the previous call, in
    capture order. A source may return an empty list and may stop
    producing at any time.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or wall_clock_ms

    @abstractmethod
    def poll(self) -> List[Point]:
        ...

    @property
    def exhausted(self) -> bool:
        return False


class SimulatedRoomSource(PointSource):
    """
    Demo strategy: one random sample per tick inside a 10 x 3 x 10 room.

    Normals are random and deliberately left unnormalized; confidence is
    drawn from [0.8, 1.0).
    """

    def __init__(
        self,
        room_size: Sequence[float] = (10.0, 3.0, 10.0),
        points_per_tick: int = 1,
        seed: Optional[int] = None,
        clock: Optional[Clock] = None
    ):
        super().__init__(clock)
        self.room_size = tuple(float(v) for v in room_size)
        self.points_per_tick = points_per_tick
        self.rng = np.random.default_rng(seed)

    def poll(self) -> List[Point]:
        width, height, depth = self.room_size
        points = []
        for _ in range(self.points_per_tick):
            u = self.rng.random(3)
            n = self.rng.random(3) - 0.5
            points.append(Point(
                position=Vector3(
                    float((u[0] - 0.5) * width),
                    float(u[1] * height),
                    float((u[2] - 0.5) * depth)
                ),
                normal=Vector3.from_iterable(n.tolist()),
                timestamp=self.clock(),
                confidence=float(0.8 + self.rng.random() * 0.2)
            ))
        return points


@dataclass
class HitResult:
    """
    A hit-test result from the capture device.

    ``matrix`` is a 4x4 pose in column-major order (16 values): the
    translation sits in elements 12..14 and the first basis column in
    elements 0..2.
    """
    matrix: Sequence[float]
    distance: float


class HitTestSource(PointSource):
    """
    Generic strategy: surface samples from device hit tests.

    Confidence falls off linearly with hit distance and reaches zero at
    ``max_distance``.
    """

    def __init__(self, max_distance: float = 10.0, clock: Optional[Clock] = None):
        super().__init__(clock)
        self.max_distance = max_distance
        self._pending: List[HitResult] = []

    def feed(self, hits: Iterable[HitResult]) -> None:
        self._pending.extend(hits)

    def poll(self) -> List[Point]:
        hits, self._pending = self._pending, []
        return [self.to_point(hit) for hit in hits]

    def to_point(self, hit: HitResult) -> Point:
        m = [float(v) for v in hit.matrix]
        if len(m) != 16:
            raise ValueError(f"Hit matrix must have 16 elements, got {len(m)}")
        return Point(
            position=Vector3(m[12], m[13], m[14]),
            normal=Vector3(m[0], m[1], m[2]),
            timestamp=self.clock(),
            confidence=self.confidence_for(hit.distance)
        )

    def confidence_for(self, distance: float) -> float:
        return max(0.0, 1.0 - distance / self.max_distance)


@dataclass
class ViewPose:
    """Headset view transform: position and orientation quaternion (x, y, z, w)."""
    position: Sequence[float]
    orientation: Sequence[float]


class ViewPoseSource(PointSource):
    """
    Headset strategy: one sample per rendered view.

    Without hit testing the viewer position itself is recorded, with the
    vector part of the view orientation standing in for the normal and a
    fixed confidence.
    """

    def __init__(self, confidence: float = 0.7, clock: Optional[Clock] = None):
        super().__init__(clock)
        self.confidence = confidence
        self._pending: List[ViewPose] = []

    def feed(self, views: Iterable[ViewPose]) -> None:
        self._pending.extend(views)

    def poll(self) -> List[Point]:
        views, self._pending = self._pending, []
        timestamp = self.clock()
        return [
            Point(
                position=Vector3.from_iterable(list(view.position)[:3]),
                normal=Vector3.from_iterable(list(view.orientation)[:3]),
                timestamp=timestamp,
                confidence=self.confidence
            )
            for view in views
        ]


class RecordedSource(PointSource):
    """
    Replays previously recorded samples from a CSV or parquet file.

    Expected columns: x, y, z, nx, ny, nz and optionally timestamp and
    confidence. Missing timestamps are taken from the clock; missing
    confidence defaults to 1.0.
    """

    REQUIRED_COLUMNS = ["x", "y", "z", "nx", "ny", "nz"]

    def __init__(
        self,
        path: Path,
        batch_size: int = 1,
        clock: Optional[Clock] = None
    ):
        super().__init__(clock)
        path = Path(path)
        if path.suffix == '.parquet':
            df = pd.read_parquet(path)
        else:
            df = pd.read_csv(path)

        missing = [c for c in self.REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"Missing columns {missing} in {path}")

        logger.info(f"Loaded {len(df)} recorded samples from {path}")
        self._df = df
        self.batch_size = max(1, batch_size)
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._df)

    @property
    def exhausted(self) -> bool:
        return self._cursor >= len(self._df)

    def poll(self) -> List[Point]:
        rows = self._df.iloc[self._cursor:self._cursor + self.batch_size]
        self._cursor += len(rows)
        has_time = "timestamp" in rows.columns
        has_conf = "confidence" in rows.columns

        points = []
        for row in rows.itertuples(index=False):
            points.append(Point(
                position=Vector3(float(row.x), float(row.y), float(row.z)),
                normal=Vector3(float(row.nx), float(row.ny), float(row.nz)),
                timestamp=int(row.timestamp) if has_time else self.clock(),
                confidence=float(row.confidence) if has_conf else 1.0
            ))
        return points
