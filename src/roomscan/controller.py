"""
Scan Controller

Drives one scan at a time: start, capture, pause, stop/finalize, new
scan, save, load and export. The controller owns the current
ScanSession; every component receives it explicitly.
"""

import logging
from typing import Any, Dict, Iterable, Optional, Union

from .acquisition.sources import Clock, PointSource, wall_clock_ms
from .acquisition.store import Point
from .common.config import DEFAULT_CONFIG, ExportFormat, ScanConfig
from .common.errors import MalformedSnapshot
from .common.io import DeliverySink, ExportResult
from .export import export_session, parse_snapshot
from .processing.metrics import compute_room_metrics, compute_scan_stats
from .processing.surfaces import SurfaceClusterer
from .session import ScanSession, SessionMetadata, utc_now_iso

logger = logging.getLogger(__name__)


class ScanController:
    """
    Owns the current scan session and its lifecycle.

    Surfaces are recomputed wholesale every ``config.recompute_every``
    appended points, over a snapshot of the store. A failing pass is
    logged and the previous surfaces are kept, so capture never stops
    because of clustering.
    """

    def __init__(
        self,
        config: Optional[ScanConfig] = None,
        clock: Optional[Clock] = None
    ):
        self.config = config or DEFAULT_CONFIG
        self.clock = clock or wall_clock_ms
        self.clusterer = SurfaceClusterer.from_config(self.config)
        self.session = ScanSession()
        self.is_scanning = False
        self.scan_started_ms: Optional[int] = None
        self._since_recompute = 0

    # ---- lifecycle ----

    def start_scan(self, device_info: Optional[Dict[str, Any]] = None) -> ScanSession:
        """Replace the current session with a fresh one and start capturing."""
        self.session = ScanSession.start(device_info)
        self.is_scanning = True
        self.scan_started_ms = self.clock()
        self._since_recompute = 0
        logger.info(f"Scan started at {self.session.metadata.start_time}")
        return self.session

    def pause(self) -> bool:
        """Toggle capture on or off. Returns the new scanning state."""
        self.is_scanning = not self.is_scanning
        logger.info("Scan resumed" if self.is_scanning else "Scan paused")
        return self.is_scanning

    def stop_scan(self) -> ScanSession:
        self.is_scanning = False
        return self.finalize()

    def finalize(self) -> ScanSession:
        """Stamp the end time, run a last clustering pass and derive room dimensions."""
        self.recompute_surfaces()
        points = self.session.points.snapshot()
        self.session.update_metadata(
            end_time=utc_now_iso(),
            room_dimensions=compute_room_metrics(points)
        )
        logger.info(
            f"Scan finalized: {len(points)} points, {len(self.session.surfaces)} surfaces"
        )
        return self.session

    def new_scan(self) -> ScanSession:
        """Discard the current session."""
        self.is_scanning = False
        self.scan_started_ms = None
        self._since_recompute = 0
        self.session = ScanSession(metadata=SessionMetadata())
        return self.session

    # ---- capture ----

    def capture(self, points: Iterable[Point]) -> int:
        """
        Append captured points to the current session.

        Points are ignored while the scan is paused or stopped. Returns the
        number of points appended.
        """
        if not self.is_scanning:
            return 0

        added = 0
        for point in points:
            self.session.points.append(point)
            added += 1
            self._since_recompute += 1
            if self._since_recompute >= max(1, self.config.recompute_every):
                self.recompute_surfaces()

        if self._duration_exceeded():
            logger.info(f"Scan duration limit of {self.config.max_scan_duration_ms} ms reached")
            self.stop_scan()

        return added

    def pump(self, source: PointSource) -> int:
        """Poll ``source`` once and capture what it produced."""
        return self.capture(source.poll())

    def recompute_surfaces(self) -> bool:
        """Recluster the current snapshot. Returns False if the pass failed."""
        self._since_recompute = 0
        points = self.session.points.snapshot()
        try:
            surfaces = self.clusterer.recompute(points)
        except Exception:
            logger.exception(f"Surface clustering failed over {len(points)} points")
            return False
        self.session.replace_surfaces(surfaces)
        return True

    def _duration_exceeded(self) -> bool:
        limit = self.config.max_scan_duration_ms
        if limit is None or self.scan_started_ms is None or not self.is_scanning:
            return False
        return self.clock() - self.scan_started_ms > limit

    # ---- persistence and export ----

    def export(self, fmt: Union[ExportFormat, str]) -> ExportResult:
        return export_session(self.session, ExportFormat(fmt), self.config)

    def save_snapshot(self) -> ExportResult:
        """Snapshot export with a timestamped filename."""
        filename = self.config.filename_for(ExportFormat.JSON, suffix=str(self.clock()))
        return export_session(self.session, ExportFormat.JSON, self.config, filename=filename)

    def load_snapshot(self, content: Union[str, bytes]) -> ScanSession:
        """
        Replace the current session with a parsed snapshot.

        Room dimensions are recomputed from the loaded points. On
        MalformedSnapshot the current session is left untouched and the
        error propagates to the caller.
        """
        try:
            loaded = parse_snapshot(content)
        except MalformedSnapshot as e:
            logger.warning(f"Snapshot rejected, keeping current session: {e}")
            raise

        loaded.update_metadata(room_dimensions=compute_room_metrics(loaded.points.snapshot()))
        self.is_scanning = False
        self.session = loaded
        return self.session

    def deliver(self, fmt: Union[ExportFormat, str], sink: DeliverySink) -> bool:
        """
        Export and hand the bytes to a delivery sink.

        The sink's outcome does not affect the session; a failing sink is
        logged and reported as False.
        """
        result = self.export(fmt)
        try:
            result.deliver(sink)
        except OSError:
            logger.exception(f"Delivery of {result.filename} failed")
            return False
        return True

    def stats(self) -> Dict[str, Any]:
        points = self.session.points.snapshot()
        stats = compute_scan_stats(points, self.session.surfaces)
        stats["store"] = self.session.points.stats().to_dict()
        return stats
