#!/usr/bin/env python3
"""
Room Scan - Orchestrator

Run a scan from a point source and export the result, or re-export a
saved session snapshot.

Usage:
    roomscan demo --ticks 150 --seed 7 --formats obj ply gltf json
    roomscan replay data/recorded_samples.csv --output outputs
    roomscan export outputs/room_scan.json --formats obj gltf
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .acquisition.sources import PointSource, RecordedSource, SimulatedRoomSource, wall_clock_ms
from .common.config import ExportFormat, ScanConfig
from .common.errors import MalformedSnapshot
from .common.io import FileSink, save_summary
from .controller import ScanController
from .processing.metrics import is_degenerate

logger = logging.getLogger(__name__)


class TickClock:
    """Deterministic clock advancing a fixed interval per tick."""

    def __init__(self, start_ms: int, interval_ms: int):
        self.now = start_ms
        self.interval_ms = interval_ms

    def __call__(self) -> int:
        return self.now

    def tick(self) -> None:
        self.now += self.interval_ms


def run_source(
    controller: ScanController,
    source: PointSource,
    clock: TickClock,
    max_ticks: int
) -> None:
    """Pump ``source`` until it is exhausted, the scan stops or ``max_ticks`` pass."""
    controller.start_scan(device_info={"source": type(source).__name__})
    for _ in range(max_ticks):
        if not controller.is_scanning or source.exhausted:
            break
        controller.pump(source)
        clock.tick()
    if controller.is_scanning:
        controller.stop_scan()


def export_all(
    controller: ScanController,
    formats: List[ExportFormat],
    sink: FileSink
) -> Dict[str, Any]:
    """Deliver every requested format and collect a summary."""
    results = {}
    for fmt in formats:
        ok = controller.deliver(fmt, sink)
        results[fmt.value] = {
            "status": "success" if ok else "error",
            "filename": controller.config.filename_for(fmt),
        }
    return results


def build_summary(controller: ScanController, exports: Dict[str, Any]) -> Dict[str, Any]:
    metadata = controller.session.metadata
    dims = metadata.room_dimensions
    return {
        "start_time": metadata.start_time,
        "end_time": metadata.end_time,
        "room_dimensions": None if is_degenerate(dims) else dims.to_dict(),
        "stats": controller.stats(),
        "exports": exports,
    }


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Cluster room-scan samples into surfaces and export them"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    demo = subparsers.add_parser("demo", help="Run a simulated room scan")
    demo.add_argument("--ticks", type=int, default=150, help="Capture ticks to simulate")
    demo.add_argument("--interval-ms", type=int, default=200, help="Simulated time per tick")
    demo.add_argument("--seed", type=int, default=None, help="Random seed")

    replay = subparsers.add_parser("replay", help="Replay recorded samples (CSV or parquet)")
    replay.add_argument("data", type=Path, help="Recorded samples file")
    replay.add_argument("--batch", type=int, default=10, help="Samples per tick")
    replay.add_argument("--interval-ms", type=int, default=200, help="Simulated time per tick")

    export = subparsers.add_parser("export", help="Re-export a saved session snapshot")
    export.add_argument("snapshot", type=Path, help="Session snapshot (.json)")

    for sub in (demo, replay, export):
        sub.add_argument(
            "--formats", "-f",
            nargs="+",
            choices=[f.value for f in ExportFormat],
            default=[f.value for f in ExportFormat],
            help="Formats to export"
        )
        sub.add_argument(
            "--output", "-o",
            type=Path,
            default=Path("outputs"),
            help="Output directory"
        )
        sub.add_argument(
            "--config", "-c",
            type=Path,
            default=None,
            help="ScanConfig JSON file"
        )
        sub.add_argument(
            "--verbose", "-v",
            action="store_true",
            help="Verbose logging"
        )

    args = parser.parse_args(argv)

    # Setup logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    config = ScanConfig.from_json(args.config) if args.config else ScanConfig()
    config.output_dir = args.output
    formats = [ExportFormat(f) for f in args.formats]

    if args.command == "export":
        controller = ScanController(config)
        try:
            with open(args.snapshot, 'rb') as f:
                controller.load_snapshot(f.read())
        except (OSError, MalformedSnapshot) as e:
            logger.error(f"Cannot load {args.snapshot}: {e}")
            return 1
    else:
        clock = TickClock(wall_clock_ms(), args.interval_ms)
        controller = ScanController(config, clock=clock)
        if args.command == "demo":
            source = SimulatedRoomSource(seed=args.seed, clock=clock)
            max_ticks = args.ticks
        else:
            source = RecordedSource(args.data, batch_size=args.batch, clock=clock)
            max_ticks = len(source)
        run_source(controller, source, clock, max_ticks)

    sink = FileSink(config.output_dir)
    exports = export_all(controller, formats, sink)
    summary = build_summary(controller, exports)

    summary_path = config.output_dir / "run_summary.json"
    save_summary(summary, summary_path)
    logger.info(f"Summary saved to: {summary_path}")

    n_errors = sum(1 for e in exports.values() if e["status"] != "success")
    logger.info(
        f"COMPLETE: {len(controller.session.points)} points, "
        f"{len(controller.session.surfaces)} surfaces, {n_errors} export errors"
    )
    return 1 if n_errors else 0


if __name__ == "__main__":
    sys.exit(main())
