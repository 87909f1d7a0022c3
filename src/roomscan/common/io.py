"""
Export delivery utilities.

Exporters produce an ExportResult (bytes + filename + MIME type); a
delivery sink persists it. The core never depends on what the sink does.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

DeliverySink = Callable[[bytes, str, str], Any]


@dataclass(frozen=True)
class ExportResult:
    """Serialized export ready for delivery."""
    data: bytes
    filename: str
    mime_type: str

    @property
    def size_kb(self) -> int:
        return round(len(self.data) / 1024)

    def text(self) -> str:
        return self.data.decode('utf-8')

    def deliver(self, sink: DeliverySink) -> Any:
        return sink(self.data, self.filename, self.mime_type)


class FileSink:
    """
    Delivery sink that writes exports into a directory.

    Keeps a record of every file written for run summaries.
    """

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)
        self.written: List[Path] = []

    def __call__(self, data: bytes, filename: str, mime_type: str) -> Path:
        path = self.output_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'wb') as f:
            f.write(data)
        self.written.append(path)
        logger.info(f"Wrote {path} ({len(data)} bytes, {mime_type})")
        return path


def save_summary(summary: Dict[str, Any], path: Path) -> None:
    """Save a run summary as indented JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(summary, f, indent=2)
