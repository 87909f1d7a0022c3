"""
Common modules shared by all pipeline stages.

Bounds Model:
- Bounds over an empty (or all non-finite) point set is the explicit
  sentinel Bounds.empty(): min = +inf, max = -inf on every axis
- Room metrics for such a set are absent (None)
"""

from .config import ScanConfig, ExportFormat, DEFAULT_CONFIG
from .errors import RoomScanError, OutOfRange, MalformedSnapshot, EmptyGeometry
from .geometry import Vector3, Bounds, format_number
from .io import ExportResult, FileSink

__all__ = [
    'ScanConfig', 'ExportFormat', 'DEFAULT_CONFIG',
    'RoomScanError', 'OutOfRange', 'MalformedSnapshot', 'EmptyGeometry',
    'Vector3', 'Bounds', 'format_number',
    'ExportResult', 'FileSink',
]
