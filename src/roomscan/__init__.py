"""
Room Scan - surface clustering and export for room-scanning sessions.

Pipeline:
- Capture: point sources feed an append-only PointStore
- Processing: greedy seeded surface clustering, room bounds and dimensions
- Export: OBJ, PLY, glTF and the JSON session snapshot (also save/load)

Usage:
    roomscan demo --seed 7 --output outputs
"""

__version__ = "1.0.0"

from .common import ScanConfig, ExportFormat
from .session import ScanSession, SessionMetadata
from .controller import ScanController

__all__ = [
    'ScanConfig', 'ExportFormat',
    'ScanSession', 'SessionMetadata',
    'ScanController',
]
