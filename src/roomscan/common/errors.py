"""
Error kinds raised by the scan core.

Geometric errors are local and recoverable; callers degrade to an empty
result instead of stopping the capture loop.
"""


class RoomScanError(Exception):
    """Base class for all roomscan errors."""


class OutOfRange(RoomScanError, IndexError):
    """Index into a point store is not below its size."""

    def __init__(self, index: int, size: int):
        super().__init__(f"Point index {index} out of range for store of size {size}")
        self.index = index
        self.size = size


class MalformedSnapshot(RoomScanError, ValueError):
    """A session snapshot failed to parse or failed the shape check."""


class EmptyGeometry(RoomScanError, ValueError):
    """Bounds or room metrics were requested for zero points."""
