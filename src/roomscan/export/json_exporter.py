"""
Session snapshot (de)serialization.

The JSON snapshot is both an export format and the only persistence
format. Documents carry a ``version`` tag; unversioned documents are
read as the legacy shape (surface members under ``points``, flat
``minX .. maxZ`` bounds). Non-finite numbers are written as null and
read back as NaN.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from ..acquisition.store import Point, PointStore
from ..common.errors import MalformedSnapshot
from ..common.geometry import Bounds, Vector3, float_or_nan
from ..processing.surfaces import Surface
from ..session import SNAPSHOT_VERSION, ScanSession, SessionMetadata

logger = logging.getLogger(__name__)


def render_json(session: ScanSession) -> bytes:
    """
    Pretty-printed (2-space indent) snapshot of the whole session.

    Device info values JSON cannot represent are written as strings.
    """
    return json.dumps(session.to_dict(), indent=2, allow_nan=False, default=str).encode('utf-8')


def parse_snapshot(content: Union[str, bytes]) -> ScanSession:
    """
    Parse a snapshot document into a new ScanSession.

    Raises:
        MalformedSnapshot: the content is not JSON or fails the shape check
    """
    try:
        data = json.loads(content)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedSnapshot(f"Snapshot is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedSnapshot("Snapshot root must be an object")

    version = data.get("version")
    if version is not None and (not isinstance(version, int) or version > SNAPSHOT_VERSION):
        raise MalformedSnapshot(f"Unsupported snapshot version: {version!r}")

    raw_points = data.get("points")
    if not isinstance(raw_points, list):
        raise MalformedSnapshot("Snapshot must contain a 'points' list")

    try:
        store = PointStore(_parse_point(p, i) for i, p in enumerate(raw_points))
        surfaces = tuple(
            _parse_surface(s, k, len(store))
            for k, s in enumerate(data.get("surfaces") or [])
        )
        raw_metadata = data.get("metadata")
        metadata = SessionMetadata.from_dict(
            {} if raw_metadata is None else _require_dict(raw_metadata, "metadata")
        )
    except MalformedSnapshot:
        raise
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise MalformedSnapshot(f"Snapshot failed shape check: {e}") from e

    logger.info(
        f"Parsed snapshot (version {version if version is not None else 'legacy'}): "
        f"{len(store)} points, {len(surfaces)} surfaces"
    )
    return ScanSession(points=store, surfaces=surfaces, metadata=metadata)


def _require_dict(value: Any, what: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise MalformedSnapshot(f"{what} must be an object")
    return value


def _parse_point(raw: Any, index: int) -> Point:
    raw = _require_dict(raw, f"points[{index}]")
    _require_dict(raw.get("position"), f"points[{index}].position")
    _require_dict(raw.get("normal"), f"points[{index}].normal")
    return Point.from_dict(raw)


def _parse_surface(raw: Any, k: int, n_points: int) -> Surface:
    raw = _require_dict(raw, f"surfaces[{k}]")
    members: List[Any] = raw.get("memberIndices", raw.get("points"))
    if not isinstance(members, list) or not members:
        raise MalformedSnapshot(f"surfaces[{k}] has no member indices")
    for i in members:
        if not isinstance(i, int) or isinstance(i, bool) or not 0 <= i < n_points:
            raise MalformedSnapshot(f"surfaces[{k}] member {i!r} is not a valid point index")

    normal = _require_dict(raw.get("normal"), f"surfaces[{k}].normal")
    bounds = raw.get("bounds")
    return Surface(
        member_indices=tuple(members),
        normal=Vector3(*(float_or_nan(normal.get(c)) for c in "xyz")),
        bounds=Bounds.from_dict(bounds) if isinstance(bounds, dict) else Bounds.empty(),
    )


def save_snapshot(session: ScanSession, path: Path) -> Path:
    """Write the session snapshot to ``path``."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'wb') as f:
        f.write(render_json(session))
    logger.info(f"Saved snapshot: {path} ({len(session.points)} points)")
    return path


def load_snapshot(path: Path) -> ScanSession:
    """Read a snapshot file. Raises MalformedSnapshot on unreadable content."""
    path = Path(path)
    with open(path, 'rb') as f:
        content = f.read()
    return parse_snapshot(content)
