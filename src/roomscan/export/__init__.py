"""
Format-specific exporters and the export registry.
"""

import logging
from typing import Optional

from ..common.config import DEFAULT_CONFIG, ExportFormat, ScanConfig
from ..common.io import ExportResult
from ..session import ScanSession
from .gltf_exporter import GLTFExporter, render_gltf
from .json_exporter import load_snapshot, parse_snapshot, render_json, save_snapshot
from .obj_exporter import fan_faces, render_obj
from .ply_exporter import render_ply

logger = logging.getLogger(__name__)


def export_session(
    session: ScanSession,
    fmt: ExportFormat,
    config: Optional[ScanConfig] = None,
    filename: Optional[str] = None
) -> ExportResult:
    """
    Render the session in ``fmt``.

    The point store is read through a snapshot taken on entry, so points
    appended while rendering are not part of the output.
    """
    config = config or DEFAULT_CONFIG
    fmt = ExportFormat(fmt)
    points = session.points.snapshot()
    surfaces = tuple(session.surfaces)

    if fmt is ExportFormat.OBJ:
        data = render_obj(points, surfaces, generator=config.generator)
    elif fmt is ExportFormat.PLY:
        data = render_ply(points, surfaces)
    elif fmt is ExportFormat.GLTF:
        data = render_gltf(
            points, surfaces,
            generator=config.generator,
            legacy_bounds=config.legacy_gltf_bounds
        )
    else:
        data = render_json(session)

    result = ExportResult(
        data=data,
        filename=filename or config.filename_for(fmt),
        mime_type=fmt.mime_type
    )
    logger.info(f"Exported {fmt.value}: {result.filename} ({result.size_kb} KB)")
    return result


__all__ = [
    "export_session",
    "GLTFExporter", "render_gltf",
    "render_obj", "fan_faces",
    "render_ply",
    "render_json", "parse_snapshot", "save_snapshot", "load_snapshot",
]
