"""
Stanford PLY (ASCII) point-cloud export.
"""

import logging
from typing import Sequence

from ..acquisition.store import Point
from ..common.geometry import format_number

logger = logging.getLogger(__name__)

VERTEX_PROPERTIES = ("x", "y", "z", "nx", "ny", "nz", "confidence")


def ply_header(n_vertices: int) -> str:
    lines = [
        "ply",
        "format ascii 1.0",
        f"element vertex {n_vertices}",
    ]
    lines.extend(f"property float {name}" for name in VERTEX_PROPERTIES)
    lines.append("end_header")
    return "\n".join(lines) + "\n"


def render_ply(points: Sequence[Point], surfaces: Sequence = ()) -> bytes:
    """
    Render points as an ASCII PLY point cloud.

    Surfaces are accepted for a uniform exporter signature but no face
    elements are written.
    """
    body = []
    for p in points:
        values = (
            p.position.x, p.position.y, p.position.z,
            p.normal.x, p.normal.y, p.normal.z,
            p.confidence,
        )
        body.append(" ".join(format_number(v) for v in values) + "\n")

    logger.debug(f"PLY: {len(points)} vertices")
    return (ply_header(len(points)) + "".join(body)).encode('utf-8')
