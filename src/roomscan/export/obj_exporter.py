"""
Wavefront OBJ export.

Writes every point as a vertex with a matching vertex normal (so vertex
index == normal index), then one group per surface with a naive fan of
faces over consecutive member triples. The fan is not a triangulation;
it is kept as-is for compatibility with existing consumers.
"""

import logging
from typing import Iterator, List, Sequence, Tuple

from ..acquisition.store import Point
from ..common.geometry import format_number
from ..processing.surfaces import Surface

logger = logging.getLogger(__name__)


def fan_faces(member_indices: Sequence[int]) -> Iterator[Tuple[int, int, int]]:
    """
    1-based vertex triples for a surface.

    Face ``t`` uses the members at list positions t, t+1 and t+2, for
    ``t`` in ``0 .. len - 3``; a surface with n members yields n - 2 faces.
    """
    m = member_indices
    for t in range(len(m) - 2):
        yield m[t] + 1, m[t + 1] + 1, m[t + 2] + 1


def render_obj(
    points: Sequence[Point],
    surfaces: Sequence[Surface],
    generator: str = "roomscan"
) -> bytes:
    """
    Render points and surfaces as ASCII OBJ.

    Args:
        points: Point snapshot, in store order
        surfaces: Surfaces computed from that snapshot
        generator: Name written into the header comment

    Returns:
        UTF-8 encoded OBJ text
    """
    lines: List[str] = [
        "# Room Scan OBJ File",
        f"# Generated by {generator}",
        "",
    ]

    for p in points:
        pos = p.position
        lines.append(f"v {format_number(pos.x)} {format_number(pos.y)} {format_number(pos.z)}")

    for p in points:
        n = p.normal
        lines.append(f"vn {format_number(n.x)} {format_number(n.y)} {format_number(n.z)}")

    n_faces = 0
    for k, surface in enumerate(surfaces):
        lines.append("")
        lines.append(f"g surface_{k}")
        for a, b, c in fan_faces(surface.member_indices):
            lines.append(f"f {a}//{a} {b}//{b} {c}//{c}")
            n_faces += 1

    logger.debug(f"OBJ: {len(points)} vertices, {len(surfaces)} groups, {n_faces} faces")
    return ("\n".join(lines) + "\n").encode('utf-8')
