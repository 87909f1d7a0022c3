"""
glTF Export Module

Exports the scanned point cloud as a glTF 2.0 JSON document with the
binary buffer embedded as a base64 data URI.
"""

import logging
from typing import Any, Optional, Sequence, Tuple

import numpy as np
from pygltflib import (
    GLTF2, Asset, Scene, Node, Mesh as GLTFMesh, Primitive, Accessor, BufferView, Buffer,
    BufferFormat, ARRAY_BUFFER, FLOAT, POINTS
)

from ..acquisition.store import Point
from ..common.geometry import Bounds

logger = logging.getLogger(__name__)


class GLTFExporter:
    """
    Exports scan points to glTF for web viewers.

    Layout: one mesh with one POINTS primitive, accessor 0 = POSITION and
    accessor 1 = NORMAL (both VEC3 float32), two buffer views over a single
    buffer holding all positions followed by all normals as little-endian
    float32.

    ``accessors[0].min``/``max`` are flat [x, y, z] lists of the finite
    position bounds. Setting ``legacy_bounds`` instead writes the flat
    ``minX .. maxZ`` bounds object into both fields, which is the shape
    older consumers of this format were built against.

    An empty scan still produces a parseable document, but its accessor
    counts and buffer byte lengths are 0. The glTF 2.0 schema requires
    at least 1 for each, so strict validators reject that file; loaders
    such as three.js read it as an empty point cloud.
    """

    def __init__(self, generator: str = "roomscan", legacy_bounds: bool = False):
        """
        Initialize exporter.

        Args:
            generator: Value of asset.generator
            legacy_bounds: Emit the legacy bounds object for accessor min/max
        """
        self.generator = generator
        self.legacy_bounds = legacy_bounds

    def build(self, points: Sequence[Point]) -> GLTF2:
        """Build the glTF document with the buffer already embedded as a data URI."""
        n = len(points)
        if n:
            positions = np.array([p.position.as_tuple() for p in points], dtype='<f4')
            normals = np.array([p.normal.as_tuple() for p in points], dtype='<f4')
        else:
            positions = np.empty((0, 3), dtype='<f4')
            normals = np.empty((0, 3), dtype='<f4')

        position_blob = positions.tobytes()
        normal_blob = normals.tobytes()
        blob = position_blob + normal_blob

        v_min, v_max = self._accessor_bounds(positions)

        gltf = GLTF2(
            asset=Asset(version="2.0", generator=self.generator),
            scene=0,
            scenes=[Scene(nodes=[0])],
            nodes=[Node(mesh=0)],
            meshes=[GLTFMesh(primitives=[
                Primitive(
                    attributes={"POSITION": 0, "NORMAL": 1},
                    mode=POINTS
                )
            ])],
            accessors=[
                # Positions
                Accessor(
                    bufferView=0,
                    componentType=FLOAT,
                    count=n,
                    type="VEC3",
                    max=v_max,
                    min=v_min
                ),
                # Normals
                Accessor(
                    bufferView=1,
                    componentType=FLOAT,
                    count=n,
                    type="VEC3"
                ),
            ],
            bufferViews=[
                BufferView(
                    buffer=0,
                    byteOffset=0,
                    byteLength=len(position_blob),
                    target=ARRAY_BUFFER
                ),
                BufferView(
                    buffer=0,
                    byteOffset=len(position_blob),
                    byteLength=len(normal_blob),
                    target=ARRAY_BUFFER
                ),
            ],
            buffers=[Buffer(byteLength=len(blob))]
        )

        gltf.set_binary_blob(blob)
        gltf.convert_buffers(BufferFormat.DATAURI)
        return gltf

    def render(self, points: Sequence[Point], surfaces: Sequence = ()) -> bytes:
        """
        Render points as glTF JSON bytes.

        Surfaces are accepted for a uniform exporter signature; the
        document carries the point cloud only.
        """
        data = self.build(points).to_json().encode('utf-8')
        logger.debug(f"glTF: {len(points)} points, {len(data)} bytes")
        return data

    def _accessor_bounds(self, positions: np.ndarray) -> Tuple[Optional[Any], Optional[Any]]:
        """
        (min, max) for the POSITION accessor.

        Bounds are taken over rows that are finite after float32 rounding,
        so they match the stored data exactly. Both are None when there is
        no such row, which leaves them out of the document.
        """
        bounds = Bounds.from_array(positions.astype(np.float64))
        if bounds.is_empty:
            return None, None
        if self.legacy_bounds:
            legacy = bounds.to_flat_dict()
            return dict(legacy), legacy
        return list(bounds.min.as_tuple()), list(bounds.max.as_tuple())


def render_gltf(
    points: Sequence[Point],
    surfaces: Sequence = (),
    generator: str = "roomscan",
    legacy_bounds: bool = False
) -> bytes:
    return GLTFExporter(generator=generator, legacy_bounds=legacy_bounds).render(points, surfaces)
