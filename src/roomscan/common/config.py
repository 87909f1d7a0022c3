"""
Configuration and constants for room scanning.

Clustering thresholds are part of the observable output: changing any
of them changes which surfaces are produced.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Dict, Any
import json
from pathlib import Path


class ExportFormat(Enum):
    """
    Supported export formats.

    OBJ: ASCII Wavefront, points as vertices plus naive surface fans
    PLY: ASCII Stanford point cloud with per-vertex confidence
    GLTF: glTF 2.0 JSON with an embedded base64 buffer
    JSON: full session snapshot (also the save/load format)
    """
    OBJ = "obj"
    PLY = "ply"
    GLTF = "gltf"
    JSON = "json"

    @property
    def extension(self) -> str:
        return f".{self.value}"

    @property
    def mime_type(self) -> str:
        if self in (ExportFormat.OBJ, ExportFormat.PLY):
            return "text/plain"
        return "application/json"


@dataclass
class ScanConfig:
    """
    Configuration for a scanning session and its exports.

    The clustering defaults reproduce the reference behaviour: a candidate
    joins a seed when it is closer than 0.5 units and the absolute dot
    product of the normals exceeds 0.8; a cluster is kept only with more
    than 3 members.
    """

    # Surface clustering
    distance_threshold: float = 0.5
    normal_similarity_threshold: float = 0.8
    min_surface_members: int = 3  # strict: members > min_surface_members
    spatial_index_min_points: Optional[int] = 2000  # None disables the KD-tree

    # Capture loop
    recompute_every: int = 10
    max_scan_duration_ms: Optional[int] = 30000

    # Export
    file_stem: str = "room_scan"
    generator: str = "roomscan"
    legacy_gltf_bounds: bool = False

    output_dir: Path = field(default_factory=lambda: Path("outputs"))

    def filename_for(self, fmt: ExportFormat, suffix: Optional[str] = None) -> str:
        stem = f"{self.file_stem}_{suffix}" if suffix else self.file_stem
        return f"{stem}{fmt.extension}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "distance_threshold": self.distance_threshold,
            "normal_similarity_threshold": self.normal_similarity_threshold,
            "min_surface_members": self.min_surface_members,
            "spatial_index_min_points": self.spatial_index_min_points,
            "recompute_every": self.recompute_every,
            "max_scan_duration_ms": self.max_scan_duration_ms,
            "file_stem": self.file_stem,
            "generator": self.generator,
            "legacy_gltf_bounds": self.legacy_gltf_bounds,
            "output_dir": str(self.output_dir),
        }

    @classmethod
    def from_json(cls, path: Path) -> "ScanConfig":
        """Load config from JSON file."""
        with open(path) as f:
            data = json.load(f)
        data["output_dir"] = Path(data.get("output_dir", "outputs"))
        return cls(**data)

    def save(self, path: Path) -> None:
        """Save config to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


# Global default config
DEFAULT_CONFIG = ScanConfig()
