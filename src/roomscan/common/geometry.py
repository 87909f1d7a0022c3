"""
Geometry primitives shared by every stage of the scan pipeline.

Vector3 and Bounds are immutable value types. Bounds over an empty
point set is an explicit sentinel (min = +inf, max = -inf) that callers
detect with ``Bounds.is_empty`` before doing ratio or volume arithmetic.
"""

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class Vector3:
    """Double-precision 3D vector used for positions and normals."""
    x: float
    y: float
    z: float

    def dot(self, other: "Vector3") -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def distance_to(self, other: "Vector3") -> float:
        """Euclidean distance, evaluated as sqrt(dx*dx + dy*dy + dz*dz)."""
        dx = self.x - other.x
        dy = self.y - other.y
        dz = self.z - other.z
        return math.sqrt(dx * dx + dy * dy + dz * dz)

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y) and math.isfinite(self.z)

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z}

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> "Vector3":
        return cls(float(data["x"]), float(data["y"]), float(data["z"]))

    @classmethod
    def from_iterable(cls, values: Iterable[float]) -> "Vector3":
        x, y, z = (float(v) for v in values)
        return cls(x, y, z)


@dataclass(frozen=True)
class Bounds:
    """
    Axis-aligned bounding box.

    ``Bounds.empty()`` is the sentinel for "no finite points": its min is
    +inf and its max is -inf on every axis, so dimensions derived from it
    come out as negative infinities rather than zeros.
    """
    min: Vector3
    max: Vector3

    @classmethod
    def empty(cls) -> "Bounds":
        inf = math.inf
        return cls(Vector3(inf, inf, inf), Vector3(-inf, -inf, -inf))

    @classmethod
    def from_point(cls, position: Vector3) -> "Bounds":
        if not position.is_finite:
            return cls.empty()
        return cls(position, position)

    @classmethod
    def from_array(cls, positions: np.ndarray) -> "Bounds":
        """
        Bounds of an Nx3 position array.

        Rows holding any non-finite coordinate are ignored; if no finite
        row remains the empty sentinel is returned.
        """
        positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
        finite = positions[np.isfinite(positions).all(axis=1)]
        if len(finite) == 0:
            return cls.empty()
        return cls(
            Vector3.from_iterable(finite.min(axis=0).tolist()),
            Vector3.from_iterable(finite.max(axis=0).tolist()),
        )

    @property
    def is_empty(self) -> bool:
        return (
            self.min.x > self.max.x
            or self.min.y > self.max.y
            or self.min.z > self.max.z
        )

    @property
    def extents(self) -> Tuple[float, float, float]:
        return (
            self.max.x - self.min.x,
            self.max.y - self.min.y,
            self.max.z - self.min.z,
        )

    def to_dict(self) -> Dict[str, Dict[str, Optional[float]]]:
        return {
            "min": {k: finite_or_none(v) for k, v in self.min.to_dict().items()},
            "max": {k: finite_or_none(v) for k, v in self.max.to_dict().items()},
        }

    def to_flat_dict(self) -> Dict[str, float]:
        """Flat ``minX .. maxZ`` form used by legacy snapshots and glTF output."""
        return {
            "minX": self.min.x, "minY": self.min.y, "minZ": self.min.z,
            "maxX": self.max.x, "maxY": self.max.y, "maxZ": self.max.z,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Bounds":
        """Accepts both the nested ``{min, max}`` form and the flat legacy form."""
        if "min" in data and "max" in data:
            lo = {k: float_or_nan(data["min"].get(k)) for k in "xyz"}
            hi = {k: float_or_nan(data["max"].get(k)) for k in "xyz"}
        else:
            lo = {k: float_or_nan(data.get(f"min{k.upper()}")) for k in "xyz"}
            hi = {k: float_or_nan(data.get(f"max{k.upper()}")) for k in "xyz"}
        # A null on an empty-sentinel axis is the serialized infinity
        lo = {k: math.inf if math.isnan(v) else v for k, v in lo.items()}
        hi = {k: -math.inf if math.isnan(v) else v for k, v in hi.items()}
        return cls(Vector3(**lo), Vector3(**hi))


def finite_or_none(value: float) -> Optional[float]:
    """JSON has no NaN or infinity, so non-finite numbers are written as null."""
    return value if math.isfinite(value) else None


def json_safe(value: Any) -> Any:
    """Copy of a JSON-like value with every non-finite float replaced by null."""
    if isinstance(value, float):
        return finite_or_none(value)
    if isinstance(value, dict):
        return {k: json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [json_safe(v) for v in value]
    return value


def float_or_nan(value) -> float:
    return math.nan if value is None else float(value)


def format_number(value: float) -> str:
    """
    Format a coordinate for the text exporters.

    Finite values follow JavaScript number-to-string rules: the shortest
    round-trip digits, integral values without a fractional part
    (``1`` rather than ``1.0``), plain decimals for magnitudes in
    [1e-6, 1e21) and exponent form outside it (``1e-7``, ``1.5e+21``).
    Non-finite values become ``nan``, ``inf`` or ``-inf``.
    """
    value = float(value)
    if not math.isfinite(value):
        return repr(value)
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    # repr gives the shortest digit string that round-trips
    _, digit_tuple, exponent = Decimal(repr(abs(value))).as_tuple()
    digits = "".join(str(d) for d in digit_tuple).rstrip("0")
    exponent += len(digit_tuple) - len(digits)
    k = len(digits)
    n = exponent + k  # value == 0.<digits> * 10**n

    if k <= n <= 21:
        return sign + digits + "0" * (n - k)
    if 0 < n <= 21:
        return sign + digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return sign + "0." + "0" * -n + digits

    e = n - 1
    mantissa = digits if k == 1 else digits[0] + "." + digits[1:]
    return f"{sign}{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"
