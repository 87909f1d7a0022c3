"""
Shared fixtures for roomscan tests.
"""

import pytest

from roomscan.acquisition.store import Point, PointStore
from roomscan.common.geometry import Vector3


def make_point(x, y, z, nx=0.0, ny=1.0, nz=0.0, timestamp=0, confidence=1.0):
    return Point(
        position=Vector3(float(x), float(y), float(z)),
        normal=Vector3(float(nx), float(ny), float(nz)),
        timestamp=timestamp,
        confidence=confidence,
    )


@pytest.fixture
def line_points():
    """Four points 0.1 apart along X, all facing +Y."""
    return [make_point(0.1 * i, 0, 0, timestamp=1000 + i) for i in range(4)]


@pytest.fixture
def far_points():
    """Two points 10 units apart with identical normals."""
    return [make_point(0, 0, 0), make_point(10, 0, 0)]


@pytest.fixture
def two_walls():
    """
    Two separated patches: five floor points facing +Y near the origin
    and five wall points facing +X around x = 5.
    """
    floor = [make_point(0.05 * i, 0, 0.05 * i, timestamp=i) for i in range(5)]
    wall = [make_point(5, 0.1 * i, 0, 1, 0, 0, timestamp=10 + i) for i in range(5)]
    return floor + wall


@pytest.fixture
def store(two_walls):
    return PointStore(two_walls)
