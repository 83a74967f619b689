"""Constants, geometry and data types shared by the client and the server."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import IntEnum

GRID_SIZE = 32
UI_HEIGHT = 120
ROAD_COST_PER_UNIT = 0.5
BUS_SPEED = 200.0
ROAD_SNAP_DISTANCE = 8.0
RESIDENTIAL_BUILDING_COST = 100.0
COMMERCIAL_BUILDING_COST = 250.0
INDUSTRIAL_BUILDING_COST = 1000.0
COMMERCIAL_INCOME_INCREASE = 5.0
INDUSTRIAL_INCOME_INCREASE = 25.0


@dataclass(frozen=True)
class Vector2:
    """An immutable 2D point or direction."""

    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: Vector2) -> Vector2:
        return Vector2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vector2) -> Vector2:
        return Vector2(self.x - other.x, self.y - other.y)

    def __mul__(self, factor: float) -> Vector2:
        return Vector2(self.x * factor, self.y * factor)

    __rmul__ = __mul__

    def dot(self, other: Vector2) -> float:
        return self.x * other.x + self.y * other.y

    def distance_sqr(self, other: Vector2) -> float:
        dx = self.x - other.x
        dy = self.y - other.y
        return dx * dx + dy * dy

    def distance(self, other: Vector2) -> float:
        """Euclidean distance to ``other``."""
        return math.hypot(self.x - other.x, self.y - other.y)

    def lerp(self, other: Vector2, t: float) -> Vector2:
        """Point at fraction ``t`` of the way from this point to ``other``."""
        return Vector2(self.x + t * (other.x - self.x), self.y + t * (other.y - self.y))


class InfrastructureType(IntEnum):
    ROAD = 0
    WATER = 1


class BuildingType(IntEnum):
    RESIDENTIAL = 0
    COMMERCIAL = 1
    INDUSTRIAL = 2


@dataclass
class Building:
    position: Vector2
    kind: int
    player_id: str


@dataclass
class BusRoute:
    nodes: list[Vector2] = field(default_factory=list)
    player_id: str = ""
    length: float = 0.0


@dataclass
class Bus:
    position: Vector2 = field(default_factory=Vector2)
    route_id: int = 0
    current_segment: int = 0
    progress: float = 0.0
    direction: int = 1


def point_segment_distance(p: Vector2, a: Vector2, b: Vector2) -> float:
    """Shortest distance from point ``p`` to the segment ``a``-``b``."""
    length_sqr = a.distance_sqr(b)
    if length_sqr == 0.0:
        return p.distance(a)
    t = (p - a).dot(b - a) / length_sqr
    t = max(0.0, min(1.0, t))
    projection = a + (b - a) * t
    return p.distance(projection)


def snap_to_grid(pos: Vector2) -> Vector2:
    """Centre of the grid cell holding ``pos`` (cell index truncated toward zero)."""
    half = GRID_SIZE // 2
    return Vector2(
        float(int(pos.x / GRID_SIZE) * GRID_SIZE + half),
        float(int(pos.y / GRID_SIZE) * GRID_SIZE + half),
    )


def building_name(building_type: int) -> str:
    return {
        BuildingType.RESIDENTIAL: "Residential",
        BuildingType.COMMERCIAL: "Commercial",
        BuildingType.INDUSTRIAL: "Industrial",
    }.get(building_type, "Unknown")


def infrastructure_name(infra_type: int) -> str:
    return {
        InfrastructureType.ROAD: "Road",
        InfrastructureType.WATER: "Water",
    }.get(infra_type, "Unknown")