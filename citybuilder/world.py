"""Authoritative city state and the rules that change it."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from itertools import pairwise
from typing import Callable, Sequence, TypeVar

from .shared import (
    BUS_SPEED,
    COMMERCIAL_BUILDING_COST,
    COMMERCIAL_INCOME_INCREASE,
    GRID_SIZE,
    INDUSTRIAL_BUILDING_COST,
    INDUSTRIAL_INCOME_INCREASE,
    RESIDENTIAL_BUILDING_COST,
    ROAD_COST_PER_UNIT,
    ROAD_SNAP_DISTANCE,
    Bus,
    BuildingType,
    InfrastructureType,
    Vector2,
    building_name,
    point_segment_distance,
)

DELETE_RADIUS = GRID_SIZE * 0.75
INTERMEDIATE_POINTS_PER_SEGMENT = 4
STARTING_MONEY = 1000.0

_INT_RE = re.compile(r"[+-]?\d+\Z")
_T = TypeVar("_T")


class Audience(Enum):
    ALL = "all"
    PLAYER = "player"


@dataclass(frozen=True)
class Delivery:
    """A message to send, without its trailing newline, and who receives it."""

    audience: Audience
    message: str
    player_id: str | None = None


@dataclass
class StoredLine:
    start: Vector2
    end: Vector2
    kind: int
    player_id: str


@dataclass
class StoredBuilding:
    position: Vector2
    kind: int
    player_id: str


@dataclass
class StoredBusRoute:
    nodes: list[Vector2]
    player_id: str
    length: float


def _to_all(message: str) -> Delivery:
    return Delivery(Audience.ALL, message)


def _to_player(player_id: str, message: str) -> Delivery:
    return Delivery(Audience.PLAYER, message, player_id)


def _parse_float(text: str) -> float:
    if not text or text != text.strip() or "_" in text:
        raise ValueError(f"invalid number: {text!r}")
    return float(text)


def _float_or_zero(text: str) -> float:
    try:
        return _parse_float(text)
    except ValueError:
        return 0.0


def _int_or_zero(text: str) -> int:
    return int(text) if _INT_RE.match(text) else 0


def _last_match(items: Sequence[_T], predicate: Callable[[_T], bool]) -> int | None:
    return next((i for i, item in reversed(list(enumerate(items))) if predicate(item)), None)


@dataclass
class GameState:
    """Everything the server owns: infrastructure, buildings, routes, buses and money."""

    lines: list[StoredLine] = field(default_factory=list)
    buildings: list[StoredBuilding] = field(default_factory=list)
    bus_routes: list[StoredBusRoute] = field(default_factory=list)
    buses: list[Bus] = field(default_factory=list)
    money: float = STARTING_MONEY
    income_rate: float = 0.0

    def is_point_on_road(self, x: float, y: float) -> bool:
        point = Vector2(x, y)
        return any(
            point_segment_distance(point, line.start, line.end) <= ROAD_SNAP_DISTANCE
            for line in self.lines
            if line.kind == InfrastructureType.ROAD
        )

    def _route_on_road(self, nodes: Sequence[Vector2]) -> bool:
        return all(
            self.is_point_on_road(p.x, p.y)
            for start, end in pairwise(nodes)
            for p in (
                start.lerp(end, step / INTERMEDIATE_POINTS_PER_SEGMENT)
                for step in range(INTERMEDIATE_POINTS_PER_SEGMENT + 1)
            )
        )

    def money_message(self) -> str:
        return f"MONEY:{self.money:.2f}"

    def add_infrastructure(self, msg: str, parts: Sequence[str]) -> list[Delivery]:
        player_id = parts[1]
        start = Vector2(_float_or_zero(parts[2]), _float_or_zero(parts[3]))
        end = Vector2(_float_or_zero(parts[4]), _float_or_zero(parts[5]))
        kind = _int_or_zero(parts[6])
        out: list[Delivery] = []

        if kind == InfrastructureType.ROAD:
            cost = start.distance(end) * ROAD_COST_PER_UNIT
            if self.money < cost:
                return [_to_player(player_id, "STATUS:Not enough money to build road!")]
            self.money -= cost
            out.append(_to_all(self.money_message()))

        self.lines.append(StoredLine(start, end, kind, player_id))
        out.append(_to_all(msg))
        return out

    def add_building(self, msg: str, parts: Sequence[str]) -> list[Delivery]:
        player_id = parts[1]
        position = Vector2(_float_or_zero(parts[2]), _float_or_zero(parts[3]))
        kind = _int_or_zero(parts[4])

        prices = {
            BuildingType.RESIDENTIAL: (RESIDENTIAL_BUILDING_COST, 0.0),
            BuildingType.COMMERCIAL: (COMMERCIAL_BUILDING_COST, COMMERCIAL_INCOME_INCREASE),
            BuildingType.INDUSTRIAL: (INDUSTRIAL_BUILDING_COST, INDUSTRIAL_INCOME_INCREASE),
        }
        if kind not in prices:
            return [_to_player(player_id, "STATUS:Unknown building type!")]
        cost, income_increase = prices[kind]

        if self.money < cost:
            return [
                _to_player(
                    player_id,
                    f"STATUS:Not enough money to build {building_name(kind)}! Cost: {cost:.2f}",
                )
            ]

        self.money -= cost
        self.income_rate += income_increase
        self.buildings.append(StoredBuilding(position, kind, player_id))
        return [_to_all(self.money_message()), _to_all(msg)]

    def add_bus_route(self, msg: str, parts: Sequence[str]) -> list[Delivery]:
        player_id = parts[1]
        coords = parts[2:]
        try:
            nodes = [
                Vector2(_parse_float(x), _parse_float(y))
                for x, y in zip(coords[::2], coords[1::2])
            ]
        except ValueError:
            return [_to_player(player_id, "STATUS:Invalid coordinates for bus route node.")]

        if len(nodes) < 2:
            return [_to_player(player_id, "STATUS:Bus route needs at least 2 nodes!")]
        if not self._route_on_road(nodes):
            return [_to_player(player_id, "STATUS:Bus route must be fully on roads!")]

        length = sum(a.distance(b) for a, b in pairwise(nodes))
        self.bus_routes.append(StoredBusRoute(nodes, player_id, length))
        bus = Bus(
            position=nodes[0],
            route_id=len(self.bus_routes) - 1,
            current_segment=0,
            progress=0.0,
            direction=1,
        )
        self.buses.append(bus)
        return [
            _to_all(msg),
            _to_all(f"BUS:{len(self.buses) - 1}:{bus.position.x:.0f}:{bus.position.y:.0f}"),
        ]

    def _remove_buses_for_route(self, route_id: int) -> None:
        remaining = []
        for bus in self.buses:
            if bus.route_id == route_id:
                continue
            if bus.route_id > route_id:
                bus.route_id -= 1
            remaining.append(bus)
        self.buses = remaining

    def delete_object(self, parts: Sequence[str]) -> list[Delivery]:
        player_id = parts[1]
        point = Vector2(_float_or_zero(parts[2]), _float_or_zero(parts[3]))
        out: list[Delivery] = []
        deleted = False
        road_deleted = False

        index = _last_match(self.buildings, lambda b: b.position.distance(point) <= DELETE_RADIUS)
        if index is not None:
            removed = self.buildings.pop(index)
            deleted = True
            if removed.kind == BuildingType.COMMERCIAL:
                self.income_rate -= COMMERCIAL_INCOME_INCREASE
            elif removed.kind == BuildingType.INDUSTRIAL:
                self.income_rate -= INDUSTRIAL_INCOME_INCREASE
            self.income_rate = max(self.income_rate, 0.0)
            out.append(_to_all(self.money_message()))

        if not deleted:
            index = _last_match(
                self.lines,
                lambda line: (
                    line.start.distance(point) <= DELETE_RADIUS
                    or line.end.distance(point) <= DELETE_RADIUS
                    or point_segment_distance(point, line.start, line.end) <= DELETE_RADIUS
                ),
            )
            if index is not None:
                removed_line = self.lines.pop(index)
                deleted = True
                if removed_line.kind == InfrastructureType.ROAD:
                    self.money += removed_line.start.distance(removed_line.end) * ROAD_COST_PER_UNIT
                    out.append(_to_all(self.money_message()))
                    road_deleted = True

        if not deleted:
            index = _last_match(
                self.bus_routes,
                lambda route: any(node.distance(point) <= DELETE_RADIUS for node in route.nodes),
            )
            if index is not None:
                self.bus_routes.pop(index)
                self._remove_buses_for_route(index)
                deleted = True

        if road_deleted:
            invalid = [
                i for i, route in enumerate(self.bus_routes) if not self._route_on_road(route.nodes)
            ]
            for index in reversed(invalid):
                self.bus_routes.pop(index)
                self._remove_buses_for_route(index)
                deleted = True

        if not deleted:
            out.append(_to_player(player_id, "STATUS:No deletable object found here."))
            return out

        out.append(_to_all("STATE_RESET"))
        out.extend(_to_all(message) for message in self.state_messages())
        return out

    def _bus_segment(self, bus: Bus, nodes: Sequence[Vector2]) -> tuple[Vector2, Vector2]:
        first = nodes[bus.current_segment]
        second = nodes[bus.current_segment + 1]
        return (first, second) if bus.direction == 1 else (second, first)

    def _complete_trip(self, route: StoredBusRoute) -> Delivery:
        if route.length > 0:
            self.money += route.length / 16
        return _to_all(self.money_message())

    def advance_buses(self, frame_time: float) -> list[Delivery]:
        """Move every bus along its route by one tick of ``frame_time`` seconds."""
        out: list[Delivery] = []
        for index, bus in enumerate(self.buses):
            if bus.route_id >= len(self.bus_routes):
                continue
            route = self.bus_routes[bus.route_id]
            nodes = route.nodes
            if len(nodes) < 2:
                continue

            start, end = self._bus_segment(bus, nodes)
            distance = start.distance(end)
            if distance > 0:
                bus.progress += (BUS_SPEED / distance) * frame_time
            else:
                bus.progress = 1.0

            if bus.progress >= 1.0:
                bus.progress = 0.0
                if bus.direction == 1:
                    bus.current_segment += 1
                    if bus.current_segment >= len(nodes) - 1:
                        bus.direction = -1
                        bus.current_segment = len(nodes) - 2
                        out.append(self._complete_trip(route))
                else:
                    bus.current_segment -= 1
                    if bus.current_segment < 0:
                        bus.direction = 1
                        bus.current_segment = 0
                        out.append(self._complete_trip(route))

            start, end = self._bus_segment(bus, nodes)
            bus.position = start.lerp(end, bus.progress)
            out.append(_to_all(f"BUS:{index}:{bus.position.x:.0f}:{bus.position.y:.0f}"))
        return out

    def apply_income(self) -> list[Delivery]:
        """Add one period of income, if there is any."""
        if self.income_rate <= 0:
            return []
        self.money += self.income_rate
        return [_to_all(self.money_message())]

    def state_messages(self) -> list[str]:
        """The messages that bring a client up to date with the whole state."""
        messages = [
            f"I:{line.player_id}:{line.start.x:.0f}:{line.start.y:.0f}"
            f":{line.end.x:.0f}:{line.end.y:.0f}:{int(line.kind)}"
            for line in self.lines
        ]
        messages.extend(
            f"B:{b.player_id}:{b.position.x:.0f}:{b.position.y:.0f}:{int(b.kind)}"
            for b in self.buildings
        )
        messages.extend(
            f"R:{route.player_id}"
            + "".join(f":{node.x:.0f}:{node.y:.0f}" for node in route.nodes)
            for route in self.bus_routes
        )
        messages.extend(
            f"BUS:{i}:{bus.position.x:.0f}:{bus.position.y:.0f}" for i, bus in enumerate(self.buses)
        )
        messages.append("STATE_SYNCED")
        return messages