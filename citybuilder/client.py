"""Network client that mirrors the server's city for display."""

from __future__ import annotations

import re
import socket
import threading
import uuid
from dataclasses import dataclass
from typing import Sequence

from .shared import Building, Bus, BusRoute, Vector2

CONNECT_TIMEOUT = 10.0
READ_POLL = 1.0
PING_INTERVAL = 5.0

_INT_RE = re.compile(r"[+-]?\d+")


@dataclass
class CityLine:
    start: Vector2
    end: Vector2
    kind: int
    player_id: str


@dataclass
class PlayerCursor:
    position: Vector2
    name: str


def _parse_float(text: str) -> float | None:
    if not text or text != text.strip() or "_" in text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def _parse_floats(texts: Sequence[str]) -> list[float] | None:
    values = [_parse_float(text) for text in texts]
    if any(value is None for value in values):
        return None
    return values  # type: ignore[return-value]


def _parse_int(text: str) -> int | None:
    return int(text) if _INT_RE.fullmatch(text) else None


class LobbyClient:
    """Connection to a lobby server plus the city state it has sent us.

    ``lock`` guards the mirrored state; hold it while reading it from another thread.
    """

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self._send_lock = threading.Lock()
        self._closed = threading.Event()
        self._sock: socket.socket | None = None
        self.connected = False
        self.client_id = ""
        self.player_name = ""
        self.other_cursors: dict[str, PlayerCursor] = {}
        self.city_lines: list[CityLine] = []
        self.buildings: list[Building] = []
        self.bus_routes: list[BusRoute] = []
        self.buses: list[Bus] = []
        self.money = 0.0

    def connect(self, ip: str, port: int, player_name: str) -> None:
        """Connect and join; on failure ``connected`` stays False."""
        self.client_id = str(uuid.uuid4())
        self.player_name = player_name
        try:
            sock = socket.create_connection((ip, port), timeout=CONNECT_TIMEOUT)
        except OSError:
            return
        sock.settimeout(READ_POLL)

        with self.lock:
            self.other_cursors = {}
            self.city_lines = []
            self.buildings = []
            self.bus_routes = []
            self.buses = []
            self.money = 0.0
        self._sock = sock
        self._closed.clear()
        self.connected = True

        self._send(f"JOIN:{self.client_id}:{player_name}\n")
        if not self.connected:
            return

        threading.Thread(target=self._listen, args=(sock,), daemon=True).start()
        threading.Thread(target=self._ping_loop, daemon=True).start()

    def disconnect(self) -> None:
        if self._sock is not None:
            try:
                self._sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            self._sock.close()
        self.connected = False
        self._closed.set()

    def _send(self, message: str) -> None:
        sock = self._sock
        if not self.connected or sock is None:
            return
        try:
            with self._send_lock:
                sock.sendall(message.encode("utf-8"))
        except OSError:
            self.disconnect()

    def _ping_loop(self) -> None:
        while self.connected:
            self._send("PING\n")
            if self._closed.wait(PING_INTERVAL):
                break

    def send_cursor(self, x: float, y: float) -> None:
        self._send(f"C:{self.client_id}:{x:.0f}:{y:.0f}\n")

    def send_infrastructure(
        self, start_x: float, start_y: float, end_x: float, end_y: float, infra_type: int
    ) -> None:
        self._send(
            f"I:{self.client_id}:{start_x:.0f}:{start_y:.0f}"
            f":{end_x:.0f}:{end_y:.0f}:{int(infra_type)}\n"
        )

    def send_building(self, x: float, y: float, building_type: int) -> None:
        self._send(f"B:{self.client_id}:{x:.0f}:{y:.0f}:{int(building_type)}\n")

    def send_bus_route(self, nodes: Sequence[Vector2]) -> None:
        if len(nodes) < 2:
            return
        coords = "".join(f":{node.x:.0f}:{node.y:.0f}" for node in nodes)
        self._send(f"R:{self.client_id}{coords}\n")

    def send_delete(self, x: float, y: float) -> None:
        self._send(f"D:{self.client_id}:{x:.0f}:{y:.0f}\n")

    def _listen(self, sock: socket.socket) -> None:
        buffer = b""
        try:
            while self.connected and self._sock is sock:
                try:
                    data = sock.recv(4096)
                except TimeoutError:
                    continue
                except OSError:
                    break
                if not data:
                    break
                buffer += data
                *complete, buffer = buffer.split(b"\n")
                for raw in complete:
                    self.handle_line(raw.decode("utf-8", "replace"))
        finally:
            if self._sock is sock:
                self.connected = False
                self._closed.set()

    def handle_line(self, line: str) -> None:
        """Apply one line received from the server to the mirrored state."""
        message = line.strip()
        if not message:
            return
        parts = message.split(":")

        with self.lock:
            match parts[0]:
                case "C" if len(parts) == 5:
                    coords = _parse_floats(parts[3:5])
                    if coords is not None:
                        self.other_cursors[parts[1]] = PlayerCursor(Vector2(*coords), parts[2])
                case "STATE_RESET":
                    self.city_lines = []
                    self.buildings = []
                    self.bus_routes = []
                    self.buses = []
                case "I" if len(parts) == 7:
                    coords = _parse_floats(parts[2:6])
                    kind = _parse_int(parts[6])
                    if coords is not None and kind is not None:
                        self.city_lines.append(
                            CityLine(
                                Vector2(coords[0], coords[1]),
                                Vector2(coords[2], coords[3]),
                                kind,
                                parts[1],
                            )
                        )
                case "B" if len(parts) == 5:
                    coords = _parse_floats(parts[2:4])
                    kind = _parse_int(parts[4])
                    if coords is not None and kind is not None:
                        self.buildings.append(Building(Vector2(*coords), kind, parts[1]))
                case "R" if len(parts) >= 6 and len(parts) % 2 == 0:
                    coords = _parse_floats(parts[2:])
                    if coords is not None:
                        nodes = [Vector2(x, y) for x, y in zip(coords[::2], coords[1::2])]
                        self.bus_routes.append(BusRoute(nodes, parts[1], 0.0))
                case "BUS" if len(parts) == 4:
                    bus_id = _parse_int(parts[1])
                    coords = _parse_floats(parts[2:4])
                    if bus_id is not None and bus_id >= 0 and coords is not None:
                        while len(self.buses) <= bus_id:
                            self.buses.append(Bus(direction=0))
                        self.buses[bus_id].position = Vector2(*coords)
                        self.buses[bus_id].route_id = bus_id
                case "MONEY" if len(parts) == 2:
                    value = _parse_float(parts[1])
                    if value is not None:
                        self.money = value
                case "DISCONNECT" if len(parts) == 2:
                    self.other_cursors.pop(parts[1], None)
                case _:
                    pass