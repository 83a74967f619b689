"""TCP lobby server that owns the shared city and relays changes to players."""

from __future__ import annotations

import socket
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from .world import Audience, Delivery, GameState

CLEANUP_INTERVAL = 10.0
PLAYER_TIMEOUT = 15.0
INCOME_INTERVAL = 10.0
BUS_TICK = 0.05
READ_TIMEOUT = 5.0
ACCEPT_POLL = 0.5
JOIN_TIMEOUT = 2.0


@dataclass
class Player:
    """A connected player and when the server last heard from them."""

    conn: Any
    id: str
    name: str
    last_seen: float = field(default_factory=time.monotonic)


def _send(conn: Any, message: str) -> None:
    try:
        conn.sendall((message + "\n").encode("utf-8"))
    except OSError:
        pass


def _close(conn: Any) -> None:
    try:
        conn.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass
    try:
        conn.close()
    except OSError:
        pass


def _spawn(target: Callable[..., None], *args: Any) -> threading.Thread:
    thread = threading.Thread(target=target, args=args, daemon=True)
    thread.start()
    return thread


class LobbyServer:
    """Accepts players, applies their commands to the city and broadcasts the results."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._listener: socket.socket | None = None
        self._threads: list[threading.Thread] = []
        self.players: dict[str, Player] = {}
        self.player_conns: dict[Any, str] = {}
        self.state = GameState()
        self.running = False
        self.port: int | None = None

    def start(self, port: int) -> None:
        """Listen on ``port`` (0 picks a free one) and start the game loops."""
        with self._lock:
            self.players = {}
            self.player_conns = {}
            self.state = GameState()
        try:
            listener = socket.create_server(("", port))
        except OSError as exc:
            raise OSError(f"failed to listen on port {port}: {exc}") from exc
        listener.settimeout(ACCEPT_POLL)

        with self._lock:
            self._listener = listener
            self.port = listener.getsockname()[1]
            self._stopped.clear()
            self.running = True

        self._threads = [
            _spawn(self._every, CLEANUP_INTERVAL, self._cleanup),
            _spawn(self._every, BUS_TICK, self._move_buses),
            _spawn(self._every, INCOME_INTERVAL, self._pay_income),
            _spawn(self._accept_loop, listener),
        ]

    def stop(self) -> None:
        """Close the listener and every player connection."""
        with self._lock:
            if not self.running:
                return
            self.running = False
            self._stopped.set()
            if self._listener is not None:
                _close(self._listener)
            for conn in self.player_conns:
                _close(conn)
            self.players = {}
            self.player_conns = {}
            threads, self._threads = self._threads, []

        current = threading.current_thread()
        for thread in threads:
            if thread is not current:
                thread.join(timeout=JOIN_TIMEOUT)

    def _every(self, interval: float, action: Callable[[], None]) -> None:
        while not self._stopped.wait(interval):
            action()

    def _cleanup(self) -> None:
        with self._lock:
            now = time.monotonic()
            for player in self.players.values():
                if now - player.last_seen > PLAYER_TIMEOUT:
                    _close(player.conn)

    def _pay_income(self) -> None:
        with self._lock:
            self._deliver(self.state.apply_income())

    def _move_buses(self) -> None:
        with self._lock:
            self._deliver(self.state.advance_buses(BUS_TICK))

    def _accept_loop(self, listener: socket.socket) -> None:
        while self.running:
            try:
                conn, _ = listener.accept()
            except TimeoutError:
                continue
            except OSError:
                if not self.running:
                    break
                continue
            conn.settimeout(READ_TIMEOUT)
            _spawn(self._handle_client, conn)

    def _handle_client(self, conn: socket.socket) -> None:
        buffer = b""
        try:
            while self.running:
                try:
                    data = conn.recv(1024)
                except TimeoutError:
                    continue
                except OSError:
                    return
                if not data:
                    return
                buffer += data
                *complete, buffer = buffer.split(b"\n")
                for raw in complete:
                    self.handle_message(raw.decode("utf-8", "replace").strip(), conn)
        finally:
            self._drop(conn)

    def _drop(self, conn: Any) -> None:
        with self._lock:
            player_id = self.player_conns.get(conn)
            if player_id is not None:
                if player_id in self.players:
                    self._broadcast_to_others(f"DISCONNECT:{player_id}", conn)
                self.players.pop(player_id, None)
                del self.player_conns[conn]
        _close(conn)

    def handle_message(self, msg: str, conn: Any) -> None:
        """Apply one line received from ``conn``."""
        parts = msg.split(":")
        command = parts[0]

        with self._lock:
            sender_id = self.player_conns.get(conn)
            if sender_id is not None and sender_id in self.players:
                self.players[sender_id].last_seen = time.monotonic()

            match command:
                case "JOIN" if len(parts) == 3:
                    player_id, name = parts[1], parts[2]
                    self.players[player_id] = Player(conn, player_id, name)
                    self.player_conns[conn] = player_id
                    for message in self.state.state_messages():
                        _send(conn, message)
                    self._broadcast_to_all(self.state.money_message())
                case "C" if len(parts) == 4:
                    player = self.players.get(parts[1])
                    if player is not None:
                        self._broadcast_to_others(
                            f"C:{player.id}:{player.name}:{parts[2]}:{parts[3]}", conn
                        )
                case "I" if len(parts) == 7:
                    self._deliver(self.state.add_infrastructure(msg, parts))
                case "B" if len(parts) == 5:
                    self._deliver(self.state.add_building(msg, parts))
                case "R" if len(parts) >= 6 and len(parts) % 2 == 0:
                    self._deliver(self.state.add_bus_route(msg, parts))
                case "D" if len(parts) == 4:
                    self._deliver(self.state.delete_object(parts))
                case _:
                    pass

    def _deliver(self, deliveries: Iterable[Delivery]) -> None:
        for delivery in deliveries:
            if delivery.audience is Audience.ALL:
                self._broadcast_to_all(delivery.message)
            elif delivery.player_id is not None:
                self._broadcast_to_player(delivery.player_id, delivery.message)

    def _broadcast_to_all(self, message: str) -> None:
        for conn in self.player_conns:
            _send(conn, message)

    def _broadcast_to_others(self, message: str, exclude: Any) -> None:
        for conn in self.player_conns:
            if conn is not exclude:
                _send(conn, message)

    def _broadcast_to_player(self, player_id: str, message: str) -> None:
        player = self.players.get(player_id)
        if player is not None:
            _send(player.conn, message)