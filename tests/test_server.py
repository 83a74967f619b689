import socket
import time

import pytest

from citybuilder.server import LobbyServer
from citybuilder.world import STARTING_MONEY


class FakeConn:
    def __init__(self):
        self.sent = bytearray()
        self.closed = False

    def sendall(self, data):
        self.sent += data

    def shutdown(self, how):
        pass

    def close(self):
        self.closed = True

    @property
    def lines(self):
        return self.sent.decode().splitlines()

    def clear(self):
        self.sent.clear()


def joined(server, player_id, name):
    conn = FakeConn()
    server.handle_message(f"JOIN:{player_id}:{name}", conn)
    return conn


def read_until(sock, wanted, timeout=5.0):
    deadline = time.monotonic() + timeout
    sock.settimeout(0.2)
    buffer = b""
    lines = []
    while time.monotonic() < deadline:
        try:
            data = sock.recv(4096)
        except TimeoutError:
            continue
        if not data:
            break
        buffer += data
        *complete, buffer = buffer.split(b"\n")
        lines.extend(line.decode() for line in complete)
        if wanted in lines:
            break
    return lines


@pytest.fixture
def running_server():
    server = LobbyServer()
    server.start(0)
    try:
        yield server
    finally:
        server.stop()


def test_join_sends_state_then_money():
    server = LobbyServer()
    conn = joined(server, "p1", "Alice")
    assert conn.lines == ["STATE_SYNCED", server.state.money_message()]
    assert server.players["p1"].name == "Alice"
    assert server.player_conns[conn] == "p1"


def test_join_money_message_format():
    server = LobbyServer()
    conn = joined(server, "p1", "Alice")
    assert conn.lines[-1] == "MONEY:1000.00"


def test_join_replays_existing_state():
    server = LobbyServer()
    first = joined(server, "p1", "Alice")
    server.handle_message("I:p1:0:0:64:0:1", first)
    second = joined(server, "p2", "Bob")
    assert second.lines[0] == "I:p1:0:0:64:0:1"
    assert "STATE_SYNCED" in second.lines


def test_cursor_goes_to_others_only():
    server = LobbyServer()
    a = joined(server, "p1", "Alice")
    b = joined(server, "p2", "Bob")
    a.clear()
    b.clear()
    server.handle_message("C:p1:10:20", a)
    assert b.lines == ["C:p1:Alice:10:20"]
    assert a.lines == []


def test_cursor_from_unknown_player_is_dropped():
    server = LobbyServer()
    a = joined(server, "p1", "Alice")
    a.clear()
    server.handle_message("C:ghost:10:20", FakeConn())
    assert a.lines == []


def test_water_line_is_broadcast_without_cost():
    server = LobbyServer()
    a = joined(server, "p1", "Alice")
    b = joined(server, "p2", "Bob")
    a.clear()
    b.clear()
    server.handle_message("I:p1:0:0:64:0:1", a)
    assert a.lines == ["I:p1:0:0:64:0:1"]
    assert b.lines == ["I:p1:0:0:64:0:1"]
    assert server.state.money == STARTING_MONEY
    assert len(server.state.lines) == 1


def test_road_costs_money_and_announces_it():
    server = LobbyServer()
    a = joined(server, "p1", "Alice")
    a.clear()
    server.handle_message("I:p1:0:0:100:0:0", a)
    assert server.state.money < STARTING_MONEY
    assert a.lines == [server.state.money_message(), "I:p1:0:0:100:0:0"]


def test_building_without_money_only_tells_builder():
    server = LobbyServer()
    a = joined(server, "p1", "Alice")
    b = joined(server, "p2", "Bob")
    server.state.money = 50.0
    a.clear()
    b.clear()
    server.handle_message("B:p1:16:16:0", a)
    assert a.lines == ["STATUS:Not enough money to build Residential! Cost: 100.00"]
    assert b.lines == []
    assert server.state.buildings == []


def test_unknown_building_type_status():
    server = LobbyServer()
    a = joined(server, "p1", "Alice")
    a.clear()
    server.handle_message("B:p1:16:16:9", a)
    assert a.lines == ["STATUS:Unknown building type!"]


def test_delete_resets_everyone():
    server = LobbyServer()
    a = joined(server, "p1", "Alice")
    b = joined(server, "p2", "Bob")
    server.handle_message("I:p1:0:0:64:0:1", a)
    a.clear()
    b.clear()
    server.handle_message("D:p1:32:0", a)
    assert server.state.lines == []
    for conn in (a, b):
        assert conn.lines[0] == "STATE_RESET"
        assert conn.lines[-1] == "STATE_SYNCED"


def test_delete_nothing_reports_to_requester():
    server = LobbyServer()
    a = joined(server, "p1", "Alice")
    b = joined(server, "p2", "Bob")
    a.clear()
    b.clear()
    server.handle_message("D:p1:500:500", a)
    assert a.lines == ["STATUS:No deletable object found here."]
    assert b.lines == []


@pytest.mark.parametrize("msg", ["I:p1:1:2", "B:p1:0", "R:p1:0:0:1", "D:p1", "JOIN:p9", "PING", "XYZ"])
def test_malformed_or_ignored_messages_send_nothing(msg):
    server = LobbyServer()
    a = joined(server, "p1", "Alice")
    a.clear()
    server.handle_message(msg, a)
    assert a.lines == []
    assert server.state.lines == []


def test_any_message_refreshes_last_seen():
    server = LobbyServer()
    a = joined(server, "p1", "Alice")
    server.players["p1"].last_seen = 0.0
    server.handle_message("PING", a)
    assert server.players["p1"].last_seen > 0.0


def test_socket_join_receives_state(running_server):
    with socket.create_connection(("127.0.0.1", running_server.port), timeout=5) as sock:
        sock.sendall(b"JOIN:p1:Alice\n")
        lines = read_until(sock, "MONEY:1000.00")
    assert "STATE_SYNCED" in lines
    assert lines.index("STATE_SYNCED") < lines.index("MONEY:1000.00")


def test_closed_connection_notifies_others(running_server):
    a = socket.create_connection(("127.0.0.1", running_server.port), timeout=5)
    b = socket.create_connection(("127.0.0.1", running_server.port), timeout=5)
    try:
        a.sendall(b"JOIN:p1:Alice\n")
        read_until(a, "STATE_SYNCED")
        b.sendall(b"JOIN:p2:Bob\n")
        read_until(b, "STATE_SYNCED")
        a.close()
        lines = read_until(b, "DISCONNECT:p1")
        assert "DISCONNECT:p1" in lines
    finally:
        b.close()


def test_stop_closes_players(running_server):
    sock = socket.create_connection(("127.0.0.1", running_server.port), timeout=5)
    try:
        sock.sendall(b"JOIN:p1:Alice\n")
        read_until(sock, "STATE_SYNCED")
        running_server.stop()
        sock.settimeout(5)
        while sock.recv(4096):
            pass
        assert running_server.running is False
        assert running_server.players == {}
    finally:
        sock.close()


def test_start_on_busy_port_raises():
    blocker = socket.create_server(("", 0))
    try:
        port = blocker.getsockname()[1]
        server = LobbyServer()
        with pytest.raises(OSError, match="failed to listen"):
            server.start(port)
        assert server.running is False
    finally:
        blocker.close()