"""The game window: menus, the server chooser and the shared city view."""

from __future__ import annotations

import argparse
import os
import socket
import time
from enum import Enum, auto
from typing import Callable, Sequence

import pygame

from .client import LobbyClient
from .server import LobbyServer
from .shared import (
    GRID_SIZE,
    UI_HEIGHT,
    BuildingType,
    InfrastructureType,
    Vector2,
    building_name,
    infrastructure_name,
    snap_to_grid,
)
from .textbox import TextBox
from .view import (
    BLACK,
    GRAY,
    GRID_COLOR,
    ORANGE,
    RAYWHITE,
    RED,
    WHITE,
    Camera,
    building_color,
    infrastructure_color,
    infrastructure_thickness,
)

WINDOW_SIZE = (1024, 768)
WINDOW_TITLE = "Multiplayer Citybuilder"
TARGET_FPS = 60
DEFAULT_PORT = 7777
LOCALHOST = "127.0.0.1"
FONT_PATH = os.path.join("fonts", "Unageo-Medium.ttf")
PAN_SPEED = 1000.0
CURSOR_SEND_INTERVAL = 0.04
HELP_TEXT = "WASD / Arrows: Move | Mouse Wheel: Zoom | G: Grid | ESC: Menu"

Rect = tuple[float, float, float, float]

_TEXT_COLOR = (104, 104, 104)
_BUTTON_FILL = (201, 201, 201)
_BUTTON_BORDER = (131, 131, 131)
_PREVIEW_ORANGE = (255, 165, 0)

_MULTIPLAYER_BUTTON: Rect = (400, 300, 200, 40)
_EXIT_BUTTON: Rect = (400, 360, 200, 40)
_HOST_BUTTON: Rect = (200, 80, 200, 30)
_JOIN_BUTTON: Rect = (200, 120, 200, 30)
_FINISH_ROUTE_BUTTON: Rect = (10, 70, 160, 25)
_CANCEL_ROUTE_BUTTON: Rect = (180, 70, 150, 25)


class GameScreen(Enum):
    MAIN_MENU = auto()
    SERVER_CHOOSER = auto()
    IN_GAME = auto()


class BuildMode(Enum):
    INFRASTRUCTURE = auto()
    BUILDING = auto()
    BUS_ROUTE = auto()
    DELETE = auto()


_MODE_BUTTONS: list[tuple[Rect, str, BuildMode]] = [
    ((10, 10, 150, 25), "Infrastructure", BuildMode.INFRASTRUCTURE),
    ((170, 10, 80, 25), "Houses", BuildMode.BUILDING),
    ((260, 10, 80, 25), "Routes", BuildMode.BUS_ROUTE),
    ((350, 10, 80, 25), "Delete", BuildMode.DELETE),
]
_INFRA_BUTTONS: list[tuple[Rect, str, InfrastructureType]] = [
    ((10, 40, 60, 25), "Road", InfrastructureType.ROAD),
    ((80, 40, 70, 25), "River", InfrastructureType.WATER),
]
_BUILDING_BUTTONS: list[tuple[Rect, str, BuildingType]] = [
    ((10, 40, 120, 25), "Residential", BuildingType.RESIDENTIAL),
    ((140, 40, 90, 25), "Business", BuildingType.COMMERCIAL),
    ((240, 40, 100, 25), "Industrial", BuildingType.INDUSTRIAL),
]

_KEY_NAMES = {
    pygame.K_ESCAPE: "escape",
    pygame.K_g: "g",
    pygame.K_BACKSPACE: "backspace",
    pygame.K_DELETE: "delete",
    pygame.K_LEFT: "left",
    pygame.K_RIGHT: "right",
    pygame.K_UP: "up",
    pygame.K_DOWN: "down",
    pygame.K_a: "a",
    pygame.K_d: "d",
    pygame.K_w: "w",
    pygame.K_s: "s",
}


def _hit(rect: Rect, pos: Vector2) -> bool:
    x, y, w, h = rect
    return x <= pos.x < x + w and y <= pos.y < y + h


def _pg_rect(rect: Rect) -> pygame.Rect:
    return pygame.Rect(int(rect[0]), int(rect[1]), int(rect[2]), int(rect[3]))


def _point(v: Vector2) -> tuple[float, float]:
    return (v.x, v.y)


def _width(value: float) -> int:
    return max(1, int(value))


class CityBuilderApp:
    """Game state and per-frame logic; ``run`` drives it from a pygame window.

    Per-frame input lives in plain attributes (``mouse``, ``mouse_pressed``,
    ``mouse_released``, ``keys_pressed``, ``keys_down``, ``typed``, ``wheel``)
    that ``run`` fills from pygame events before each ``update``.
    """

    def __init__(
        self,
        surface: pygame.Surface | None = None,
        host_port: int = DEFAULT_PORT,
        measure: Callable[[str], float] | None = None,
    ) -> None:
        self.screen = GameScreen.MAIN_MENU
        self.status = "Not connected yet!"
        self.hosting = False
        self.running = True
        self.send_timer = 0.0
        self.host_port = host_port
        self.server = LobbyServer()
        self.client = LobbyClient()
        self.camera = Camera()
        self.show_grid = True
        self.build_mode = BuildMode.INFRASTRUCTURE
        self.infra_type = InfrastructureType.ROAD
        self.building_type = BuildingType.RESIDENTIAL
        self.is_building = False
        self.build_start = Vector2()
        self.is_creating_route = False
        self.route_nodes: list[Vector2] = []

        self.name_box = TextBox(200, 160, 250, 30, 15, text="Player")
        self.ip_box = TextBox(200, 200, 250, 30, 20, text=LOCALHOST)
        self.port_box = TextBox(200, 240, 250, 30, 6, text=str(DEFAULT_PORT))

        self.mouse = Vector2()
        self.mouse_pressed = False
        self.mouse_released = False
        self.keys_pressed: set[str] = set()
        self.keys_down: set[str] = set()
        self.typed = ""
        self.wheel = 0.0

        self.surface = surface
        self._measure = measure
        self._title_font: pygame.font.Font | None = None
        self._text_font: pygame.font.Font | None = None
        self._measure_font: pygame.font.Font | None = None

    @property
    def _boxes(self) -> Sequence[TextBox]:
        return (self.name_box, self.ip_box, self.port_box)

    # ----- window loop -------------------------------------------------

    def run(self) -> None:
        """Open the window and run frames until it is closed."""
        pygame.init()
        self.surface = pygame.display.set_mode(WINDOW_SIZE)
        pygame.display.set_caption(WINDOW_TITLE)
        pygame.key.start_text_input()
        clock = pygame.time.Clock()
        try:
            while self.running:
                delta = clock.tick(TARGET_FPS) / 1000.0
                self._poll_events()
                if not self.running:
                    break
                self.update(delta)
                if not self.running:
                    break
                self.draw()
                pygame.display.flip()
        finally:
            self.client.disconnect()
            self.server.stop()
            pygame.quit()

    def _poll_events(self) -> None:
        self.mouse_pressed = False
        self.mouse_released = False
        self.keys_pressed = set()
        self.typed = ""
        self.wheel = 0.0
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False
            elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                self.mouse_pressed = True
            elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
                self.mouse_released = True
            elif event.type == pygame.MOUSEWHEEL:
                self.wheel += event.y
            elif event.type == pygame.KEYDOWN and event.key in _KEY_NAMES:
                self.keys_pressed.add(_KEY_NAMES[event.key])
            elif event.type == pygame.TEXTINPUT:
                self.typed += event.text
        x, y = pygame.mouse.get_pos()
        self.mouse = Vector2(float(x), float(y))
        pressed = pygame.key.get_pressed()
        self.keys_down = {name for key, name in _KEY_NAMES.items() if pressed[key]}

    # ----- update ------------------------------------------------------

    def _button(self, rect: Rect) -> bool:
        return self.mouse_released and _hit(rect, self.mouse)

    def update(self, delta: float) -> None:
        """Advance one frame using the current input attributes."""
        match self.screen:
            case GameScreen.MAIN_MENU:
                self._update_main_menu()
            case GameScreen.SERVER_CHOOSER:
                self._update_chooser()
            case GameScreen.IN_GAME:
                self._update_game(delta)

    def _update_main_menu(self) -> None:
        if self._button(_MULTIPLAYER_BUTTON):
            self.screen = GameScreen.SERVER_CHOOSER
        if self._button(_EXIT_BUTTON):
            self.running = False

    def _connect(self, ip: str, port: int, name: str) -> None:
        try:
            self.client.connect(ip, port, name)
        except (OverflowError, ValueError):
            self.client.connected = False

    def _update_chooser(self) -> None:
        if "escape" in self.keys_pressed:
            self.screen = GameScreen.MAIN_MENU

        if self._button(_HOST_BUTTON):
            try:
                self.server.start(self.host_port)
            except OSError:
                self.status = "Failed to host server."
                return
            name = self.name_box.text or "Host"
            port = self.server.port if self.server.port is not None else self.host_port
            self._connect(LOCALHOST, port, name)
            self.hosting = True
            self.status = "Hosting game..."
            self.screen = GameScreen.IN_GAME

        if self._button(_JOIN_BUTTON):
            ip = self.ip_box.text
            port_text = self.port_box.text
            name = self.name_box.text or "Player"
            port = _parse_port(port_text)
            if port is None:
                self.status = "Invalid port!"
            else:
                self._connect(ip, port, name)
                self.status = "Joining " + ip
                self.screen = GameScreen.IN_GAME

        self._update_text_boxes()

    def _measure_text(self, text: str) -> float:
        if self._measure is not None:
            return self._measure(text)
        if self._measure_font is None:
            pygame.font.init()
            self._measure_font = pygame.font.Font(None, 20)
        return float(self._measure_font.size(text)[0])

    def _update_text_boxes(self) -> None:
        typed = self.typed
        now = time.monotonic()
        for box in self._boxes:
            if self.mouse_pressed:
                box.focus_at(self.mouse.x, self.mouse.y, self._measure_text)
            if not box.focused:
                box.show_cursor = False
                continue
            if typed:
                box.insert(typed)
                typed = ""
            if "backspace" in self.keys_pressed:
                box.backspace()
            if "delete" in self.keys_pressed:
                box.delete_forward()
            if "left" in self.keys_pressed:
                box.move_left()
            if "right" in self.keys_pressed:
                box.move_right()
            box.update_blink(now)

    def _update_game(self, delta: float) -> None:
        step = PAN_SPEED * delta
        dx = dy = 0.0
        if self.keys_down & {"a", "left"}:
            dx += step
        if self.keys_down & {"d", "right"}:
            dx -= step
        if self.keys_down & {"w", "up"}:
            dy += step
        if self.keys_down & {"s", "down"}:
            dy -= step
        if dx or dy:
            self.camera.pan(dx, dy)

        self.camera.zoom_by(self.wheel)

        if "g" in self.keys_pressed:
            self.show_grid = not self.show_grid

        if self.mouse.y > UI_HEIGHT:
            self._handle_world_mouse()

        self.send_timer += delta
        if self.send_timer >= CURSOR_SEND_INTERVAL:
            self.send_timer = 0.0
            world = self.camera.screen_to_world(self.mouse)
            self.client.send_cursor(world.x, world.y)

        if not self.client.connected:
            self.status = "Disconnected from server"
            self.screen = GameScreen.MAIN_MENU

        if "escape" in self.keys_pressed:
            self.client.disconnect()
            if self.hosting:
                self.server.stop()
            self.screen = GameScreen.MAIN_MENU
            self.hosting = False

        if self.screen is GameScreen.IN_GAME:
            self._update_toolbar()

    def _handle_world_mouse(self) -> None:
        snapped = snap_to_grid(self.camera.screen_to_world(self.mouse))

        if self.mouse_pressed:
            match self.build_mode:
                case BuildMode.INFRASTRUCTURE:
                    self.is_building = True
                    self.build_start = snapped
                case BuildMode.BUILDING:
                    if self.client.connected:
                        self.client.send_building(snapped.x, snapped.y, self.building_type)
                case BuildMode.BUS_ROUTE:
                    self.route_nodes.append(snapped)
                    self.is_creating_route = True
                case BuildMode.DELETE:
                    if self.client.connected:
                        self.client.send_delete(snapped.x, snapped.y)

        if (
            self.mouse_released
            and self.is_building
            and self.build_mode is BuildMode.INFRASTRUCTURE
        ):
            self.is_building = False
            start = self.build_start
            if start != snapped and self.client.connected:
                self.client.send_infrastructure(
                    start.x, start.y, snapped.x, snapped.y, self.infra_type
                )

    def _update_toolbar(self) -> None:
        for rect, _, mode in _MODE_BUTTONS:
            if self._button(rect):
                self.build_mode = mode

        if self.build_mode is BuildMode.INFRASTRUCTURE:
            for rect, _, infra in _INFRA_BUTTONS:
                if self._button(rect):
                    self.infra_type = infra
        elif self.build_mode is BuildMode.BUILDING:
            for rect, _, kind in _BUILDING_BUTTONS:
                if self._button(rect):
                    self.building_type = kind
        elif self.build_mode is BuildMode.BUS_ROUTE and self.is_creating_route:
            if self._button(_FINISH_ROUTE_BUTTON):
                if self.client.connected and len(self.route_nodes) >= 2:
                    self.client.send_bus_route(self.route_nodes)
                self.is_creating_route = False
                self.route_nodes = []
            if self._button(_CANCEL_ROUTE_BUTTON):
                self.is_creating_route = False
                self.route_nodes = []

    # ----- drawing -----------------------------------------------------

    def _ensure_fonts(self) -> None:
        if self._text_font is not None:
            return
        pygame.font.init()
        path = FONT_PATH if os.path.exists(FONT_PATH) else None
        self._title_font = pygame.font.Font(path, 72)
        self._text_font = pygame.font.Font(path, 24)

    def draw(self) -> None:
        """Render the current screen onto the surface, if there is one."""
        surface = self.surface
        if surface is None:
            return
        self._ensure_fonts()
        surface.fill(RAYWHITE)
        match self.screen:
            case GameScreen.MAIN_MENU:
                self._label(surface, (350, 200, 400, 80), "Citybuilder", self._title_font)
                self._draw_button(surface, _MULTIPLAYER_BUTTON, "Multiplayer")
                self._draw_button(surface, _EXIT_BUTTON, "Exit")
            case GameScreen.SERVER_CHOOSER:
                self._draw_chooser(surface)
            case GameScreen.IN_GAME:
                self._draw_game(surface)

    def _label(
        self,
        surface: pygame.Surface,
        rect: Rect,
        text: str,
        font: pygame.font.Font | None = None,
    ) -> None:
        if not text:
            return
        font = font or self._text_font
        assert font is not None
        rendered = font.render(text, True, _TEXT_COLOR)
        y = rect[1] + (rect[3] - rendered.get_height()) / 2
        surface.blit(rendered, (int(rect[0]), int(y)))

    def _draw_button(self, surface: pygame.Surface, rect: Rect, text: str) -> None:
        box = _pg_rect(rect)
        pygame.draw.rect(surface, _BUTTON_FILL, box)
        pygame.draw.rect(surface, _BUTTON_BORDER, box, 2)
        assert self._text_font is not None
        rendered = self._text_font.render(text, True, _TEXT_COLOR)
        surface.blit(rendered, rendered.get_rect(center=box.center))

    def _draw_text_box(self, surface: pygame.Surface, box: TextBox) -> None:
        rect = _pg_rect((box.x, box.y, box.width, box.height))
        pygame.draw.rect(surface, WHITE, rect)
        pygame.draw.rect(surface, GRAY, rect, 2)
        text_x = box.x + 5
        text_y = box.y + box.height / 2 - 10
        self._label(surface, (text_x, text_y, 200, 20), box.text)
        if box.focused and box.show_cursor:
            assert self._text_font is not None
            cursor_x = text_x + self._text_font.size(box.text[: box.cursor_pos])[0]
            pygame.draw.line(surface, BLACK, (cursor_x, text_y), (cursor_x, text_y + 20))

    def _draw_chooser(self, surface: pygame.Surface) -> None:
        self._label(surface, (200, 50, 400, 30), "Server Connection")
        self._label(surface, (50, 160, 140, 30), "Your Name:")
        self._label(surface, (50, 200, 140, 30), "Server IP:")
        self._label(surface, (50, 240, 140, 30), "Port:")
        self._label(surface, (200, 300, 400, 30), self.status)
        self._draw_button(surface, _HOST_BUTTON, "Host Game")
        self._draw_button(surface, _JOIN_BUTTON, "Join Game")
        for box in self._boxes:
            self._draw_text_box(surface, box)

    def _draw_grid(self, surface: pygame.Surface) -> None:
        if not self.show_grid:
            return
        cols, rows = self.camera.visible_grid(surface.get_width(), surface.get_height())
        color = GRID_COLOR[:3]
        to_screen = self.camera.world_to_screen
        top, bottom = rows.start * GRID_SIZE, (rows.stop - 1) * GRID_SIZE
        left, right = cols.start * GRID_SIZE, (cols.stop - 1) * GRID_SIZE
        for col in cols:
            x = float(col * GRID_SIZE)
            start = to_screen(Vector2(x, top))
            end = to_screen(Vector2(x, bottom))
            pygame.draw.line(surface, color, _point(start), _point(end))
        for row in rows:
            y = float(row * GRID_SIZE)
            start = to_screen(Vector2(left, y))
            end = to_screen(Vector2(right, y))
            pygame.draw.line(surface, color, _point(start), _point(end))

    def _draw_city(self, surface: pygame.Surface) -> None:
        zoom = self.camera.zoom
        to_screen = self.camera.world_to_screen
        with self.client.lock:
            for line in self.client.city_lines:
                color = infrastructure_color(line.kind)
                start, end = to_screen(line.start), to_screen(line.end)
                width = _width(infrastructure_thickness(line.kind) * zoom)
                pygame.draw.line(surface, color, _point(start), _point(end), width)
                pygame.draw.circle(surface, color, _point(start), 4 * zoom)
                pygame.draw.circle(surface, color, _point(end), 4 * zoom)

            size = GRID_SIZE * zoom * 0.8
            for building in self.client.buildings:
                pos = to_screen(building.position)
                rect = _pg_rect((pos.x - size / 2, pos.y - size / 2, size, size))
                pygame.draw.rect(surface, building_color(building.kind), rect)
                pygame.draw.rect(surface, BLACK, rect, 2)

            if self.build_mode is BuildMode.BUS_ROUTE:
                for route in self.client.bus_routes:
                    points = [_point(to_screen(node)) for node in route.nodes]
                    for a, b in zip(points, points[1:]):
                        pygame.draw.line(surface, ORANGE, a, b, _width(2 * zoom))
                    for p in points:
                        pygame.draw.circle(surface, ORANGE, p, 6 * zoom)

            bus_size = 8 * zoom
            for bus in self.client.buses:
                pos = to_screen(bus.position)
                rect = _pg_rect((pos.x - bus_size / 2, pos.y - bus_size / 2, bus_size, bus_size))
                pygame.draw.rect(surface, ORANGE, rect)
                pygame.draw.rect(surface, BLACK, rect, _width(zoom))

    def _draw_previews(self, surface: pygame.Surface) -> None:
        zoom = self.camera.zoom
        to_screen = self.camera.world_to_screen
        snapped = snap_to_grid(self.camera.screen_to_world(self.mouse))
        mouse_in_world = self.mouse.y > UI_HEIGHT

        if self.is_building and self.build_mode is BuildMode.INFRASTRUCTURE and mouse_in_world:
            color = infrastructure_color(self.infra_type)[:3]
            width = _width(infrastructure_thickness(self.infra_type) * zoom)
            pygame.draw.line(
                surface,
                color,
                _point(to_screen(self.build_start)),
                _point(to_screen(snapped)),
                width,
            )

        if self.is_creating_route:
            points = [_point(to_screen(node)) for node in self.route_nodes]
            for p in points:
                pygame.draw.circle(surface, _PREVIEW_ORANGE, p, 5 * zoom)
            for a, b in zip(points, points[1:]):
                pygame.draw.line(surface, _PREVIEW_ORANGE, a, b, _width(2 * zoom))
            if points and mouse_in_world:
                pygame.draw.line(
                    surface,
                    _PREVIEW_ORANGE,
                    points[-1],
                    _point(to_screen(snapped)),
                    _width(2 * zoom),
                )

    def _draw_cursors(self, surface: pygame.Surface) -> None:
        zoom = self.camera.zoom
        with self.client.lock:
            cursors = list(self.client.other_cursors.values())
        for cursor in cursors:
            pos = self.camera.world_to_screen(cursor.position)
            pygame.draw.circle(surface, RED, _point(pos), 8 * zoom)
            self._label(surface, (pos.x - 30, pos.y - 35, 200, 30), cursor.name)

    def _draw_toolbar(self, surface: pygame.Surface) -> None:
        width = surface.get_width()
        pygame.draw.rect(surface, RAYWHITE, pygame.Rect(0, 0, width, UI_HEIGHT))
        pygame.draw.line(surface, BLACK, (0, UI_HEIGHT), (width, UI_HEIGHT))

        for rect, text, _ in _MODE_BUTTONS:
            self._draw_button(surface, rect, text)

        swatch = pygame.Rect(10, 72, 16, 16)
        if self.build_mode is BuildMode.INFRASTRUCTURE:
            for rect, text, _ in _INFRA_BUTTONS:
                self._draw_button(surface, rect, text)
            self._label(
                surface, (36, 70, 200, 20), "Building: " + infrastructure_name(self.infra_type)
            )
            pygame.draw.rect(surface, infrastructure_color(self.infra_type), swatch)
        elif self.build_mode is BuildMode.BUILDING:
            for rect, text, _ in _BUILDING_BUTTONS:
                self._draw_button(surface, rect, text)
            self._label(
                surface, (36, 70, 200, 20), "Building: " + building_name(self.building_type)
            )
            pygame.draw.rect(surface, building_color(self.building_type), swatch)
            pygame.draw.rect(surface, BLACK, swatch, 2)
        elif self.build_mode is BuildMode.BUS_ROUTE:
            self._label(surface, (10, 40, 400, 20), "Click to place bus route nodes.")
            if self.is_creating_route:
                self._draw_button(surface, _FINISH_ROUTE_BUTTON, "Finish Route")
                self._draw_button(surface, _CANCEL_ROUTE_BUTTON, "Cancel Route")
        elif self.build_mode is BuildMode.DELETE:
            self._label(surface, (10, 40, 400, 20), "Click near objects to delete them.")

        self._label(surface, (width - 620, 95, 610, 20), HELP_TEXT)
        self._label(surface, (width - 120, 10, 100, 20), f"Zoom: {self.camera.zoom:.1f}x")
        self._label(surface, (10, 95, 400, 20), f"Money: ${self.client.money:.2f}")

    def _draw_game(self, surface: pygame.Surface) -> None:
        self._draw_grid(surface)
        if self.client.connected:
            self._draw_city(surface)
        self._draw_previews(surface)
        if self.client.connected:
            self._draw_cursors(surface)
        self._draw_toolbar(surface)


def _parse_port(text: str) -> int | None:
    stripped = text[1:] if text[:1] in "+-" else text
    if not stripped or not stripped.isascii() or not stripped.isdigit():
        return None
    return int(text)


def main(argv: Sequence[str] | None = None) -> int:
    """Start the game window."""
    parser = argparse.ArgumentParser(prog="citybuilder", description=WINDOW_TITLE)
    parser.parse_args(argv)
    CityBuilderApp().run()
    return 0


# Keep a reference so the name is part of the socket error path on every platform.
_SOCKET_ERRORS = (socket.error,)