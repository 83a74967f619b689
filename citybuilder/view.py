"""Camera transforms and the colours and sizes used to draw the city."""

from __future__ import annotations

from dataclasses import dataclass

from .shared import GRID_SIZE, UI_HEIGHT, BuildingType, InfrastructureType, Vector2

Color = tuple[int, int, int, int]

BLACK: Color = (0, 0, 0, 255)
BLUE: Color = (0, 121, 241, 255)
GREEN: Color = (0, 228, 48, 255)
RED: Color = (230, 41, 55, 255)
GRAY: Color = (130, 130, 130, 255)
ORANGE: Color = (255, 161, 0, 255)
WHITE: Color = (255, 255, 255, 255)
RAYWHITE: Color = (245, 245, 245, 255)
GRID_COLOR: Color = (200, 200, 200, 100)

MIN_ZOOM = 0.5
MAX_ZOOM = 3.0
ZOOM_STEP = 0.1


@dataclass
class Camera:
    """World offset and zoom factor mapping world coordinates onto the screen."""

    offset: Vector2 = Vector2()
    zoom: float = 1.0

    def screen_to_world(self, pos: Vector2) -> Vector2:
        return Vector2(pos.x / self.zoom - self.offset.x, pos.y / self.zoom - self.offset.y)

    def world_to_screen(self, pos: Vector2) -> Vector2:
        return Vector2((pos.x + self.offset.x) * self.zoom, (pos.y + self.offset.y) * self.zoom)

    def pan(self, dx: float, dy: float) -> None:
        self.offset = Vector2(self.offset.x + dx, self.offset.y + dy)

    def zoom_by(self, wheel: float) -> None:
        """Apply a mouse-wheel movement, keeping the zoom within its limits."""
        if wheel == 0:
            return
        self.zoom = min(MAX_ZOOM, max(MIN_ZOOM, self.zoom + wheel * ZOOM_STEP))

    def visible_grid(self, screen_width: float, screen_height: float) -> tuple[range, range]:
        """Grid column and row indices to draw, with a margin of two cells each side."""
        start_x = int(-self.offset.x / GRID_SIZE) - 2
        end_x = int((-self.offset.x + screen_width / self.zoom) / GRID_SIZE) + 2
        start_y = int((-self.offset.y + UI_HEIGHT / self.zoom) / GRID_SIZE) - 2
        end_y = int((-self.offset.y + screen_height / self.zoom) / GRID_SIZE) + 2
        return range(start_x, end_x + 1), range(start_y, end_y + 1)


def infrastructure_color(infra_type: int) -> Color:
    return {InfrastructureType.ROAD: BLACK, InfrastructureType.WATER: BLUE}.get(infra_type, GREEN)


def infrastructure_thickness(infra_type: int) -> float:
    return {InfrastructureType.ROAD: 4.0, InfrastructureType.WATER: 8.0}.get(infra_type, 6.0)


def building_color(building_type: int) -> Color:
    return {
        BuildingType.RESIDENTIAL: GREEN,
        BuildingType.COMMERCIAL: BLUE,
        BuildingType.INDUSTRIAL: RED,
    }.get(building_type, GRAY)