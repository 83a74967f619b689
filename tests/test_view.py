import pytest

from citybuilder.shared import GRID_SIZE, UI_HEIGHT, BuildingType, InfrastructureType, Vector2
from citybuilder.view import (
    BLACK,
    BLUE,
    GRAY,
    GREEN,
    MAX_ZOOM,
    MIN_ZOOM,
    RED,
    Camera,
    building_color,
    infrastructure_color,
    infrastructure_thickness,
)


@pytest.mark.parametrize("zoom", [0.5, 1.0, 2.5])
def test_screen_world_round_trip(zoom):
    camera = Camera(offset=Vector2(37.0, -12.5), zoom=zoom)
    point = Vector2(123.0, 456.0)
    back = camera.screen_to_world(camera.world_to_screen(point))
    assert back.x == pytest.approx(point.x)
    assert back.y == pytest.approx(point.y)


def test_default_camera_is_identity():
    camera = Camera()
    point = Vector2(10.0, 20.0)
    assert camera.world_to_screen(point) == point
    assert camera.screen_to_world(point) == point


def test_pan_shifts_screen_position():
    camera = Camera()
    point = Vector2(5.0, 7.0)
    before = camera.world_to_screen(point)
    camera.pan(3.0, -4.0)
    after = camera.world_to_screen(point)
    assert after.x - before.x == pytest.approx(3.0)
    assert after.y - before.y == pytest.approx(-4.0)


def test_zoom_clamps_high_and_low():
    camera = Camera()
    camera.zoom_by(100)
    assert camera.zoom == MAX_ZOOM
    camera.zoom_by(-100)
    assert camera.zoom == MIN_ZOOM


def test_zoom_step_and_zero_wheel():
    camera = Camera()
    camera.zoom_by(0)
    assert camera.zoom == 1.0
    camera.zoom_by(1)
    assert camera.zoom == pytest.approx(1.1)


def test_visible_grid_covers_screen():
    camera = Camera()
    columns, rows = camera.visible_grid(1024, 768)
    assert columns.start * GRID_SIZE < 0
    assert columns[-1] * GRID_SIZE > 1024
    assert rows.start * GRID_SIZE < UI_HEIGHT
    assert rows[-1] * GRID_SIZE > 768


def test_visible_grid_moves_with_pan():
    camera = Camera()
    columns, rows = camera.visible_grid(1024, 768)
    camera.pan(-GRID_SIZE * 10, 0)
    moved_columns, moved_rows = camera.visible_grid(1024, 768)
    assert moved_columns.start == columns.start + 10
    assert moved_columns.stop == columns.stop + 10
    assert moved_rows == rows


def test_infrastructure_colors():
    assert infrastructure_color(InfrastructureType.ROAD) == BLACK
    assert infrastructure_color(InfrastructureType.WATER) == BLUE
    assert infrastructure_color(99) == GREEN


def test_infrastructure_thickness():
    assert infrastructure_thickness(InfrastructureType.ROAD) == 4
    assert infrastructure_thickness(InfrastructureType.WATER) == 8
    assert infrastructure_thickness(99) == 6


def test_building_colors():
    assert building_color(BuildingType.RESIDENTIAL) == GREEN
    assert building_color(BuildingType.COMMERCIAL) == BLUE
    assert building_color(BuildingType.INDUSTRIAL) == RED
    assert building_color(-1) == GRAY