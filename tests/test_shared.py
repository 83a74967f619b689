import math

import pytest

from citybuilder.shared import (
    GRID_SIZE,
    BuildingType,
    InfrastructureType,
    Vector2,
    building_name,
    infrastructure_name,
    point_segment_distance,
    snap_to_grid,
)


def test_distance_three_four_five():
    assert Vector2(0, 0).distance(Vector2(3, 4)) == pytest.approx(5.0)


def test_distance_is_symmetric():
    a, b = Vector2(-7.5, 2), Vector2(11, -3.25)
    assert a.distance(b) == pytest.approx(b.distance(a))


def test_lerp_endpoints():
    a, b = Vector2(1, 2), Vector2(9, -4)
    assert a.lerp(b, 0.0) == a
    assert a.lerp(b, 1.0) == b


def test_lerp_midpoint_is_equidistant():
    a, b = Vector2(-10, 5), Vector2(30, 25)
    mid = a.lerp(b, 0.5)
    assert mid.distance(a) == pytest.approx(a.distance(b) / 2)
    assert mid.distance(b) == pytest.approx(a.distance(b) / 2)


def test_point_on_segment_has_zero_distance():
    a, b = Vector2(0, 0), Vector2(10, 10)
    assert point_segment_distance(a.lerp(b, 0.3), a, b) == pytest.approx(0.0)


def test_perpendicular_distance():
    assert point_segment_distance(Vector2(5, 7), Vector2(0, 0), Vector2(10, 0)) == pytest.approx(7.0)


def test_point_past_end_measures_to_endpoint():
    p, a, b = Vector2(20, 3), Vector2(0, 0), Vector2(10, 0)
    assert point_segment_distance(p, a, b) == pytest.approx(p.distance(b))


def test_degenerate_segment_measures_to_point():
    p, a = Vector2(4, -9), Vector2(1, 1)
    assert point_segment_distance(p, a, a) == pytest.approx(p.distance(a))


def test_snap_origin_to_cell_centre():
    assert snap_to_grid(Vector2(0, 0)) == Vector2(GRID_SIZE / 2, GRID_SIZE / 2)


def test_snap_is_idempotent():
    first = snap_to_grid(Vector2(123.4, 567.8))
    assert snap_to_grid(first) == first


@pytest.mark.parametrize("x, y", [(40, 70), (1000.5, 3.2), (31.9, 64.0)])
def test_snap_lands_on_cell_centre_in_same_cell(x, y):
    snapped = snap_to_grid(Vector2(x, y))
    assert (snapped.x - GRID_SIZE / 2) % GRID_SIZE == 0
    assert (snapped.y - GRID_SIZE / 2) % GRID_SIZE == 0
    assert math.floor(snapped.x / GRID_SIZE) == math.floor(x / GRID_SIZE)


def test_snap_truncates_negative_toward_zero():
    assert snap_to_grid(Vector2(-5, -5)) == Vector2(GRID_SIZE / 2, GRID_SIZE / 2)


def test_building_names():
    assert building_name(BuildingType.RESIDENTIAL) == "Residential"
    assert building_name(BuildingType.COMMERCIAL) == "Commercial"
    assert building_name(BuildingType.INDUSTRIAL) == "Industrial"
    assert building_name(7) == "Unknown"


def test_infrastructure_names():
    assert infrastructure_name(InfrastructureType.ROAD) == "Road"
    assert infrastructure_name(InfrastructureType.WATER) == "Water"
    assert infrastructure_name(-1) == "Unknown"