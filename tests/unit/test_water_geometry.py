"""
Unit tests for water harvesting and geometry calculations.
"""
import pytest

from permaculture_planner.services import geometry, water


def square(size, origin=(0.0, 0.0)):
    x, y = origin
    return {
        "type": "Polygon",
        "coordinates": [[[x, y], [x + size, y], [x + size, y + size], [x, y + size], [x, y]]],
    }


def test_catchment_gallons():
    """1000 sq ft of roof with 30 inches of rain at the default runoff."""
    assert water.calculate_catchment_gallons(1000, 30, 0.9) == 16821
    assert water.calculate_catchment_gallons(1000, 30) == 16821
    assert water.calculate_catchment_gallons(0, 30) == 0


def test_catchment_rejects_invalid_runoff():
    with pytest.raises(ValueError):
        water.calculate_catchment_gallons(1000, 30, 1.5)
    with pytest.raises(ValueError):
        water.calculate_catchment_gallons(1000, 30, -0.1)


def test_swale_capacity_trapezoid():
    """A 100 ft swale, 2 ft wide and 1 ft deep, with 2:1 side slopes."""
    assert water.calculate_swale_capacity(100, 2, 1) == 2992
    # vertical sides hold a plain rectangle
    assert water.calculate_swale_capacity(10, 1, 1, side_slope=0) == 75


def test_catchment_properties_and_summary():
    catchment = water.build_catchment_properties(1000, 30, 0.9, destination_feature_id="pond")
    swale = water.build_swale_properties(100, 2, 1)

    assert catchment["is_catchment"] is True
    assert catchment["estimated_capture_gallons"] == 16821
    assert catchment["destination_feature_id"] == "pond"
    assert swale["is_swale"] is True
    assert swale["estimated_volume_gallons"] == 2992

    summary = water.summarize_water(
        [{"catchment_properties": catchment}],
        [{"swale_properties": swale}, {"swale_properties": {}}],
    )
    assert summary["total_capture_gallons"] == 16821
    assert summary["total_storage_gallons"] == 2992


def test_polygon_area():
    """A 0.001 degree square is 364 ft on a side."""
    assert geometry.polygon_area_sqft(square(0.001)) == 132496
    assert geometry.polygon_area_sqft({"type": "LineString", "coordinates": [[0, 0], [1, 1]]}) == 0
    assert geometry.polygon_area_sqft(None) == 0


def test_line_length_one_degree_of_latitude():
    line = {"type": "LineString", "coordinates": [[-72.0, 42.0], [-72.0, 43.0]]}
    assert abs(geometry.line_length_feet(line) - 364813) <= 1
    assert geometry.line_length_feet({"type": "Polygon", "coordinates": []}) == 0


def test_polygon_to_line_uses_outer_ring():
    polygon = square(0.01)
    line = geometry.polygon_to_line(polygon)
    assert line["type"] == "LineString"
    assert line["coordinates"] == polygon["coordinates"][0]

    point = {"type": "Point", "coordinates": [1, 2]}
    assert geometry.polygon_to_line(point) is point


def test_polygon_center_ignores_closing_vertex():
    lat, lng = geometry.polygon_center(square(0.02, origin=(-72.0, 42.0)))
    assert lat == pytest.approx(42.01)
    assert lng == pytest.approx(-71.99)

    with pytest.raises(ValueError):
        geometry.polygon_center({"type": "Polygon", "coordinates": [[]]})


def test_zoom_for_polygon():
    assert geometry.zoom_for_polygon(square(0.01)) == 14
    assert geometry.zoom_for_polygon(square(0.001)) == 17
    assert geometry.zoom_for_polygon(square(5)) == 10
    assert geometry.zoom_for_polygon(square(0)) == 18


def test_acres_and_rounding():
    assert geometry.acres_from_sqft(43560) == 1.0
    assert geometry.acres_from_sqft(87120 + 4356) == 2.1
    assert geometry.round_half_up(2.5) == 3
    assert geometry.round_half_up(2.4999) == 2
