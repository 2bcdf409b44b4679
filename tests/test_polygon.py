import json
import logging

import pytest

from fims.geometry import GeoPoint
from fims.polygon import Recognized, Unrecognized, normalize_polygon, polygon_for_farm
from fims.schemas import FarmRecord


TRIANGLE = (GeoPoint(9.0, 7.0), GeoPoint(9.1, 7.0), GeoPoint(9.1, 7.1))
HUGE_INT = "1" + "0" * 400


@pytest.mark.parametrize(
    "raw",
    [
        [{"lat": 9.0, "lng": 7.0}, {"lat": 9.1, "lng": 7.0}, {"lat": 9.1, "lng": 7.1}],
        [{"latitude": 9.0, "longitude": 7.0}, {"latitude": 9.1, "longitude": 7.0}, {"latitude": 9.1, "longitude": 7.1}],
        [{"lat": "9.0", "lon": "7.0"}, {"lat": "9.1", "lon": "7.0"}, {"lat": "9.1", "lon": "7.1"}],
        [9.0, 7.0, 9.1, 7.0, 9.1, 7.1],
        [[7.0, 9.0], [7.0, 9.1], [7.1, 9.1]],
        [[[7.0, 9.0], [7.0, 9.1], [7.1, 9.1], [7.0, 9.0]]],
        {"type": "Polygon", "coordinates": [[[7.0, 9.0], [7.0, 9.1], [7.1, 9.1], [7.0, 9.0]]]},
        {"type": "Feature", "geometry": {"type": "Polygon", "coordinates": [[[7.0, 9.0], [7.0, 9.1], [7.1, 9.1]]]}},
    ],
    ids=["lat-lng", "latitude-longitude", "string-numbers", "flat", "pairs", "ring", "geojson", "feature"],
)
def test_supported_shapes_normalize_to_the_same_points(raw):
    result = normalize_polygon(raw)

    assert isinstance(result, Recognized)
    assert result.points == TRIANGLE


def test_stringified_json_is_decoded():
    raw = json.dumps([{"lat": 9.0, "lng": 7.0}, {"lat": 9.1, "lng": 7.0}, {"lat": 9.1, "lng": 7.1}])
    result = normalize_polygon(raw)

    assert isinstance(result, Recognized)
    assert result.points == TRIANGLE


def test_multipolygon_uses_first_outer_ring_and_drops_altitude():
    raw = {
        "type": "MultiPolygon",
        "coordinates": [
            [[[7.0, 9.0, 310.0], [7.0, 9.1, 312.5], [7.1, 9.1, 300.0], [7.0, 9.0, 310.0]]],
            [[[8.0, 10.0], [8.0, 10.1], [8.1, 10.1]]],
        ],
    }
    result = normalize_polygon(raw)

    assert isinstance(result, Recognized)
    assert result.points == TRIANGLE


def test_insertion_order_is_preserved():
    raw = [{"lat": 3, "lng": 3}, {"lat": 1, "lng": 1}, {"lat": 2, "lng": 2}]
    result = normalize_polygon(raw)

    assert [p.lat for p in result.points] == [3.0, 1.0, 2.0]


def test_single_point_object_is_recognized():
    result = normalize_polygon({"lat": 9.0, "lng": 7.0})

    assert result == Recognized((GeoPoint(9.0, 7.0),))


@pytest.mark.parametrize(
    "raw",
    [
        "not json at all",
        "[1, 2,",
        '"[1, 2]"',
        [9.0, 7.0, 9.1],
        [{"x": 1, "y": 2}],
        [{"lat": 9.0, "lng": None}],
        [[7.0, "a"], [7.0, 9.1]],
        [{"lat": 9.0, "lng": 7.0}, [7.0, 9.1]],
        {"type": "Polygon", "coordinates": "nope"},
        {"name": "farm"},
        42,
        [],
        f"[{HUGE_INT}, 7.0, 9.1, 7.0, 9.1, 7.1]",
        f'[{{"lat": {HUGE_INT}, "lng": 7.0}}, {{"lat": 9.1, "lng": 7.0}}, {{"lat": 9.1, "lng": 7.1}}]',
        f"[[7.0, {HUGE_INT}], [7.0, 9.1], [7.1, 9.1]]",
        [{"lat": "1e400", "lng": 7.0}],
    ],
)
def test_unrecognized_shapes_never_raise(raw):
    assert isinstance(normalize_polygon(raw), Unrecognized)


def test_unrecognized_shape_is_logged(caplog):
    with caplog.at_level(logging.WARNING, logger="fims.polygon"):
        normalize_polygon("{broken")

    assert "Unrecognized farm polygon" in caplog.text


def test_missing_polygon_is_not_logged(caplog):
    with caplog.at_level(logging.WARNING, logger="fims.polygon"):
        result = normalize_polygon(None)

    assert result == Unrecognized("missing")
    assert caplog.text == ""


def test_farm_prefers_coordinates_over_polygon():
    farm = FarmRecord(
        farm_coordinates=[[7.0, 9.0], [7.0, 9.1], [7.1, 9.1]],
        farm_polygon=[{"lat": 1, "lng": 1}, {"lat": 2, "lng": 2}, {"lat": 3, "lng": 1}],
    )
    assert polygon_for_farm(farm).points == TRIANGLE


def test_farm_falls_back_to_polygon_when_coordinates_unusable():
    farm = FarmRecord(
        farm_coordinates="garbage",
        farm_polygon=[{"lat": 9.0, "lng": 7.0}, {"lat": 9.1, "lng": 7.0}, {"lat": 9.1, "lng": 7.1}],
    )
    assert polygon_for_farm(farm).points == TRIANGLE


def test_farm_without_any_boundary_is_missing():
    assert polygon_for_farm(FarmRecord()) == Unrecognized("missing")
