import math

import pytest

from src.geodispatch.models.domain import Coordinate
from src.geodispatch.services.geospatial import distance_km, haversine_km, parse_lat_lng


def test_haversine_zero_and_symmetric():
    assert haversine_km(10.0, 106.0, 10.0, 106.0) == 0.0
    a, b = Coordinate(10.7769, 106.7009), Coordinate(21.0285, 105.8542)
    assert distance_km(a, b) == pytest.approx(distance_km(b, a))
    assert distance_km(a, b) == pytest.approx(1140, rel=0.02)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("10.7769,106.7009", Coordinate(10.7769, 106.7009)),
        (" 10.7769 ; 106.7009 ", Coordinate(10.7769, 106.7009)),
        ("10.7769 106.7009", Coordinate(10.7769, 106.7009)),
        ("-33.9,151.2", Coordinate(-33.9, 151.2)),
    ],
)
def test_parse_lat_lng_accepts_literals(text, expected):
    assert parse_lat_lng(text) == expected


@pytest.mark.parametrize(
    "text",
    [None, "", "10.7769", "10,106,1", "abc,106", "91,106", "10,181", "nan,106", "123 Nguyen Trai"],
)
def test_parse_lat_lng_rejects_everything_else(text):
    assert parse_lat_lng(text) is None


def test_coordinate_rejects_out_of_range():
    with pytest.raises(ValueError):
        Coordinate(95.0, 0.0)


def test_haversine_handles_antipodal_points():
    half_circumference = math.pi * 6371.0
    points = [(-89.18, 1.096), (-87.92, 3.014), (0.0, 0.0), (45.0, 90.0), (10.7769, 106.7009)]
    points += [(lat / 7.0, lng / 3.0) for lat in range(-630, 631, 45) for lng in range(-540, 541, 60)]

    for lat, lng in points:
        distance = haversine_km(lat, lng, -lat, lng - 180.0)
        assert 0.0 <= distance <= half_circumference + 1e-6
        assert distance == pytest.approx(half_circumference, rel=1e-6)
