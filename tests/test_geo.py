import math

import pytest

from parentmap.core.errors import InvalidCoordinateError
from parentmap.core.geo import EARTH_RADIUS_KM, GeoPoint, distance_km, point_of


def test_distance_is_zero_for_same_point():
    p = GeoPoint(lat=22.3, lng=114.17)
    assert distance_km(p, p) == 0.0


def test_distance_is_symmetric():
    a = GeoPoint(lat=22.3015, lng=114.1775)
    b = GeoPoint(lat=22.2776, lng=114.1617)
    assert distance_km(a, b) == pytest.approx(distance_km(b, a))


def test_one_degree_of_latitude_matches_earth_radius():
    a = GeoPoint(lat=0, lng=0)
    b = GeoPoint(lat=1, lng=0)
    assert distance_km(a, b) == pytest.approx(EARTH_RADIUS_KM * math.pi / 180)


def test_antipodal_points_do_not_produce_nan():
    d = distance_km(GeoPoint(lat=0, lng=0), GeoPoint(lat=0, lng=180))
    assert math.isfinite(d)
    assert d == pytest.approx(math.pi * EARTH_RADIUS_KM)


@pytest.mark.parametrize(
    "lat,lng",
    [(91, 0), (-90.5, 0), (0, 181), (0, -180.01), (float("nan"), 0), (0, float("inf")), ("abc", 0), (None, 0)],
)
def test_invalid_coordinates_raise(lat, lng):
    with pytest.raises(InvalidCoordinateError):
        GeoPoint(lat=lat, lng=lng)


def test_invalid_coordinate_error_is_a_value_error():
    with pytest.raises(ValueError):
        GeoPoint(lat=100, lng=0)


def test_numeric_strings_are_coerced():
    p = GeoPoint(lat="22.30", lng="114.17")
    assert p == GeoPoint(lat=22.30, lng=114.17)


class _WithPoint:
    point = GeoPoint(lat=1, lng=2)


class _WithLatLng:
    lat = 3.0
    lng = 4.0


def test_point_of_accepts_common_record_shapes():
    assert point_of(GeoPoint(lat=1, lng=2)) == GeoPoint(lat=1, lng=2)
    assert point_of(_WithPoint()) == GeoPoint(lat=1, lng=2)
    assert point_of(_WithLatLng()) == GeoPoint(lat=3, lng=4)
    assert point_of({"lat": 5, "lng": 6, "name": "x"}) == GeoPoint(lat=5, lng=6)


def test_point_of_rejects_records_without_location():
    with pytest.raises(InvalidCoordinateError):
        point_of({"name": "no location"})
    with pytest.raises(InvalidCoordinateError):
        point_of(object())
