import math
import random

import pytest

from parentmap.core.geo import EARTH_RADIUS_KM, GeoPoint, distance_km
from parentmap.core.proximity import Ranked, nearest, within_radius

CENTER = GeoPoint(lat=22.30, lng=114.17)

# Along a meridian the haversine distance is exactly R * dlat (radians).
KM_PER_DEG_LAT = EARTH_RADIUS_KM * math.pi / 180


def _north_of(center: GeoPoint, km: float) -> dict:
    return {"lat": center.lat + km / KM_PER_DEG_LAT, "lng": center.lng}


def _venues():
    return [
        {"id": "far", **_north_of(CENTER, 5.0)},
        {"id": "near", **_north_of(CENTER, 0.3)},
        {"id": "mid", **_north_of(CENTER, 1.2)},
    ]


def test_within_radius_keeps_only_venues_inside_and_orders_by_distance():
    out = within_radius(_venues(), CENTER, 4.0)

    assert [r.record["id"] for r in out] == ["near", "mid"]
    assert out[0].distance_km == pytest.approx(0.3)
    assert out[1].distance_km == pytest.approx(1.2)


def test_within_radius_includes_boundary():
    records = [{"id": "edge", **_north_of(CENTER, 1.2)}]
    exact = distance_km(CENTER, GeoPoint(lat=records[0]["lat"], lng=records[0]["lng"]))
    assert [r.record["id"] for r in within_radius(records, CENTER, exact)] == ["edge"]


def test_within_radius_does_not_mutate_input():
    records = _venues()
    snapshot = [dict(r) for r in records]
    within_radius(records, CENTER, 4.0, limit=1)
    assert records == snapshot


def test_within_radius_limit_and_ties_keep_input_order():
    same = _north_of(CENTER, 0.5)
    records = [{"id": "b", **same}, {"id": "a", **same}, {"id": "c", **_north_of(CENTER, 0.1)}]

    out = within_radius(records, CENTER, 1.0, limit=2)

    assert [r.record["id"] for r in out] == ["c", "b"]


def test_within_radius_pins_selected_record_first_even_outside_radius():
    out = within_radius(_venues(), CENTER, 4.0, is_selected=lambda r: r["id"] == "far")

    assert [r.record["id"] for r in out] == ["far", "near", "mid"]
    assert out[0].distance_km == pytest.approx(5.0)


def test_within_radius_limit_counts_pinned_records():
    out = within_radius(_venues(), CENTER, 4.0, limit=2, is_selected=lambda r: r["id"] == "far")
    assert [r.record["id"] for r in out] == ["far", "near"]


def test_within_radius_skips_records_with_invalid_coordinates():
    records = _venues() + [{"id": "broken", "lat": 200, "lng": 0}, {"id": "missing"}]
    out = within_radius(records, CENTER, 10.0)
    assert [r.record["id"] for r in out] == ["near", "mid", "far"]


def test_within_radius_rejects_negative_arguments():
    with pytest.raises(ValueError):
        within_radius(_venues(), CENTER, -1)
    with pytest.raises(ValueError):
        within_radius(_venues(), CENTER, 1, limit=-1)


def test_within_radius_matches_brute_force_scan():
    rng = random.Random(42)
    records = [
        {"id": str(i), "lat": 22.2 + rng.random() * 0.3, "lng": 114.0 + rng.random() * 0.3}
        for i in range(300)
    ]
    radius = 6.0

    expected = {
        r["id"]
        for r in records
        if distance_km(CENTER, GeoPoint(lat=r["lat"], lng=r["lng"])) <= radius
    }
    out = within_radius(records, CENTER, radius)

    assert {r.record["id"] for r in out} == expected
    distances = [r.distance_km for r in out]
    assert distances == sorted(distances)


def test_within_radius_accepts_a_custom_point_accessor():
    records = [("x", GeoPoint(lat=22.301, lng=114.17))]
    out = within_radius(records, CENTER, 1.0, get_point=lambda r: r[1])
    assert out[0].record[0] == "x"


def test_nearest_returns_rainfall_cell_for_nearby_venue():
    cells = [
        {"lat": 22.300, "lng": 114.170, "rainfall": 3.2},
        {"lat": 22.350, "lng": 114.220, "rainfall": 0.0},
    ]

    match = nearest(cells, GeoPoint(lat=22.301, lng=114.171), max_distance_km=1.0)

    assert isinstance(match, Ranked)
    assert match.record["rainfall"] == 3.2
    assert match.distance_km < 0.2


def test_nearest_returns_none_when_nothing_is_close_enough():
    cells = [{"lat": 22.300, "lng": 114.170, "rainfall": 3.2}]
    assert nearest(cells, GeoPoint(lat=22.40, lng=114.30), max_distance_km=1.0) is None


def test_nearest_ties_keep_first_record():
    cells = [{"id": "first", "lat": 22.3, "lng": 114.17}, {"id": "second", "lat": 22.3, "lng": 114.17}]
    match = nearest(cells, GeoPoint(lat=22.31, lng=114.17), max_distance_km=5)
    assert match.record["id"] == "first"


def test_nearest_edge_cases():
    assert nearest([], CENTER, max_distance_km=10) is None
    exact = nearest([{"lat": 22.30, "lng": 114.17}], CENTER, max_distance_km=0)
    assert exact is not None and exact.distance_km == 0.0
    with pytest.raises(ValueError):
        nearest([], CENTER, max_distance_km=-0.1)


@pytest.mark.parametrize("max_km", [0.5, 2.0, 5.0, 50.0])
def test_nearest_matches_brute_force_minimum(max_km):
    rng = random.Random(7)
    records = [
        {"id": str(i), "lat": 22.2 + rng.random() * 0.3, "lng": 114.0 + rng.random() * 0.3}
        for i in range(200)
    ]

    for _ in range(20):
        query = GeoPoint(lat=22.2 + rng.random() * 0.3, lng=114.0 + rng.random() * 0.3)
        distances = [distance_km(query, GeoPoint(lat=r["lat"], lng=r["lng"])) for r in records]
        best = min(distances)

        match = nearest(records, query, max_distance_km=max_km)

        if best > max_km:
            assert match is None
        else:
            assert match is not None
            assert match.distance_km == best
            assert match.record is records[distances.index(best)]
