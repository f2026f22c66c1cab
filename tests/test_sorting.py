import pytest

from parentmap.core.errors import MissingReferenceError
from parentmap.core.geo import GeoPoint
from parentmap.features.sorting import sort_records


class _Rec:
    def __init__(self, id: str, price_type: str = "free", lat: float = 22.3, lng: float = 114.17):
        self.id = id
        self.price_type = price_type
        self.lat = lat
        self.lng = lng


def _ids(records):
    return [r.id for r in records]


def test_default_keeps_order_and_returns_new_list():
    records = [_Rec("b"), _Rec("a")]
    out = sort_records(records)
    assert _ids(out) == ["b", "a"]
    assert out is not records


def test_distance_sort_requires_reference():
    with pytest.raises(MissingReferenceError):
        sort_records([_Rec("a")], "distance")


def test_distance_sort_nearest_first_with_invalid_locations_last():
    ref = GeoPoint(lat=22.30, lng=114.17)
    records = [
        _Rec("broken", lat=95.0),
        _Rec("far", lat=22.40),
        _Rec("near", lat=22.301),
    ]

    assert _ids(sort_records(records, "distance", ref)) == ["near", "far", "broken"]


def test_price_sorts_are_stable():
    records = [
        _Rec("m1", "medium"),
        _Rec("f1", "free"),
        _Rec("h1", "high"),
        _Rec("m2", "medium"),
        _Rec("f2", "free"),
    ]

    assert _ids(sort_records(records, "price_asc")) == ["f1", "f2", "m1", "m2", "h1"]
    assert _ids(sort_records(records, "price_desc")) == ["h1", "m1", "m2", "f1", "f2"]


def test_unknown_mode_raises():
    with pytest.raises(ValueError, match="Unknown sort mode"):
        sort_records([_Rec("a")], "rating")
