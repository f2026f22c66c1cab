import copy

from parentmap.core.geo import GeoPoint
from parentmap.core.proximity import within_radius
from parentmap.domain.models import FilterSpec, Place
from parentmap.features.filters import matches
from parentmap.features.sorting import SORT_MODES, sort_records

CENTER = GeoPoint(lat=22.30, lng=114.17)


def _places() -> list[Place]:
    rows = [
        ("a", 22.301, 114.171, "museum", True, [3, 12], "low"),
        ("b", 22.320, 114.160, "park", False, [0, 99], "free"),
        ("c", 22.300, 114.170, "playhouse", True, [1, 8], "medium"),
        ("d", 22.380, 114.190, "library", True, [0, 12], "free"),
        ("e", 22.301, 114.171, "restaurant", True, [0, 10], "high"),
    ]
    return [
        Place.model_validate(
            {
                "id": id,
                "name": id,
                "district": "尖沙咀",
                "lat": lat,
                "lng": lng,
                "category": category,
                "indoor": indoor,
                "ageRange": ages,
                "priceType": price,
            }
        )
        for id, lat, lng, category, indoor, ages, price in rows
    ]


def test_repeated_calls_give_identical_results_and_leave_inputs_untouched():
    places = _places()
    snapshot = copy.deepcopy(places)
    spec = FilterSpec(ages=["3-6"], prices=["low", "medium"], indoor="indoor")

    assert [matches(p, spec) for p in places] == [matches(p, spec) for p in places]

    for mode in SORT_MODES:
        first = sort_records(places, mode, CENTER)
        second = sort_records(places, mode, CENTER)
        assert [p.id for p in first] == [p.id for p in second]

    first = within_radius(places, CENTER, 3.0, limit=3, is_selected=lambda p: p.id == "d")
    second = within_radius(places, CENTER, 3.0, limit=3, is_selected=lambda p: p.id == "d")
    assert first == second

    assert places == snapshot
    assert spec == FilterSpec(ages=["3-6"], prices=["low", "medium"], indoor="indoor")
