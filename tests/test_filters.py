import pytest
from pydantic import ValidationError

from parentmap.domain.models import FilterSpec, Place
from parentmap.features.filters import filter_places, matches, parse_age_bucket


def _place(**overrides) -> Place:
    data = {
        "id": "p1",
        "name": "香港科學館",
        "district": "尖沙咀",
        "lat": 22.3015,
        "lng": 114.1775,
        "category": "museum",
        "indoor": True,
        "ageRange": [3, 12],
        "priceType": "low",
    }
    data.update(overrides)
    return Place.model_validate(data)


def test_empty_filter_matches_everything():
    assert matches(_place(), FilterSpec())


def test_age_buckets_match_on_overlap():
    spec = FilterSpec(ages=["0-1", "3-6"])

    assert matches(_place(ageRange=[2, 4]), spec)
    assert not matches(_place(ageRange=[7, 10]), spec)


def test_open_ended_age_bucket():
    spec = FilterSpec(ages=["12+"])

    assert matches(_place(ageRange=[10, 14]), spec)
    assert matches(_place(ageRange=[14, 18]), spec)
    assert not matches(_place(ageRange=[0, 11]), spec)


def test_low_price_also_accepts_free():
    spec = FilterSpec(prices=["low"])

    assert matches(_place(priceType="free"), spec)
    assert matches(_place(priceType="low"), spec)
    assert not matches(_place(priceType="medium"), spec)


def test_region_matches_district_substring():
    assert matches(_place(), FilterSpec(regions=["尖沙"]))
    assert matches(_place(), FilterSpec(regions=["旺角", "尖沙咀"]))
    assert not matches(_place(), FilterSpec(regions=["沙田"]))


def test_indoor_modes():
    indoor, outdoor = _place(indoor=True), _place(indoor=False)

    assert matches(indoor, FilterSpec(indoor="indoor"))
    assert not matches(outdoor, FilterSpec(indoor="indoor"))
    assert matches(outdoor, FilterSpec(indoor="outdoor"))
    assert matches(indoor, FilterSpec(indoor="all")) and matches(outdoor, FilterSpec(indoor="all"))


def test_query_is_case_insensitive_over_name_district_and_category_label():
    playtown = _place(name="Playtown 奧海城", district="大角咀", category="playhouse")

    assert matches(playtown, FilterSpec(query="  PLAYTOWN "))
    assert matches(playtown, FilterSpec(query="大角"))
    assert matches(playtown, FilterSpec(query="遊樂場"))
    assert not matches(playtown, FilterSpec(query="museum"))


def test_favorites_only():
    spec = FilterSpec(favorites_only=True, favorites={"p1"})

    assert matches(_place(id="p1"), spec)
    assert not matches(_place(id="p2"), spec)
    # Without the flag the favorites set is ignored.
    assert matches(_place(id="p2"), FilterSpec(favorites={"p1"}))


def test_groups_are_and_ed():
    spec = FilterSpec(categories=["museum"], prices=["free"])

    assert matches(_place(priceType="free"), spec)
    assert not matches(_place(priceType="high"), spec)
    assert not matches(_place(category="park", priceType="free"), spec)


def test_filter_places_preserves_order():
    places = [_place(id="a"), _place(id="b", indoor=False), _place(id="c")]
    out = filter_places(places, FilterSpec(indoor="indoor"))
    assert [p.id for p in out] == ["a", "c"]


def test_invalid_age_labels_are_rejected():
    with pytest.raises(ValidationError):
        FilterSpec(ages=["toddler"])
    with pytest.raises(ValueError):
        parse_age_bucket("6-3")


def test_parse_age_bucket_shapes():
    assert parse_age_bucket("3-6").hi == 6
    bucket = parse_age_bucket("12+")
    assert (bucket.lo, bucket.hi) == (12, None)


def test_place_rejects_inverted_age_range():
    with pytest.raises(ValidationError):
        _place(ageRange=[8, 3])
