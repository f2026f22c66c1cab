import math

import pytest

from parentmap.browse.pipeline import browse_places, should_offer_recenter, visible_on_map
from parentmap.config.overrides import apply_settings_overrides
from parentmap.config.settings import get_settings
from parentmap.core.geo import EARTH_RADIUS_KM, GeoPoint
from parentmap.domain.models import FilterSpec, Place

CENTER = GeoPoint(lat=22.30, lng=114.17)
KM_PER_DEG_LAT = EARTH_RADIUS_KM * math.pi / 180


def _place(id: str, km_north: float, **overrides) -> Place:
    data = {
        "id": id,
        "name": id,
        "district": "尖沙咀",
        "lat": CENTER.lat + km_north / KM_PER_DEG_LAT,
        "lng": CENTER.lng,
        "category": "park",
        "indoor": False,
        "ageRange": [0, 12],
        "priceType": "free",
    }
    data.update(overrides)
    return Place.model_validate(data)


def _places():
    return [
        _place("mid", 1.2, priceType="medium"),
        _place("far", 5.0),
        _place("near", 0.3, priceType="high"),
        _place("near-indoor", 0.5, indoor=True, category="museum", priceType="low"),
    ]


def _ids(result):
    return [item.place.id for item in result.items]


def test_browse_filters_then_restricts_by_radius_keeping_filter_order():
    result = browse_places(_places(), FilterSpec(), settings=get_settings(), center=CENTER, radius_km=4)

    assert _ids(result) == ["mid", "near", "near-indoor"]
    assert result.total == 3
    assert result.radius_km == 4
    assert result.center == {"lat": CENTER.lat, "lng": CENTER.lng}


def test_browse_distance_sort_and_display_labels():
    result = browse_places(
        _places(), FilterSpec(), settings=get_settings(), center=CENTER, radius_km=4, sort="distance"
    )

    assert _ids(result) == ["near", "near-indoor", "mid"]
    first = result.items[0]
    assert first.distance_km == pytest.approx(0.3)
    assert first.distance_display == "300m"
    assert first.walking_display == "~4 min"


def test_browse_price_sort_with_attribute_filter():
    result = browse_places(
        _places(),
        FilterSpec(prices=["low", "high"]),
        settings=get_settings(),
        center=CENTER,
        sort="price_asc",
    )

    assert _ids(result) == ["near-indoor", "near"]


def test_browse_reference_differs_from_center():
    user = GeoPoint(lat=CENTER.lat + 1.2 / KM_PER_DEG_LAT, lng=CENTER.lng)

    result = browse_places(
        _places(), FilterSpec(), settings=get_settings(), center=CENTER, sort="distance", reference=user
    )

    assert _ids(result)[0] == "mid"
    assert result.items[0].distance_km == pytest.approx(0.0, abs=1e-9)


def test_browse_selected_place_is_pinned_first_even_outside_radius():
    result = browse_places(
        _places(), FilterSpec(), settings=get_settings(), center=CENTER, radius_km=4, selected_id="far", limit=2
    )

    assert _ids(result) == ["far", "mid"]
    assert result.items[0].selected is True
    assert result.total == 4


def test_browse_selected_place_still_has_to_pass_attribute_filter():
    result = browse_places(
        _places(), FilterSpec(indoor="indoor"), settings=get_settings(), center=CENTER, selected_id="far"
    )
    assert _ids(result) == ["near-indoor"]


def test_browse_uses_configured_radius_and_overrides():
    settings = apply_settings_overrides(get_settings(), {"features": {"browse": {"radius_km": 1.0}}})

    result = browse_places(_places(), FilterSpec(), settings=settings, center=CENTER)

    assert _ids(result) == ["near", "near-indoor"]
    assert result.radius_km == 1.0


def test_visible_on_map_below_min_zoom_shows_only_selected():
    settings = get_settings()
    places = _places()

    assert visible_on_map(places, CENTER, 10, settings=settings) == []
    assert [p.id for p in visible_on_map(places, CENTER, 10, settings=settings, selected_id="far")] == ["far"]


def test_visible_on_map_caps_and_orders_markers():
    settings = apply_settings_overrides(get_settings(), {"features": {"viewport": {"max_items": 2}}})

    markers = visible_on_map(_places(), CENTER, 15, settings=settings)

    assert [p.id for p in markers] == ["near", "near-indoor"]


def test_should_offer_recenter_after_threshold():
    settings = get_settings()
    moved = GeoPoint(lat=CENTER.lat + 0.6 / KM_PER_DEG_LAT, lng=CENTER.lng)
    nudged = GeoPoint(lat=CENTER.lat + 0.2 / KM_PER_DEG_LAT, lng=CENTER.lng)

    assert should_offer_recenter(CENTER, moved, settings=settings)
    assert not should_offer_recenter(CENTER, nudged, settings=settings)
