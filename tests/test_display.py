from parentmap.config.settings import WalkingSettings
from parentmap.features.display import format_distance, walking_display, walking_minutes

WALKING = WalkingSettings(minutes_per_km=12, far_threshold_minutes=30)


def test_format_distance_switches_units_at_one_km():
    assert format_distance(0.35) == "350m"
    assert format_distance(0.0) == "0m"
    assert format_distance(1.0) == "1.0km"
    assert format_distance(1.234) == "1.2km"


def test_walking_labels():
    assert walking_minutes(1.0, walking=WALKING) == 12
    assert walking_display(0.03, walking=WALKING) == "<1 min"
    assert walking_display(1.0, walking=WALKING) == "~12 min"
    assert walking_display(2.5, walking=WALKING) == "~30 min"
    assert walking_display(3.0, walking=WALKING) == "far"
