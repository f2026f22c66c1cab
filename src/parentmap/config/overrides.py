from __future__ import annotations

from typing import Any, Mapping

from parentmap.config.settings import Settings

"""
Per-request settings overrides (safe subset).

API callers can send `settings_overrides` (JSON) to tune a few geometry knobs for a
single request, e.g. a wider list radius or a larger carpark search. This module:
- validates the override payload against a whitelist,
- deep-merges the safe subset onto current settings,
- re-validates with Pydantic so ranges (radius >= 0, caps >= 1) still hold.

Upstream URLs, cache switches and the catalog path are never overridable.
"""

# A value of True allows any keys under that subtree; a nested dict restricts the
# subtree to the listed keys, recursively.
ALLOWED_SETTINGS_OVERRIDES_TREE: dict[str, Any] = {
    "features": {
        "browse": {"radius_km": True, "recenter_threshold_km": True, "default_sort": True},
        "viewport": True,
        "carparks": True,
        "walking": True,
    },
    "ingestion": {
        "rainfall": {"max_match_distance_km": True},
    },
}


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    # Build a new dict so the shared (lru_cached) settings payload is never mutated.
    merged: dict[str, Any] = dict(base)
    for key, override_value in override.items():
        if isinstance(override_value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _deep_merge(dict(merged[key]), override_value)
            continue
        merged[key] = override_value
    return merged


def _filter_overrides(
    overrides: Mapping[str, Any],
    *,
    allowed_tree: Mapping[str, Any],
    path: tuple[str, ...] = (),
) -> dict[str, Any]:
    filtered: dict[str, Any] = {}
    for key, value in overrides.items():
        if key not in allowed_tree:
            dotted_path = ".".join((*path, key))
            raise ValueError(f"settings_overrides contains a disallowed key: '{dotted_path}'")

        allowed = allowed_tree[key]
        if allowed is True:
            filtered[key] = value
            continue

        if not isinstance(value, Mapping):
            dotted_path = ".".join((*path, key))
            raise ValueError(f"settings_overrides key '{dotted_path}' must be a mapping")

        filtered[key] = _filter_overrides(value, allowed_tree=allowed, path=(*path, key))
    return filtered


def apply_settings_overrides(settings: Settings, overrides: Mapping[str, Any] | None) -> Settings:
    """Return `settings` with a whitelisted override payload merged in.

    Raises:
        ValueError: On a non-object payload, a disallowed key or a non-mapping value for a restricted subtree.
        pydantic.ValidationError: If the merged settings break a range constraint.
    """
    if not overrides:
        return settings
    if not isinstance(overrides, Mapping):
        raise ValueError("settings_overrides must be a JSON object")

    safe_overrides = _filter_overrides(overrides, allowed_tree=ALLOWED_SETTINGS_OVERRIDES_TREE)
    merged_payload = _deep_merge(settings.model_dump(mode="python"), safe_overrides)
    return Settings.model_validate(merged_payload)
