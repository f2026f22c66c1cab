# src/parentmap/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/parentmap/config/defaults.yaml`, then optionally overridden by:
- an external YAML file via `PARENTMAP_CONFIG_PATH`
- environment variables (e.g., `PARENTMAP_LOG_LEVEL`)

Design rule:
- Tuning knobs (radii, TTLs, caps) live in YAML, not hard-coded in business logic.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

from parentmap.core.env import load_dotenv_if_present


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `parentmap.config`."""
    text = resources.files("parentmap.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "ParentMap"
    timezone: str = "Asia/Hong_Kong"
    http_timeout_seconds: float = 15
    log_level: str = "INFO"


class CacheSettings(BaseModel):
    enabled: bool = True
    default_ttl_seconds: int = Field(60 * 60, gt=0)


class CatalogSettings(BaseModel):
    path: str = "data/places/locations.json"


class RainfallIngestionSettings(BaseModel):
    url: str
    cache_ttl_seconds: int = Field(600, gt=0)
    # Roughly half the nowcast grid spacing; farther matches are treated as "no data".
    max_match_distance_km: float = Field(1.0, ge=0)
    proxy_max_age_seconds: int = Field(300, ge=0)


class CarparkIngestionSettings(BaseModel):
    info_url: str
    vacancy_url: str
    vehicle_type: str = "privateCar"
    lang: str = "zh_TW"
    cache_ttl_seconds: int = Field(300, gt=0)


class IngestionSettings(BaseModel):
    rainfall: RainfallIngestionSettings
    carparks: CarparkIngestionSettings


class CenterSettings(BaseModel):
    lat: float = Field(22.32, ge=-90, le=90)
    lng: float = Field(114.17, ge=-180, le=180)


class BrowseSettings(BaseModel):
    default_center: CenterSettings = Field(default_factory=CenterSettings)
    radius_km: float = Field(4.0, ge=0)
    recenter_threshold_km: float = Field(0.5, ge=0)
    default_sort: Literal["default", "distance", "price_asc", "price_desc"] = "default"


class ViewportSettings(BaseModel):
    min_zoom: int = Field(13, ge=0, le=22)
    radius_km: float = Field(2.0, ge=0)
    max_items: int = Field(50, ge=1)


class CarparkFeatureSettings(BaseModel):
    radius_km: float = Field(1.0, ge=0)
    max_results: int = Field(5, ge=1)
    low_vacancy_threshold: int = Field(5, ge=0)


class WalkingSettings(BaseModel):
    minutes_per_km: float = Field(12.0, gt=0)
    far_threshold_minutes: int = Field(30, ge=0)


class FeaturesSettings(BaseModel):
    browse: BrowseSettings = Field(default_factory=BrowseSettings)
    viewport: ViewportSettings = Field(default_factory=ViewportSettings)
    carparks: CarparkFeatureSettings = Field(default_factory=CarparkFeatureSettings)
    walking: WalkingSettings = Field(default_factory=WalkingSettings)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    ingestion: IngestionSettings
    features: FeaturesSettings = Field(default_factory=FeaturesSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("PARENTMAP_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    cache_enabled = os.getenv("PARENTMAP_CACHE_ENABLED")
    if cache_enabled:
        data.setdefault("cache", {})["enabled"] = cache_enabled.strip().lower() in {"1", "true", "yes", "y"}

    catalog_path = os.getenv("PARENTMAP_CATALOG_PATH")
    if catalog_path:
        data.setdefault("catalog", {})["path"] = catalog_path

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("PARENTMAP_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
