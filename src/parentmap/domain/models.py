"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- catalog entities (`Place`)
- filter inputs (`FilterSpec`, see `parentmap.features.filters` for the predicate)
- presentation-ready output (`PlaceView`, `BrowseResult`)

Field aliases follow the venue dataset's JSON (`ageRange`, `priceType`, ...), so the
catalog loads as-is while Python code uses snake_case.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from parentmap.core.geo import GeoPoint

Category = Literal["playhouse", "park", "museum", "restaurant", "library"]
PriceTier = Literal["free", "low", "medium", "high"]
IndoorMode = Literal["all", "indoor", "outdoor"]

CATEGORY_LABELS: dict[str, str] = {
    "playhouse": "🎪 遊樂場",
    "park": "🌳 公園",
    "museum": "🏛️ 博物館",
    "restaurant": "🍽️ 親子餐廳",
    "library": "📚 圖書館",
}

PRICE_RANK: dict[str, int] = {"free": 0, "low": 1, "medium": 2, "high": 3}

PRICE_SYMBOLS: dict[str, str] = {
    "free": "免費",
    "low": "$",
    "medium": "$$",
    "high": "$$$",
}

_SLUG_STRIP = re.compile(r"[^\w\s\u4e00-\u9fa5-]")


def slugify(name: str) -> str:
    """URL slug that keeps CJK characters (max 50 chars)."""
    slug = _SLUG_STRIP.sub("", name.lower())
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+$", "", slug)
    return slug[:50]


@dataclass(frozen=True)
class AgeBucket:
    """An inclusive age interval selected in the filter UI; `hi` is None for open-ended."""

    label: str
    lo: int
    hi: int | None

    def overlaps(self, age_range: tuple[int, int]) -> bool:
        # "12+" means any overlap with [12, inf), not only ranges that contain 12.
        lo, hi = age_range
        if self.hi is not None and lo > self.hi:
            return False
        return hi >= self.lo


def parse_age_bucket(label: str) -> AgeBucket:
    """Parse "0-1" / "3-6" / "12+" style labels.

    Raises:
        ValueError: If the label is not one of those shapes or lo > hi.
    """
    text = str(label).strip()
    m = re.fullmatch(r"(\d+)\s*-\s*(\d+)", text)
    if m:
        lo, hi = int(m.group(1)), int(m.group(2))
        if lo > hi:
            raise ValueError(f"Invalid age bucket '{label}': min > max")
        return AgeBucket(label=text, lo=lo, hi=hi)
    m = re.fullmatch(r"(\d+)\s*\+", text)
    if m:
        return AgeBucket(label=text, lo=int(m.group(1)), hi=None)
    raise ValueError(f"Invalid age bucket '{label}', expected 'MIN-MAX' or 'MIN+'")


class Place(BaseModel):
    """A family-friendly venue from the static catalog."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    name: str
    name_en: str | None = Field(default=None, alias="nameEn")
    district: str
    region: str = ""
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    category: Category
    indoor: bool
    age_range: tuple[int, int] = Field(..., alias="ageRange")
    price_type: PriceTier = Field(..., alias="priceType")

    price_description: str | None = Field(default=None, alias="priceDescription")
    description: str | None = None
    address: str | None = None
    opening_hours: str | None = Field(default=None, alias="openingHours")
    tips: str | None = None
    website: str | None = None
    facebook_url: str | None = None
    instagram_url: str | None = None

    has_baby_room: bool | None = Field(default=None, alias="hasBabyRoom")
    has_stroller_access: bool | None = Field(default=None, alias="hasStrollerAccess")
    has_restaurant: bool | None = Field(default=None, alias="hasRestaurant")
    rainy_day_suitable: bool | None = Field(default=None, alias="rainyDaySuitable")

    @field_validator("age_range")
    @classmethod
    def _validate_age_range(cls, value: tuple[int, int]) -> tuple[int, int]:
        lo, hi = value
        if lo < 0 or lo > hi:
            raise ValueError("ageRange must be [min, max] with 0 <= min <= max")
        return value

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lng=self.lng)

    @property
    def slug(self) -> str:
        return slugify(self.name)

    @property
    def category_label(self) -> str:
        return CATEGORY_LABELS.get(self.category, self.category)

    @property
    def link_url(self) -> str | None:
        """Best outbound link: website, else Facebook, else Instagram."""
        return self.website or self.facebook_url or self.instagram_url or None


class FilterSpec(BaseModel):
    """User-selected filters; empty groups impose no constraint.

    Values inside a group are OR-ed, non-empty groups are AND-ed.
    """

    regions: list[str] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    ages: list[str] = Field(default_factory=list)
    prices: list[PriceTier] = Field(default_factory=list)
    indoor: IndoorMode = "all"
    query: str = ""
    favorites_only: bool = False
    favorites: set[str] = Field(default_factory=set)

    @field_validator("ages")
    @classmethod
    def _validate_ages(cls, ages: list[str]) -> list[str]:
        for label in ages:
            parse_age_bucket(label)
        return ages

    @property
    def age_buckets(self) -> list[AgeBucket]:
        return [parse_age_bucket(label) for label in self.ages]


class PlaceView(BaseModel):
    """A place plus display-ready distance/walking info relative to a reference."""

    place: Place
    distance_km: float | None = None
    distance_display: str | None = None
    walking_minutes: int | None = None
    walking_display: str | None = None
    selected: bool = False


class BrowseResult(BaseModel):
    """One filtering pass: the query geometry plus ordered items."""

    center: dict[str, float]
    radius_km: float
    sort: str
    total: int
    items: list[PlaceView]
