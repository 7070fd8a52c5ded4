from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

CONDITIONS = ("new", "like_new", "good", "fair")
LISTING_STATUSES = ("draft", "pending_review", "active", "sold", "archived")


class Listing(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    slug: Optional[str] = None
    manufacturer_id: Optional[str] = None
    manufacturer_name: Optional[str] = None
    model_name: Optional[str] = None
    title: str = ""
    description: str = ""
    # minor currency units (cents)
    price: Optional[int] = None
    currency: str = "EUR"
    price_negotiable: bool = False
    year_built: Optional[int] = None
    condition: Optional[str] = None
    measuring_range_x: Optional[float] = None
    measuring_range_y: Optional[float] = None
    measuring_range_z: Optional[float] = None
    location_country: Optional[str] = None
    location_city: Optional[str] = None
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    featured: bool = False
    status: str = "active"

    @field_validator("measuring_range_x", "measuring_range_y", "measuring_range_z", mode="before")
    @classmethod
    def _finite_range(cls, value: Any) -> Any:
        # NaN and infinity count as unknown
        if isinstance(value, float) and not math.isfinite(value):
            return None
        if isinstance(value, str) and value.strip().lower() in ("nan", "inf", "+inf", "-inf", "infinity", "-infinity"):
            return None
        return value

    @field_validator("published_at", "created_at", mode="before")
    @classmethod
    def _blank_date(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("published_at", "created_at")
    @classmethod
    def _aware_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def effective_date(self) -> Optional[datetime]:
        return self.published_at or self.created_at

    @property
    def measuring_volume(self) -> Optional[float]:
        dims = (self.measuring_range_x, self.measuring_range_y, self.measuring_range_z)
        if any(d is None for d in dims):
            return None
        return dims[0] * dims[1] * dims[2]


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

_INT_FIELDS = ("price_min", "price_max", "year_min", "year_max")
_FLOAT_FIELDS = tuple(
    f"measuring_range_{axis}_{bound}" for axis in "xyz" for bound in ("min", "max")
)
_TUPLE_FIELDS = ("manufacturers", "conditions", "countries")


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _to_int(value: Any) -> Optional[int]:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    number = _to_float(value)
    return int(number) if number is not None else None


def _to_tuple(value: Any) -> Optional[Tuple[str, ...]]:
    if value is None:
        return None
    if isinstance(value, str):
        value = value.split(",")
    try:
        raw = [str(v).strip() for v in value if v is not None]
    except TypeError:
        return None
    items = tuple(dict.fromkeys(v for v in raw if v))
    return items or None


class ListingFilters(BaseModel):
    """Optional constraints over listings.

    Every field is optional and ``None`` means "no constraint on this
    dimension". Input is coerced leniently: blank strings, empty collections
    and unparsable numbers become ``None`` instead of raising.
    """

    model_config = ConfigDict(frozen=True)

    query: Optional[str] = None
    manufacturers: Optional[Tuple[str, ...]] = None
    conditions: Optional[Tuple[str, ...]] = None
    countries: Optional[Tuple[str, ...]] = None
    # cents
    price_min: Optional[int] = None
    price_max: Optional[int] = None
    year_min: Optional[int] = None
    year_max: Optional[int] = None
    measuring_range_x_min: Optional[float] = None
    measuring_range_x_max: Optional[float] = None
    measuring_range_y_min: Optional[float] = None
    measuring_range_y_max: Optional[float] = None
    measuring_range_z_min: Optional[float] = None
    measuring_range_z_max: Optional[float] = None

    @model_validator(mode="before")
    @classmethod
    def _coerce(cls, data: Any) -> Any:
        if isinstance(data, ListingFilters):
            data = data.model_dump()
        if not isinstance(data, dict):
            return {}
        cleaned = dict(data)
        query = cleaned.get("query")
        cleaned["query"] = (query.strip() or None) if isinstance(query, str) else None
        for name in _INT_FIELDS:
            cleaned[name] = _to_int(cleaned.get(name))
        for name in _FLOAT_FIELDS:
            cleaned[name] = _to_float(cleaned.get(name))
        for name in _TUPLE_FIELDS:
            cleaned[name] = _to_tuple(cleaned.get(name))
        return cleaned

    @property
    def is_empty(self) -> bool:
        return all(value is None for value in self.model_dump().values())

    def with_changes(self, **changes: Any) -> ListingFilters:
        return type(self).model_validate({**self.model_dump(), **changes})


class SearchState(BaseModel):
    model_config = ConfigDict(frozen=True)

    filters: ListingFilters = Field(default_factory=ListingFilters)
    sort_by: str = "relevance"
    page: int = 1


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------

class PlanFeatures(BaseModel):
    # -1 = unlimited
    max_listings: int = 1
    max_images_per_listing: int = 5
    max_team_members: int = 0
    featured_per_month: int = 0
    statistics: bool = False
    email_composer: bool = False
    lead_pipeline: bool = False
    auto_reply: bool = False
    team_management: bool = False
    api_access: bool = False
    support_level: str = "email"
