"""In-memory search for property and service listings.

Listings are fetched in full and narrowed here with one conjunctive pass,
then ordered by one of a fixed set of comparators. Functions accept ORM
objects or plain mappings so the same code serves the routes and the tests.
"""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, Field, field_validator

PROPERTY_SORTS = ("relevance", "featured", "newest", "price-low", "price-high", "rating")
SERVICE_SORTS = ("rating", "reviews", "price-low", "price-high")

_BEDROOMS_RE = re.compile(r"^(\d+)(\+?)$")
_AMOUNT_RE = re.compile(r"\d[\d,]*(?:\.\d+)?")


def _get(item: Any, name: str, default: Any = None) -> Any:
    if isinstance(item, Mapping):
        return item.get(name, default)
    return getattr(item, name, default)


def _fold(value: Any) -> str:
    return str(value or "").strip().lower()


class PropertyFilters(BaseModel):
    query: Optional[str] = None
    locations: List[str] = Field(default_factory=list)
    min_price: Optional[int] = Field(default=None, ge=0)
    max_price: Optional[int] = Field(default=None, ge=0)
    # Exact count ("2") or a floor ("5+")
    bedrooms: Optional[str] = None
    property_types: List[str] = Field(default_factory=list)
    amenities: List[str] = Field(default_factory=list)

    @field_validator("query", mode="before")
    @classmethod
    def blank_query_is_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("bedrooms", mode="before")
    @classmethod
    def normalize_bedrooms(cls, v: Union[int, str, None]) -> Optional[str]:
        if v is None or v == "":
            return None
        text = str(v)
        # An unescaped "+" in a query string decodes to a trailing space
        if text != text.rstrip() and text.strip().isdigit():
            text = text.strip() + "+"
        text = text.strip().lower()
        if text.endswith("plus"):
            text = text[: -len("plus")].strip() + "+"
        if not _BEDROOMS_RE.match(text):
            raise ValueError("bedrooms must be a whole number, optionally followed by '+'")
        return text

    @field_validator("locations", "property_types", "amenities", mode="before")
    @classmethod
    def drop_blank_entries(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple, set)):
            return [s.strip() for s in v if isinstance(s, str) and s.strip()]
        return v


def active_filter_count(filters: PropertyFilters) -> int:
    """Number of active filter-panel selections (the free-text query is not counted)."""
    count = len(filters.locations) + len(filters.property_types) + len(filters.amenities)
    if filters.min_price is not None or filters.max_price is not None:
        count += 1
    if filters.bedrooms:
        count += 1
    return count


def _matches_bedrooms(value: Optional[int], wanted: str) -> bool:
    if value is None:
        return False
    m = _BEDROOMS_RE.match(wanted)
    count, at_least = int(m.group(1)), bool(m.group(2))  # type: ignore[union-attr]
    return value >= count if at_least else value == count


def property_matches(item: Any, filters: PropertyFilters) -> bool:
    if filters.query:
        needle = filters.query.lower()
        haystack = (_fold(_get(item, "title")), _fold(_get(item, "description")), _fold(_get(item, "location")))
        if not any(needle in h for h in haystack):
            return False

    if filters.locations:
        if _fold(_get(item, "location")) not in {_fold(loc) for loc in filters.locations}:
            return False

    price = _get(item, "price")
    if filters.min_price is not None and (price is None or price < filters.min_price):
        return False
    if filters.max_price is not None and (price is None or price > filters.max_price):
        return False

    if filters.bedrooms and not _matches_bedrooms(_get(item, "bedrooms"), filters.bedrooms):
        return False

    if filters.property_types:
        if _fold(_get(item, "property_type")) not in {_fold(t) for t in filters.property_types}:
            return False

    if filters.amenities:
        features = {_fold(f) for f in (_get(item, "features") or [])}
        if not all(_fold(a) in features for a in filters.amenities):
            return False

    return True


def filter_properties(items: Iterable[Any], filters: PropertyFilters) -> list:
    """Keep the listings that satisfy every active predicate, in input order."""
    return [item for item in items if property_matches(item, filters)]


def _timestamp(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        # SQLite hands back naive datetimes; stored values are UTC
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def sort_properties(items: Iterable[Any], sort_by: Optional[str] = "relevance") -> list:
    """
    Order listings by one of PROPERTY_SORTS. All sorts are stable.

    - relevance/featured: featured first, then newest
    - newest: created_at descending
    - price-low / price-high: price ascending / descending
    - rating: highest rated first, unrated last
    Unknown keys fall back to relevance.
    """
    rows = list(items)
    if sort_by == "price-low":
        return sorted(rows, key=lambda p: _get(p, "price") or 0)
    if sort_by == "price-high":
        return sorted(rows, key=lambda p: _get(p, "price") or 0, reverse=True)
    if sort_by == "newest":
        return sorted(rows, key=lambda p: _timestamp(_get(p, "created_at")), reverse=True)
    if sort_by == "rating":
        return sorted(rows, key=lambda p: (_get(p, "rating") is None, -(_get(p, "rating") or 0.0)))
    return sorted(
        rows,
        key=lambda p: (not _get(p, "is_featured", False), -_timestamp(_get(p, "created_at"))),
    )


def distinct_values(items: Iterable[Any], name: str) -> list[str]:
    """Sorted distinct non-empty values of one attribute."""
    return sorted({v for v in (_get(i, name) for i in items) if v})


# Services marketplace


def price_range_floor(price_range: Optional[str]) -> float:
    """
    First amount in a display price range, e.g. 'P400 - P2,000' -> 400.0.

    Ranges without a number sort as 0.
    """
    if not price_range:
        return 0.0
    m = _AMOUNT_RE.search(price_range)
    if not m:
        return 0.0
    return float(m.group(0).replace(",", ""))


def service_matches(item: Any, query: Optional[str] = None, category: Optional[str] = None) -> bool:
    if category and category != "all" and _get(item, "category") != category:
        return False
    if query:
        needle = query.strip().lower()
        if needle:
            offered = [_fold(s) for s in (_get(item, "services") or [])]
            if not (
                needle in _fold(_get(item, "name"))
                or needle in _fold(_get(item, "description"))
                or any(needle in s for s in offered)
            ):
                return False
    return True


def filter_services(items: Iterable[Any], query: Optional[str] = None, category: Optional[str] = None) -> list:
    return [item for item in items if service_matches(item, query, category)]


def sort_services(items: Sequence[Any], sort_by: Optional[str] = "rating") -> list:
    rows = list(items)
    if sort_by == "reviews":
        return sorted(rows, key=lambda s: _get(s, "reviews") or 0, reverse=True)
    if sort_by == "price-low":
        return sorted(rows, key=lambda s: price_range_floor(_get(s, "price_range")))
    if sort_by == "price-high":
        return sorted(rows, key=lambda s: price_range_floor(_get(s, "price_range")), reverse=True)
    if sort_by == "rating":
        return sorted(rows, key=lambda s: _get(s, "rating") or 0.0, reverse=True)
    return rows
