from __future__ import annotations

from typing import Callable, Iterable, Optional

from .countries import CountryTable, DEFAULT_COUNTRY_TABLE
from .schema import Listing, ListingFilters

Predicate = Callable[[Listing], bool]


def _text_clause(query: str) -> Predicate:
    needle = query.casefold()

    def clause(listing: Listing) -> bool:
        haystack = (
            listing.title,
            listing.description,
            listing.manufacturer_name,
            listing.model_name,
        )
        return any(needle in field.casefold() for field in haystack if field)

    return clause


def _member_clause(getter: Callable[[Listing], Optional[str]], allowed: Iterable[str]) -> Predicate:
    allowed_set = frozenset(allowed)
    return lambda listing: getter(listing) in allowed_set


def _range_clause(
    getter: Callable[[Listing], Optional[float]],
    lower: Optional[float],
    upper: Optional[float],
) -> Predicate:
    def clause(listing: Listing) -> bool:
        value = getter(listing)
        # a missing value never satisfies a populated range
        if value is None:
            return False
        if lower is not None and value < lower:
            return False
        if upper is not None and value > upper:
            return False
        return True

    return clause


def build_predicate(
    filters: ListingFilters,
    countries: Optional[CountryTable] = None,
) -> Predicate:
    table = countries or DEFAULT_COUNTRY_TABLE
    clauses: list[Predicate] = []

    if filters.query:
        clauses.append(_text_clause(filters.query))

    if filters.manufacturers:
        clauses.append(_member_clause(lambda l: l.manufacturer_id, filters.manufacturers))

    if filters.conditions:
        clauses.append(_member_clause(lambda l: l.condition, filters.conditions))

    if filters.countries:
        codes = {table.normalize(c) for c in filters.countries}
        clauses.append(
            _member_clause(lambda l: table.normalize(l.location_country), codes)
        )

    ranges = (
        (lambda l: l.price, filters.price_min, filters.price_max),
        (lambda l: l.year_built, filters.year_min, filters.year_max),
        (lambda l: l.measuring_range_x, filters.measuring_range_x_min, filters.measuring_range_x_max),
        (lambda l: l.measuring_range_y, filters.measuring_range_y_min, filters.measuring_range_y_max),
        (lambda l: l.measuring_range_z, filters.measuring_range_z_min, filters.measuring_range_z_max),
    )
    for getter, lower, upper in ranges:
        if lower is not None or upper is not None:
            clauses.append(_range_clause(getter, lower, upper))

    if not clauses:
        return lambda listing: True
    return lambda listing: all(clause(listing) for clause in clauses)


def matches(
    filters: ListingFilters,
    listing: Listing,
    countries: Optional[CountryTable] = None,
) -> bool:
    return build_predicate(filters, countries)(listing)


def apply_filters(
    listings: Iterable[Listing],
    filters: ListingFilters,
    countries: Optional[CountryTable] = None,
) -> list[Listing]:
    predicate = build_predicate(filters, countries)
    return [listing for listing in listings if predicate(listing)]
