"""Mapping between ``ListingFilters`` and the listing page's query string.

The URL is the single source of truth for shareable search state, so the two
directions are kept as plain functions. Parameter names are the ones the
public listing page uses (``/maschinen?hersteller=...&preis_min=...``).
Prices travel in display currency (euros) in the URL and in cents
everywhere else.
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any, Mapping, Optional
from urllib.parse import parse_qsl, urlencode

from .schema import ListingFilters, SearchState
from .sorting import DEFAULT_SORT, normalize_sort_key

LIST_PARAMS = {
    "hersteller": "manufacturers",
    "zustand": "conditions",
    "land": "countries",
}

PRICE_PARAMS = {
    "preis_min": "price_min",
    "preis_max": "price_max",
}

NUMBER_PARAMS = {
    "jahr_min": "year_min",
    "jahr_max": "year_max",
    "mess_min": "measuring_range_x_min",
    "mess_max": "measuring_range_x_max",
    "mess_y_min": "measuring_range_y_min",
    "mess_y_max": "measuring_range_y_max",
    "mess_z_min": "measuring_range_z_min",
    "mess_z_max": "measuring_range_z_max",
}

QUERY_PARAM = "q"
SORT_PARAM = "sortierung"
PAGE_PARAM = "seite"


def cents_to_display(cents: int) -> str:
    # integer arithmetic, exact for any magnitude
    sign = "-" if cents < 0 else ""
    euros, rest = divmod(abs(cents), 100)
    if not rest:
        return f"{sign}{euros}"
    return f"{sign}{euros}." + f"{rest:02d}".rstrip("0")


def display_to_cents(text: Any) -> Optional[int]:
    try:
        amount = Decimal(str(text).strip())
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    with localcontext() as ctx:
        # enough digits that the scaling below never rounds
        ctx.prec = max(ctx.prec, len(amount.as_tuple().digits) + 4)
        return int((amount * 100).to_integral_value(rounding=ROUND_HALF_UP))


def _fmt_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _first(value: Any) -> Any:
    # parse_qs style mappings hold lists
    if isinstance(value, (list, tuple)):
        return value[-1] if value else None
    return value


def filters_to_params(filters: ListingFilters) -> dict[str, str]:
    params: dict[str, str] = {}
    if filters.query:
        params[QUERY_PARAM] = filters.query
    for param, field in LIST_PARAMS.items():
        values = getattr(filters, field)
        if values:
            params[param] = ",".join(values)
    for param, field in PRICE_PARAMS.items():
        value = getattr(filters, field)
        if value is not None:
            params[param] = cents_to_display(value)
    for param, field in NUMBER_PARAMS.items():
        value = getattr(filters, field)
        if value is not None:
            params[param] = _fmt_number(value)
    return params


def filters_from_params(params: Mapping[str, Any]) -> ListingFilters:
    raw: dict[str, Any] = {"query": _first(params.get(QUERY_PARAM))}
    for param, field in LIST_PARAMS.items():
        raw[field] = _first(params.get(param))
    for param, field in PRICE_PARAMS.items():
        value = _first(params.get(param))
        raw[field] = display_to_cents(value) if value is not None else None
    for param, field in NUMBER_PARAMS.items():
        raw[field] = _first(params.get(param))
    return ListingFilters.model_validate(raw)


def _parse_page(value: Any) -> int:
    try:
        page = int(str(value).strip())
    except (TypeError, ValueError):
        return 1
    return max(page, 1)


def state_to_params(state: SearchState) -> dict[str, str]:
    params = filters_to_params(state.filters)
    sort_by = normalize_sort_key(state.sort_by)
    if sort_by != DEFAULT_SORT:
        params[SORT_PARAM] = sort_by
    if state.page > 1:
        params[PAGE_PARAM] = str(state.page)
    return params


def state_from_params(params: Mapping[str, Any]) -> SearchState:
    page = _first(params.get(PAGE_PARAM))
    return SearchState(
        filters=filters_from_params(params),
        sort_by=normalize_sort_key(_first(params.get(SORT_PARAM))),
        page=_parse_page(page) if page is not None else 1,
    )


def encode_query(
    filters: ListingFilters,
    sort_by: str = DEFAULT_SORT,
    page: int = 1,
) -> str:
    return urlencode(state_to_params(SearchState(filters=filters, sort_by=sort_by, page=page)))


def decode_query(query: str) -> SearchState:
    return state_from_params(dict(parse_qsl(query.lstrip("?"))))
