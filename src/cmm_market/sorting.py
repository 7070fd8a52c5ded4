from __future__ import annotations

from functools import cmp_to_key
from typing import Any, Callable, Iterable, Optional

from .schema import Listing

Comparator = Callable[[Listing, Listing], int]

DEFAULT_SORT = "relevance"

SORT_LABELS: dict[str, str] = {
    "relevance": "Relevanz",
    "date_desc": "Neueste zuerst",
    "date_asc": "Älteste zuerst",
    "price_asc": "Preis aufsteigend",
    "price_desc": "Preis absteigend",
    "year_desc": "Baujahr neueste",
    "year_asc": "Baujahr älteste",
}

SORT_KEYS = tuple(SORT_LABELS)


def _cmp(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


def _by(getter: Callable[[Listing], Optional[Any]], descending: bool = False) -> Comparator:
    """Compare on one attribute.

    Missing values sort as the largest value: last when ascending, first when
    descending, so the two directions are exact reverses of each other.
    """

    def compare(left: Listing, right: Listing) -> int:
        a, b = getter(left), getter(right)
        if a is None or b is None:
            result = (a is None) - (b is None)
        else:
            result = _cmp(a, b)
        return -result if descending else result

    return compare


_newest_first = _by(lambda l: l.effective_date, descending=True)


def _relevance(left: Listing, right: Listing) -> int:
    # featured first, then newest
    if left.featured != right.featured:
        return -1 if left.featured else 1
    return _newest_first(left, right)


COMPARATORS: dict[str, Comparator] = {
    "relevance": _relevance,
    "price_asc": _by(lambda l: l.price),
    "price_desc": _by(lambda l: l.price, descending=True),
    "date_desc": _newest_first,
    "date_asc": _by(lambda l: l.effective_date),
    "year_desc": _by(lambda l: l.year_built, descending=True),
    "year_asc": _by(lambda l: l.year_built),
}


def normalize_sort_key(key: Optional[str]) -> str:
    if key and key in COMPARATORS:
        return key
    return DEFAULT_SORT


def get_comparator(key: Optional[str]) -> Comparator:
    return COMPARATORS[normalize_sort_key(key)]


def sort_listings(listings: Iterable[Listing], key: Optional[str] = DEFAULT_SORT) -> list[Listing]:
    # sorted() is stable: equal listings keep their input order
    return sorted(listings, key=cmp_to_key(get_comparator(key)))
