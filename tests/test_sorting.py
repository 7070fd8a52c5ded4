from datetime import datetime, timedelta, timezone

from hypothesis import given, strategies as st

from cmm_market.schema import Listing
from cmm_market.sorting import SORT_KEYS, get_comparator, sort_listings

BASE = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _make_listing(id: str, **overrides) -> Listing:
    defaults = dict(
        id=id,
        title=f"Listing {id}",
        price=1000000,
        year_built=2015,
        created_at=BASE,
    )
    defaults.update(overrides)
    return Listing(**defaults)


def _ids(listings):
    return [l.id for l in listings]


@given(
    st.lists(st.integers(min_value=0, max_value=10**9), unique=True, max_size=30),
    st.booleans(),
)
def test_price_asc_and_desc_are_reverses_without_ties(prices, with_missing):
    items = [_make_listing(str(i), price=p) for i, p in enumerate(prices)]
    if with_missing:
        items.insert(len(items) // 2, _make_listing("missing", price=None))
    asc = sort_listings(items, "price_asc")
    desc = sort_listings(items, "price_desc")
    assert _ids(asc) == list(reversed(_ids(desc)))
    assert [l.price for l in asc if l.price is not None] == sorted(prices)


@given(
    st.lists(
        st.tuples(st.booleans(), st.integers(min_value=0, max_value=10_000)),
        min_size=2,
        max_size=30,
    )
)
def test_relevance_puts_featured_first_regardless_of_date(specs):
    items = [
        _make_listing(str(i), featured=featured, created_at=BASE + timedelta(days=days))
        for i, (featured, days) in enumerate(specs)
    ]
    ordered = sort_listings(items, "relevance")
    flags = [l.featured for l in ordered]
    assert flags == sorted(flags, reverse=True)


def test_relevance_newest_first_within_group():
    old = _make_listing("old", created_at=BASE)
    new = _make_listing("new", created_at=BASE + timedelta(days=3))
    featured_old = _make_listing("featured", featured=True, created_at=BASE - timedelta(days=300))
    assert _ids(sort_listings([old, new, featured_old])) == ["featured", "new", "old"]


def test_effective_date_prefers_published_at():
    a = _make_listing("a", created_at=BASE + timedelta(days=10), published_at=BASE)
    b = _make_listing("b", created_at=BASE + timedelta(days=5))
    assert _ids(sort_listings([a, b], "date_desc")) == ["b", "a"]
    assert _ids(sort_listings([a, b], "date_asc")) == ["a", "b"]


def test_year_sorts():
    items = [
        _make_listing("a", year_built=2010),
        _make_listing("b", year_built=2020),
        _make_listing("c", year_built=2015),
    ]
    assert _ids(sort_listings(items, "year_desc")) == ["b", "c", "a"]
    assert _ids(sort_listings(items, "year_asc")) == ["a", "c", "b"]


def test_ties_keep_input_order():
    # large enough to rule out small-array special cases
    items = [_make_listing(f"{i:03d}", price=500) for i in range(200)]
    for key in SORT_KEYS:
        assert _ids(sort_listings(items, key)) == _ids(items)


def test_ties_keep_input_order_between_distinct_values():
    items = [
        _make_listing("a1", price=2),
        _make_listing("b1", price=1),
        _make_listing("a2", price=2),
        _make_listing("b2", price=1),
    ]
    assert _ids(sort_listings(items, "price_asc")) == ["b1", "b2", "a1", "a2"]
    assert _ids(sort_listings(items, "price_desc")) == ["a1", "a2", "b1", "b2"]


def test_missing_values_last_ascending_first_descending():
    items = [
        _make_listing("none", price=None),
        _make_listing("cheap", price=1),
        _make_listing("dear", price=9),
    ]
    assert _ids(sort_listings(items, "price_asc")) == ["cheap", "dear", "none"]
    assert _ids(sort_listings(items, "price_desc")) == ["none", "dear", "cheap"]


def test_missing_year_and_date_mirror_between_directions():
    items = [
        _make_listing("a", year_built=2010, created_at=BASE),
        _make_listing("b", year_built=None, created_at=None),
        _make_listing("c", year_built=2020, created_at=BASE + timedelta(days=1)),
    ]
    for asc_key, desc_key in (("year_asc", "year_desc"), ("date_asc", "date_desc")):
        asc = _ids(sort_listings(items, asc_key))
        assert asc == ["a", "c", "b"]
        assert _ids(sort_listings(items, desc_key)) == list(reversed(asc))


def test_unknown_key_falls_back_to_relevance():
    items = [
        _make_listing("plain", created_at=BASE + timedelta(days=1)),
        _make_listing("featured", featured=True),
    ]
    assert _ids(sort_listings(items, "bogus")) == ["featured", "plain"]
    assert _ids(sort_listings(items, None)) == ["featured", "plain"]
    assert get_comparator("bogus") is get_comparator("relevance")


def test_naive_and_aware_dates_compare():
    naive = _make_listing("naive", created_at=datetime(2025, 6, 1))
    aware = _make_listing("aware", created_at=BASE)
    assert _ids(sort_listings([aware, naive], "date_desc")) == ["naive", "aware"]


def test_input_not_mutated():
    items = [_make_listing("a", price=2), _make_listing("b", price=1)]
    sort_listings(items, "price_asc")
    assert _ids(items) == ["a", "b"]
