import tempfile
import os

from cmm_market.compare import CompareStore
from cmm_market.schema import Listing
from cmm_market.storage import SqliteBackend, Storage


def _make_listing(**overrides) -> Listing:
    defaults = dict(
        id="abc123",
        title="Zeiss Contura 7/10/6",
        manufacturer_id="zeiss",
        manufacturer_name="Zeiss",
        price=3000000,
        year_built=2016,
        location_country="DE",
        created_at="2025-03-01T12:00:00+00:00",
    )
    defaults.update(overrides)
    return Listing(**defaults)


def test_upsert_and_get():
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = Storage(os.path.join(tmpdir, "test.db"))
        listing = _make_listing()
        storage.upsert_listing(listing)
        assert storage.get("abc123") == listing
        assert storage.get("missing") is None


def test_upsert_updates_existing():
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = Storage(os.path.join(tmpdir, "test.db"))
        storage.upsert_listing(_make_listing(price=3000000))
        storage.upsert_listing(_make_listing(price=2800000))
        assert storage.count() == 1
        assert storage.get("abc123").price == 2800000


def test_count_and_get_all():
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = Storage(os.path.join(tmpdir, "test.db"))
        storage.upsert_many([_make_listing(id="1"), _make_listing(id="2")])
        assert storage.count() == 2
        assert {l.id for l in storage.get_all()} == {"1", "2"}


def test_replace_all_drops_stale_listings():
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = Storage(os.path.join(tmpdir, "test.db"))
        storage.upsert_many([_make_listing(id="old"), _make_listing(id="keep")])
        storage.replace_all([_make_listing(id="keep"), _make_listing(id="new")])
        assert {l.id for l in storage.get_all()} == {"keep", "new"}


def test_get_many_keeps_requested_order():
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = Storage(os.path.join(tmpdir, "test.db"))
        storage.upsert_many([_make_listing(id=i) for i in ("a", "b", "c")])
        assert [l.id for l in storage.get_many(["c", "missing", "a"])] == ["c", "a"]


def test_kv_store():
    storage = Storage(":memory:")
    assert storage.kv_get("k") is None
    storage.kv_set("k", "v1")
    storage.kv_set("k", "v2")
    assert storage.kv_get("k") == "v2"
    storage.kv_delete("k")
    assert storage.kv_get("k") is None


def test_compare_store_survives_reopen():
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = os.path.join(tmpdir, "test.db")
        storage = Storage(db_path)
        store = CompareStore(SqliteBackend(storage))
        store.add("a")
        store.add("b")
        storage.close()

        reopened = CompareStore(SqliteBackend(Storage(db_path)))
        assert reopened.items == ("a", "b")
