import json
import os
import tempfile

from hypothesis import given, strategies as st

from cmm_market.compare import (
    STORAGE_KEY,
    CompareSelection,
    CompareStore,
    JsonFileBackend,
    MemoryBackend,
    best_values,
    dump_selection,
    load_selection,
)
from cmm_market.schema import Listing


# --- pure selection ---


def test_add_beyond_capacity_is_noop():
    sel = CompareSelection(max_items=4)
    for listing_id in ["a", "b", "c", "d"]:
        sel = sel.add(listing_id)
    assert sel.is_full

    after = sel.add("e")
    assert after.items == ("a", "b", "c", "d")
    assert after.count == 4
    assert not after.contains("e")


def test_add_twice_is_idempotent():
    sel = CompareSelection().add("x").add("x")
    assert sel.items == ("x",)


def test_remove_and_missing_remove():
    sel = CompareSelection(items=("a", "b", "c"))
    assert sel.remove("b").items == ("a", "c")
    assert sel.remove("zzz") == sel


def test_toggle():
    sel = CompareSelection(max_items=2).toggle("a")
    assert sel.items == ("a",)
    assert sel.toggle("a").items == ()
    full = sel.toggle("b")
    assert full.toggle("c").items == ("a", "b")


def test_clear():
    sel = CompareSelection(items=("a", "b")).clear()
    assert sel.items == ()
    assert sel.count == 0
    assert not sel.is_full


def test_operations_do_not_mutate():
    sel = CompareSelection(items=("a",))
    sel.add("b")
    sel.remove("a")
    sel.clear()
    assert sel.items == ("a",)


def test_constructor_repairs_duplicates_and_overflow():
    sel = CompareSelection(items=("a", "a", "b", "c", "d", "e"), max_items=3)
    assert sel.items == ("a", "b", "c")


@given(
    st.integers(min_value=1, max_value=6),
    st.lists(
        st.tuples(st.sampled_from(["add", "remove", "toggle", "clear"]), st.sampled_from("abcdefgh")),
        max_size=40,
    ),
)
def test_invariants_hold_for_any_sequence(max_items, ops):
    sel = CompareSelection(max_items=max_items)
    for op, listing_id in ops:
        sel = sel.clear() if op == "clear" else getattr(sel, op)(listing_id)
        assert sel.count <= max_items
        assert len(set(sel.items)) == sel.count
        assert sel.is_full == (sel.count == max_items)


# --- blob ---


def test_blob_format():
    blob = json.loads(dump_selection(CompareSelection(items=("a", "b"), max_items=4)))
    assert blob == {"state": {"items": ["a", "b"], "maxItems": 4}, "version": 0}


def test_configured_capacity_wins_over_persisted():
    blob = json.dumps({"state": {"items": ["a", "b", "c", "d", "e"], "maxItems": 5}, "version": 0})
    sel = load_selection(blob, max_items=4)
    assert sel.max_items == 4
    assert sel.items == ("a", "b", "c", "d")


# --- store ---


def test_store_persists_every_change():
    backend = MemoryBackend()
    store = CompareStore(backend)
    store.add("a")
    store.add("b")
    store.remove("a")

    saved = json.loads(backend.get(STORAGE_KEY))
    assert saved["state"]["items"] == ["b"]


def test_store_hydrates_from_backend():
    backend = MemoryBackend()
    first = CompareStore(backend)
    first.add("a")
    first.add("b")

    second = CompareStore(backend)
    assert second.items == ("a", "b")


def test_store_reads_backend_only_once():
    backend = MemoryBackend()
    store = CompareStore(backend)
    backend.set(STORAGE_KEY, dump_selection(CompareSelection(items=("zzz",))))
    assert store.items == ()


def test_store_add_reports_membership():
    store = CompareStore(MemoryBackend(), max_items=1)
    assert store.add("a") is True
    assert store.add("a") is True
    assert store.add("b") is False
    assert store.items == ("a",)


def test_store_toggle_and_clear():
    store = CompareStore(MemoryBackend())
    assert store.toggle("a") is True
    assert store.toggle("a") is False
    store.add("b")
    store.clear()
    assert store.count == 0


def test_noop_does_not_write():
    backend = MemoryBackend()
    store = CompareStore(backend)
    store.remove("missing")
    assert backend.get(STORAGE_KEY) is None


def test_corrupt_state_starts_empty():
    backend = MemoryBackend({STORAGE_KEY: "{not json"})
    store = CompareStore(backend)
    assert store.items == ()
    store.add("a")
    assert json.loads(backend.get(STORAGE_KEY))["state"]["items"] == ["a"]


def test_wrong_shape_state_starts_empty():
    backend = MemoryBackend({STORAGE_KEY: json.dumps({"state": {"items": "abc"}})})
    assert CompareStore(backend).items == ()


def test_json_file_backend_round_trip():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "state", "local_storage.json")
        store = CompareStore(JsonFileBackend(path))
        store.add("a")
        store.add("b")

        reloaded = CompareStore(JsonFileBackend(path))
        assert reloaded.items == ("a", "b")

        backend = JsonFileBackend(path)
        backend.set("other", "1")
        backend.delete(STORAGE_KEY)
        assert backend.get(STORAGE_KEY) is None
        assert backend.get("other") == "1"


def test_json_file_backend_tolerates_garbage():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "local_storage.json")
        with open(path, "w", encoding="utf-8") as f:
            f.write("garbage")
        assert JsonFileBackend(path).get(STORAGE_KEY) is None


# --- comparison table ---


def test_best_values():
    items = [
        Listing(id="a", price=3000000, year_built=2016,
                measuring_range_x=700, measuring_range_y=1000, measuring_range_z=600),
        Listing(id="b", price=1850000, year_built=2011,
                measuring_range_x=800, measuring_range_y=700, measuring_range_z=600),
        Listing(id="c", price=None, year_built=2020),
    ]
    best = best_values(items)
    assert best["price"] == 1850000
    assert best["year_built"] == 2020
    assert best["measuring_volume"] == 700 * 1000 * 600


def test_best_values_empty():
    assert best_values([]) == {"price": None, "year_built": None, "measuring_volume": None}
