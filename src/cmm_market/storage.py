from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from pydantic import ValidationError

from .compare import StateBackend
from .schema import Listing

log = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS listings (
    id           TEXT PRIMARY KEY,
    title        TEXT,
    price        INTEGER,
    status       TEXT,
    fetched_at   TEXT NOT NULL,
    payload      TEXT NOT NULL
);
"""

KV_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key          TEXT PRIMARY KEY,
    value        TEXT NOT NULL,
    updated_at   TEXT NOT NULL
);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class Storage:
    """Local cache of fetched listings plus a small key-value table."""

    def __init__(self, db_path: str) -> None:
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(db_path)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute(SCHEMA_SQL)
        self.conn.execute(KV_SQL)
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()

    def _upsert(self, listing: Listing, now: str) -> None:
        self.conn.execute(
            "INSERT INTO listings(id, title, price, status, fetched_at, payload) "
            "VALUES(?,?,?,?,?,?) "
            "ON CONFLICT(id) DO UPDATE SET title=excluded.title, "
            "price=excluded.price, status=excluded.status, "
            "fetched_at=excluded.fetched_at, payload=excluded.payload",
            (
                listing.id,
                listing.title,
                listing.price,
                listing.status,
                now,
                listing.model_dump_json(),
            ),
        )

    def upsert_listing(self, listing: Listing) -> None:
        self._upsert(listing, _now())
        self.conn.commit()

    def upsert_many(self, listings: Iterable[Listing]) -> int:
        now = _now()
        n = 0
        for listing in listings:
            self._upsert(listing, now)
            n += 1
        self.conn.commit()
        log.info("Stored %d listings", n)
        return n

    def replace_all(self, listings: Iterable[Listing]) -> int:
        """Swap the cached catalog for a fresh snapshot in one transaction."""
        listings = list(listings)
        with self.conn:
            self.conn.execute("DELETE FROM listings")
            now = _now()
            for listing in listings:
                self._upsert(listing, now)
        log.info("Replaced catalog with %d listings", len(listings))
        return len(listings)

    def _row_to_listing(self, row: sqlite3.Row) -> Optional[Listing]:
        try:
            return Listing.model_validate_json(row["payload"])
        except ValidationError:
            log.warning("Skipping unreadable cached listing %s", row["id"])
            return None

    def get_all(self) -> list[Listing]:
        rows = self.conn.execute(
            "SELECT id, payload FROM listings ORDER BY fetched_at DESC, id"
        ).fetchall()
        return [l for l in (self._row_to_listing(r) for r in rows) if l is not None]

    def get(self, listing_id: str) -> Optional[Listing]:
        row = self.conn.execute(
            "SELECT id, payload FROM listings WHERE id=?", (listing_id,)
        ).fetchone()
        return self._row_to_listing(row) if row is not None else None

    def get_many(self, listing_ids: Iterable[str]) -> list[Listing]:
        """Listings for the given ids, in the order requested; unknown ids are skipped."""
        found: list[Listing] = []
        for listing_id in listing_ids:
            listing = self.get(listing_id)
            if listing is not None:
                found.append(listing)
        return found

    def count(self) -> int:
        return self.conn.execute("SELECT COUNT(*) FROM listings").fetchone()[0]

    # --- key-value ---

    def kv_get(self, key: str) -> Optional[str]:
        row = self.conn.execute(
            "SELECT value FROM kv_store WHERE key=?", (key,)
        ).fetchone()
        return row["value"] if row is not None else None

    def kv_set(self, key: str, value: str) -> None:
        self.conn.execute(
            "INSERT INTO kv_store(key, value, updated_at) VALUES(?,?,?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value, "
            "updated_at=excluded.updated_at",
            (key, value, _now()),
        )
        self.conn.commit()

    def kv_delete(self, key: str) -> None:
        self.conn.execute("DELETE FROM kv_store WHERE key=?", (key,))
        self.conn.commit()


class SqliteBackend(StateBackend):
    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    def get(self, key: str) -> Optional[str]:
        return self.storage.kv_get(key)

    def set(self, key: str, value: str) -> None:
        self.storage.kv_set(key, value)

    def delete(self, key: str) -> None:
        self.storage.kv_delete(key)
