from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError, ValidationInfo, field_validator

from .schema import Listing

log = logging.getLogger(__name__)

DEFAULT_MAX_ITEMS = 4
STORAGE_KEY = "cmm24-compare"
STATE_VERSION = 0


# ---------------------------------------------------------------------------
# Selection (pure)
# ---------------------------------------------------------------------------

class CompareSelection(BaseModel):
    """Bounded, ordered set of listing ids picked for side-by-side comparison.

    Every operation returns a new selection. Adding a duplicate or adding to
    a full selection is a silent no-op.
    """

    model_config = ConfigDict(frozen=True)

    max_items: int = DEFAULT_MAX_ITEMS
    items: Tuple[str, ...] = ()

    @field_validator("max_items")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_items must be at least 1")
        return value

    @field_validator("items")
    @classmethod
    def _bounded(cls, value: Tuple[str, ...], info: ValidationInfo) -> Tuple[str, ...]:
        # repairs persisted state: unique ids, at most max_items of them
        max_items = info.data.get("max_items", DEFAULT_MAX_ITEMS)
        return tuple(dict.fromkeys(value))[:max_items]

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def is_full(self) -> bool:
        return self.count >= self.max_items

    def contains(self, listing_id: str) -> bool:
        return listing_id in self.items

    def __contains__(self, listing_id: object) -> bool:
        return listing_id in self.items

    def add(self, listing_id: str) -> CompareSelection:
        if self.contains(listing_id) or self.is_full:
            return self
        return self.model_copy(update={"items": self.items + (listing_id,)})

    def remove(self, listing_id: str) -> CompareSelection:
        if not self.contains(listing_id):
            return self
        return self.model_copy(
            update={"items": tuple(i for i in self.items if i != listing_id)}
        )

    def toggle(self, listing_id: str) -> CompareSelection:
        if self.contains(listing_id):
            return self.remove(listing_id)
        return self.add(listing_id)

    def clear(self) -> CompareSelection:
        if not self.items:
            return self
        return self.model_copy(update={"items": ()})


def dump_selection(selection: CompareSelection) -> str:
    return json.dumps(
        {
            "state": {"items": list(selection.items), "maxItems": selection.max_items},
            "version": STATE_VERSION,
        }
    )


def load_selection(blob: str, max_items: int = DEFAULT_MAX_ITEMS) -> CompareSelection:
    """Parse a persisted blob. The configured ``max_items`` wins over the stored one."""
    payload = json.loads(blob)
    state = payload.get("state", payload) if isinstance(payload, dict) else {}
    items = state.get("items", []) if isinstance(state, dict) else []
    if not isinstance(items, list):
        raise ValueError(f"expected a list of ids, got {type(items).__name__}")
    return CompareSelection(items=tuple(str(i) for i in items), max_items=max_items)


# ---------------------------------------------------------------------------
# Persistence adapters
# ---------------------------------------------------------------------------

class StateBackend(ABC):
    """Key/value string storage, the local-storage analogue."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        raise NotImplementedError


class MemoryBackend(StateBackend):
    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileBackend(StateBackend):
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            log.warning("State file %s is not valid JSON, starting fresh", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

    def get(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class CompareStore:
    """Compare selection bound to a persistence backend.

    The persisted value is read once, at construction; from then on the
    in-memory selection is authoritative and every change is written back.
    """

    def __init__(
        self,
        backend: StateBackend,
        key: str = STORAGE_KEY,
        max_items: int = DEFAULT_MAX_ITEMS,
    ) -> None:
        self.backend = backend
        self.key = key
        self.selection = self._hydrate(max_items)

    def _hydrate(self, max_items: int) -> CompareSelection:
        blob = self.backend.get(self.key)
        if blob is None:
            return CompareSelection(max_items=max_items)
        try:
            return load_selection(blob, max_items)
        except (ValueError, ValidationError):
            log.warning("Discarding unreadable compare state under '%s'", self.key)
            return CompareSelection(max_items=max_items)

    def _commit(self, selection: CompareSelection) -> None:
        if selection == self.selection:
            return
        self.selection = selection
        self.backend.set(self.key, dump_selection(selection))
        log.debug("Compare selection now %s", list(selection.items))

    @property
    def items(self) -> Tuple[str, ...]:
        return self.selection.items

    @property
    def max_items(self) -> int:
        return self.selection.max_items

    @property
    def count(self) -> int:
        return self.selection.count

    @property
    def is_full(self) -> bool:
        return self.selection.is_full

    def contains(self, listing_id: str) -> bool:
        return self.selection.contains(listing_id)

    def add(self, listing_id: str) -> bool:
        self._commit(self.selection.add(listing_id))
        return self.contains(listing_id)

    def remove(self, listing_id: str) -> None:
        self._commit(self.selection.remove(listing_id))

    def toggle(self, listing_id: str) -> bool:
        self._commit(self.selection.toggle(listing_id))
        return self.contains(listing_id)

    def clear(self) -> None:
        self._commit(self.selection.clear())


# ---------------------------------------------------------------------------
# Comparison table helpers
# ---------------------------------------------------------------------------

def best_values(listings: Iterable[Listing]) -> dict[str, Any]:
    """Values the comparison table highlights: lowest price, newest build
    year and largest measuring volume."""
    listings = list(listings)
    prices = [l.price for l in listings if l.price is not None]
    years = [l.year_built for l in listings if l.year_built is not None]
    volumes = [l.measuring_volume for l in listings if l.measuring_volume is not None]
    return {
        "price": min(prices) if prices else None,
        "year_built": max(years) if years else None,
        "measuring_volume": max(volumes) if volumes else None,
    }
