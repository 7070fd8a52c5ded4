from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List

from .base import Source
from ..schema import Listing

log = logging.getLogger(__name__)


class JsonFileSource(Source):
    """Listings exported as a JSON array of ``listings`` rows."""

    name = "json_file"

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def fetch(self) -> List[Listing]:
        try:
            rows = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            log.exception("[%s] Failed to read %s", self.name, self.path)
            return []
        if isinstance(rows, dict):
            rows = rows.get("listings", [])
        listings = self._rows_to_listings(rows)
        log.info("[%s] Got %d listings from %s", self.name, len(listings), self.path)
        return listings
