"""Public listings from the marketplace's Supabase project.

Reads the ``listings`` table through the PostgREST endpoint with the anon
key, restricted to active, non-deleted rows, with the manufacturer and model
names embedded.
"""
from __future__ import annotations

import logging
import os
from typing import Any, List, Optional

import requests

from .base import HttpSource
from ..schema import Listing

log = logging.getLogger(__name__)

SELECT = "*,manufacturers(id,name,slug),models(id,name)"


class SupabaseSource(HttpSource):
    name = "supabase"

    def __init__(
        self,
        url: str,
        api_key: Optional[str] = None,
        table: str = "listings",
        page_size: int = 1000,
        user_agent: str = "cmm-market",
        delay: float = 1.0,
    ) -> None:
        super().__init__(user_agent=user_agent, delay=delay)
        self.endpoint = f"{url.rstrip('/')}/rest/v1/{table}"
        self.page_size = page_size
        api_key = api_key or os.getenv("SUPABASE_ANON_KEY")
        if api_key:
            self.session.headers["apikey"] = api_key
            self.session.headers["Authorization"] = f"Bearer {api_key}"
        else:
            log.warning("SUPABASE_ANON_KEY not set, requests will likely be rejected")

    def _params(self, offset: int) -> dict[str, Any]:
        return {
            "select": SELECT,
            "status": "eq.active",
            "deleted_at": "is.null",
            "order": "created_at.desc",
            "limit": self.page_size,
            "offset": offset,
        }

    def _parse_response(self, response: requests.Response) -> List[dict]:
        rows = response.json()
        if not isinstance(rows, list):
            log.warning("[%s] Unexpected payload type %s", self.name, type(rows).__name__)
            return []
        return rows

    def fetch(self) -> List[Listing]:
        all_listings: List[Listing] = []
        offset = 0
        while True:
            if offset:
                self._pause()
            try:
                log.info("[%s] Fetching %s (offset %d)", self.name, self.endpoint, offset)
                resp = self._get(self.endpoint, params=self._params(offset))
            except requests.RequestException:
                log.exception("[%s] Failed to fetch %s", self.name, self.endpoint)
                break
            rows = self._parse_response(resp)
            all_listings.extend(self._rows_to_listings(rows))
            if len(rows) < self.page_size:
                break
            offset += self.page_size
        log.info("[%s] Got %d listings", self.name, len(all_listings))
        return all_listings
