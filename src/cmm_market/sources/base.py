from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Mapping, Optional

import requests
from pydantic import ValidationError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from ..schema import Listing

log = logging.getLogger(__name__)


def _name_of(related: Any) -> Optional[str]:
    if isinstance(related, list):
        related = related[0] if related else None
    if isinstance(related, Mapping):
        return related.get("name")
    return None


def row_to_listing(row: Mapping[str, Any]) -> Listing:
    """Map a snake_case ``listings`` row (with embedded relations) to a Listing."""
    return Listing(
        id=str(row["id"]),
        slug=row.get("slug"),
        manufacturer_id=row.get("manufacturer_id"),
        manufacturer_name=row.get("manufacturer_name") or _name_of(row.get("manufacturers")),
        model_name=row.get("model_name") or _name_of(row.get("models")),
        title=row.get("title") or "",
        description=row.get("description") or "",
        price=row.get("price"),
        currency=row.get("currency") or "EUR",
        price_negotiable=bool(row.get("price_negotiable")),
        year_built=row.get("year_built"),
        condition=row.get("condition"),
        measuring_range_x=row.get("measuring_range_x"),
        measuring_range_y=row.get("measuring_range_y"),
        measuring_range_z=row.get("measuring_range_z"),
        location_country=row.get("location_country"),
        location_city=row.get("location_city"),
        published_at=row.get("published_at"),
        created_at=row.get("created_at"),
        featured=bool(row.get("featured")),
        status=row.get("status") or "active",
    )


class Source(ABC):
    name: str

    @abstractmethod
    def fetch(self) -> List[Listing]:
        raise NotImplementedError

    def _rows_to_listings(self, rows: Iterable[Mapping[str, Any]]) -> List[Listing]:
        listings: List[Listing] = []
        for row in rows:
            try:
                listings.append(row_to_listing(row))
            except (KeyError, TypeError, ValidationError) as exc:
                log.warning("[%s] Skipping malformed row: %s", self.name, exc)
        return listings


class HttpSource(Source):
    def __init__(self, user_agent: str, delay: float = 1.0) -> None:
        self.session = requests.Session()
        self.session.headers.update({
            "User-Agent": user_agent,
            "Accept": "application/json",
        })
        self.delay = delay

    @staticmethod
    def _should_retry(exc: BaseException) -> bool:
        """No retry on auth failures or missing resources."""
        if isinstance(exc, requests.exceptions.HTTPError) and exc.response is not None:
            if exc.response.status_code in (401, 403, 404):
                return False
        return isinstance(exc, requests.RequestException)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=2, max=30),
        retry=retry_if_exception(_should_retry.__func__),
        reraise=True,
    )
    def _get(self, url: str, params: Optional[dict] = None) -> requests.Response:
        resp = self.session.get(url, params=params, timeout=30)
        resp.raise_for_status()
        return resp

    def _pause(self) -> None:
        if self.delay:
            log.debug("Sleeping %.1fs between requests", self.delay)
            time.sleep(self.delay)
