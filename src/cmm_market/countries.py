"""Country display names used by the location filter.

Listings store the country either as an ISO-style code ("DE") or as the
German display name shown in the seller forms ("Deutschland"). Both sides of
the country filter are normalized to the code through this table.
"""
from __future__ import annotations

from typing import Mapping, Optional

COUNTRY_TABLE_VERSION = 1

# code -> display name; "UK" (not "GB") is what the seller forms store
COUNTRIES: dict[str, str] = {
    "DE": "Deutschland",
    "AT": "Österreich",
    "CH": "Schweiz",
    "NL": "Niederlande",
    "BE": "Belgien",
    "FR": "Frankreich",
    "IT": "Italien",
    "ES": "Spanien",
    "PL": "Polen",
    "CZ": "Tschechien",
    "UK": "Vereinigtes Königreich",
}


class CountryTable:
    def __init__(
        self,
        countries: Optional[Mapping[str, str]] = None,
        version: int = COUNTRY_TABLE_VERSION,
    ) -> None:
        self.version = version
        self._names: dict[str, str] = {
            code.strip().upper(): name
            for code, name in (countries if countries is not None else COUNTRIES).items()
        }
        self._codes: dict[str, str] = {
            name.casefold(): code for code, name in self._names.items()
        }

    def normalize(self, value: Optional[str]) -> Optional[str]:
        """Map a display name or code to the country code.

        Unknown values come back upper-cased so that free-form codes still
        compare equal regardless of case.
        """
        if value is None:
            return None
        text = value.strip()
        if not text:
            return None
        code = self._codes.get(text.casefold())
        return code if code is not None else text.upper()

    def display_name(self, code: Optional[str]) -> Optional[str]:
        if code is None:
            return None
        return self._names.get(code.strip().upper(), code)

    def codes(self) -> list[str]:
        return list(self._names)

    def __contains__(self, value: object) -> bool:
        return isinstance(value, str) and self.normalize(value) in self._names

    def __len__(self) -> int:
        return len(self._names)


DEFAULT_COUNTRY_TABLE = CountryTable()


def normalize_country(value: Optional[str], table: Optional[CountryTable] = None) -> Optional[str]:
    return (table or DEFAULT_COUNTRY_TABLE).normalize(value)
