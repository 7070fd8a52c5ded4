from __future__ import annotations

import yaml
from pathlib import Path
from pydantic import BaseModel, Field
from typing import Optional, Dict, Literal

from .compare import (
    DEFAULT_MAX_ITEMS,
    STORAGE_KEY,
    CompareStore,
    JsonFileBackend,
    MemoryBackend,
    StateBackend,
)
from .countries import COUNTRIES, COUNTRY_TABLE_VERSION, CountryTable
from .permissions import PlanCatalog
from .schema import PlanFeatures
from .storage import SqliteBackend, Storage


class SourceConfig(BaseModel):
    enabled: bool = False
    url: Optional[str] = None
    path: Optional[str] = None
    table: str = "listings"
    page_size: int = 1000


class CompareConfig(BaseModel):
    storage_key: str = STORAGE_KEY
    max_items: int = Field(default=DEFAULT_MAX_ITEMS, ge=1)
    backend: Literal["sqlite", "json", "memory"] = "sqlite"
    json_path: str = "data/local_storage.json"

    def build_store(self, storage: Optional[Storage] = None) -> CompareStore:
        backend: StateBackend
        if self.backend == "sqlite" and storage is not None:
            backend = SqliteBackend(storage)
        elif self.backend == "json":
            backend = JsonFileBackend(self.json_path)
        else:
            backend = MemoryBackend()
        return CompareStore(backend, key=self.storage_key, max_items=self.max_items)


class CountriesConfig(BaseModel):
    version: int = COUNTRY_TABLE_VERSION
    table: Dict[str, str] = Field(default_factory=lambda: dict(COUNTRIES))

    def build(self) -> CountryTable:
        return CountryTable(self.table, version=self.version)


class PlansConfig(BaseModel):
    all_features_unlocked: bool = False
    overrides: Dict[str, PlanFeatures] = Field(default_factory=dict)

    def build(self) -> PlanCatalog:
        return PlanCatalog(self.overrides, all_features_unlocked=self.all_features_unlocked)


class AppConfig(BaseModel):
    database_path: str = "data/cmm_market.db"
    report_path: str = "reports/latest.md"
    log_level: str = "INFO"
    page_size: int = 24
    user_agent: str = "cmm-market/0.1 (+contact: you@example.com)"
    request_delay_seconds: float = 1.0


class Config(BaseModel):
    app: AppConfig = Field(default_factory=AppConfig)
    compare: CompareConfig = Field(default_factory=CompareConfig)
    countries: CountriesConfig = Field(default_factory=CountriesConfig)
    plans: PlansConfig = Field(default_factory=PlansConfig)
    sources: dict[str, SourceConfig] = Field(default_factory=dict)

    @classmethod
    def from_yaml(cls, path: str | Path = "config/config.yaml") -> Config:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        sources = {}
        for name, src_raw in (raw.get("sources") or {}).items():
            sources[name] = SourceConfig(**(src_raw or {}))
        return cls(
            app=AppConfig(**(raw.get("app") or {})),
            compare=CompareConfig(**(raw.get("compare") or {})),
            countries=CountriesConfig(**(raw.get("countries") or {})),
            plans=PlansConfig(**(raw.get("plans") or {})),
            sources=sources,
        )
