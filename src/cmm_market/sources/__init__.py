from __future__ import annotations

from typing import Type

from .base import Source
from .json_file import JsonFileSource
from .supabase import SupabaseSource

SOURCE_REGISTRY: dict[str, Type[Source]] = {
    "supabase": SupabaseSource,
    "json_file": JsonFileSource,
}


def get_source(name: str) -> Type[Source]:
    if name not in SOURCE_REGISTRY:
        raise ValueError(
            f"Unknown source '{name}'. Available: {', '.join(SOURCE_REGISTRY)}"
        )
    return SOURCE_REGISTRY[name]
