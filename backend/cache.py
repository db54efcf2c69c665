"""Response cache backed by a Django cache alias."""
from __future__ import annotations

from typing import Optional

from django.core.cache.backends.base import BaseCache

from weathercompare.cache import response_cache_key
from weathercompare.entities import WeatherRecord


class DjangoResponseCache:
    """Stores canonical records in a Django cache; TTLs are given in minutes."""

    def __init__(self, cache: BaseCache) -> None:
        self._cache = cache

    def get(self, location: str, provider: str, kind: str = "current") -> Optional[WeatherRecord]:
        return self._cache.get(response_cache_key(location, provider, kind))

    def set(self, location: str, provider: str, record: WeatherRecord, ttl_minutes: float, kind: str = "current") -> None:
        self._cache.set(response_cache_key(location, provider, kind), record, int(ttl_minutes * 60))


__all__ = ["DjangoResponseCache"]
