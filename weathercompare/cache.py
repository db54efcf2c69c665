from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import Any, Dict, Optional, Protocol, Tuple

from .entities import WeatherRecord


class KeyValueStore(Protocol):
    """Minimal store used for values that never expire (e.g. location keys)."""

    def get(self, key: str) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...


class MemoryStore:
    """Unbounded in-process store.

    Nothing is ever evicted, so the store grows with every distinct key. Use
    :class:`LRUStore` where the key space is not trusted.
    """

    def __init__(self) -> None:
        self._storage: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any:
        with self._lock:
            return self._storage.get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._storage[key] = value

    def __len__(self) -> int:
        return len(self._storage)

    def clear(self) -> None:
        with self._lock:
            self._storage.clear()


class LRUStore:
    """Bounded store evicting the least recently used key."""

    def __init__(self, maxsize: int = 1000) -> None:
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self.maxsize = maxsize
        self._storage: "OrderedDict[str, Any]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Any:
        with self._lock:
            if key not in self._storage:
                return None
            self._storage.move_to_end(key)
            return self._storage[key]

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._storage[key] = value
            self._storage.move_to_end(key)
            while len(self._storage) > self.maxsize:
                self._storage.popitem(last=False)

    def __len__(self) -> int:
        return len(self._storage)


class WeatherCache:
    """A lightweight TTL cache emulating Redis behaviour."""

    def __init__(self, time_func=time.monotonic) -> None:
        self._time_func = time_func
        self._storage: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any:
        with self._lock:
            item = self._storage.get(key)
            if not item:
                return None
            expires_at, value = item
            if expires_at <= self._time_func():
                self._storage.pop(key, None)
                return None
            return value

    def set(self, key: str, value: Any, ttl: float) -> None:
        with self._lock:
            self._storage[key] = (self._time_func() + ttl, value)

    def clear(self) -> None:
        with self._lock:
            self._storage.clear()


class ResponseCache(Protocol):
    """Provider-response cache keyed by (location, provider)."""

    def get(self, location: str, provider: str, kind: str = "current") -> Optional[WeatherRecord]:
        ...

    def set(self, location: str, provider: str, record: WeatherRecord, ttl_minutes: float, kind: str = "current") -> None:
        ...


def response_cache_key(location: str, provider: str, kind: str = "current") -> str:
    slug = "_".join(location.strip().lower().split())
    return f"weather:{kind}:{provider}:{slug}"


class MemoryResponseCache:
    """:class:`ResponseCache` backed by :class:`WeatherCache`."""

    def __init__(self, cache: Optional[WeatherCache] = None) -> None:
        self.cache = cache or WeatherCache()

    def get(self, location: str, provider: str, kind: str = "current") -> Optional[WeatherRecord]:
        return self.cache.get(response_cache_key(location, provider, kind))

    def set(self, location: str, provider: str, record: WeatherRecord, ttl_minutes: float, kind: str = "current") -> None:
        self.cache.set(response_cache_key(location, provider, kind), record, ttl_minutes * 60)

    def clear(self) -> None:
        self.cache.clear()


__all__ = [
    "KeyValueStore",
    "MemoryStore",
    "LRUStore",
    "WeatherCache",
    "ResponseCache",
    "MemoryResponseCache",
    "response_cache_key",
]
