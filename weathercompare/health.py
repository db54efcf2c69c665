"""In-memory provider health registry.

Counters live for the lifetime of the process; the API layer exposes them
together with each provider's availability and circuit state.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Dict, Iterable, Optional


@dataclass(frozen=True)
class CacheStats:
    """Simple container for response cache counters."""

    hits: int = 0
    misses: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {"hits": self.hits, "misses": self.misses}


class HealthRegistry:
    """Stores provider error counters, last errors and cache stats."""

    def __init__(self) -> None:
        self._provider_errors: Dict[str, int] = {}
        self._last_errors: Dict[str, Dict[str, str]] = {}
        self._cache_stats: CacheStats = CacheStats()
        self._lock = Lock()

    # -- Provider errors ----------------------------------------------------
    def record_provider_error(
        self, provider: str, message: Optional[str] = None, when: Optional[datetime] = None
    ) -> None:
        if not provider:
            raise ValueError("provider must be provided")
        when = when or datetime.now(timezone.utc)
        with self._lock:
            self._provider_errors[provider] = self._provider_errors.get(provider, 0) + 1
            self._last_errors[provider] = {
                "message": message or "",
                "at": self._format_datetime(when),
            }

    # -- Cache stats --------------------------------------------------------
    def record_cache_hit(self) -> None:
        with self._lock:
            stats = self._cache_stats
            self._cache_stats = CacheStats(hits=stats.hits + 1, misses=stats.misses)

    def record_cache_miss(self) -> None:
        with self._lock:
            stats = self._cache_stats
            self._cache_stats = CacheStats(hits=stats.hits, misses=stats.misses + 1)

    # -- Snapshot -----------------------------------------------------------
    def snapshot(self, providers: Iterable[object] = ()) -> Dict[str, object]:
        """Counters plus, for each provider given, availability and breaker state."""
        with self._lock:
            errors = dict(self._provider_errors)
            last_errors = {name: dict(value) for name, value in self._last_errors.items()}
            cache = self._cache_stats.as_dict()
        status: Dict[str, Dict[str, object]] = {}
        for provider in providers:
            name = getattr(provider, "name")
            status[name] = {
                "available": provider.is_available(),  # type: ignore[attr-defined]
                "circuit": provider.breaker.snapshot(),  # type: ignore[attr-defined]
                "errors": errors.get(name, 0),
                "lastError": last_errors.get(name),
            }
        return {"providers": status, "errors": errors, "cache": cache}

    @staticmethod
    def _format_datetime(value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()


__all__ = ["CacheStats", "HealthRegistry"]
