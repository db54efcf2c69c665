from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..cache import MemoryResponseCache, ResponseCache
from ..config import CacheConfig
from ..entities import WeatherRecord
from ..errors import NoDataAvailable, ProviderError, ProviderUnavailable, QuotaExceeded
from ..health import HealthRegistry
from ..providers.base import WeatherProvider
from ..querylog import ERROR, SUCCESS, QueryLogger

CURRENT = "current"
FORECAST = "forecast"

NO_DATA_MESSAGE = "All weather services failed or are unavailable"
UNAVAILABLE_MESSAGE = "Service not available (API key not configured)"


@dataclass
class AggregateResult:
    """Successful records and error messages, both keyed by provider name in provider order."""

    results: Dict[str, WeatherRecord] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
    response_time: int = 0

    @property
    def records(self) -> List[WeatherRecord]:
        return list(self.results.values())

    @property
    def succeeded(self) -> bool:
        return bool(self.results)


class WeatherAggregator:
    """Fans a request out to every provider and collects partial results.

    Provider calls run on a thread pool and the aggregator waits for all of
    them. Each call goes through availability check, response cache and the
    provider's circuit breaker; the outcome of every attempt is sent to the
    query logger.
    """

    def __init__(
        self,
        providers: Sequence[WeatherProvider],
        *,
        cache: Optional[ResponseCache] = None,
        query_logger: Optional[QueryLogger] = None,
        cache_config: Optional[CacheConfig] = None,
        health: Optional[HealthRegistry] = None,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.providers = list(providers)
        self.cache = cache if cache is not None else MemoryResponseCache()
        self.query_logger = query_logger or QueryLogger()
        self.cache_config = cache_config or CacheConfig()
        self.health = health or HealthRegistry()
        self._clock = clock
        self._log = logger or logging.getLogger(self.__class__.__name__)

    # Public API ---------------------------------------------------------
    def provider(self, slug: str) -> WeatherProvider:
        for provider in self.providers:
            if provider.slug == slug:
                return provider
        raise KeyError(slug)

    def aggregate_current(self, location: str) -> AggregateResult:
        return self._aggregate(CURRENT, location)

    def aggregate_forecast(self, location: str, days: int) -> AggregateResult:
        return self._aggregate(FORECAST, location, days)

    def fetch(self, provider: WeatherProvider, kind: str, location: str, days: Optional[int] = None) -> WeatherRecord:
        """One provider, one request; provider errors propagate to the caller."""
        params = provider.query_params(kind, location, days)
        if not provider.is_available():
            error = ProviderUnavailable(f"{provider.name} API key not configured")
            self._report_error(provider, location, params, 0, error)
            raise error

        cache_kind = kind if days is None else f"{kind}:{days}"
        cached = self.cache.get(location, provider.slug, cache_kind)
        if cached is not None:
            self.health.record_cache_hit()
            self.query_logger.log_query(provider.name, location, {"source": "cache"}, 0, SUCCESS, cached.as_dict())
            return cached
        self.health.record_cache_miss()

        started = self._clock()
        try:
            if kind == FORECAST:
                record = provider.get_forecast(location, days or 1)
            else:
                record = provider.get_current(location)
        except ProviderError as exc:
            self._report_error(provider, location, params, self._elapsed(started), exc)
            raise
        elapsed = self._elapsed(started)
        self.cache.set(location, provider.slug, record, self.cache_config.ttl_for(kind), cache_kind)
        self.query_logger.log_query(provider.name, location, params, elapsed, SUCCESS, record.as_dict())
        return record

    def check(self, provider: WeatherProvider, location: str) -> Dict[str, Any]:
        """Live current-weather request that skips the response cache."""
        params = {**provider.query_params(CURRENT, location), "test": True}
        outcome: Dict[str, Any] = {"name": provider.name, "available": provider.is_available()}
        started = self._clock()
        try:
            if not provider.is_available():
                raise ProviderUnavailable(f"{provider.name} API key not configured")
            record = provider.get_current(location)
        except ProviderError as exc:
            elapsed = self._elapsed(started)
            self._report_error(provider, location, params, elapsed, exc)
            outcome.update(success=False, responseTime=elapsed, error=str(exc))
            return outcome
        elapsed = self._elapsed(started)
        self.query_logger.log_query(provider.name, location, params, elapsed, SUCCESS, record.as_dict())
        current = record.current
        outcome.update(
            success=True,
            responseTime=elapsed,
            error=None,
            weatherTest={
                "location": record.location.name or location,
                "temperature": current.temperature.celsius if current is not None else None,
                "condition": current.weather.main if current is not None else None,
            },
        )
        return outcome

    # Helpers ------------------------------------------------------------
    def _aggregate(self, kind: str, location: str, days: Optional[int] = None) -> AggregateResult:
        started = self._clock()
        with ThreadPoolExecutor(max_workers=len(self.providers) or 1, thread_name_prefix="provider") as pool:
            futures = [pool.submit(self.fetch, provider, kind, location, days) for provider in self.providers]
            result = AggregateResult()
            for provider, future in zip(self.providers, futures):
                try:
                    result.results[provider.name] = future.result()
                except ProviderUnavailable:
                    result.errors[provider.name] = UNAVAILABLE_MESSAGE
                except ProviderError as exc:
                    result.errors[provider.name] = str(exc)
                except Exception as exc:  # noqa: BLE001
                    self._log.exception("Unexpected failure from %s", provider.name)
                    result.errors[provider.name] = str(exc) or exc.__class__.__name__
        result.response_time = self._elapsed(started)
        if not result.succeeded:
            raise NoDataAvailable(NO_DATA_MESSAGE, result.errors, response_time=result.response_time)
        self._log.info(
            "Aggregated %s for %s: %s ok, %s failed", kind, location, len(result.results), len(result.errors)
        )
        return result

    def _report_error(
        self, provider: WeatherProvider, location: str, params: Dict, elapsed: int, error: ProviderError
    ) -> None:
        if isinstance(error, QuotaExceeded):
            self._log.warning("Provider %s quota exceeded", provider.name)
        else:
            self._log.warning("Provider %s failed (%s): %s", provider.name, error.category, error)
        self.health.record_provider_error(provider.name, str(error))
        self.query_logger.log_query(
            provider.name, location, {**params, "error": True}, elapsed, ERROR, error_message=str(error)
        )

    def _elapsed(self, started: float) -> int:
        return int(round((self._clock() - started) * 1000))


__all__ = ["AggregateResult", "WeatherAggregator", "CURRENT", "FORECAST", "NO_DATA_MESSAGE", "UNAVAILABLE_MESSAGE"]
