from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from ..config import SOURCE_ALIASES
from ..entities import WeatherRecord
from ..errors import ProviderError
from ..querylog import QueryLogEntry, export_logs
from ..storage import FavoriteLocation, FavoriteLocationStore, QueryLogStore
from . import analytics, comparison
from .aggregator import CURRENT, FORECAST, AggregateResult, WeatherAggregator

MAX_COMPARE_FORECAST_DAYS = 5
MAX_HISTORY_DAYS = 30
LOG_WINDOW_LIMIT = 10000
DEFAULT_TEST_LOCATION = "London"

logger = logging.getLogger(__name__)


def clamp(value: Optional[int], low: int, high: int, default: int) -> int:
    if value is None:
        return default
    return max(low, min(high, value))


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class UnknownSource(ValueError):
    pass


class FavoritesUnavailable(RuntimeError):
    category = "storage_unavailable"


class WeatherComparisonService:
    """Builds the reporting payloads served by the API and the CLI."""

    def __init__(
        self,
        aggregator: WeatherAggregator,
        *,
        log_store: Optional[QueryLogStore] = None,
        favorites: Optional[FavoriteLocationStore] = None,
    ) -> None:
        self.aggregator = aggregator
        self.log_store = log_store
        self.favorites = favorites

    # Single source ------------------------------------------------------
    def resolve_source(self, source: Optional[str]):
        slug = SOURCE_ALIASES.get((source or "openweather").strip().lower())
        if slug is None:
            raise UnknownSource(f"Unsupported source: {source}")
        return self.aggregator.provider(slug)

    def current(self, location: str, source: Optional[str] = None) -> WeatherRecord:
        return self.aggregator.fetch(self.resolve_source(source), CURRENT, location)

    def forecast(self, location: str, days: int, source: Optional[str] = None) -> WeatherRecord:
        return self.aggregator.fetch(self.resolve_source(source), FORECAST, location, days)

    # Comparisons ----------------------------------------------------------
    def compare_current(self, location: str) -> Dict[str, Any]:
        result = self.aggregator.aggregate_current(location)
        records = result.records
        payload = self._envelope(location, result)
        payload["comparison"] = comparison.build_comparison(records)
        payload["accuracy"] = comparison.build_accuracy_metrics(records)
        return self._with_errors(payload, result)

    def compare_forecast(self, location: str, days: Optional[int] = None) -> Dict[str, Any]:
        days = clamp(days, 1, MAX_COMPARE_FORECAST_DAYS, MAX_COMPARE_FORECAST_DAYS)
        result = self.aggregator.aggregate_forecast(location, days)
        payload = self._envelope(location, result)
        payload["days"] = days
        payload["comparison"] = comparison.compare_forecasts(result.records, days)
        return self._with_errors(payload, result)

    def merge_current(self, location: str) -> Dict[str, Any]:
        """Every source side by side plus the per-metric spread."""
        result = self.aggregator.aggregate_current(location)
        payload = self._envelope(location, result)
        payload["comparison"] = comparison.merge_sources(result.records)
        return self._with_errors(payload, result)

    def _envelope(self, location: str, result: AggregateResult) -> Dict[str, Any]:
        return {
            "success": True,
            "location": location,
            "timestamp": _now_iso(),
            "responseTime": result.response_time,
            "sources": {
                "successful": len(result.results),
                "failed": len(result.errors),
                "total": len(self.aggregator.providers),
            },
            "results": {
                name: {"data": record.as_dict(), "success": True, "source": name}
                for name, record in result.results.items()
            },
        }

    @staticmethod
    def _with_errors(payload: Dict[str, Any], result: AggregateResult) -> Dict[str, Any]:
        if result.errors:
            payload["errors"] = dict(result.errors)
        return payload

    # Query log reports ----------------------------------------------------
    def recent_logs(self, days: int, now: Optional[datetime] = None) -> List[QueryLogEntry]:
        if self.log_store is None:
            return []
        end = now or datetime.now(timezone.utc)
        return self.log_store.fetch(limit=LOG_WINDOW_LIMIT, start=end - timedelta(days=days))

    def accuracy_report(self, days: Optional[int] = None, now: Optional[datetime] = None) -> Dict[str, Any]:
        days = clamp(days, 1, MAX_HISTORY_DAYS, 7)
        end = now or datetime.now(timezone.utc)
        logs = self.recent_logs(days, end)
        return {
            "success": True,
            "period": {
                "days": days,
                "startDate": (end - timedelta(days=days)).isoformat(),
                "endDate": end.isoformat(),
            },
            "accuracy": analytics.accuracy_history(logs),
            "totalLogs": len(logs),
            "timestamp": _now_iso(),
        }

    def query_stats(self, days: int = 7, now: Optional[datetime] = None) -> Dict[str, Any]:
        return analytics.summarize_queries(self.recent_logs(days, now))

    def export(self, fmt: str = "json", limit: int = 1000) -> str:
        entries = self.log_store.fetch(limit=limit) if self.log_store is not None else []
        return export_logs(entries, fmt)

    def list_logs(
        self,
        *,
        api_name: Optional[str] = None,
        location: Optional[str] = None,
        status: Optional[str] = None,
        performance: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Dict[str, Any]:
        entries = self.log_store.fetch(limit=LOG_WINDOW_LIMIT) if self.log_store is not None else []
        matched = analytics.filter_logs(
            entries,
            api_name=api_name,
            location=location,
            status=status,
            performance=performance,
            start=start,
            end=end,
        )
        page = matched[offset:offset + limit]
        return {
            "success": True,
            "logs": [entry.to_api_dict() for entry in page],
            "count": len(page),
            "total": len(matched),
            "limit": limit,
            "offset": offset,
        }

    def performance_metrics(self, days: Optional[int] = None, now: Optional[datetime] = None) -> Dict[str, Any]:
        days = clamp(days, 1, MAX_HISTORY_DAYS, 7)
        end = now or datetime.now(timezone.utc)
        logs = self.recent_logs(days, end)
        return {
            "success": True,
            "period": {
                "days": days,
                "startDate": (end - timedelta(days=days)).date().isoformat(),
                "endDate": end.date().isoformat(),
            },
            "metrics": analytics.daily_api_metrics(logs),
            "queryStats": analytics.summarize_queries(logs),
            "timestamp": _now_iso(),
        }

    # Provider checks ------------------------------------------------------
    def check_provider(self, source: str, location: str = DEFAULT_TEST_LOCATION) -> Dict[str, Any]:
        provider = self.resolve_source(source)
        outcome = self.aggregator.check(provider, location)
        result = {
            "api": outcome.pop("name"),
            "testLocation": location,
            "timestamp": _now_iso(),
            **outcome,
        }
        return {"success": result["success"], "result": result}

    def check_providers(self, location: str = DEFAULT_TEST_LOCATION) -> Dict[str, Any]:
        started = time.monotonic()
        results = {}
        for provider in self.aggregator.providers:
            outcome = self.aggregator.check(provider, location)
            outcome["timestamp"] = _now_iso()
            results[provider.name] = outcome
        successful = sum(1 for outcome in results.values() if outcome["success"])
        return {
            "success": True,
            "testLocation": location,
            "timestamp": _now_iso(),
            "totalResponseTime": int(round((time.monotonic() - started) * 1000)),
            "summary": {
                "total": len(results),
                "successful": successful,
                "failed": len(results) - successful,
                "allPassing": successful == len(results),
            },
            "results": results,
        }

    # Favourite locations ----------------------------------------------------
    def _favorite_store(self) -> FavoriteLocationStore:
        if self.favorites is None:
            raise FavoritesUnavailable("Favourite locations are not configured")
        return self.favorites

    def add_favorite(
        self, location: str, display_name: Optional[str] = None, postcode: Optional[str] = None
    ) -> FavoriteLocation:
        """Save ``location``; coordinates come from OpenWeatherMap when it answers."""
        store = self._favorite_store()
        coordinates = None
        provider = self.resolve_source("openweather")
        if provider.is_available():
            try:
                coordinates = self.aggregator.fetch(provider, CURRENT, location).location.coordinates
            except ProviderError as exc:
                logger.info("No coordinates for favourite %s: %s", location, exc)
        return store.add(
            FavoriteLocation(
                location=location,
                display_name=display_name or location,
                postcode=postcode,
                latitude=coordinates.lat if coordinates is not None else None,
                longitude=coordinates.lon if coordinates is not None else None,
            )
        )

    def list_favorites(self) -> List[FavoriteLocation]:
        return self._favorite_store().fetch_all()

    def remove_favorite(self, location: str) -> bool:
        return self._favorite_store().remove(location) > 0

    def health(self) -> Dict[str, object]:
        snapshot = self.aggregator.health.snapshot(self.aggregator.providers)
        snapshot["timestamp"] = _now_iso()
        return snapshot


__all__ = [
    "WeatherComparisonService",
    "UnknownSource",
    "FavoritesUnavailable",
    "clamp",
    "DEFAULT_TEST_LOCATION",
    "MAX_COMPARE_FORECAST_DAYS",
    "MAX_HISTORY_DAYS",
    "LOG_WINDOW_LIMIT",
]
