"""REST API views for weather comparison and query log reporting."""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

from django.conf import settings
from django.core.cache import caches
from django.http import HttpResponse
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from backend.cache import DjangoResponseCache
from weathercompare.errors import (
    CircuitOpen,
    LocationNotFound,
    MalformedResponse,
    NoDataAvailable,
    ProviderError,
    ProviderUnavailable,
    QuotaExceeded,
    TransportError,
)
from weathercompare.health import HealthRegistry
from weathercompare.locations import InvalidLocation, clean_location
from weathercompare.providers import build_providers
from weathercompare.querylog import ERROR, SUCCESS, QueryLogger
from weathercompare.services import WeatherAggregator, WeatherComparisonService
from weathercompare.services.weather import (
    DEFAULT_TEST_LOCATION,
    LOG_WINDOW_LIMIT,
    FavoritesUnavailable,
    UnknownSource,
    clamp,
)
from weathercompare.storage import FavoriteLocationStore, QueryLogStore

logger = logging.getLogger(__name__)

EXPORT_CONTENT_TYPES = {
    "json": "application/json",
    "csv": "text/csv",
    "txt": "text/plain",
}

LOG_STATUSES = (SUCCESS, ERROR)
PERFORMANCE_CATEGORIES = ("fast", "normal", "slow", "very_slow")


@lru_cache(maxsize=1)
def get_query_log_store() -> QueryLogStore:
    return QueryLogStore(settings.QUERY_LOG_DATABASE)


@lru_cache(maxsize=1)
def get_favorite_store() -> FavoriteLocationStore:
    return FavoriteLocationStore(settings.QUERY_LOG_DATABASE)


@lru_cache(maxsize=1)
def get_comparison_service() -> WeatherComparisonService:
    store = get_query_log_store()
    query_logger = QueryLogger(store)
    aggregator = WeatherAggregator(
        build_providers(query_logger=query_logger),
        cache=DjangoResponseCache(caches[settings.WEATHER_CACHE_ALIAS]),
        query_logger=query_logger,
        health=HealthRegistry(),
    )
    return WeatherComparisonService(aggregator, log_store=store, favorites=get_favorite_store())


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _int_param(request, name: str) -> Optional[int]:
    try:
        return int(request.query_params[name])
    except (KeyError, TypeError, ValueError):
        return None


def _datetime_param(value: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    """ISO date or datetime; a bare end date covers the whole day."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if end_of_day and len(value) == 10:
        parsed = parsed + timedelta(days=1) - timedelta(microseconds=1)
    return parsed


def error_status(exc: Exception) -> int:
    if isinstance(exc, (InvalidLocation, UnknownSource)):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, LocationNotFound):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, QuotaExceeded):
        return status.HTTP_429_TOO_MANY_REQUESTS
    if isinstance(exc, (ProviderUnavailable, CircuitOpen, NoDataAvailable, FavoritesUnavailable)):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if isinstance(exc, TransportError):
        return status.HTTP_504_GATEWAY_TIMEOUT if exc.timeout else status.HTTP_502_BAD_GATEWAY
    if isinstance(exc, (MalformedResponse, ProviderError)):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(request, error_type: str, message: str, status_code: int) -> Response:
    return Response(
        {
            "error": {
                "type": error_type,
                "message": message,
                "status": status_code,
                "timestamp": _now_iso(),
                "path": request.path,
                "method": request.method,
            }
        },
        status=status_code,
    )


class WeatherAPIView(APIView):
    """Base view translating domain errors into JSON error responses."""

    permission_classes = [AllowAny]

    def handle_exception(self, exc):
        if isinstance(exc, NoDataAvailable):
            return Response(
                {
                    "error": "No weather data available",
                    "message": str(exc),
                    "location": getattr(self, "location", None),
                    "errors": exc.errors,
                    "responseTime": exc.response_time,
                },
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        if isinstance(exc, (InvalidLocation, UnknownSource, FavoritesUnavailable, ProviderError)):
            error_type = getattr(exc, "category", "invalid_input")
            code = error_status(exc)
            if code >= 500:
                logger.warning("%s %s failed: %s", self.request.method, self.request.path, exc)
            return error_response(self.request, error_type, str(exc), code)
        return super().handle_exception(exc)

    def clean(self, location: str) -> str:
        self.location = clean_location(location)
        return self.location


class CurrentWeatherView(WeatherAPIView):
    def get(self, request, location: str):
        location = self.clean(location)
        service = get_comparison_service()
        record = service.current(location, request.query_params.get("source"))
        return Response(
            {
                "success": True,
                "data": record.as_dict(),
                "source": record.source,
                "location": location,
                "timestamp": _now_iso(),
            }
        )


class ForecastView(WeatherAPIView):
    def get(self, request, location: str):
        location = self.clean(location)
        days = clamp(_int_param(request, "days"), 1, 10, 5)
        record = get_comparison_service().forecast(location, days, request.query_params.get("source"))
        return Response(
            {
                "success": True,
                "data": record.as_dict(),
                "source": record.source,
                "location": location,
                "days": days,
                "timestamp": _now_iso(),
            }
        )


class HistoricalWeatherView(WeatherAPIView):
    """Validated placeholder: historical retrieval is not implemented."""

    def get(self, request, location: str):
        self.clean(location)
        raw_date = request.query_params.get("date")
        if not raw_date:
            return error_response(
                request, "invalid_input", "Please provide a date in YYYY-MM-DD format", status.HTTP_400_BAD_REQUEST
            )
        try:
            date.fromisoformat(raw_date)
        except ValueError:
            return error_response(
                request, "invalid_input", "Date must be in YYYY-MM-DD format", status.HTTP_400_BAD_REQUEST
            )
        if request.query_params.get("source", "weatherapi").lower() != "weatherapi":
            return error_response(
                request,
                "invalid_input",
                "Historical weather data is currently only available from WeatherAPI",
                status.HTTP_400_BAD_REQUEST,
            )
        if not get_comparison_service().resolve_source("weatherapi").is_available():
            return error_response(
                request, "provider_unavailable", "WeatherAPI service is not available", status.HTTP_503_SERVICE_UNAVAILABLE
            )
        return Response(
            {
                "error": "Feature not implemented",
                "message": "Historical weather data endpoint is not yet implemented",
                "plannedFeature": True,
            },
            status=status.HTTP_501_NOT_IMPLEMENTED,
        )


class CompareCurrentView(WeatherAPIView):
    def get(self, request, location: str):
        return Response(get_comparison_service().compare_current(self.clean(location)))


class CompareForecastView(WeatherAPIView):
    def get(self, request, location: str):
        location = self.clean(location)
        return Response(get_comparison_service().compare_forecast(location, _int_param(request, "days")))


class AccuracyView(WeatherAPIView):
    def get(self, request):
        return Response(get_comparison_service().accuracy_report(_int_param(request, "days")))


class QueryStatsView(WeatherAPIView):
    def get(self, request):
        days = clamp(_int_param(request, "days"), 1, 365, 7)
        return Response(get_comparison_service().query_stats(days))


class QueryLogExportView(WeatherAPIView):
    def get(self, request):
        fmt = request.query_params.get("format", "json").lower()
        if fmt not in EXPORT_CONTENT_TYPES:
            return error_response(
                request, "invalid_input", f"Unsupported export format: {fmt}", status.HTTP_400_BAD_REQUEST
            )
        limit = clamp(_int_param(request, "limit"), 1, 10000, 1000)
        body = get_comparison_service().export(fmt, limit)
        response = HttpResponse(body, content_type=EXPORT_CONTENT_TYPES[fmt])
        response["Content-Disposition"] = f'attachment; filename="query_logs.{fmt}"'
        return response


class HealthView(WeatherAPIView):
    def get(self, request):
        return Response(get_comparison_service().health())


class AllWeatherView(WeatherAPIView):
    def get(self, request, location: str):
        return Response(get_comparison_service().merge_current(self.clean(location)))


class FavoriteListView(WeatherAPIView):
    def get(self, request):
        favorites = get_comparison_service().list_favorites()
        return Response(
            {
                "success": True,
                "favorites": [favorite.to_api_dict() for favorite in favorites],
                "count": len(favorites),
            }
        )


class FavoriteLocationView(WeatherAPIView):
    def post(self, request, location: str):
        location = self.clean(location)
        data = request.data if isinstance(request.data, dict) else {}
        favorite = get_comparison_service().add_favorite(
            location, display_name=data.get("displayName"), postcode=data.get("postcode")
        )
        return Response(
            {"success": True, "message": "Location added to favorites", "location": favorite.to_api_dict()}
        )

    def delete(self, request, location: str):
        location = self.clean(location)
        if not get_comparison_service().remove_favorite(location):
            return error_response(
                request, "not_found", "Location not found in favorites", status.HTTP_404_NOT_FOUND
            )
        return Response({"success": True, "message": "Location removed from favorites", "location": location})


class ProviderTestView(WeatherAPIView):
    def get(self, request):
        location = request.query_params.get("location", "").strip() or DEFAULT_TEST_LOCATION
        return Response(get_comparison_service().check_providers(self.clean(location)))


class ProviderTestDetailView(WeatherAPIView):
    def get(self, request, api_name: str):
        location = request.query_params.get("location", "").strip() or DEFAULT_TEST_LOCATION
        return Response(get_comparison_service().check_provider(api_name, self.clean(location)))


class PerformanceView(WeatherAPIView):
    def get(self, request):
        return Response(get_comparison_service().performance_metrics(_int_param(request, "days")))


class QueryLogListView(WeatherAPIView):
    def get(self, request):
        params = request.query_params
        log_status = params.get("status")
        if log_status and log_status not in LOG_STATUSES:
            return error_response(
                request, "invalid_input", f"Unsupported status: {log_status}", status.HTTP_400_BAD_REQUEST
            )
        performance = params.get("performance")
        if performance and performance not in PERFORMANCE_CATEGORIES:
            return error_response(
                request,
                "invalid_input",
                f"Unsupported performance category: {performance}",
                status.HTTP_400_BAD_REQUEST,
            )
        try:
            start = _datetime_param(params.get("startDate"))
            end = _datetime_param(params.get("endDate"), end_of_day=True)
        except ValueError:
            return error_response(
                request, "invalid_input", "Dates must be in ISO 8601 format", status.HTTP_400_BAD_REQUEST
            )
        payload = get_comparison_service().list_logs(
            api_name=params.get("api"),
            location=params.get("location"),
            status=log_status,
            performance=performance,
            start=start,
            end=end,
            limit=clamp(_int_param(request, "limit"), 1, 1000, 100),
            offset=clamp(_int_param(request, "offset"), 0, LOG_WINDOW_LIMIT, 0),
        )
        return Response(payload)
