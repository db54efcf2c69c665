"""API URL configuration."""
from __future__ import annotations

from django.urls import path

from backend.api.views import (
    AccuracyView,
    AllWeatherView,
    CompareCurrentView,
    CompareForecastView,
    CurrentWeatherView,
    FavoriteListView,
    FavoriteLocationView,
    ForecastView,
    HealthView,
    HistoricalWeatherView,
    PerformanceView,
    ProviderTestDetailView,
    ProviderTestView,
    QueryLogExportView,
    QueryLogListView,
    QueryStatsView,
)

urlpatterns = [
    path("weather/current/<str:location>", CurrentWeatherView.as_view(), name="weather-current"),
    path("weather/forecast/<str:location>", ForecastView.as_view(), name="weather-forecast"),
    path("weather/all/<str:location>", AllWeatherView.as_view(), name="weather-all"),
    path("weather/historical/<str:location>", HistoricalWeatherView.as_view(), name="weather-historical"),
    path("weather/favorites", FavoriteListView.as_view(), name="weather-favorites"),
    path("weather/favorites/<str:location>", FavoriteLocationView.as_view(), name="weather-favorite"),
    path("compare/current/<str:location>", CompareCurrentView.as_view(), name="compare-current"),
    path("compare/forecast/<str:location>", CompareForecastView.as_view(), name="compare-forecast"),
    path("compare/accuracy", AccuracyView.as_view(), name="compare-accuracy"),
    path("logs", QueryLogListView.as_view(), name="logs"),
    path("logs/stats", QueryStatsView.as_view(), name="logs-stats"),
    path("logs/export", QueryLogExportView.as_view(), name="logs-export"),
    path("test/apis", ProviderTestView.as_view(), name="test-apis"),
    path("test/api/<str:api_name>", ProviderTestDetailView.as_view(), name="test-api"),
    path("test/performance", PerformanceView.as_view(), name="test-performance"),
    path("health", HealthView.as_view(), name="health"),
]
