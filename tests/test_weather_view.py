from __future__ import annotations

import pytest
from django.test import Client

from backend.api import views
from weathercompare.cache import MemoryResponseCache
from weathercompare.errors import LocationNotFound, QuotaExceeded, TransportError
from weathercompare.querylog import QueryLogEntry, QueryLogger
from weathercompare.services import WeatherAggregator, WeatherComparisonService
from weathercompare.storage import FavoriteLocationStore, QueryLogStore

from fakes import FakeProvider, make_forecast, make_record


@pytest.fixture
def providers():
    forecast = make_forecast("OpenWeatherMap", [("2023-11-15", 7, 12, "Rain")])
    return [
        FakeProvider("OpenWeatherMap", "openweather", record=make_record("OpenWeatherMap"), forecast=forecast),
        FakeProvider("WeatherAPI", "weatherapi", record=make_record("WeatherAPI", celsius=14), forecast=forecast),
        FakeProvider("AccuWeather", "accuweather", available=False),
    ]


@pytest.fixture
def store(tmp_path):
    return QueryLogStore(str(tmp_path / "queries.db"))


@pytest.fixture
def client(monkeypatch, providers, store):
    aggregator = WeatherAggregator(providers, cache=MemoryResponseCache(), query_logger=QueryLogger(store))
    favorites = FavoriteLocationStore(store.path)
    service = WeatherComparisonService(aggregator, log_store=store, favorites=favorites)
    monkeypatch.setattr(views, "get_comparison_service", lambda: service)
    return Client()


def test_compare_current_endpoint(client) -> None:
    response = client.get("/api/compare/current/London")

    assert response.status_code == 200
    payload = response.json()
    assert payload["sources"] == {"successful": 2, "failed": 1, "total": 3}
    assert payload["comparison"]["temperature"]["values"] == [12, 14]
    assert payload["errors"]["AccuWeather"] == "Service not available (API key not configured)"


def test_postcode_is_mapped_to_city(client) -> None:
    response = client.get("/api/weather/current/SW1A%201AA")

    assert response.status_code == 200
    assert response.json()["location"] == "London"


def test_invalid_location_is_rejected(client, providers) -> None:
    response = client.get("/api/compare/current/x")

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["type"] == "invalid_input"
    assert error["path"] == "/api/compare/current/x"
    assert error["method"] == "GET"
    assert all(provider.calls == [] for provider in providers)


def test_no_data_returns_503(client, providers) -> None:
    for provider in providers:
        provider.available = False

    response = client.get("/api/compare/current/London")

    assert response.status_code == 503
    payload = response.json()
    assert payload["error"] == "No weather data available"
    assert payload["location"] == "London"
    assert set(payload["errors"]) == {"OpenWeatherMap", "WeatherAPI", "AccuWeather"}


def test_current_weather_from_selected_source(client) -> None:
    response = client.get("/api/weather/current/London", {"source": "weatherapi"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["source"] == "WeatherAPI"
    assert payload["data"]["current"]["temperature"]["celsius"] == 14


def test_unknown_source_is_rejected(client) -> None:
    response = client.get("/api/weather/current/London", {"source": "metoffice"})

    assert response.status_code == 400
    assert response.json()["error"]["type"] == "invalid_input"


@pytest.mark.parametrize(
    "error, status, error_type",
    [
        (LocationNotFound("city not found", status_code=404), 404, "location_not_found"),
        (QuotaExceeded("quota exceeded", status_code=429), 429, "quota_exceeded"),
        (TransportError("timeout", timeout=True), 504, "transport_error"),
    ],
)
def test_provider_errors_map_to_status(client, providers, error, status, error_type) -> None:
    providers[0].error = error

    response = client.get("/api/weather/current/London")

    assert response.status_code == status
    assert response.json()["error"]["type"] == error_type


def test_unavailable_source_returns_503(client) -> None:
    response = client.get("/api/weather/current/London", {"source": "accuweather"})

    assert response.status_code == 503
    assert response.json()["error"]["type"] == "provider_unavailable"


def test_forecast_days_are_clamped(client, providers) -> None:
    response = client.get("/api/weather/forecast/London", {"days": "20"})

    assert response.status_code == 200
    assert response.json()["days"] == 10
    assert providers[0].calls[-1]["days"] == 10


def test_compare_forecast_endpoint(client) -> None:
    response = client.get("/api/compare/forecast/London", {"days": "2"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["days"] == 2
    assert payload["comparison"]["day1"]["date"] == "2023-11-15"


@pytest.mark.parametrize(
    "params, status",
    [
        ({}, 400),
        ({"date": "15/11/2023"}, 400),
        ({"date": "2023-11-15", "source": "accuweather"}, 400),
        ({"date": "2023-11-15"}, 501),
    ],
)
def test_historical_endpoint_validation(client, params, status) -> None:
    response = client.get("/api/weather/historical/London", params)

    assert response.status_code == status


def test_historical_endpoint_requires_weatherapi(client, providers) -> None:
    providers[1].available = False

    response = client.get("/api/weather/historical/London", {"date": "2023-11-15"})

    assert response.status_code == 503


def test_query_stats_endpoint(client, store) -> None:
    client.get("/api/compare/current/London")

    response = client.get("/api/logs/stats", {"days": "1000"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["totalQueries"] == 3
    assert payload["apiBreakdown"]["AccuWeather"]["failed"] == 1


def test_accuracy_endpoint(client, store) -> None:
    client.get("/api/compare/current/London")

    response = client.get("/api/compare/accuracy", {"days": "3"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["period"]["days"] == 3
    assert payload["accuracy"]["OpenWeatherMap"]["successRate"] == 100


def test_export_csv(client, store) -> None:
    store.append(QueryLogEntry("WeatherAPI", "London", 120, "success"))

    response = client.get("/api/logs/export", {"format": "csv"})

    assert response.status_code == 200
    assert response["Content-Type"].startswith("text/csv")
    assert response["Content-Disposition"] == 'attachment; filename="query_logs.csv"'
    assert response.content.decode().splitlines()[1].split(",")[1] == "WeatherAPI"


def test_export_rejects_unknown_format(client) -> None:
    response = client.get("/api/logs/export", {"format": "xml"})

    assert response.status_code == 400


def test_health_endpoint(client) -> None:
    response = client.get("/api/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["providers"]["AccuWeather"]["available"] is False
    assert payload["providers"]["OpenWeatherMap"]["circuit"]["state"] == "CLOSED"


def test_all_sources_endpoint(client) -> None:
    response = client.get("/api/weather/all/London")

    assert response.status_code == 200
    payload = response.json()
    assert [source["name"] for source in payload["comparison"]["sources"]] == ["OpenWeatherMap", "WeatherAPI"]
    assert payload["comparison"]["comparison"]["temperature"]["values"] == [12, 14]


def test_favorite_locations_lifecycle(client) -> None:
    added = client.post(
        "/api/weather/favorites/London", {"displayName": "Home"}, content_type="application/json"
    )
    assert added.status_code == 200
    assert added.json()["location"]["coordinates"] == {"lat": 51.5, "lon": -0.12}

    listed = client.get("/api/weather/favorites").json()
    assert listed["count"] == 1
    assert listed["favorites"][0]["displayName"] == "Home"

    assert client.delete("/api/weather/favorites/London").status_code == 200
    missing = client.delete("/api/weather/favorites/London")
    assert missing.status_code == 404
    assert missing.json()["error"]["message"] == "Location not found in favorites"


def test_provider_test_endpoints(client) -> None:
    every = client.get("/api/test/apis", {"location": "Leeds"}).json()
    single = client.get("/api/test/api/weatherapi")
    unknown = client.get("/api/test/api/metoffice")

    assert every["testLocation"] == "Leeds"
    assert every["summary"]["successful"] == 2
    assert single.status_code == 200
    assert single.json()["result"]["api"] == "WeatherAPI"
    assert unknown.status_code == 400


def test_performance_endpoint(client) -> None:
    client.get("/api/compare/current/London")

    payload = client.get("/api/test/performance", {"days": "3"}).json()

    assert payload["period"]["days"] == 3
    assert {row["apiName"] for row in payload["metrics"]} == {"OpenWeatherMap", "WeatherAPI", "AccuWeather"}
    assert payload["queryStats"]["totalQueries"] == 3


def test_log_listing_with_filters(client, store) -> None:
    store.append(QueryLogEntry("WeatherAPI", "London", 120, "success", timestamp="2024-03-09T12:00:00+00:00"))
    store.append(QueryLogEntry("AccuWeather", "Leeds", 300, "error", timestamp="2024-03-10T12:00:00+00:00"))

    errors = client.get("/api/logs", {"status": "error"}).json()
    dated = client.get("/api/logs", {"startDate": "2024-03-09", "endDate": "2024-03-09"}).json()

    assert [log["apiName"] for log in errors["logs"]] == ["AccuWeather"]
    assert [log["location"] for log in dated["logs"]] == ["London"]


@pytest.mark.parametrize(
    "params", [{"status": "pending"}, {"performance": "instant"}, {"startDate": "yesterday"}]
)
def test_log_listing_rejects_bad_filters(client, params) -> None:
    assert client.get("/api/logs", params).status_code == 400
