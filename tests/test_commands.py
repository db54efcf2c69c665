from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from io import StringIO

import pytest
from django.core.management import CommandError, call_command

from backend.api import views
from weathercompare.errors import UpstreamError
from weathercompare.querylog import QueryLogEntry
from weathercompare.services import WeatherAggregator, WeatherComparisonService
from weathercompare.storage import QueryLogStore

from fakes import FakeProvider, make_forecast, make_record


@pytest.fixture
def providers():
    forecast = make_forecast("OpenWeatherMap", [("2023-11-15", 7, 12, "Rain")])
    return [
        FakeProvider("OpenWeatherMap", "openweather", record=make_record("OpenWeatherMap"), forecast=forecast),
        FakeProvider("WeatherAPI", "weatherapi", error=UpstreamError("Internal error")),
    ]


@pytest.fixture(autouse=True)
def service(monkeypatch, providers):
    service = WeatherComparisonService(WeatherAggregator(providers))
    monkeypatch.setattr(views, "get_comparison_service", lambda: service)
    return service


def test_compare_weather_prints_json() -> None:
    out = StringIO()

    call_command("compare_weather", "London", stdout=out)

    payload = json.loads(out.getvalue())
    assert payload["sources"]["successful"] == 1
    assert payload["errors"] == {"WeatherAPI": "Internal error"}


def test_compare_weather_forecast(providers) -> None:
    out = StringIO()

    call_command("compare_weather", "SW1A 1AA", "--forecast", "--days", "3", stdout=out)

    payload = json.loads(out.getvalue())
    assert payload["location"] == "London"
    assert payload["days"] == 3
    assert providers[0].calls[-1] == {"kind": "forecast", "location": "London", "days": 3}


def test_compare_weather_rejects_invalid_location() -> None:
    with pytest.raises(CommandError, match="at least 2 characters"):
        call_command("compare_weather", "x")


def test_compare_weather_reports_total_failure(providers) -> None:
    providers[0].available = False

    with pytest.raises(CommandError, match="All weather providers failed") as excinfo:
        call_command("compare_weather", "London")

    assert "WeatherAPI: Internal error" in str(excinfo.value)


def test_prune_query_logs(monkeypatch, tmp_path) -> None:
    store = QueryLogStore(str(tmp_path / "queries.db"))
    old = (datetime.now(timezone.utc) - timedelta(days=45)).isoformat()
    store.append(QueryLogEntry("WeatherAPI", "London", 100, "success", timestamp=old))
    store.append(QueryLogEntry("WeatherAPI", "London", 100, "success"))
    monkeypatch.setattr(views, "get_query_log_store", lambda: store)
    out = StringIO()

    call_command("prune_query_logs", stdout=out)

    assert "Removed 1 query log entries older than 30 days" in out.getvalue()
    assert store.count() == 1


def test_prune_rejects_negative_days() -> None:
    with pytest.raises(CommandError):
        call_command("prune_query_logs", "--days", "-1")
