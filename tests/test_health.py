from __future__ import annotations

from datetime import datetime, timezone

import pytest

from weathercompare.health import HealthRegistry

from fakes import FakeProvider


def test_snapshot_reports_providers_and_counters():
    registry = HealthRegistry()
    when = datetime(2024, 1, 10, 12, 30, tzinfo=timezone.utc)
    registry.record_provider_error("WeatherAPI", "timeout", when)
    registry.record_provider_error("WeatherAPI", "quota exceeded", when)
    registry.record_cache_hit()
    registry.record_cache_miss()
    registry.record_cache_miss()
    providers = [FakeProvider("WeatherAPI", "weatherapi"), FakeProvider("AccuWeather", "accuweather", available=False)]

    snapshot = registry.snapshot(providers)

    assert snapshot["cache"] == {"hits": 1, "misses": 2}
    assert snapshot["errors"] == {"WeatherAPI": 2}
    assert snapshot["providers"]["WeatherAPI"] == {
        "available": True,
        "circuit": {"state": "CLOSED", "failures": 0},
        "errors": 2,
        "lastError": {"message": "quota exceeded", "at": "2024-01-10T12:30:00+00:00"},
    }
    assert snapshot["providers"]["AccuWeather"]["available"] is False
    assert snapshot["providers"]["AccuWeather"]["lastError"] is None


def test_provider_name_is_required():
    registry = HealthRegistry()
    with pytest.raises(ValueError):
        registry.record_provider_error("")
