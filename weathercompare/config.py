"""Provider, cache and resilience configuration read from the environment."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Optional


@dataclass(frozen=True)
class ProviderSettings:
    name: str
    slug: str
    base_url: str
    api_key: Optional[str]
    endpoints: Mapping[str, str]
    params: Mapping[str, object] = field(default_factory=dict)

    def url(self, endpoint: str, suffix: str = "") -> str:
        return f"{self.base_url}{self.endpoints[endpoint]}{suffix}"

    @property
    def has_valid_key(self) -> bool:
        return is_valid_api_key(self.api_key)


@dataclass(frozen=True)
class CacheConfig:
    """TTL in minutes per kind of request."""

    current: float = 5
    forecast: float = 30

    def ttl_for(self, kind: str) -> float:
        return getattr(self, kind)


@dataclass(frozen=True)
class BreakerConfig:
    failure_threshold: int = 5
    reset_timeout: float = 60.0


@dataclass
class RequestConfig:
    timeout: float = 10.0
    retries: int = 2
    backoff_factor: float = 0.3
    status_forcelist: Iterable[int] = (500, 502, 503, 504)


def is_valid_api_key(value: Optional[str]) -> bool:
    """Reject missing keys and the ``your_..._here`` placeholders from sample env files."""
    if not value or not value.strip():
        return False
    lowered = value.strip().lower()
    return not (lowered.startswith("your_") and lowered.endswith("_here"))


def openweather_settings(environ: Optional[Mapping[str, str]] = None) -> ProviderSettings:
    environ = os.environ if environ is None else environ
    return ProviderSettings(
        name="OpenWeatherMap",
        slug="openweather",
        base_url=environ.get("OPENWEATHER_BASE_URL", "https://api.openweathermap.org/data/2.5"),
        api_key=environ.get("OPENWEATHER_API_KEY"),
        endpoints={"current": "/weather", "forecast": "/forecast"},
        params={"units": "metric", "lang": "en"},
    )


def weatherapi_settings(environ: Optional[Mapping[str, str]] = None) -> ProviderSettings:
    environ = os.environ if environ is None else environ
    return ProviderSettings(
        name="WeatherAPI",
        slug="weatherapi",
        base_url=environ.get("WEATHERAPI_BASE_URL", "https://api.weatherapi.com/v1"),
        api_key=environ.get("WEATHERAPI_KEY"),
        endpoints={"current": "/current.json", "forecast": "/forecast.json"},
        params={"aqi": "yes"},
    )


def accuweather_settings(environ: Optional[Mapping[str, str]] = None) -> ProviderSettings:
    environ = os.environ if environ is None else environ
    return ProviderSettings(
        name="AccuWeather",
        slug="accuweather",
        base_url=environ.get("ACCUWEATHER_BASE_URL", "http://dataservice.accuweather.com"),
        api_key=environ.get("ACCUWEATHER_API_KEY"),
        endpoints={
            "location_search": "/locations/v1/cities/search",
            "current": "/currentconditions/v1",
            "forecast": "/forecasts/v1/daily/5day",
        },
        params={"language": "en-gb", "details": "true", "metric": "true"},
    )


# Accepted ``source`` query values -> provider slug.
SOURCE_ALIASES: Dict[str, str] = {
    "openweather": "openweather",
    "openweathermap": "openweather",
    "weatherapi": "weatherapi",
    "accuweather": "accuweather",
}


__all__ = [
    "ProviderSettings",
    "CacheConfig",
    "BreakerConfig",
    "RequestConfig",
    "is_valid_api_key",
    "openweather_settings",
    "weatherapi_settings",
    "accuweather_settings",
    "SOURCE_ALIASES",
]
