from __future__ import annotations

from typing import List, Mapping, Optional

from ..cache import KeyValueStore
from ..config import RequestConfig, accuweather_settings, openweather_settings, weatherapi_settings
from ..querylog import QueryLogger
from .accuweather import AccuWeatherProvider
from .base import WeatherProvider
from .openweather import OpenWeatherProvider
from .weatherapi import WeatherAPIProvider


def build_providers(
    environ: Optional[Mapping[str, str]] = None,
    *,
    request_config: Optional[RequestConfig] = None,
    location_cache: Optional[KeyValueStore] = None,
    query_logger: Optional[QueryLogger] = None,
) -> List[WeatherProvider]:
    """Instantiate the three providers in their reporting order."""
    return [
        OpenWeatherProvider(openweather_settings(environ), request_config=request_config),
        WeatherAPIProvider(weatherapi_settings(environ), request_config=request_config),
        AccuWeatherProvider(
            accuweather_settings(environ),
            request_config=request_config,
            location_cache=location_cache,
            query_logger=query_logger,
        ),
    ]


__all__ = [
    "WeatherProvider",
    "OpenWeatherProvider",
    "WeatherAPIProvider",
    "AccuWeatherProvider",
    "build_providers",
]
