from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import requests

from ..breaker import CircuitBreaker
from ..cache import KeyValueStore, MemoryStore
from ..config import ProviderSettings, RequestConfig, accuweather_settings
from ..entities import (
    Condition,
    Coordinates,
    CurrentConditions,
    DayForecast,
    FeelsLike,
    Location,
    Precipitation,
    Pressure,
    Temperature,
    TemperatureRange,
    Visibility,
    WeatherRecord,
    Wind,
    WindSpeed,
)
from ..errors import LocationNotFound, ProviderError
from ..querylog import ERROR, SUCCESS, QueryLogger
from ..units import celsius_to_fahrenheit, kmh_to_mps, mm_to_inches, round_half_up, to_float
from .base import (
    HttpTransport,
    build_breaker,
    guarded_call,
    limit_days,
    normalizing,
    require_valid_current,
    require_valid_forecast,
    utcnow,
)

FORECAST_DAYS = 5


def _error_message(payload: Any) -> Optional[str]:
    if isinstance(payload, dict) and payload.get("Message"):
        return str(payload["Message"])
    return None


def _value(block: Optional[Dict[str, Any]], system: str) -> Optional[float]:
    """``{"Metric": {"Value": ...}, "Imperial": {...}}`` -> value for one unit system."""
    if not block:
        return None
    return to_float((block.get(system) or {}).get("Value"))


def _location(entry: Dict[str, Any]) -> Location:
    position = entry.get("GeoPosition") or {}
    return Location(
        name=entry.get("LocalizedName"),
        country=(entry.get("Country") or {}).get("LocalizedName"),
        region=(entry.get("AdministrativeArea") or {}).get("LocalizedName"),
        coordinates=Coordinates(lat=to_float(position.get("Latitude")), lon=to_float(position.get("Longitude"))),
        timezone=(entry.get("TimeZone") or {}).get("Name"),
    )


def _wind(block: Optional[Dict[str, Any]]) -> Optional[WindSpeed]:
    if not block:
        return None
    speed = block["Speed"]
    kmh = _value(speed, "Metric")
    return WindSpeed(mps=kmh_to_mps(kmh), mph=_value(speed, "Imperial"), kmh=kmh)


def _uv_index(day: Dict[str, Any]) -> Optional[float]:
    for item in day.get("AirAndPollen") or []:
        if item.get("Name") == "UVIndex":
            return to_float(item.get("Value"))
    return None


class AccuWeatherProvider:
    """AccuWeather: resolves the location to a key before any weather request.

    Resolved keys are kept in ``location_cache`` forever. The default
    :class:`MemoryStore` grows with every distinct location string; pass an
    :class:`~weathercompare.cache.LRUStore` to bound it.
    """

    def __init__(
        self,
        settings: Optional[ProviderSettings] = None,
        *,
        session: Optional[requests.Session] = None,
        request_config: Optional[RequestConfig] = None,
        breaker: Optional[CircuitBreaker] = None,
        location_cache: Optional[KeyValueStore] = None,
        query_logger: Optional[QueryLogger] = None,
        now_func: Callable[[], datetime] = utcnow,
    ) -> None:
        self.settings = settings or accuweather_settings()
        self.name = self.settings.name
        self.slug = self.settings.slug
        self.breaker = build_breaker(self.settings, breaker)
        self.transport = HttpTransport(
            self.name, error_message=_error_message, session=session, request_config=request_config
        )
        self.location_cache = location_cache if location_cache is not None else MemoryStore()
        self.query_logger = query_logger
        self._now = now_func
        self._log = logging.getLogger(self.__class__.__name__)

    def is_available(self) -> bool:
        return self.settings.has_valid_key

    def query_params(self, kind: str, location: str, days: Optional[int] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = dict(self.settings.params)
        if kind == "forecast":
            params["days"] = min(days or FORECAST_DAYS, FORECAST_DAYS)
        return params

    # Location lookup ------------------------------------------------------
    def resolve_location(self, location: str) -> Dict[str, Any]:
        """Return the first location search hit for ``location`` (cached without expiry)."""
        cached = self.location_cache.get(location)
        if cached is not None:
            return cached

        params = {"type": "location_search"}
        started = time.monotonic()
        try:
            results = self.transport.get_json(
                self.settings.url("location_search"),
                {"apikey": self.settings.api_key, "q": location, "language": self.settings.params["language"]},
            )
            if not isinstance(results, list) or not results:
                raise LocationNotFound("Location not found")
            entry = results[0]
            if "Key" not in entry:
                raise LocationNotFound("Location not found")
        except ProviderError as exc:
            self._log_search(location, {**params, "error": True}, started, ERROR, str(exc))
            raise
        self._log_search(location, params, started, SUCCESS)
        self._log.debug("Resolved %s to location key %s", location, entry["Key"])
        self.location_cache.set(location, entry)
        return entry

    def _log_search(
        self, location: str, params: Dict[str, Any], started: float, status: str, error: Optional[str] = None
    ) -> None:
        if self.query_logger is None:
            return
        elapsed = int((time.monotonic() - started) * 1000)
        self.query_logger.log_query(self.name, location, params, elapsed, status, error_message=error)

    # Fetching -------------------------------------------------------------
    def fetch_current(self, location: str) -> Any:
        entry = self.resolve_location(location)
        params = {"apikey": self.settings.api_key, **self.query_params("current", location)}
        conditions = self.transport.get_json(self.settings.url("current", f"/{entry['Key']}"), params)
        return {"Location": entry, "Conditions": conditions}

    def fetch_forecast(self, location: str, days: int) -> Any:
        entry = self.resolve_location(location)
        params = {"apikey": self.settings.api_key, **self.settings.params}
        forecast = self.transport.get_json(self.settings.url("forecast", f"/{entry['Key']}"), params)
        return {"Location": entry, "Forecast": forecast}

    def get_current(self, location: str) -> WeatherRecord:
        return guarded_call(self, lambda: require_valid_current(self.normalize_current(self.fetch_current(location))))

    def get_forecast(self, location: str, days: int) -> WeatherRecord:
        def load() -> WeatherRecord:
            record = self.normalize_forecast(self.fetch_forecast(location, days))
            return require_valid_forecast(limit_days(record, days))

        return guarded_call(self, load)

    # Normalization --------------------------------------------------------
    def normalize_current(self, raw: Any) -> WeatherRecord:
        return normalizing(self.name, lambda: self._current_record(raw))

    def normalize_forecast(self, raw: Any) -> WeatherRecord:
        return normalizing(self.name, lambda: self._forecast_record(raw))

    def _current_record(self, raw: Dict[str, Any]) -> WeatherRecord:
        data = raw["Conditions"][0]
        pressure = data.get("Pressure")
        visibility = data.get("Visibility")
        wind = data.get("Wind") or {}
        direction = wind.get("Direction") or {}
        imperial_pressure = _value(pressure, "Imperial")

        current = CurrentConditions(
            temperature=Temperature(
                celsius=round_half_up(_value(data["Temperature"], "Metric")),
                fahrenheit=round_half_up(_value(data["Temperature"], "Imperial")),
                feels_like=FeelsLike(
                    celsius=round_half_up(_value(data.get("RealFeelTemperature"), "Metric")),
                    fahrenheit=round_half_up(_value(data.get("RealFeelTemperature"), "Imperial")),
                ),
            ),
            humidity=to_float(data.get("RelativeHumidity")),
            pressure=Pressure(
                hpa=round_half_up(_value(pressure, "Metric")),
                inhg=round_half_up(imperial_pressure, 2),
            ),
            visibility=Visibility(km=_value(visibility, "Metric"), miles=_value(visibility, "Imperial")),
            wind=Wind(
                speed=_wind(wind) or WindSpeed(),
                direction=to_float(direction.get("Degrees")),
                direction_text=direction.get("Localized"),
                gust=_wind(data.get("WindGust")),
            ),
            weather=Condition(
                main=data.get("WeatherText") or "Unknown",
                description=data.get("WeatherText") or "No description",
                icon=data.get("WeatherIcon"),
            ),
            clouds=to_float(data.get("CloudCover")),
            uv=to_float(data.get("UVIndex")),
        )
        return WeatherRecord(
            location=_location(raw["Location"]),
            current=current,
            source=self.name,
            timestamp=data.get("LocalObservationDateTime") or self._now().isoformat(),
        )

    def _forecast_record(self, raw: Dict[str, Any]) -> WeatherRecord:
        payload = raw["Forecast"]
        daily: List[Dict[str, Any]] = payload["DailyForecasts"]
        forecast = []
        for day in daily:
            low = _value_of(day["Temperature"]["Minimum"])
            high = _value_of(day["Temperature"]["Maximum"])
            daytime = day.get("Day") or {}
            sun = day.get("Sun") or {}
            liquid = to_float((daytime.get("TotalLiquid") or {}).get("Value"))
            chance = daytime.get("RainProbability", daytime.get("PrecipitationProbability"))
            forecast.append(
                DayForecast(
                    date=day["Date"].split("T")[0],
                    celsius=TemperatureRange(min=round_half_up(low), max=round_half_up(high)),
                    fahrenheit=TemperatureRange(
                        min=round_half_up(celsius_to_fahrenheit(low)),
                        max=round_half_up(celsius_to_fahrenheit(high)),
                    ),
                    weather=Condition(
                        main=daytime.get("IconPhrase") or "Unknown",
                        description=daytime.get("LongPhrase") or daytime.get("IconPhrase") or "No description",
                        icon=daytime.get("Icon"),
                    ),
                    humidity=to_float((daytime.get("RelativeHumidity") or {}).get("Average")),
                    wind=Wind(
                        speed=_wind(daytime.get("Wind")) or WindSpeed(),
                        direction=to_float(((daytime.get("Wind") or {}).get("Direction") or {}).get("Degrees")),
                    ),
                    uv=_uv_index(day),
                    precipitation=Precipitation(
                        mm=liquid,
                        inches=mm_to_inches(liquid),
                        chance_of_rain=to_float(chance),
                        chance_of_snow=to_float(daytime.get("SnowProbability")),
                    ),
                    sunrise=sun.get("Rise"),
                    sunset=sun.get("Set"),
                )
            )
        headline = payload.get("Headline") or {}
        return WeatherRecord(
            location=_location(raw["Location"]),
            forecast=tuple(forecast),
            source=self.name,
            timestamp=headline.get("EffectiveDate") or self._now().isoformat(),
        )


def _value_of(block: Dict[str, Any]) -> Optional[float]:
    return to_float(block["Value"])


__all__ = ["AccuWeatherProvider", "FORECAST_DAYS"]
