from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

import requests

from ..breaker import CircuitBreaker
from ..config import ProviderSettings, RequestConfig, weatherapi_settings
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
from ..units import kmh_to_mps, round_half_up, to_float
from .base import (
    HttpTransport,
    build_breaker,
    epoch_to_iso,
    guarded_call,
    limit_days,
    normalizing,
    require_valid_current,
    require_valid_forecast,
    utcnow,
)

MAX_FORECAST_DAYS = 10

AIR_QUALITY_FIELDS = (
    ("co", "co"),
    ("no2", "no2"),
    ("o3", "o3"),
    ("so2", "so2"),
    ("pm2_5", "pm2_5"),
    ("pm10", "pm10"),
    ("usEpaIndex", "us-epa-index"),
    ("gbDefraIndex", "gb-defra-index"),
)


def _error_message(payload: Any) -> Optional[str]:
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return None


def _wind_speed(kph: Any, mph: Any) -> WindSpeed:
    kmh = to_float(kph)
    return WindSpeed(mps=kmh_to_mps(kmh), mph=to_float(mph), kmh=kmh)


def _condition(condition: Dict[str, Any]) -> Condition:
    text = condition["text"]
    return Condition(main=text, description=text, icon=condition.get("icon"), code=condition.get("code"))


def _location(location: Dict[str, Any]) -> Location:
    return Location(
        name=location["name"],
        country=location.get("country"),
        region=location.get("region") or None,
        coordinates=Coordinates(lat=to_float(location["lat"]), lon=to_float(location["lon"])),
        timezone=location.get("tz_id"),
    )


def _air_quality(raw: Optional[Dict[str, Any]]):
    if not raw:
        return None
    return tuple((name, raw.get(key)) for name, key in AIR_QUALITY_FIELDS)


class WeatherAPIProvider:
    """WeatherAPI.com: reports metric and imperial values side by side."""

    def __init__(
        self,
        settings: Optional[ProviderSettings] = None,
        *,
        session: Optional[requests.Session] = None,
        request_config: Optional[RequestConfig] = None,
        breaker: Optional[CircuitBreaker] = None,
        now_func: Callable[[], datetime] = utcnow,
    ) -> None:
        self.settings = settings or weatherapi_settings()
        self.name = self.settings.name
        self.slug = self.settings.slug
        self.breaker = build_breaker(self.settings, breaker)
        self.transport = HttpTransport(
            self.name, error_message=_error_message, session=session, request_config=request_config
        )
        self._now = now_func
        self._log = logging.getLogger(self.__class__.__name__)

    def is_available(self) -> bool:
        return self.settings.has_valid_key

    def query_params(self, kind: str, location: str, days: Optional[int] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = {"q": location, **self.settings.params}
        if kind == "forecast":
            params["days"] = min(days or 1, MAX_FORECAST_DAYS)
            params["alerts"] = "no"
        return params

    def fetch_current(self, location: str) -> Any:
        params = {"key": self.settings.api_key, **self.query_params("current", location)}
        return self.transport.get_json(self.settings.url("current"), params)

    def fetch_forecast(self, location: str, days: int) -> Any:
        if days > MAX_FORECAST_DAYS:
            self._log.info("Forecast for %s limited to %s days", location, MAX_FORECAST_DAYS)
        params = {"key": self.settings.api_key, **self.query_params("forecast", location, days)}
        return self.transport.get_json(self.settings.url("forecast"), params)

    def get_current(self, location: str) -> WeatherRecord:
        return guarded_call(self, lambda: require_valid_current(self.normalize_current(self.fetch_current(location))))

    def get_forecast(self, location: str, days: int) -> WeatherRecord:
        def load() -> WeatherRecord:
            record = self.normalize_forecast(self.fetch_forecast(location, days))
            return require_valid_forecast(limit_days(record, days))

        return guarded_call(self, load)

    def normalize_current(self, raw: Any) -> WeatherRecord:
        return normalizing(self.name, lambda: self._current_record(raw))

    def normalize_forecast(self, raw: Any) -> WeatherRecord:
        return normalizing(self.name, lambda: self._forecast_record(raw))

    def _current_record(self, data: Dict[str, Any]) -> WeatherRecord:
        current = data["current"]
        gust_kph = to_float(current.get("gust_kph"))
        conditions = CurrentConditions(
            temperature=Temperature(
                celsius=round_half_up(to_float(current["temp_c"])),
                fahrenheit=round_half_up(to_float(current.get("temp_f"))),
                feels_like=FeelsLike(
                    celsius=round_half_up(to_float(current.get("feelslike_c"))),
                    fahrenheit=round_half_up(to_float(current.get("feelslike_f"))),
                ),
            ),
            humidity=to_float(current.get("humidity")),
            pressure=Pressure(
                hpa=round_half_up(to_float(current.get("pressure_mb"))),
                inhg=to_float(current.get("pressure_in")),
            ),
            visibility=Visibility(km=to_float(current.get("vis_km")), miles=to_float(current.get("vis_miles"))),
            wind=Wind(
                speed=_wind_speed(current.get("wind_kph"), current.get("wind_mph")),
                direction=to_float(current.get("wind_degree")),
                direction_text=current.get("wind_dir"),
                gust=_wind_speed(gust_kph, current.get("gust_mph")) if gust_kph is not None else None,
            ),
            weather=_condition(current["condition"]),
            clouds=to_float(current.get("cloud")),
            uv=to_float(current.get("uv")),
            air_quality=_air_quality(current.get("air_quality")),
        )
        epoch = current.get("last_updated_epoch")
        return WeatherRecord(
            location=_location(data["location"]),
            current=conditions,
            source=self.name,
            timestamp=epoch_to_iso(epoch) if epoch is not None else self._now().isoformat(),
        )

    def _forecast_record(self, data: Dict[str, Any]) -> WeatherRecord:
        forecast = []
        for entry in data["forecast"]["forecastday"]:
            day = entry["day"]
            astro = entry.get("astro") or {}
            forecast.append(
                DayForecast(
                    date=entry["date"],
                    celsius=TemperatureRange(
                        min=round_half_up(to_float(day["mintemp_c"])),
                        max=round_half_up(to_float(day["maxtemp_c"])),
                        avg=round_half_up(to_float(day.get("avgtemp_c"))),
                    ),
                    fahrenheit=TemperatureRange(
                        min=round_half_up(to_float(day.get("mintemp_f"))),
                        max=round_half_up(to_float(day.get("maxtemp_f"))),
                        avg=round_half_up(to_float(day.get("avgtemp_f"))),
                    ),
                    weather=_condition(day["condition"]),
                    humidity=to_float(day.get("avghumidity")),
                    wind=Wind(speed=_wind_speed(day.get("maxwind_kph"), day.get("maxwind_mph"))),
                    visibility=Visibility(km=to_float(day.get("avgvis_km")), miles=to_float(day.get("avgvis_miles"))),
                    uv=to_float(day.get("uv")),
                    precipitation=Precipitation(
                        mm=to_float(day.get("totalprecip_mm")),
                        inches=to_float(day.get("totalprecip_in")),
                        chance_of_rain=to_float(day.get("daily_chance_of_rain")),
                        chance_of_snow=to_float(day.get("daily_chance_of_snow")),
                    ),
                    sunrise=astro.get("sunrise"),
                    sunset=astro.get("sunset"),
                )
            )
        location = data["location"]
        epoch = location.get("localtime_epoch")
        return WeatherRecord(
            location=_location(location),
            forecast=tuple(forecast),
            source=self.name,
            timestamp=epoch_to_iso(epoch) if epoch is not None else self._now().isoformat(),
        )


__all__ = ["WeatherAPIProvider", "MAX_FORECAST_DAYS"]
