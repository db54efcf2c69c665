from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import requests

from ..breaker import CircuitBreaker
from ..config import ProviderSettings, RequestConfig, openweather_settings
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
from ..units import (
    celsius_to_fahrenheit,
    hpa_to_inhg,
    metres_to_km,
    metres_to_miles,
    mm_to_inches,
    mps_to_kmh,
    mps_to_mph,
    round_half_up,
    to_float,
)
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

STEPS_PER_DAY = 8  # 3-hour forecast steps


def _error_message(payload: Any) -> Optional[str]:
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return None


def _fahrenheit(celsius: Optional[float]) -> Optional[int]:
    return round_half_up(celsius_to_fahrenheit(celsius))


def _wind_speed(mps: Optional[float]) -> WindSpeed:
    mps = round_half_up(mps, 2)
    return WindSpeed(mps=mps, mph=mps_to_mph(mps), kmh=mps_to_kmh(mps))


def _condition(item: Dict[str, Any]) -> Condition:
    weather = item["weather"][0]
    return Condition(
        main=weather["main"],
        description=weather.get("description") or "No description",
        icon=weather.get("icon"),
        code=weather.get("id"),
    )


class OpenWeatherProvider:
    """OpenWeatherMap: metric units, wind in m/s, visibility in metres."""

    def __init__(
        self,
        settings: Optional[ProviderSettings] = None,
        *,
        session: Optional[requests.Session] = None,
        request_config: Optional[RequestConfig] = None,
        breaker: Optional[CircuitBreaker] = None,
        now_func: Callable[[], datetime] = utcnow,
    ) -> None:
        self.settings = settings or openweather_settings()
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
        if kind == "forecast" and days is not None:
            params["cnt"] = days * STEPS_PER_DAY
        return params

    # Fetching -------------------------------------------------------------
    def fetch_current(self, location: str) -> Any:
        params = {**self.query_params("current", location), "appid": self.settings.api_key}
        return self.transport.get_json(self.settings.url("current"), params)

    def fetch_forecast(self, location: str, days: int) -> Any:
        params = {**self.query_params("forecast", location, days), "appid": self.settings.api_key}
        return self.transport.get_json(self.settings.url("forecast"), params)

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

    def _current_record(self, data: Dict[str, Any]) -> WeatherRecord:
        main = data["main"]
        wind = data.get("wind") or {}
        temp = to_float(main["temp"])
        feels_like = to_float(main.get("feels_like"))
        pressure = to_float(main.get("pressure"))
        visibility = to_float(data.get("visibility"))
        gust = to_float(wind.get("gust"))

        current = CurrentConditions(
            temperature=Temperature(
                celsius=round_half_up(temp),
                fahrenheit=_fahrenheit(temp),
                feels_like=FeelsLike(celsius=round_half_up(feels_like), fahrenheit=_fahrenheit(feels_like)),
            ),
            humidity=to_float(main.get("humidity")),
            pressure=Pressure(hpa=round_half_up(pressure), inhg=hpa_to_inhg(pressure)),
            visibility=Visibility(km=metres_to_km(visibility), miles=metres_to_miles(visibility)),
            wind=Wind(
                speed=_wind_speed(to_float(wind.get("speed"))),
                direction=to_float(wind.get("deg")),
                gust=_wind_speed(gust) if gust is not None else None,
            ),
            weather=_condition(data),
            clouds=to_float((data.get("clouds") or {}).get("all")),
            uv=None,  # not part of the current-weather endpoint
        )
        coord = data["coord"]
        return WeatherRecord(
            location=Location(
                name=data["name"],
                country=(data.get("sys") or {}).get("country"),
                coordinates=Coordinates(lat=to_float(coord["lat"]), lon=to_float(coord["lon"])),
                timezone=None,
            ),
            current=current,
            source=self.name,
            timestamp=epoch_to_iso(data["dt"]) if data.get("dt") is not None else self._now().isoformat(),
        )

    def _forecast_record(self, data: Dict[str, Any]) -> WeatherRecord:
        city = data["city"]
        steps: List[Dict[str, Any]] = data["list"]
        days: Dict[str, Dict[str, Any]] = {}
        for step in steps:
            date = datetime.fromtimestamp(int(step["dt"]), tz=timezone.utc).date().isoformat()
            main = step["main"]
            low = round_half_up(to_float(main["temp_min"]))
            high = round_half_up(to_float(main["temp_max"]))
            rain = to_float((step.get("rain") or {}).get("3h")) or 0.0
            day = days.get(date)
            if day is None:
                # The first step of the day supplies conditions, humidity and wind.
                days[date] = {"first": step, "min": low, "max": high, "rain": rain}
                continue
            day["min"] = min(day["min"], low)
            day["max"] = max(day["max"], high)
            day["rain"] += rain

        forecast = []
        for date, day in days.items():
            first = day["first"]
            wind = first.get("wind") or {}
            visibility = to_float(first.get("visibility"))
            rain_mm = round_half_up(day["rain"], 2)
            forecast.append(
                DayForecast(
                    date=date,
                    celsius=TemperatureRange(min=day["min"], max=day["max"]),
                    fahrenheit=TemperatureRange(
                        min=_fahrenheit(day["min"]),
                        max=_fahrenheit(day["max"]),
                    ),
                    weather=_condition(first),
                    humidity=to_float(first["main"].get("humidity")),
                    wind=Wind(speed=_wind_speed(to_float(wind.get("speed"))), direction=to_float(wind.get("deg"))),
                    visibility=Visibility(km=metres_to_km(visibility), miles=metres_to_miles(visibility)),
                    uv=None,
                    precipitation=Precipitation(
                        mm=rain_mm,
                        inches=mm_to_inches(rain_mm),
                        chance_of_rain=round_half_up(to_float(first.get("pop")) * 100)
                        if first.get("pop") is not None
                        else None,
                    ),
                )
            )

        self._log.debug("Grouped %s forecast steps into %s days", len(steps), len(forecast))
        coord = city["coord"]
        timestamp = epoch_to_iso(steps[0]["dt"]) if steps else self._now().isoformat()
        return WeatherRecord(
            location=Location(
                name=city["name"],
                country=city.get("country"),
                coordinates=Coordinates(lat=to_float(coord["lat"]), lon=to_float(coord["lon"])),
            ),
            forecast=tuple(forecast),
            source=self.name,
            timestamp=timestamp,
        )


__all__ = ["OpenWeatherProvider"]
