from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .units import is_number


@dataclass(frozen=True)
class Coordinates:
    lat: Optional[float] = None
    lon: Optional[float] = None

    def as_dict(self) -> Dict[str, Any]:
        return {"lat": self.lat, "lon": self.lon}


@dataclass(frozen=True)
class Location:
    name: Optional[str]
    country: Optional[str] = None
    region: Optional[str] = None
    coordinates: Coordinates = field(default_factory=Coordinates)
    timezone: Optional[str] = None

    def is_valid(self) -> bool:
        return bool(self.name) and is_number(self.coordinates.lat) and is_number(self.coordinates.lon)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name or "Unknown",
            "country": self.country or "Unknown",
            "region": self.region,
            "coordinates": self.coordinates.as_dict(),
            "timezone": self.timezone,
        }


@dataclass(frozen=True)
class FeelsLike:
    celsius: Optional[int] = None
    fahrenheit: Optional[int] = None


@dataclass(frozen=True)
class Temperature:
    """Headline temperatures, rounded to whole degrees."""

    celsius: Optional[int] = None
    fahrenheit: Optional[int] = None
    feels_like: FeelsLike = field(default_factory=FeelsLike)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "celsius": self.celsius,
            "fahrenheit": self.fahrenheit,
            "feelsLike": {"celsius": self.feels_like.celsius, "fahrenheit": self.feels_like.fahrenheit},
        }


@dataclass(frozen=True)
class Pressure:
    hpa: Optional[int] = None
    inhg: Optional[float] = None

    def as_dict(self) -> Dict[str, Any]:
        return {"hPa": self.hpa, "inHg": self.inhg}


@dataclass(frozen=True)
class Visibility:
    km: Optional[float] = None
    miles: Optional[float] = None

    def as_dict(self) -> Dict[str, Any]:
        return {"km": self.km, "miles": self.miles}


@dataclass(frozen=True)
class WindSpeed:
    mps: Optional[float] = None
    mph: Optional[float] = None
    kmh: Optional[float] = None

    def as_dict(self) -> Dict[str, Any]:
        return {"mps": self.mps, "mph": self.mph, "kmh": self.kmh}


@dataclass(frozen=True)
class Wind:
    speed: WindSpeed = field(default_factory=WindSpeed)
    direction: Optional[float] = None
    direction_text: Optional[str] = None
    gust: Optional[WindSpeed] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "speed": self.speed.as_dict(),
            "direction": self.direction,
            "directionText": self.direction_text,
            "gust": self.gust.as_dict() if self.gust is not None else None,
        }


@dataclass(frozen=True)
class Condition:
    main: str = "Unknown"
    description: str = "No description"
    icon: Optional[Any] = None
    code: Optional[int] = None

    def as_dict(self) -> Dict[str, Any]:
        return {"main": self.main, "description": self.description, "icon": self.icon, "code": self.code}


@dataclass(frozen=True)
class CurrentConditions:
    temperature: Temperature = field(default_factory=Temperature)
    humidity: Optional[float] = None
    pressure: Pressure = field(default_factory=Pressure)
    visibility: Visibility = field(default_factory=Visibility)
    wind: Wind = field(default_factory=Wind)
    weather: Condition = field(default_factory=Condition)
    clouds: Optional[float] = None
    uv: Optional[float] = None
    # Pollutant name -> concentration or index; tuple of pairs keeps the record hashable.
    air_quality: Optional[Tuple[Tuple[str, Any], ...]] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "temperature": self.temperature.as_dict(),
            "humidity": self.humidity,
            "pressure": self.pressure.as_dict(),
            "visibility": self.visibility.as_dict(),
            "wind": self.wind.as_dict(),
            "weather": self.weather.as_dict(),
            "clouds": self.clouds,
            "uv": self.uv,
            "airQuality": dict(self.air_quality) if self.air_quality is not None else None,
        }


@dataclass(frozen=True)
class TemperatureRange:
    min: Optional[int] = None
    max: Optional[int] = None
    avg: Optional[int] = None

    def as_dict(self) -> Dict[str, Any]:
        return {"min": self.min, "max": self.max, "avg": self.avg}


@dataclass(frozen=True)
class Precipitation:
    mm: Optional[float] = None
    inches: Optional[float] = None
    chance_of_rain: Optional[float] = None
    chance_of_snow: Optional[float] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "mm": self.mm,
            "inches": self.inches,
            "chanceOfRain": self.chance_of_rain,
            "chanceOfSnow": self.chance_of_snow,
        }


@dataclass(frozen=True)
class DayForecast:
    date: Optional[str]
    celsius: TemperatureRange = field(default_factory=TemperatureRange)
    fahrenheit: TemperatureRange = field(default_factory=TemperatureRange)
    weather: Condition = field(default_factory=Condition)
    humidity: Optional[float] = None
    wind: Wind = field(default_factory=Wind)
    visibility: Visibility = field(default_factory=Visibility)
    uv: Optional[float] = None
    precipitation: Optional[Precipitation] = None
    sunrise: Optional[str] = None
    sunset: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "temperature": {"celsius": self.celsius.as_dict(), "fahrenheit": self.fahrenheit.as_dict()},
            "weather": self.weather.as_dict(),
            "humidity": self.humidity,
            "wind": {"speed": self.wind.speed.as_dict(), "direction": self.wind.direction},
            "visibility": self.visibility.as_dict(),
            "uv": self.uv,
            "precipitation": self.precipitation.as_dict() if self.precipitation is not None else None,
            "sunrise": self.sunrise,
            "sunset": self.sunset,
        }


@dataclass(frozen=True)
class WeatherRecord:
    """Canonical weather record every provider response is normalized into.

    ``current`` is ``None`` for forecast-only records. Numeric fields that a
    provider did not report are ``None``, never ``0``.
    """

    location: Location
    source: str
    timestamp: str
    current: Optional[CurrentConditions] = None
    forecast: Tuple[DayForecast, ...] = ()

    def has_valid_location(self) -> bool:
        return self.location.is_valid()

    def has_valid_current(self) -> bool:
        return self.current is not None and is_number(self.current.temperature.celsius)

    def has_valid_forecast(self) -> bool:
        return len(self.forecast) > 0

    def is_valid(self) -> bool:
        return self.has_valid_location() and self.has_valid_current()

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"location": self.location.as_dict()}
        if self.current is not None:
            payload["current"] = self.current.as_dict()
        payload["forecast"] = [day.as_dict() for day in self.forecast]
        payload["source"] = self.source
        payload["timestamp"] = self.timestamp
        return payload


__all__ = [
    "Coordinates",
    "Location",
    "FeelsLike",
    "Temperature",
    "Pressure",
    "Visibility",
    "WindSpeed",
    "Wind",
    "Condition",
    "CurrentConditions",
    "TemperatureRange",
    "Precipitation",
    "DayForecast",
    "WeatherRecord",
]
