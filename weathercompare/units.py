"""Unit conversions shared by the provider adapters.

Celsius, hPa, km/h and kilometres are the primary units. Every secondary unit
is precomputed at normalization time so consumers never convert on their own.

Rounding is half-up (``2.5 -> 3``, ``-2.5 -> -2``) to match the numbers the
providers publish on their own dashboards; Python's ``round`` would round half
to even instead.
"""
from __future__ import annotations

import math
from typing import Optional, Union

Number = Union[int, float]

HPA_TO_INHG = 0.02953
MPS_TO_MPH = 2.237
METRES_TO_MILES = 0.000621371
MM_PER_INCH = 25.4


def round_half_up(value: Optional[Number], digits: int = 0) -> Optional[Number]:
    """Round ``value`` half-up, returning ``int`` when ``digits`` is 0."""
    if value is None:
        return None
    if digits == 0:
        return int(math.floor(value + 0.5))
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and not math.isnan(value)


def to_float(value: object) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def celsius_to_fahrenheit(value: Optional[Number]) -> Optional[float]:
    if value is None:
        return None
    return value * 9 / 5 + 32


def kmh_to_mps(value: Optional[Number]) -> Optional[float]:
    if value is None:
        return None
    return round_half_up(value / 3.6, 2)


def mps_to_kmh(value: Optional[Number]) -> Optional[float]:
    if value is None:
        return None
    return round_half_up(value * 3.6, 2)


def mps_to_mph(value: Optional[Number]) -> Optional[float]:
    if value is None:
        return None
    return round_half_up(value * MPS_TO_MPH, 2)


def hpa_to_inhg(value: Optional[Number]) -> Optional[float]:
    if value is None:
        return None
    return round_half_up(value * HPA_TO_INHG, 2)


def metres_to_km(value: Optional[Number]) -> Optional[float]:
    if value is None:
        return None
    return round_half_up(value / 1000, 2)


def metres_to_miles(value: Optional[Number]) -> Optional[float]:
    if value is None:
        return None
    return round_half_up(value * METRES_TO_MILES, 2)


def mm_to_inches(value: Optional[Number]) -> Optional[float]:
    if value is None:
        return None
    return round_half_up(value / MM_PER_INCH, 2)


__all__ = [
    "round_half_up",
    "is_number",
    "to_float",
    "celsius_to_fahrenheit",
    "kmh_to_mps",
    "mps_to_kmh",
    "mps_to_mph",
    "hpa_to_inhg",
    "metres_to_km",
    "metres_to_miles",
    "mm_to_inches",
]
