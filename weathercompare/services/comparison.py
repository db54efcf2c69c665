"""Cross-source statistics over canonical weather records.

Every function here is pure: it takes the records an aggregation produced and
returns plain dictionaries in the shape the reporting endpoints serve.
"""
from __future__ import annotations

import math
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..entities import WeatherRecord
from ..units import is_number, round_half_up

TEMPERATURE = "temperature"
HUMIDITY = "humidity"
PRESSURE = "pressure"
WIND_SPEED = "windSpeed"

METRICS = (TEMPERATURE, HUMIDITY, PRESSURE, WIND_SPEED)

# Fraction of the mean the standard deviation must stay under for "agreement".
AGREEMENT_THRESHOLD = 0.1
TEMPERATURE_TOLERANCE = 2
HUMIDITY_TOLERANCE = 10

_EXTRACTORS: Dict[str, Callable[[Any], Any]] = {
    TEMPERATURE: lambda current: current.temperature.celsius,
    HUMIDITY: lambda current: current.humidity,
    PRESSURE: lambda current: current.pressure.hpa,
    WIND_SPEED: lambda current: current.wind.speed.mph,
}


def metric_value(record: WeatherRecord, metric: str) -> Optional[float]:
    """Current-conditions value of ``metric`` in its comparison unit, or ``None``."""
    try:
        extractor = _EXTRACTORS[metric]
    except KeyError:
        raise ValueError(f"Unknown metric: {metric}") from None
    if record.current is None:
        return None
    value = extractor(record.current)
    return value if is_number(value) else None


def median(values: Sequence[float]) -> float:
    ordered = sorted(values)
    middle = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[middle - 1] + ordered[middle]) / 2
    return ordered[middle]


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def _population_variance(values: Sequence[float], mean: float) -> float:
    return sum((value - mean) ** 2 for value in values) / len(values)


def compare(records: Sequence[WeatherRecord], metric: str) -> Optional[Dict[str, Any]]:
    """Descriptive statistics of ``metric`` across ``records``.

    Records without the metric are skipped. Returns ``None`` when no record
    carries a value. Variance is the population variance; rounding to two
    decimals happens only on the returned numbers.
    """
    values = [value for value in (metric_value(record, metric) for record in records) if value is not None]
    if not values:
        return None
    mean = _mean(values)
    variance = _population_variance(values, mean)
    deviation = math.sqrt(variance)
    return {
        "values": values,
        "count": len(values),
        "min": min(values),
        "max": max(values),
        "mean": round_half_up(mean, 2),
        "median": round_half_up(median(values), 2),
        "standardDeviation": round_half_up(deviation, 2),
        "variance": round_half_up(variance, 2),
        "range": max(values) - min(values),
        "agreement": deviation < mean * AGREEMENT_THRESHOLD,
    }


def consensus_value(metric: str, result: Optional[Dict[str, Any]]) -> Optional[float]:
    if result is None:
        return None
    if metric == WIND_SPEED:
        return round_half_up(result["mean"], 1)
    return round_half_up(result["mean"])


def build_comparison(records: Sequence[WeatherRecord]) -> Optional[Dict[str, Any]]:
    """Per-metric comparison plus consensus; ``None`` with fewer than two sources."""
    if len(records) < 2:
        return None
    comparison: Dict[str, Any] = {metric: compare(records, metric) for metric in METRICS}
    comparison["consensus"] = {metric: consensus_value(metric, comparison[metric]) for metric in METRICS}
    return comparison


def condition_consensus(conditions: Sequence[str]) -> Optional[Dict[str, Any]]:
    """Majority vote over condition names; ties go to the first one seen."""
    conditions = [condition for condition in conditions if condition]
    if not conditions:
        return None
    counts = Counter(conditions)
    winner = max(counts, key=lambda name: counts[name])  # Counter keeps first-seen order
    return {
        "consensus": winner,
        "agreement": counts[winner] / len(conditions),
        "allConditions": dict(counts),
    }


def _tolerance_report(values: List[float], tolerance: float) -> Dict[str, Any]:
    mean = _mean(values)
    return {
        "agreement": all(abs(value - mean) <= tolerance for value in values),
        "maxDifference": max(values) - min(values),
        "standardDeviation": round_half_up(math.sqrt(_population_variance(values, mean)), 2),
    }


def build_accuracy_metrics(records: Sequence[WeatherRecord]) -> Optional[Dict[str, Any]]:
    if len(records) < 2:
        return None
    metrics: Dict[str, Any] = {}

    temperatures = [value for value in (metric_value(r, TEMPERATURE) for r in records) if value is not None]
    if len(temperatures) > 1:
        metrics["temperature"] = _tolerance_report(temperatures, TEMPERATURE_TOLERANCE)

    humidities = [value for value in (metric_value(r, HUMIDITY) for r in records) if value is not None]
    if len(humidities) > 1:
        metrics["humidity"] = _tolerance_report(humidities, HUMIDITY_TOLERANCE)

    conditions = [r.current.weather.main for r in records if r.current is not None and r.current.weather.main]
    if len(conditions) > 1:
        metrics["weatherCondition"] = condition_consensus(conditions)
    return metrics


def compare_forecasts(records: Sequence[WeatherRecord], days: int) -> Dict[str, Any]:
    """Day-by-day forecast comparison keyed ``day1`` .. ``dayN``."""
    comparison: Dict[str, Any] = {}
    for index in range(days):
        entry: Dict[str, Any] = {
            "date": None,
            "temperature": {"min": [], "max": []},
            "conditions": [],
            "sources": {},
        }
        for record in records:
            if index >= len(record.forecast):
                continue
            day = record.forecast[index]
            if entry["date"] is None:
                entry["date"] = day.date
            if day.celsius.min is not None:
                entry["temperature"]["min"].append(day.celsius.min)
            if day.celsius.max is not None:
                entry["temperature"]["max"].append(day.celsius.max)
            if day.weather.main:
                entry["conditions"].append(day.weather.main)
            entry["sources"][record.source] = {
                "tempMin": day.celsius.min,
                "tempMax": day.celsius.max,
                "condition": day.weather.main,
                "humidity": day.humidity,
                "precipitation": day.precipitation.as_dict() if day.precipitation is not None else None,
            }
        lows, highs = entry["temperature"]["min"], entry["temperature"]["max"]
        if lows:
            entry["statistics"] = {
                "tempMin": _spread(lows),
                "tempMax": _spread(highs) if highs else None,
            }
        comparison[f"day{index + 1}"] = entry
    return comparison


def _spread(values: List[float]) -> Dict[str, Any]:
    return {"mean": round_half_up(_mean(values)), "range": max(values) - min(values)}


def merge_sources(records: Sequence[WeatherRecord]) -> Optional[Dict[str, Any]]:
    """Side-by-side view of every source with the per-metric comparison."""
    if not records:
        return None
    return {
        "location": records[0].location.as_dict(),
        "sources": [
            {
                "name": record.source,
                "data": record.current.as_dict() if record.current is not None else None,
                "timestamp": record.timestamp,
            }
            for record in records
        ],
        "comparison": {metric: compare(records, metric) for metric in METRICS},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


__all__ = [
    "METRICS",
    "TEMPERATURE",
    "HUMIDITY",
    "PRESSURE",
    "WIND_SPEED",
    "metric_value",
    "median",
    "compare",
    "consensus_value",
    "build_comparison",
    "condition_consensus",
    "build_accuracy_metrics",
    "compare_forecasts",
    "merge_sources",
]
