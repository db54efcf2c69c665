"""Rolling statistics derived from the query log."""
from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from ..querylog import QueryLogEntry, parse_timestamp
from ..units import round_half_up

TOP_LOCATIONS = 10


def _median(values: Sequence[int]) -> int:
    ordered = sorted(values)
    middle = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return round_half_up((ordered[middle - 1] + ordered[middle]) / 2)
    return ordered[middle]


def compute_stats(logs: Sequence[QueryLogEntry]) -> Dict[str, int]:
    """Success counts over every entry, latency only over entries that hit the network.

    Cache hits are logged with a response time of 0; they count towards
    success/failure but not towards the response-time figures.
    """
    total = len(logs)
    successful = sum(1 for log in logs if log.is_success)
    failed = sum(1 for log in logs if log.is_error)
    latencies = [log.response_time for log in logs if log.response_time > 0]
    return {
        "total": total,
        "successful": successful,
        "failed": failed,
        "successRate": round_half_up(100 * successful / total) if total else 0,
        "averageResponseTime": round_half_up(sum(latencies) / len(latencies)) if latencies else 0,
        "medianResponseTime": _median(latencies) if latencies else 0,
        "minResponseTime": min(latencies) if latencies else 0,
        "maxResponseTime": max(latencies) if latencies else 0,
    }


def _group(logs: Iterable[QueryLogEntry], key: Callable[[QueryLogEntry], Any]) -> Dict[Any, List[QueryLogEntry]]:
    groups: Dict[str, List[QueryLogEntry]] = {}
    for log in logs:
        groups.setdefault(key(log), []).append(log)
    return groups


def breakdown_by_api(logs: Sequence[QueryLogEntry]) -> Dict[str, Dict[str, int]]:
    groups = _group(logs, lambda log: log.api_name or "unknown")
    return {name: compute_stats(entries) for name, entries in groups.items()}


def breakdown_by_day(logs: Sequence[QueryLogEntry]) -> Dict[str, Dict[str, int]]:
    groups = _group(logs, lambda log: log.date)
    return {date: compute_stats(groups[date]) for date in sorted(groups)}


# Filters ----------------------------------------------------------------
def filter_by_api(logs: Iterable[QueryLogEntry], api_name: str) -> List[QueryLogEntry]:
    return [log for log in logs if log.api_name == api_name]


def filter_by_location(logs: Iterable[QueryLogEntry], location: str) -> List[QueryLogEntry]:
    needle = location.lower()
    return [log for log in logs if needle in log.location.lower()]


def filter_by_status(logs: Iterable[QueryLogEntry], status: str) -> List[QueryLogEntry]:
    return [log for log in logs if log.status == status]


def filter_by_date_range(
    logs: Iterable[QueryLogEntry], start: Optional[datetime] = None, end: Optional[datetime] = None
) -> List[QueryLogEntry]:
    """Entries with ``start <= timestamp <= end``; naive bounds are taken as UTC."""
    start = parse_timestamp(start.isoformat()) if start is not None else None
    end = parse_timestamp(end.isoformat()) if end is not None else None
    selected = []
    for log in logs:
        when = parse_timestamp(log.timestamp)
        if start is not None and when < start:
            continue
        if end is not None and when > end:
            continue
        selected.append(log)
    return selected


def filter_by_performance(logs: Iterable[QueryLogEntry], category: str) -> List[QueryLogEntry]:
    return [log for log in logs if log.performance_category == category]


def filter_logs(
    logs: Iterable[QueryLogEntry],
    *,
    api_name: Optional[str] = None,
    location: Optional[str] = None,
    status: Optional[str] = None,
    performance: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[QueryLogEntry]:
    """Apply every filter that was given; ``None`` skips that filter."""
    selected = list(logs)
    if api_name:
        selected = filter_by_api(selected, api_name)
    if location:
        selected = filter_by_location(selected, location)
    if status:
        selected = filter_by_status(selected, status)
    if performance:
        selected = filter_by_performance(selected, performance)
    if start is not None or end is not None:
        selected = filter_by_date_range(selected, start, end)
    return selected


# Reports ----------------------------------------------------------------
def location_breakdown(logs: Sequence[QueryLogEntry], limit: int = TOP_LOCATIONS) -> Dict[str, int]:
    """Most queried locations, by count, ties in first-seen order."""
    return dict(Counter(log.location for log in logs).most_common(limit))


def summarize_queries(logs: Sequence[QueryLogEntry]) -> Dict[str, Any]:
    stats = compute_stats(logs)
    return {
        "totalQueries": stats["total"],
        "successfulQueries": stats["successful"],
        "failedQueries": stats["failed"],
        "successRate": stats["successRate"],
        "averageResponseTime": stats["averageResponseTime"],
        "apiBreakdown": breakdown_by_api(logs),
        "locationBreakdown": location_breakdown(logs),
        "dailyBreakdown": breakdown_by_day(logs),
    }


def accuracy_history(logs: Sequence[QueryLogEntry]) -> Dict[str, Dict[str, Any]]:
    """Per-provider reliability over the given window."""
    history: Dict[str, Dict[str, Any]] = {}
    for name, entries in _group(logs, lambda log: log.api_name).items():
        stats = compute_stats(entries)
        history[name] = {
            "totalRequests": stats["total"],
            "successRate": stats["successRate"],
            "averageResponseTime": stats["averageResponseTime"],
            "dailyBreakdown": breakdown_by_day(entries),
        }
    return history


def daily_api_metrics(logs: Sequence[QueryLogEntry]) -> List[Dict[str, Any]]:
    """One row per provider and UTC day, newest day first."""
    rows = []
    for (name, date), entries in _group(logs, lambda log: (log.api_name, log.date)).items():
        stats = compute_stats(entries)
        rows.append(
            {
                "apiName": name,
                "date": date,
                "totalRequests": stats["total"],
                "successfulRequests": stats["successful"],
                "failedRequests": stats["failed"],
                "avgResponseTime": stats["averageResponseTime"],
                "minResponseTime": stats["minResponseTime"],
                "maxResponseTime": stats["maxResponseTime"],
            }
        )
    rows.sort(key=lambda row: row["apiName"])
    rows.sort(key=lambda row: row["date"], reverse=True)
    return rows


__all__ = [
    "compute_stats",
    "breakdown_by_api",
    "breakdown_by_day",
    "filter_by_api",
    "filter_by_location",
    "filter_by_status",
    "filter_by_date_range",
    "filter_by_performance",
    "filter_logs",
    "location_breakdown",
    "summarize_queries",
    "accuracy_history",
    "daily_api_metrics",
]
