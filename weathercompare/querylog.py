"""Query log entries and the fire-and-forget sink every provider call reports to."""
from __future__ import annotations

import csv
import io
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

logger = logging.getLogger(__name__)
query_logger = logging.getLogger("weathercompare.queries")

SUCCESS = "success"
ERROR = "error"

CSV_HEADER = ["timestamp", "api_name", "location", "query_params", "response_time", "status", "error_message"]


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def performance_category(response_time: float) -> str:
    if response_time < 500:
        return "fast"
    if response_time < 2000:
        return "normal"
    if response_time < 5000:
        return "slow"
    return "very_slow"


def _decode_json(value: Any) -> Any:
    if value is None or isinstance(value, (dict, list)):
        return value
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return value


@dataclass(frozen=True)
class QueryLogEntry:
    api_name: str
    location: str
    response_time: int
    status: str
    query_params: Mapping[str, Any] = field(default_factory=dict)
    response_data: Optional[Any] = None
    error_message: Optional[str] = None
    timestamp: str = field(default_factory=utcnow_iso)
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "QueryLogEntry":
        params = _decode_json(row["query_params"])
        return cls(
            id=row["id"],
            timestamp=row["timestamp"],
            api_name=row["api_name"],
            location=row["location"],
            query_params=params if isinstance(params, dict) else {},
            response_time=int(row["response_time"] or 0),
            status=row["status"],
            response_data=_decode_json(row["response_data"]),
            error_message=row["error_message"],
        )

    @property
    def date(self) -> str:
        return parse_timestamp(self.timestamp).date().isoformat()

    @property
    def is_success(self) -> bool:
        return self.status == SUCCESS

    @property
    def is_error(self) -> bool:
        return self.status == ERROR

    @property
    def performance_category(self) -> str:
        return performance_category(self.response_time)

    def to_row(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "api_name": self.api_name,
            "location": self.location,
            "query_params": json.dumps(dict(self.query_params)),
            "response_time": self.response_time,
            "status": self.status,
            "response_data": json.dumps(self.response_data) if self.response_data is not None else None,
            "error_message": self.error_message,
        }

    def to_api_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "apiName": self.api_name,
            "location": self.location,
            "queryParams": dict(self.query_params),
            "responseTime": self.response_time,
            "status": self.status,
            "hasResponseData": self.response_data is not None,
            "errorMessage": self.error_message,
            "success": self.is_success,
        }

    def to_log_line(self) -> str:
        params = json.dumps(dict(self.query_params)) if self.query_params else "none"
        error = f" | ERROR: {self.error_message}" if self.error_message else ""
        return (
            f"[{self.timestamp}] {self.api_name} | {self.location} | {params} | "
            f"{self.response_time}ms | {self.status.upper()}{error}"
        )

    def csv_values(self) -> List[Any]:
        return [
            self.timestamp,
            self.api_name,
            self.location,
            json.dumps(dict(self.query_params)),
            self.response_time,
            self.status,
            self.error_message or "",
        ]


def export_logs(entries: Iterable[QueryLogEntry], fmt: str = "json") -> str:
    entries = list(entries)
    if fmt == "csv":
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for entry in entries:
            writer.writerow(entry.csv_values())
        return buffer.getvalue()
    if fmt == "txt":
        return "\n".join(entry.to_log_line() for entry in entries)
    if fmt == "json":
        return json.dumps([entry.to_api_dict() for entry in entries], indent=2)
    raise ValueError(f"Unsupported export format: {fmt}")


class LogSink(Protocol):
    def append(self, entry: QueryLogEntry) -> Any:
        ...


class QueryLogger:
    """Writes each provider query to the store and to the text query log.

    Failures to persist are logged and swallowed so that logging can never fail
    the request being logged.
    """

    def __init__(self, store: Optional[LogSink] = None, enabled: bool = True) -> None:
        self.store = store
        self.enabled = enabled

    def log_query(
        self,
        api_name: str,
        location: str,
        query_params: Optional[Mapping[str, Any]],
        response_time: int,
        status: str,
        response_data: Optional[Any] = None,
        error_message: Optional[str] = None,
    ) -> Optional[QueryLogEntry]:
        if not self.enabled:
            return None
        entry = QueryLogEntry(
            api_name=api_name,
            location=location,
            query_params=dict(query_params or {}),
            response_time=int(response_time),
            status=status,
            response_data=response_data,
            error_message=error_message,
        )
        query_logger.info(entry.to_log_line())
        if self.store is None:
            return entry
        try:
            self.store.append(entry)
        except Exception:  # noqa: BLE001 - the log sink must never fail the request
            logger.exception("Failed to store query log for %s", api_name)
        return entry


__all__ = [
    "SUCCESS",
    "ERROR",
    "CSV_HEADER",
    "QueryLogEntry",
    "QueryLogger",
    "LogSink",
    "export_logs",
    "parse_timestamp",
    "performance_category",
    "utcnow_iso",
]
