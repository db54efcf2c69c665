from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, TypeVar

import requests
from requests import Response
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..breaker import CircuitBreaker
from ..config import ProviderSettings, RequestConfig
from ..entities import WeatherRecord
from ..errors import (
    LocationNotFound,
    MalformedResponse,
    ProviderError,
    ProviderUnavailable,
    QuotaExceeded,
    TransportError,
    UpstreamError,
)

T = TypeVar("T")

NOT_FOUND_MARKERS = ("not found", "no matching location")
QUOTA_MARKERS = ("quota", "rate limit", "exceeded")


class WeatherProvider(Protocol):
    """One adapter per provider: fetch raw JSON, normalize it into a :class:`WeatherRecord`."""

    name: str
    slug: str
    breaker: CircuitBreaker

    def is_available(self) -> bool:
        ...

    def query_params(self, kind: str, location: str, days: Optional[int] = None) -> Dict[str, Any]:
        """Request parameters safe to log (no credentials)."""
        ...

    def fetch_current(self, location: str) -> Any:
        ...

    def fetch_forecast(self, location: str, days: int) -> Any:
        ...

    def normalize_current(self, raw: Any) -> WeatherRecord:
        ...

    def normalize_forecast(self, raw: Any) -> WeatherRecord:
        ...

    def get_current(self, location: str) -> WeatherRecord:
        ...

    def get_forecast(self, location: str, days: int) -> WeatherRecord:
        ...


class HttpTransport:
    """requests session with retry/timeouts that maps failures onto provider errors."""

    def __init__(
        self,
        name: str,
        *,
        error_message: Callable[[Any], Optional[str]],
        session: Optional[requests.Session] = None,
        request_config: Optional[RequestConfig] = None,
    ) -> None:
        self.name = name
        self.request_config = request_config or RequestConfig()
        self.session = session or self._build_session(self.request_config)
        self._error_message = error_message
        self._log = logging.getLogger(f"{self.__class__.__name__}.{name}")

    def _build_session(self, config: RequestConfig) -> requests.Session:
        session = requests.Session()
        retry = Retry(
            total=config.retries,
            backoff_factor=config.backoff_factor,
            status_forcelist=list(config.status_forcelist),
            allowed_methods=["GET"],
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    def get_json(self, url: str, params: Mapping[str, Any]) -> Any:
        try:
            response = self.session.get(url, params=dict(params), timeout=self.request_config.timeout)
        except requests.Timeout as exc:
            self._log.error("Request to %s timed out", self.name)
            raise TransportError("timeout", timeout=True) from exc
        except requests.RequestException as exc:
            self._log.error("Request to %s failed: %s", self.name, exc)
            raise TransportError(f"request failed: {exc.__class__.__name__}") from exc
        self._handle_response(response)
        try:
            return response.json()
        except ValueError as exc:
            self._log.error("Failed to decode JSON from %s", self.name)
            raise MalformedResponse("invalid json") from exc

    def _handle_response(self, response: Response) -> Response:
        if response.status_code < 400:
            return response
        try:
            payload = response.json()
        except ValueError:
            payload = None
        message = self._error_message(payload) or f"HTTP {response.status_code}"
        lowered = message.lower()
        if response.status_code == 429 or any(marker in lowered for marker in QUOTA_MARKERS):
            self._log.warning("Quota exceeded: %s", message)
            raise QuotaExceeded(message, status_code=response.status_code)
        if response.status_code == 404 or any(marker in lowered for marker in NOT_FOUND_MARKERS):
            raise LocationNotFound(message, status_code=response.status_code)
        self._log.error("Provider returned %s: %s", response.status_code, message)
        raise UpstreamError(message, status_code=response.status_code)


def guarded_call(provider: WeatherProvider, func: Callable[..., T], *args: Any) -> T:
    """Run ``func`` behind the provider's availability check and circuit breaker."""
    if not provider.is_available():
        raise ProviderUnavailable(f"{provider.name} API key not configured")
    provider.breaker.before_call()
    try:
        result = func(*args)
    except Exception:
        provider.breaker.record_failure()
        raise
    provider.breaker.record_success()
    return result


def normalizing(name: str, func: Callable[[], T]) -> T:
    """Turn missing/mistyped fields in a raw payload into :class:`MalformedResponse`."""
    try:
        return func()
    except ProviderError:
        raise
    except (KeyError, IndexError, TypeError, ValueError, AttributeError) as exc:
        raise MalformedResponse(f"{name} response missing or invalid field: {exc!r}") from exc


def require_valid_current(record: WeatherRecord) -> WeatherRecord:
    if not record.is_valid():
        raise MalformedResponse("Invalid weather data received")
    return record


def require_valid_forecast(record: WeatherRecord) -> WeatherRecord:
    if not (record.has_valid_location() and record.has_valid_forecast()):
        raise MalformedResponse("Invalid forecast data received")
    return record


def limit_days(record: WeatherRecord, days: int) -> WeatherRecord:
    if len(record.forecast) <= days:
        return record
    return replace(record, forecast=record.forecast[:days])


def epoch_to_iso(value: Any) -> str:
    return datetime.fromtimestamp(int(value), tz=timezone.utc).isoformat().replace("+00:00", "Z")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_breaker(settings: ProviderSettings, breaker: Optional[CircuitBreaker]) -> CircuitBreaker:
    return breaker or CircuitBreaker(settings.name)


__all__ = [
    "WeatherProvider",
    "HttpTransport",
    "guarded_call",
    "normalizing",
    "require_valid_current",
    "require_valid_forecast",
    "limit_days",
    "epoch_to_iso",
    "utcnow",
    "build_breaker",
]
