from __future__ import annotations

from typing import Mapping, Optional


class ProviderError(RuntimeError):
    """Base provider error."""

    category = "provider_error"


class ProviderUnavailable(ProviderError):
    """API credential missing or still a placeholder; no request was made."""

    category = "provider_unavailable"


class CircuitOpen(ProviderError):
    """The provider's circuit breaker rejected the call."""

    category = "circuit_open"


class TransportError(ProviderError):
    """Timeout, DNS failure, refused connection."""

    category = "transport_error"

    def __init__(self, message: str, *, timeout: bool = False) -> None:
        super().__init__(message)
        self.timeout = timeout


class UpstreamError(ProviderError):
    """The provider answered with a well-formed error payload."""

    category = "upstream_error"

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class QuotaExceeded(UpstreamError):
    """Raised when a provider reports a quota/usage limit issue."""

    category = "quota_exceeded"


class LocationNotFound(UpstreamError):
    category = "location_not_found"


class MalformedResponse(ProviderError):
    """The provider reported success but required fields are missing."""

    category = "malformed_response"


class NoDataAvailable(ProviderError):
    """Every provider failed for an aggregation."""

    category = "no_data_available"

    def __init__(
        self, message: str, errors: Optional[Mapping[str, str]] = None, *, response_time: int = 0
    ) -> None:
        super().__init__(message)
        self.errors = dict(errors or {})
        self.response_time = response_time


__all__ = [
    "ProviderError",
    "ProviderUnavailable",
    "CircuitOpen",
    "TransportError",
    "UpstreamError",
    "QuotaExceeded",
    "LocationNotFound",
    "MalformedResponse",
    "NoDataAvailable",
]
