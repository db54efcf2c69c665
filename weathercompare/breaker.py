"""Failure-counting circuit breaker owned by each provider instance.

CLOSED -> (threshold consecutive failures) -> OPEN -> (reset timeout elapsed)
-> HALF_OPEN -> success: CLOSED / failure: OPEN.

Calls rejected while OPEN raise :class:`CircuitOpen` and leave the failure
counter untouched. HALF_OPEN admits a single trial call; concurrent callers
are rejected until that call records its outcome.
"""
from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import Callable, Dict, Optional

from .config import BreakerConfig
from .errors import CircuitOpen


class BreakerState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


class CircuitBreaker:
    def __init__(
        self,
        name: str,
        config: Optional[BreakerConfig] = None,
        time_func: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.config = config or BreakerConfig()
        self._time_func = time_func
        self._lock = threading.Lock()
        self._log = logging.getLogger(self.__class__.__name__)
        self.state = BreakerState.CLOSED
        self.failures = 0
        self.last_failure_time: Optional[float] = None
        self._trial_in_flight = False

    def before_call(self) -> None:
        """Raise :class:`CircuitOpen` unless a call may go through."""
        with self._lock:
            if self.state is BreakerState.CLOSED:
                return
            if self.state is BreakerState.HALF_OPEN:
                if self._trial_in_flight:
                    raise CircuitOpen(f"Circuit breaker is HALF_OPEN for {self.name} - trial call in progress")
                self._trial_in_flight = True
                return
            elapsed = self._time_func() - (self.last_failure_time or 0.0)
            if elapsed < self.config.reset_timeout:
                raise CircuitOpen(f"Circuit breaker is OPEN for {self.name} - service temporarily unavailable")
            self.state = BreakerState.HALF_OPEN
            self._trial_in_flight = True
            self._log.info("Circuit for %s half-open after %.0fs", self.name, elapsed)

    def record_success(self) -> None:
        with self._lock:
            if self.state is not BreakerState.CLOSED:
                self._log.info("Circuit for %s closed", self.name)
            self.failures = 0
            self.state = BreakerState.CLOSED
            self._trial_in_flight = False

    def record_failure(self) -> None:
        with self._lock:
            self.failures += 1
            self.last_failure_time = self._time_func()
            self._trial_in_flight = False
            if self.state is BreakerState.HALF_OPEN or self.failures >= self.config.failure_threshold:
                if self.state is not BreakerState.OPEN:
                    self._log.warning("Circuit for %s opened after %s failures", self.name, self.failures)
                self.state = BreakerState.OPEN

    def snapshot(self) -> Dict[str, object]:
        return {"state": self.state.value, "failures": self.failures}


__all__ = ["BreakerState", "CircuitBreaker"]
