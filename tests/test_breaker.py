from __future__ import annotations

import pytest

from weathercompare.breaker import BreakerState, CircuitBreaker
from weathercompare.config import BreakerConfig
from weathercompare.errors import CircuitOpen


@pytest.fixture
def breaker(clock):
    return CircuitBreaker("WeatherAPI", time_func=clock)


def fail(breaker, times):
    for _ in range(times):
        breaker.before_call()
        breaker.record_failure()


def test_opens_after_threshold(breaker):
    fail(breaker, 4)
    assert breaker.state is BreakerState.CLOSED

    fail(breaker, 1)
    assert breaker.state is BreakerState.OPEN
    with pytest.raises(CircuitOpen, match="Circuit breaker is OPEN for WeatherAPI"):
        breaker.before_call()
    assert breaker.failures == 5


def test_success_resets_failure_count(breaker):
    fail(breaker, 4)
    breaker.record_success()
    fail(breaker, 4)

    assert breaker.state is BreakerState.CLOSED
    assert breaker.failures == 4


def test_half_open_after_timeout_then_closes(breaker, clock):
    fail(breaker, 5)
    clock.advance(59)
    with pytest.raises(CircuitOpen):
        breaker.before_call()

    clock.advance(1)
    breaker.before_call()
    assert breaker.state is BreakerState.HALF_OPEN

    breaker.record_success()
    assert breaker.state is BreakerState.CLOSED
    assert breaker.failures == 0


def test_failure_while_half_open_reopens(breaker, clock):
    fail(breaker, 5)
    clock.advance(60)
    breaker.before_call()
    breaker.record_failure()

    assert breaker.state is BreakerState.OPEN
    with pytest.raises(CircuitOpen):
        breaker.before_call()


def test_custom_threshold(clock):
    breaker = CircuitBreaker("AccuWeather", BreakerConfig(failure_threshold=2, reset_timeout=10), time_func=clock)
    fail(breaker, 2)

    assert breaker.snapshot() == {"state": "OPEN", "failures": 2}


def test_half_open_admits_one_trial_call(breaker, clock):
    fail(breaker, 5)
    clock.advance(60)
    breaker.before_call()

    with pytest.raises(CircuitOpen, match="trial call in progress"):
        breaker.before_call()

    breaker.record_success()
    breaker.before_call()
    assert breaker.state is BreakerState.CLOSED
