from __future__ import annotations

import copy

import pytest

from weathercompare.config import accuweather_settings, openweather_settings, weatherapi_settings

from payloads import (
    ACCU_BASE,
    ACCU_CURRENT,
    ACCU_FORECAST,
    ACCU_SEARCH,
    OWM_BASE,
    OWM_CURRENT,
    OWM_FORECAST,
    WAPI_BASE,
    WAPI_CURRENT,
    WAPI_FORECAST,
)


class TimeController:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> TimeController:
    return TimeController()


@pytest.fixture
def owm_settings():
    return openweather_settings({"OPENWEATHER_API_KEY": "owm-key", "OPENWEATHER_BASE_URL": OWM_BASE})


@pytest.fixture
def wapi_settings():
    return weatherapi_settings({"WEATHERAPI_KEY": "wapi-key", "WEATHERAPI_BASE_URL": WAPI_BASE})


@pytest.fixture
def accu_settings():
    return accuweather_settings({"ACCUWEATHER_API_KEY": "accu-key", "ACCUWEATHER_BASE_URL": ACCU_BASE})


@pytest.fixture
def owm_current():
    return copy.deepcopy(OWM_CURRENT)


@pytest.fixture
def owm_forecast():
    return copy.deepcopy(OWM_FORECAST)


@pytest.fixture
def wapi_current():
    return copy.deepcopy(WAPI_CURRENT)


@pytest.fixture
def wapi_forecast():
    return copy.deepcopy(WAPI_FORECAST)


@pytest.fixture
def accu_search():
    return copy.deepcopy(ACCU_SEARCH)


@pytest.fixture
def accu_current():
    return copy.deepcopy(ACCU_CURRENT)


@pytest.fixture
def accu_forecast():
    return copy.deepcopy(ACCU_FORECAST)
