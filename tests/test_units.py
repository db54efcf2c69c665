from __future__ import annotations

import pytest

from weathercompare import units


@pytest.mark.parametrize("value, expected", [(2.5, 3), (-2.5, -2), (12.49, 12), (0.5, 1), (None, None)])
def test_round_half_up_to_integer(value, expected):
    assert units.round_half_up(value) == expected


def test_round_half_up_with_digits():
    assert units.round_half_up(4.125, 2) == 4.13


def test_conversions():
    assert units.celsius_to_fahrenheit(100) == 212
    assert units.kmh_to_mps(36) == 10.0
    assert units.mps_to_kmh(10) == 36.0
    assert units.mps_to_mph(10) == 22.37
    assert units.hpa_to_inhg(1013) == 29.91
    assert units.metres_to_km(10000) == 10.0
    assert units.metres_to_miles(10000) == 6.21
    assert units.mm_to_inches(25.4) == 1.0


def test_missing_values_stay_missing():
    for convert in (units.kmh_to_mps, units.mps_to_mph, units.hpa_to_inhg, units.metres_to_km, units.mm_to_inches):
        assert convert(None) is None


@pytest.mark.parametrize("value, expected", [("12.5", 12.5), (3, 3.0), (None, None), (True, None), ("n/a", None)])
def test_to_float(value, expected):
    assert units.to_float(value) == expected


def test_is_number():
    assert units.is_number(0)
    assert not units.is_number(float("nan"))
    assert not units.is_number(False)
    assert not units.is_number("1")
