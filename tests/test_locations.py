from __future__ import annotations

import pytest

from weathercompare.locations import InvalidLocation, city_for_postcode, clean_location, is_postcode


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("  London  ", "London"),
        ("New   York,  US", "New York, US"),
        ("SW1A 1AA", "London"),
        ("m1 1ae", "Manchester"),
        ("EH1 1YZ", "Edinburgh"),
    ],
)
def test_clean_location(raw, expected):
    assert clean_location(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "a", "London; DROP TABLE", "<script>"])
def test_invalid_locations(raw):
    with pytest.raises(InvalidLocation):
        clean_location(raw)


def test_long_locations_are_truncated():
    assert len(clean_location("a" * 150)) == 100


def test_postcode_detection():
    assert is_postcode("SW1A 1AA")
    assert not is_postcode("SW1A1AA")
    assert not is_postcode("London")


def test_unknown_postcode_area_maps_to_country():
    assert city_for_postcode("ZZ1 1AA") == "United Kingdom"
