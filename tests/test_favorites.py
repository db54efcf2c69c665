from __future__ import annotations

import pytest

from weathercompare.errors import UpstreamError
from weathercompare.services import WeatherAggregator, WeatherComparisonService
from weathercompare.services.weather import FavoritesUnavailable
from weathercompare.storage import FavoriteLocation, FavoriteLocationStore

from fakes import FakeProvider, make_record


@pytest.fixture
def store(tmp_path):
    return FavoriteLocationStore(str(tmp_path / "favorites.db"))


@pytest.fixture
def openweather():
    return FakeProvider("OpenWeatherMap", "openweather", record=make_record("OpenWeatherMap"))


@pytest.fixture
def service(openweather, store):
    return WeatherComparisonService(WeatherAggregator([openweather]), favorites=store)


def test_store_orders_by_display_name(store):
    store.add(FavoriteLocation(location="Manchester", display_name="Manchester"))
    store.add(FavoriteLocation(location="London", display_name="Home"))

    assert [favorite.location for favorite in store.fetch_all()] == ["London", "Manchester"]


def test_store_replaces_existing_location(store):
    store.add(FavoriteLocation(location="London", display_name="London"))
    saved = store.add(FavoriteLocation(location="London", display_name="Office", postcode="EC1A 1BB"))

    favorites = store.fetch_all()
    assert len(favorites) == 1
    assert favorites[0].display_name == "Office"
    assert favorites[0].id == saved.id


def test_store_remove_reports_rows(store):
    store.add(FavoriteLocation(location="Leeds", display_name="Leeds"))

    assert store.remove("Leeds") == 1
    assert store.remove("Leeds") == 0


def test_add_favorite_uses_openweather_coordinates(service, openweather):
    favorite = service.add_favorite("London", postcode="SW1A 1AA")

    payload = favorite.to_api_dict()
    assert payload["displayName"] == "London"
    assert payload["postcode"] == "SW1A 1AA"
    assert payload["coordinates"] == {"lat": 51.5, "lon": -0.12}
    assert openweather.calls == [{"kind": "current", "location": "London"}]


def test_add_favorite_without_coordinates_when_lookup_fails(service, openweather):
    openweather.error = UpstreamError("Internal error")

    favorite = service.add_favorite("London", display_name="Home")

    assert favorite.display_name == "Home"
    assert favorite.to_api_dict()["coordinates"] is None


def test_add_favorite_skips_lookup_when_unavailable(service, openweather):
    openweather.available = False

    service.add_favorite("London")

    assert openweather.calls == []
    assert [favorite.location for favorite in service.list_favorites()] == ["London"]


def test_remove_favorite(service):
    service.add_favorite("London")

    assert service.remove_favorite("London") is True
    assert service.remove_favorite("London") is False


def test_favorites_need_a_store(openweather):
    service = WeatherComparisonService(WeatherAggregator([openweather]))

    with pytest.raises(FavoritesUnavailable):
        service.list_favorites()
