"""Management command to compare providers using the same stack as the API."""
from __future__ import annotations

import json
from typing import Any

from django.core.management.base import BaseCommand, CommandError

from backend.api import views
from weathercompare.errors import NoDataAvailable
from weathercompare.locations import InvalidLocation, clean_location


class Command(BaseCommand):
    help = "Compare current weather (or the forecast) for a location across all providers"

    def add_arguments(self, parser) -> None:  # noqa: D401
        parser.add_argument("location", type=str, help="City name or UK postcode")
        parser.add_argument("--forecast", action="store_true", help="Compare forecasts instead of current weather")
        parser.add_argument("--days", type=int, default=5, help="Forecast days (1-5)")

    def handle(self, *args: Any, **options: Any) -> None:  # noqa: D401
        try:
            location = clean_location(options["location"])
        except InvalidLocation as exc:
            raise CommandError(str(exc)) from exc

        service = views.get_comparison_service()
        try:
            if options["forecast"]:
                payload = service.compare_forecast(location, options["days"])
            else:
                payload = service.compare_current(location)
        except NoDataAvailable as exc:
            details = "; ".join(f"{name}: {message}" for name, message in exc.errors.items())
            raise CommandError(f"All weather providers failed ({details})") from exc

        self.stdout.write(json.dumps(payload, indent=2))
