"""Delete query log entries past the retention window."""
from __future__ import annotations

from typing import Any

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from backend.api import views


class Command(BaseCommand):
    help = "Delete query log entries older than the given number of days"

    def add_arguments(self, parser) -> None:  # noqa: D401
        parser.add_argument("--days", type=int, default=None, help="Days to keep (defaults to QUERY_LOG_RETENTION_DAYS)")

    def handle(self, *args: Any, **options: Any) -> None:  # noqa: D401
        days = options["days"] if options["days"] is not None else settings.QUERY_LOG_RETENTION_DAYS
        if days < 0:
            raise CommandError("--days must be zero or positive")
        removed = views.get_query_log_store().prune(days)
        self.stdout.write(f"Removed {removed} query log entries older than {days} days")
