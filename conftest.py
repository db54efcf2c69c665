from __future__ import annotations

import os
import tempfile

import django
import pytest
import requests_mock as requests_mock_lib


os.environ.setdefault("DJANGO_SECRET_KEY", "test-secret")
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "backend.settings")
os.environ.setdefault("QUERY_LOG_DATABASE", os.path.join(tempfile.mkdtemp(prefix="weathercompare-"), "queries.db"))

django.setup()


@pytest.fixture()
def requests_mock():
    with requests_mock_lib.Mocker() as mocker:
        yield mocker
