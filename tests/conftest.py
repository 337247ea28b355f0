"""Shared test fixtures for the Run Tracker test suite."""

from datetime import timezone

import pytest

from src.tools.activity_store import ActivityStore

ENV_VARS = (
    "STRAVA_ACCESS_TOKEN",
    "STRAVA_TOKEN_FILE",
    "STRAVA_API_URL",
    "RUNTRACKER_WEEK_START",
    "GEMINI_MODEL",
)


@pytest.fixture
def store(tmp_path):
    """An empty activity store backed by a temp file."""
    return ActivityStore(tmp_path / "activities.json")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer .env settings out of the tests."""
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture(autouse=True)
def utc_calendar(monkeypatch):
    """Render reports on the UTC calendar whatever the machine's zone is."""
    monkeypatch.setattr("src.tools.activity_context.local_timezone", lambda: timezone.utc)
