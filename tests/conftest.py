# tests/conftest.py
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from meetsync.main import create_app
from meetsync.schemas.calendar_event import CalendarEvent, Person


@pytest.fixture(scope="session")
def client() -> TestClient:
    """
    Shared TestClient fixture for all API tests.

    Uses the application factory so startup (table creation) runs exactly
    like in production.
    """
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_event():
    """
    Factory for a minimal, valid CalendarEvent. Keyword arguments override
    the defaults.
    """

    def _make_event(**overrides) -> CalendarEvent:
        data = dict(
            type="30min",
            title="Intro call",
            start_time=datetime(2025, 3, 3, 10, 0, tzinfo=timezone.utc),
            end_time=datetime(2025, 3, 3, 10, 30, tzinfo=timezone.utc),
            description="Let's talk about the project.",
            organizer=Person(name="Olivia Organizer", email="olivia@example.com", time_zone="Europe/Berlin"),
            attendees=[
                Person(name="Adam Attendee", email="adam@example.com", time_zone="America/New_York"),
            ],
            language="en",
        )
        data.update(overrides)
        return CalendarEvent(**data)

    return _make_event
