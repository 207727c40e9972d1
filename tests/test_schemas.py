# tests/test_schemas.py
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from meetsync.schemas.requests import AvailabilityRequest


def test_calendar_event_rejects_naive_start_time(make_event):
    """
    A timestamp without an offset would be read differently by every
    provider, so events must carry timezone-aware start/end times.
    """
    with pytest.raises(ValidationError):
        make_event(start_time=datetime(2025, 3, 3, 10, 0))

    with pytest.raises(ValidationError):
        make_event(end_time="2025-03-03T10:30:00")


def test_calendar_event_accepts_offset_timestamps(make_event):
    event = make_event(
        start_time="2025-03-03T11:00:00+01:00",
        end_time="2025-03-03T10:30:00Z",
    )

    assert event.start_time.astimezone(timezone.utc) == datetime(2025, 3, 3, 10, 0, tzinfo=timezone.utc)
    assert event.end_time.tzinfo is not None


def test_availability_request_rejects_naive_window():
    with pytest.raises(ValidationError):
        AvailabilityRequest(
            user_id=1,
            date_from="2025-03-03T00:00:00",
            date_to="2025-03-04T00:00:00Z",
        )

    request = AvailabilityRequest(
        user_id=1,
        date_from="2025-03-03T00:00:00Z",
        date_to="2025-03-04T00:00:00Z",
    )
    assert request.date_from.tzinfo is not None
    assert request.selected_calendars is None
