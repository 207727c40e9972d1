# tests/test_providers.py
import time
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any, Dict, List, Optional

import pytest

from meetsync.core.config import Settings
from meetsync.schemas.calendar_event import (
    ConferenceCreateRequest,
    ConferenceData,
    SelectedCalendar,
)
from meetsync.schemas.event_result import Credential
from meetsync.services.providers.base import provider_uid, selected_calendar_ids
from meetsync.services.providers.daily_video import DailyVideoAdapter
from meetsync.services.providers.google_calendar import GoogleCalendarAdapter
from meetsync.services.providers.office365_calendar import Office365CalendarAdapter
from meetsync.services.providers.zoom_video import ZoomVideoAdapter


class _FakeResponse:
    def __init__(self, status_code: int, json_data: Any = None):
        self.status_code = status_code
        self._json_data = json_data
        self.text = "" if json_data is None else str(json_data)

    def json(self) -> Any:
        return self._json_data


class _FakeAsyncClient:
    """
    Minimal stand-in for httpx.AsyncClient.

    Responses are looked up by (METHOD, url suffix); unmatched calls answer
    404 so a test notices unexpected traffic.
    """

    routes: Dict[tuple, _FakeResponse] = {}
    requests: List[Dict[str, Any]] = []

    def __init__(self, timeout: float | None = None):
        self._timeout = timeout

    async def __aenter__(self) -> "_FakeAsyncClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def post(self, url: str, data: Optional[Dict[str, Any]] = None, **kwargs) -> _FakeResponse:
        # Token endpoint; tests use valid tokens so this should not be hit.
        _FakeAsyncClient.requests.append({"method": "TOKEN", "url": url, "data": data})
        return _FakeResponse(HTTPStatus.OK, {"access_token": "refreshed", "expires_in": 3600})

    async def request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> _FakeResponse:
        _FakeAsyncClient.requests.append(
            {"method": method, "url": url, "headers": headers, "params": params, "json": json}
        )
        for (route_method, suffix), response in _FakeAsyncClient.routes.items():
            if route_method == method and url.endswith(suffix):
                return response
        return _FakeResponse(HTTPStatus.NOT_FOUND, {"error": "not found"})


@pytest.fixture
def fake_http(monkeypatch):
    import httpx

    monkeypatch.setattr(httpx, "AsyncClient", _FakeAsyncClient)
    _FakeAsyncClient.routes = {}
    _FakeAsyncClient.requests = []
    return _FakeAsyncClient


class FakeCredentialStore:
    def __init__(self) -> None:
        self.updates: List[tuple] = []

    async def update_credential_key(self, credential_id: int, key: Dict[str, Any]) -> None:
        self.updates.append((credential_id, key))


@pytest.fixture
def settings() -> Settings:
    return Settings(DAILY_API_KEY="daily-key", PROVIDER_TIMEOUT_SECONDS=5.0)


def _google_credential() -> Credential:
    return Credential(
        id=1,
        type="google_calendar",
        key={
            "access_token": "g-token",
            "refresh_token": "g-refresh",
            "expiry_date": int((time.time() + 3600) * 1000),
        },
    )


def _office365_credential() -> Credential:
    return Credential(
        id=2,
        type="office365_calendar",
        key={
            "access_token": "o-token",
            "refresh_token": "o-refresh",
            "expiry_date": int(time.time()) + 3600,
        },
    )


def _zoom_credential() -> Credential:
    return Credential(
        id=3,
        type="zoom_video",
        key={
            "access_token": "z-token",
            "refresh_token": "z-refresh",
            "expiry_date": int(time.time()) + 3600,
        },
    )


WINDOW_FROM = datetime(2025, 3, 3, 0, 0, tzinfo=timezone.utc)
WINDOW_TO = datetime(2025, 3, 4, 0, 0, tzinfo=timezone.utc)


def test_selected_calendar_ids_filtering():
    """
    No selection means "all calendars"; a selection limited to other
    integrations means "none of mine".
    """
    assert selected_calendar_ids([], "google_calendar") is None

    only_office = [SelectedCalendar(integration="office365_calendar", external_id="cal-1")]
    assert selected_calendar_ids(only_office, "google_calendar") == []

    mixed = only_office + [SelectedCalendar(integration="google_calendar", external_id="primary")]
    assert selected_calendar_ids(mixed, "google_calendar") == ["primary"]


def test_provider_uid_uses_name_for_daily():
    assert provider_uid("daily_video", {"name": "room-1", "id": "ignored"}) == "room-1"
    assert provider_uid("zoom_video", {"id": 85012345678}) == "85012345678"
    assert provider_uid("google_calendar", None) == ""


@pytest.mark.asyncio
async def test_google_create_attaches_meet_conference_request(fake_http, settings, make_event):
    fake_http.routes = {
        ("POST", "/calendars/primary/events"): _FakeResponse(
            HTTPStatus.OK,
            {"id": "g-evt-1", "hangoutLink": "https://meet.google.com/abc-defg-hij"},
        ),
    }
    event = make_event(
        location="integrations:google:meet",
        conference_data=ConferenceData(create_request=ConferenceCreateRequest(request_id="req-1")),
    )
    adapter = GoogleCalendarAdapter(_google_credential(), FakeCredentialStore(), settings)

    created = await adapter.create_event(event)

    assert created["id"] == "g-evt-1"
    sent = fake_http.requests[-1]
    assert sent["headers"]["Authorization"] == "Bearer g-token"
    assert sent["params"] == {"conferenceDataVersion": 1}
    assert sent["json"]["conferenceData"] == {"createRequest": {"requestId": "req-1"}}
    assert sent["json"]["attendees"] == [
        {"email": "adam@example.com", "displayName": "Adam Attendee"}
    ]


@pytest.mark.asyncio
async def test_google_create_without_meet_has_no_conference_data(fake_http, settings, make_event):
    fake_http.routes = {
        ("POST", "/calendars/primary/events"): _FakeResponse(HTTPStatus.OK, {"id": "g-evt-2"}),
    }
    event = make_event(
        location="integrations:zoom",
        conference_data=ConferenceData(create_request=ConferenceCreateRequest(request_id="req-2")),
    )
    adapter = GoogleCalendarAdapter(_google_credential(), FakeCredentialStore(), settings)

    await adapter.create_event(event)

    assert "conferenceData" not in fake_http.requests[-1]["json"]
    assert fake_http.requests[-1]["json"]["location"] == "integrations:zoom"


@pytest.mark.asyncio
async def test_google_availability_queries_selected_calendars(fake_http, settings):
    fake_http.routes = {
        ("POST", "/freeBusy"): _FakeResponse(
            HTTPStatus.OK,
            {
                "calendars": {
                    "primary": {
                        "busy": [
                            {"start": "2025-03-03T09:00:00Z", "end": "2025-03-03T10:00:00Z"},
                        ]
                    }
                }
            },
        ),
    }
    adapter = GoogleCalendarAdapter(_google_credential(), FakeCredentialStore(), settings)
    selected = [SelectedCalendar(integration="google_calendar", external_id="primary")]

    busy = await adapter.get_availability(WINDOW_FROM, WINDOW_TO, selected)

    assert [(slot.start, slot.end) for slot in busy] == [
        ("2025-03-03T09:00:00Z", "2025-03-03T10:00:00Z")
    ]
    assert fake_http.requests[-1]["json"]["items"] == [{"id": "primary"}]


@pytest.mark.asyncio
async def test_google_availability_skips_when_only_other_integrations_selected(fake_http, settings):
    adapter = GoogleCalendarAdapter(_google_credential(), FakeCredentialStore(), settings)
    selected = [SelectedCalendar(integration="office365_calendar", external_id="cal-1")]

    busy = await adapter.get_availability(WINDOW_FROM, WINDOW_TO, selected)

    assert busy == []
    assert fake_http.requests == []


@pytest.mark.asyncio
async def test_google_availability_degrades_to_empty_on_error(fake_http, settings):
    fake_http.routes = {
        ("POST", "/freeBusy"): _FakeResponse(HTTPStatus.INTERNAL_SERVER_ERROR, {"error": "boom"}),
    }
    adapter = GoogleCalendarAdapter(_google_credential(), FakeCredentialStore(), settings)
    selected = [SelectedCalendar(integration="google_calendar", external_id="primary")]

    assert await adapter.get_availability(WINDOW_FROM, WINDOW_TO, selected) == []


@pytest.mark.asyncio
async def test_google_list_calendars(fake_http, settings):
    fake_http.routes = {
        ("GET", "/users/me/calendarList"): _FakeResponse(
            HTTPStatus.OK,
            {"items": [{"id": "primary", "summary": "Work", "primary": True}, {"id": "x"}]},
        ),
    }
    adapter = GoogleCalendarAdapter(_google_credential(), FakeCredentialStore(), settings)

    calendars = await adapter.list_calendars()

    assert calendars[0].external_id == "primary"
    assert calendars[0].primary is True
    assert calendars[1].name == "No name"
    assert all(cal.integration == "google_calendar" for cal in calendars)


@pytest.mark.asyncio
async def test_office365_create_disables_confirmation_email(fake_http, settings, make_event):
    fake_http.routes = {
        ("POST", "/me/calendar/events"): _FakeResponse(HTTPStatus.CREATED, {"id": "o-evt-1"}),
    }
    adapter = Office365CalendarAdapter(_office365_credential(), FakeCredentialStore(), settings)
    event = make_event(description="Line one\nLine two")
    event.organizer.time_zone = "UTC"

    created = await adapter.create_event(event)

    assert created == {"id": "o-evt-1", "disableConfirmationEmail": True}
    payload = fake_http.requests[-1]["json"]
    assert payload["body"] == {"contentType": "HTML", "content": "Line one<br>Line two"}
    # Graph wants naive local timestamps plus a separate zone name
    assert payload["start"] == {"dateTime": "2025-03-03T10:00:00", "timeZone": "UTC"}


@pytest.mark.asyncio
async def test_office365_update_tolerates_empty_body(fake_http, settings, make_event):
    fake_http.routes = {
        ("PATCH", "/me/calendar/events/o-evt-1"): _FakeResponse(HTTPStatus.NO_CONTENT),
    }
    adapter = Office365CalendarAdapter(_office365_credential(), FakeCredentialStore(), settings)

    assert await adapter.update_event("o-evt-1", make_event()) is None


@pytest.mark.asyncio
async def test_office365_availability_batches_calendar_views(fake_http, settings):
    fake_http.routes = {
        ("POST", "/$batch"): _FakeResponse(
            HTTPStatus.OK,
            {
                "responses": [
                    {
                        "id": "0",
                        "body": {
                            "value": [
                                {
                                    "start": {"dateTime": "2025-03-03T08:00:00.0000000"},
                                    "end": {"dateTime": "2025-03-03T08:30:00.0000000"},
                                }
                            ]
                        },
                    }
                ]
            },
        ),
    }
    adapter = Office365CalendarAdapter(_office365_credential(), FakeCredentialStore(), settings)
    selected = [SelectedCalendar(integration="office365_calendar", external_id="cal-1")]

    busy = await adapter.get_availability(WINDOW_FROM, WINDOW_TO, selected)

    assert busy[0].start == "2025-03-03T08:00:00.0000000Z"
    batch = fake_http.requests[-1]["json"]["requests"]
    assert len(batch) == 1
    assert batch[0]["url"].startswith("/me/calendars/cal-1/calendarView?")


@pytest.mark.asyncio
async def test_zoom_create_and_video_call_data(fake_http, settings, make_event):
    fake_http.routes = {
        ("POST", "/users/me/meetings"): _FakeResponse(
            HTTPStatus.CREATED,
            {"id": 85012345678, "password": "secret", "join_url": "https://zoom.us/j/85012345678"},
        ),
    }
    adapter = ZoomVideoAdapter(_zoom_credential(), FakeCredentialStore(), settings)

    meeting = await adapter.create_event(make_event())
    video = adapter.video_call_data(meeting)

    payload = fake_http.requests[-1]["json"]
    assert payload["type"] == 2
    assert payload["duration"] == 30
    # Host timezone is the first attendee's
    assert payload["timezone"] == "America/New_York"
    assert video.id == "85012345678"
    assert video.password == "secret"
    assert video.url == "https://zoom.us/j/85012345678"
    assert adapter.video_call_data(None) is None


@pytest.mark.asyncio
async def test_zoom_update_returns_none_on_204(fake_http, settings, make_event):
    fake_http.routes = {
        ("PATCH", "/meetings/85012345678"): _FakeResponse(HTTPStatus.NO_CONTENT),
    }
    adapter = ZoomVideoAdapter(_zoom_credential(), FakeCredentialStore(), settings)

    assert await adapter.update_event("85012345678", make_event()) is None


@pytest.mark.asyncio
async def test_zoom_availability_degrades_on_auth_failure(fake_http, settings):
    fake_http.routes = {
        ("GET", "/users/me/meetings"): _FakeResponse(HTTPStatus.UNAUTHORIZED, {"code": 124}),
    }
    adapter = ZoomVideoAdapter(_zoom_credential(), FakeCredentialStore(), settings)

    assert await adapter.get_availability(WINDOW_FROM, WINDOW_TO, []) == []


@pytest.mark.asyncio
async def test_zoom_availability_maps_meetings_to_busy_times(fake_http, settings):
    fake_http.routes = {
        ("GET", "/users/me/meetings"): _FakeResponse(
            HTTPStatus.OK,
            {
                "meetings": [
                    {"start_time": "2025-03-03T09:00:00Z", "duration": 45},
                    {"topic": "instant meeting without start"},
                ]
            },
        ),
    }
    adapter = ZoomVideoAdapter(_zoom_credential(), FakeCredentialStore(), settings)

    busy = await adapter.get_availability(WINDOW_FROM, WINDOW_TO, [])

    assert len(busy) == 1
    assert busy[0].start == "2025-03-03T09:00:00Z"
    assert busy[0].end == "2025-03-03T09:45:00+00:00"


@pytest.mark.asyncio
async def test_daily_create_room_with_owner_token(fake_http, settings, make_event):
    fake_http.routes = {
        ("POST", "/rooms"): _FakeResponse(
            HTTPStatus.OK,
            {"name": "room-abc", "url": "https://example.daily.co/room-abc"},
        ),
        ("POST", "/meeting-tokens"): _FakeResponse(HTTPStatus.OK, {"token": "owner-token"}),
    }
    adapter = DailyVideoAdapter(
        Credential(id=0, type="daily_video", key={}), settings=settings
    )

    room = await adapter.create_event(make_event())
    video = adapter.video_call_data(room)

    assert fake_http.requests[0]["headers"]["Authorization"] == "Bearer daily-key"
    assert fake_http.requests[1]["json"]["properties"]["room_name"] == "room-abc"
    assert video.id == "room-abc"
    assert video.password == "owner-token"
    assert video.url == "https://example.daily.co/room-abc"
    assert await adapter.get_availability(WINDOW_FROM, WINDOW_TO, []) == []
    assert await adapter.list_calendars() == []


@pytest.mark.asyncio
async def test_google_delete_event_notifies_attendees(fake_http, settings):
    fake_http.routes = {
        ("DELETE", "/calendars/primary/events/g-evt-1"): _FakeResponse(HTTPStatus.NO_CONTENT),
    }
    adapter = GoogleCalendarAdapter(_google_credential(), FakeCredentialStore(), settings)

    await adapter.delete_event("g-evt-1")

    assert fake_http.requests[-1]["method"] == "DELETE"
    assert fake_http.requests[-1]["params"] == {"sendUpdates": "all"}
