# meetsync/services/providers/google_calendar.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from meetsync.core.config import Settings, get_settings
from meetsync.core.errors import ProviderError
from meetsync.schemas.calendar_event import (
    BusyTime,
    CalendarEvent,
    IntegrationCalendar,
    SelectedCalendar,
)
from meetsync.schemas.event_result import Credential
from meetsync.services.providers.base import JsonApiClient, selected_calendar_ids
from meetsync.services.token_refresh import CredentialStore, google_token_refresher

logger = logging.getLogger(__name__)

GOOGLE_CALENDAR_BASE_URL = "https://www.googleapis.com/calendar/v3"
GOOGLE_MEET_LOCATION = "integrations:google:meet"


class GoogleCalendarAdapter:
    """
    Google Calendar (REST v3) adapter.

    Google Meet links are created by attaching `conferenceData` to the event
    payload, so Meet bookings need no separate video call.
    """

    integration_type = "google_calendar"

    def __init__(
        self,
        credential: Credential,
        store: CredentialStore,
        settings: Optional[Settings] = None,
    ) -> None:
        settings = settings or get_settings()
        self.auth = google_token_refresher(credential, store, settings)
        self.api = JsonApiClient(
            provider=self.integration_type,
            base_url=GOOGLE_CALENDAR_BASE_URL,
            token_getter=self.auth.get_token,
            timeout_seconds=settings.PROVIDER_TIMEOUT_SECONDS,
        )

    def translate_event(self, event: CalendarEvent) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "summary": event.title,
            "description": event.description,
            "start": {
                "dateTime": event.start_time.isoformat(),
                "timeZone": event.organizer.time_zone,
            },
            "end": {
                "dateTime": event.end_time.isoformat(),
                "timeZone": event.organizer.time_zone,
            },
            "attendees": [
                {"email": attendee.email, "displayName": attendee.name}
                for attendee in event.attendees
            ],
            "reminders": {
                "useDefault": False,
                "overrides": [{"method": "email", "minutes": 10}],
            },
        }

        if event.location:
            payload["location"] = event.location

        return payload

    async def create_event(self, event: CalendarEvent) -> Dict[str, Any]:
        payload = self.translate_event(event)

        if event.conference_data and event.location == GOOGLE_MEET_LOCATION:
            payload["conferenceData"] = {
                "createRequest": {
                    "requestId": event.conference_data.create_request.request_id,
                },
            }

        return await self.api.post_json(
            "/calendars/primary/events",
            params={"conferenceDataVersion": 1},
            json=payload,
        )

    async def update_event(self, uid: str, event: CalendarEvent) -> Optional[Dict[str, Any]]:
        return await self.api.send(
            "PUT",
            f"/calendars/primary/events/{uid}",
            params={"sendUpdates": "all"},
            json=self.translate_event(event),
        )

    async def delete_event(self, uid: str) -> None:
        await self.api.send(
            "DELETE",
            f"/calendars/primary/events/{uid}",
            params={"sendUpdates": "all"},
        )

    async def list_calendars(self) -> List[IntegrationCalendar]:
        payload = await self.api.get_json("/users/me/calendarList")
        return [
            IntegrationCalendar(
                external_id=cal.get("id") or "No id",
                integration=self.integration_type,
                name=cal.get("summary") or "No name",
                primary=bool(cal.get("primary", False)),
            )
            for cal in payload.get("items", [])
        ]

    async def get_availability(
        self,
        date_from: datetime,
        date_to: datetime,
        selected_calendars: Sequence[SelectedCalendar],
    ) -> List[BusyTime]:
        calendar_ids = selected_calendar_ids(selected_calendars, self.integration_type)
        if calendar_ids is not None and not calendar_ids:
            # Only calendars of other integrations selected
            return []

        try:
            if calendar_ids is None:
                calendar_ids = [cal.external_id for cal in await self.list_calendars()]

            payload = await self.api.post_json(
                "/freeBusy",
                json={
                    "timeMin": date_from.isoformat(),
                    "timeMax": date_to.isoformat(),
                    "items": [{"id": cal_id} for cal_id in calendar_ids],
                },
            )
        except ProviderError as exc:
            logger.warning("Google busy-time query failed, ignoring provider: %s", exc)
            return []

        busy: List[BusyTime] = []
        for calendar in (payload.get("calendars") or {}).values():
            for slot in calendar.get("busy", []):
                busy.append(BusyTime(start=slot["start"], end=slot["end"]))
        return busy
