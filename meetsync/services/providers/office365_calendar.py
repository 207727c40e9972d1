# meetsync/services/providers/office365_calendar.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlencode
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

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
from meetsync.services.token_refresh import CredentialStore, office365_token_refresher

logger = logging.getLogger(__name__)

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"


def _to_local(value: datetime, time_zone: str) -> tuple[str, str]:
    """
    Render `value` as a naive local timestamp in `time_zone`, the shape Graph
    expects in dateTimeTimeZone. Unknown zones fall back to UTC.
    """
    try:
        tz = ZoneInfo(time_zone)
    except (ZoneInfoNotFoundError, ValueError):
        tz, time_zone = timezone.utc, "UTC"
    return value.astimezone(tz).replace(tzinfo=None).isoformat(), time_zone


class Office365CalendarAdapter:
    """
    Microsoft Outlook / Office365 adapter on top of Microsoft Graph.

    Outlook strips plain newlines from event bodies, so descriptions are sent
    as HTML. Outlook also emails attendees itself, which is why created events
    are flagged with `disableConfirmationEmail`.
    """

    integration_type = "office365_calendar"

    def __init__(
        self,
        credential: Credential,
        store: CredentialStore,
        settings: Optional[Settings] = None,
    ) -> None:
        settings = settings or get_settings()
        self.auth = office365_token_refresher(credential, store, settings)
        self.api = JsonApiClient(
            provider=self.integration_type,
            base_url=GRAPH_BASE_URL,
            token_getter=self.auth.get_token,
            timeout_seconds=settings.PROVIDER_TIMEOUT_SECONDS,
        )

    def translate_event(self, event: CalendarEvent) -> Dict[str, Any]:
        start, start_tz = _to_local(event.start_time, event.organizer.time_zone)
        end, end_tz = _to_local(event.end_time, event.organizer.time_zone)
        content = (event.description or "").replace("\r\n", "\n").replace("\n", "<br>")

        payload: Dict[str, Any] = {
            "subject": event.title,
            "body": {
                "contentType": "HTML",
                "content": content,
            },
            "start": {"dateTime": start, "timeZone": start_tz},
            "end": {"dateTime": end, "timeZone": end_tz},
            "attendees": [
                {
                    "emailAddress": {
                        "address": attendee.email,
                        "name": attendee.name,
                    },
                    "type": "required",
                }
                for attendee in event.attendees
            ],
        }
        if event.location:
            payload["location"] = {"displayName": event.location}
        return payload

    async def create_event(self, event: CalendarEvent) -> Dict[str, Any]:
        created = await self.api.post_json(
            "/me/calendar/events",
            json=self.translate_event(event),
        )
        return {**created, "disableConfirmationEmail": True}

    async def update_event(self, uid: str, event: CalendarEvent) -> Optional[Dict[str, Any]]:
        return await self.api.send(
            "PATCH",
            f"/me/calendar/events/{uid}",
            json=self.translate_event(event),
        )

    async def delete_event(self, uid: str) -> None:
        await self.api.send("DELETE", f"/me/calendar/events/{uid}")

    async def list_calendars(self) -> List[IntegrationCalendar]:
        payload = await self.api.get_json("/me/calendars")
        return [
            IntegrationCalendar(
                external_id=cal.get("id") or "No Id",
                integration=self.integration_type,
                name=cal.get("name") or "No calendar name",
                primary=bool(cal.get("isDefaultCalendar", False)),
            )
            for cal in payload.get("value", [])
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
            if not calendar_ids:
                return []

            window = urlencode(
                {"startdatetime": date_from.isoformat(), "enddatetime": date_to.isoformat()}
            )
            requests = [
                {
                    "id": str(index),
                    "method": "GET",
                    "headers": {"Prefer": 'outlook.timezone="Etc/GMT"'},
                    "url": f"/me/calendars/{calendar_id}/calendarView?{window}",
                }
                for index, calendar_id in enumerate(calendar_ids)
            ]
            payload = await self.api.post_json("/$batch", json={"requests": requests})
        except ProviderError as exc:
            logger.warning("Office365 busy-time query failed, ignoring provider: %s", exc)
            return []

        busy: List[BusyTime] = []
        for sub_response in payload.get("responses", []):
            for evt in (sub_response.get("body") or {}).get("value", []):
                busy.append(
                    BusyTime(
                        start=evt["start"]["dateTime"] + "Z",
                        end=evt["end"]["dateTime"] + "Z",
                    )
                )
        return busy
