# meetsync/services/providers/zoom_video.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from meetsync.core.config import Settings, get_settings
from meetsync.core.errors import ProviderError
from meetsync.schemas.calendar_event import (
    BusyTime,
    CalendarEvent,
    IntegrationCalendar,
    SelectedCalendar,
    VideoCallData,
)
from meetsync.schemas.event_result import Credential
from meetsync.services.providers.base import JsonApiClient
from meetsync.services.token_refresh import CredentialStore, zoom_token_refresher

logger = logging.getLogger(__name__)

ZOOM_API_BASE_URL = "https://api.zoom.us/v2"
ZOOM_SCHEDULED_MEETING = 2


class ZoomVideoAdapter:
    """
    Zoom meetings API adapter.

    Zoom is a dedicated integration: join URL and password only exist after a
    separate meeting-creation call. Updates answer 204 without a body, so the
    coordinator rebuilds the video data from the stored booking reference.
    """

    integration_type = "zoom_video"

    def __init__(
        self,
        credential: Credential,
        store: CredentialStore,
        settings: Optional[Settings] = None,
    ) -> None:
        settings = settings or get_settings()
        self.auth = zoom_token_refresher(credential, store, settings)
        self.api = JsonApiClient(
            provider=self.integration_type,
            base_url=ZOOM_API_BASE_URL,
            token_getter=self.auth.get_token,
            timeout_seconds=settings.PROVIDER_TIMEOUT_SECONDS,
        )

    def translate_event(self, event: CalendarEvent) -> Dict[str, Any]:
        # Documentation at: https://marketplace.zoom.us/docs/api-reference/zoom-api/meetings/meetingcreate
        duration = (event.end_time - event.start_time).total_seconds() / 60
        host = event.attendees[0] if event.attendees else event.organizer
        return {
            "topic": event.title,
            "type": ZOOM_SCHEDULED_MEETING,
            "start_time": event.start_time.isoformat(),
            "duration": int(duration),
            "timezone": host.time_zone,
            "agenda": event.description,
            "settings": {
                "host_video": True,
                "participant_video": True,
                "cn_meeting": False,
                "in_meeting": False,
                "join_before_host": True,
                "mute_upon_entry": False,
                "watermark": False,
                "use_pmi": False,
                "approval_type": 2,
                "audio": "both",
                "auto_recording": "none",
                "enforce_login": False,
                "registrants_email_notification": True,
            },
        }

    def video_call_data(self, meeting: Optional[Dict[str, Any]]) -> Optional[VideoCallData]:
        if not meeting or meeting.get("id") is None:
            return None
        return VideoCallData(
            type=self.integration_type,
            id=str(meeting["id"]),
            password=meeting.get("password") or "",
            url=meeting.get("join_url") or "",
        )

    async def create_event(self, event: CalendarEvent) -> Dict[str, Any]:
        return await self.api.post_json("/users/me/meetings", json=self.translate_event(event))

    async def update_event(self, uid: str, event: CalendarEvent) -> Optional[Dict[str, Any]]:
        return await self.api.send("PATCH", f"/meetings/{uid}", json=self.translate_event(event))

    async def delete_event(self, uid: str) -> None:
        await self.api.send("DELETE", f"/meetings/{uid}")

    async def list_calendars(self) -> List[IntegrationCalendar]:
        return []

    async def get_availability(
        self,
        date_from: datetime,
        date_to: datetime,
        selected_calendars: Sequence[SelectedCalendar],
    ) -> List[BusyTime]:
        # TODO: paginate once a user has more than 300 scheduled meetings.
        try:
            payload = await self.api.get_json(
                "/users/me/meetings",
                params={"type": "scheduled", "page_size": 300},
            )
        except ProviderError as exc:
            # An expired Zoom token must not block the booking.
            logger.warning("Zoom busy-time query failed, ignoring provider: %s", exc)
            return []

        busy: List[BusyTime] = []
        for meeting in payload.get("meetings", []):
            start_raw = meeting.get("start_time")
            if not start_raw:
                continue
            start = datetime.fromisoformat(start_raw.replace("Z", "+00:00"))
            end = start + timedelta(minutes=meeting.get("duration") or 0)
            busy.append(BusyTime(start=start_raw, end=end.isoformat()))
        return busy
