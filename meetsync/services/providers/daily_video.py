# meetsync/services/providers/daily_video.py
from __future__ import annotations

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
from meetsync.services.token_refresh import CredentialStore
from meetsync.services.providers.base import JsonApiClient

DAILY_API_BASE_URL = "https://api.daily.co/v1"

# Rooms stay joinable for a while after the booked end time.
ROOM_GRACE_PERIOD = timedelta(hours=1)

FAKE_DAILY_CREDENTIAL = Credential(id=0, type="daily_video", key={})


class DailyVideoAdapter:
    """
    Daily.co rooms adapter.

    Authenticates with a static API key, so there is no token refresh. A
    booking gets a private room plus an owner meeting token; the token doubles
    as the meeting password.
    """

    integration_type = "daily_video"

    def __init__(
        self,
        credential: Credential,
        store: Optional[CredentialStore] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        settings = settings or get_settings()
        self._api_key = credential.key.get("api_key") or settings.DAILY_API_KEY
        self.api = JsonApiClient(
            provider=self.integration_type,
            base_url=DAILY_API_BASE_URL,
            token_getter=self._get_api_key,
            timeout_seconds=settings.PROVIDER_TIMEOUT_SECONDS,
        )

    async def _get_api_key(self) -> str:
        if not self._api_key:
            raise ProviderError("DAILY_API_KEY is not configured", provider=self.integration_type)
        return self._api_key

    def translate_event(self, event: CalendarEvent) -> Dict[str, Any]:
        return {
            "privacy": "private",
            "properties": {
                "enable_new_call_ui": True,
                "enable_prejoin_ui": True,
                "enable_knocking": True,
                "enable_screenshare": True,
                "enable_chat": True,
                "nbf": int(event.start_time.timestamp()),
                "exp": int((event.end_time + ROOM_GRACE_PERIOD).timestamp()),
            },
        }

    async def _with_meeting_token(self, room: Dict[str, Any], event: CalendarEvent) -> Dict[str, Any]:
        token = await self.api.post_json(
            "/meeting-tokens",
            json={
                "properties": {
                    "room_name": room["name"],
                    "exp": int((event.end_time + ROOM_GRACE_PERIOD).timestamp()),
                    "is_owner": True,
                }
            },
        )
        return {**room, "password": token.get("token", "")}

    def video_call_data(self, room: Optional[Dict[str, Any]]) -> Optional[VideoCallData]:
        if not room or not room.get("name"):
            return None
        return VideoCallData(
            type=self.integration_type,
            id=room["name"],
            password=room.get("password") or "",
            url=room.get("url") or "",
        )

    async def create_event(self, event: CalendarEvent) -> Dict[str, Any]:
        room = await self.api.post_json("/rooms", json=self.translate_event(event))
        return await self._with_meeting_token(room, event)

    async def update_event(self, uid: str, event: CalendarEvent) -> Optional[Dict[str, Any]]:
        room = await self.api.post_json(f"/rooms/{uid}", json=self.translate_event(event))
        return await self._with_meeting_token(room, event)

    async def delete_event(self, uid: str) -> None:
        await self.api.send("DELETE", f"/rooms/{uid}")

    async def list_calendars(self) -> List[IntegrationCalendar]:
        return []

    async def get_availability(
        self,
        date_from: datetime,
        date_to: datetime,
        selected_calendars: Sequence[SelectedCalendar],
    ) -> List[BusyTime]:
        return []
