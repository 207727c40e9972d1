# meetsync/schemas/event_result.py
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from meetsync.schemas.calendar_event import CalendarEvent, VideoCallData


class Credential(BaseModel):
    """
    Opaque authorization record for one connected provider account.

    The `type` suffix (`_calendar` / `_video`) decides how the coordinator
    treats it. `key` is provider-specific, usually an OAuth token pair plus an
    expiry.
    """

    id: int
    type: str = Field(..., examples=["google_calendar"])
    key: Dict[str, Any] = Field(default_factory=dict)

    model_config = {"from_attributes": True}


class EventResult(BaseModel):
    """
    Outcome of a single provider create/update call.

    At most one of `created_event` / `updated_event` is populated; both stay
    empty when the call failed or was skipped.
    """

    type: str
    success: bool
    uid: str
    created_event: Optional[Dict[str, Any]] = None
    updated_event: Optional[Dict[str, Any]] = None
    original_event: CalendarEvent
    video_call_data: Optional[VideoCallData] = None

    @property
    def provider_event(self) -> Optional[Dict[str, Any]]:
        return self.created_event or self.updated_event


class PartialReference(BaseModel):
    """
    Linkage between a booking and the provider-side entry holding it.
    """

    id: Optional[int] = None
    type: str
    uid: str
    meeting_id: Optional[str] = None
    meeting_password: Optional[str] = None
    meeting_url: Optional[str] = None

    model_config = {"from_attributes": True}


class PartialBooking(BaseModel):
    id: int
    references: list[PartialReference] = Field(default_factory=list)


class CreateUpdateResult(BaseModel):
    """
    What the coordinator hands back to the caller for persistence.
    """

    results: list[EventResult] = Field(default_factory=list)
    references_to_create: list[PartialReference] = Field(default_factory=list)
