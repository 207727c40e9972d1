# meetsync/services/event_parser.py
from __future__ import annotations

import uuid
from typing import Optional

from meetsync.core.config import get_settings
from meetsync.schemas.calendar_event import CalendarEvent

# Fields filled in while a booking is orchestrated; excluded so the derived
# uid stays stable across the whole request.
_VOLATILE_FIELDS = {"addition_information", "video_call_data", "conference_data"}


def get_uid(event: CalendarEvent) -> str:
    """
    Booking uid: the existing one on reschedule, otherwise a deterministic id
    derived from the event content.
    """
    if event.uid:
        return event.uid
    content = event.model_dump_json(exclude=_VOLATILE_FIELDS)
    return uuid.uuid5(uuid.NAMESPACE_URL, content).hex


def _base_url(base_url: Optional[str] = None) -> str:
    return str(base_url or get_settings().BASE_URL).rstrip("/")


def get_cancel_link(event: CalendarEvent, base_url: Optional[str] = None) -> str:
    return f"{_base_url(base_url)}/cancel/{get_uid(event)}"


def get_reschedule_link(event: CalendarEvent, base_url: Optional[str] = None) -> str:
    return f"{_base_url(base_url)}/reschedule/{get_uid(event)}"


def get_change_event_footer(event: CalendarEvent, base_url: Optional[str] = None) -> str:
    return (
        "Need to make a change?\n"
        f"Cancel: {get_cancel_link(event, base_url)}\n"
        f"Reschedule: {get_reschedule_link(event, base_url)}"
    )


def as_rich_event_plain(event: CalendarEvent, base_url: Optional[str] = None) -> CalendarEvent:
    """
    Copy of `event` whose plain-text description carries the cancel and
    reschedule links. Providers that need HTML convert it at their boundary.
    """
    parts = [event.description.strip()] if event.description else []
    parts.append(get_change_event_footer(event, base_url))
    return event.model_copy(update={"description": "\n\n".join(parts)})
