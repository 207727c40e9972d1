# meetsync/services/calendar_client.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from meetsync.schemas.calendar_event import AdditionInformation, CalendarEvent, EntryPoint
from meetsync.schemas.event_result import Credential, EventResult
from meetsync.services.email_notifier import Mailer, MailVariant
from meetsync.services.event_parser import as_rich_event_plain, get_uid
from meetsync.services.providers.base import ProviderAdapter, uid_field

logger = logging.getLogger(__name__)


def _entry_point(raw: Dict[str, Any]) -> EntryPoint:
    return EntryPoint(
        entry_point_type=raw.get("entryPointType"),
        uri=raw.get("uri"),
        label=raw.get("label"),
        pin=raw.get("pin"),
        access_code=raw.get("accessCode"),
        meeting_code=raw.get("meetingCode"),
        passcode=raw.get("passcode"),
        password=raw.get("password"),
    )


def addition_information_from(provider_event: Optional[Dict[str, Any]]) -> AdditionInformation:
    """
    Collect the join details a provider returned for a created event
    (Google Meet hangout link, conference data, entry points).
    """
    if not provider_event:
        return AdditionInformation()

    conference_data = provider_event.get("conferenceData")
    raw_entry_points = provider_event.get("entryPoints")
    if raw_entry_points is None and isinstance(conference_data, dict):
        raw_entry_points = conference_data.get("entryPoints")

    return AdditionInformation(
        hangout_link=provider_event.get("hangoutLink"),
        conference_data=conference_data,
        entry_points=[_entry_point(ep) for ep in raw_entry_points] if raw_entry_points else None,
    )


async def _notify_organizer(
    mailer: Optional[Mailer],
    variant: MailVariant,
    event: CalendarEvent,
) -> None:
    if mailer is None:
        return
    try:
        await mailer.send_email(variant, event)
    except Exception:
        logger.exception("Organizer mail (%s) failed for '%s'", variant.value, event.title)


async def create_event(
    adapter: ProviderAdapter,
    credential: Credential,
    event: CalendarEvent,
    mailer: Optional[Mailer] = None,
    no_mail: bool = False,
) -> EventResult:
    """
    Create `event` on one calendar provider and wrap the outcome.

    Provider failures are logged and reported as `success=False`; they never
    propagate. On success the provider's join details are stored on the event
    and, unless `no_mail` is set, the organizer is notified.
    """
    uid = get_uid(event)
    rich_event = as_rich_event_plain(event)

    success = True
    created: Optional[Dict[str, Any]] = None
    try:
        created = await adapter.create_event(rich_event)
    except Exception:
        logger.exception("createEvent failed on %s for uid=%s", credential.type, uid)
        success = False

    if not created:
        return EventResult(
            type=credential.type,
            success=success,
            uid=uid,
            original_event=event,
        )

    event.addition_information = addition_information_from(created)

    if not no_mail:
        await _notify_organizer(mailer, MailVariant.ORGANIZER_NEW, event)

    return EventResult(
        type=credential.type,
        success=success,
        uid=uid,
        created_event=created,
        original_event=event,
    )


async def update_event(
    adapter: ProviderAdapter,
    credential: Credential,
    event: CalendarEvent,
    booking_ref_uid: Optional[str],
    mailer: Optional[Mailer] = None,
    no_mail: bool = False,
) -> EventResult:
    """
    Update the provider entry `booking_ref_uid` with the new event data.

    Without a prior reference there is nothing to update: the call is skipped
    and reported as a failure-free result without `updated_event`.
    """
    uid = get_uid(event)

    if not booking_ref_uid:
        logger.info("No %s reference for uid=%s, skipping update", credential.type, uid)
        return EventResult(type=credential.type, success=True, uid=uid, original_event=event)

    rich_event = as_rich_event_plain(event)
    try:
        updated = await adapter.update_event(booking_ref_uid, rich_event)
    except Exception:
        logger.exception("updateEvent failed on %s for uid=%s", credential.type, uid)
        return EventResult(type=credential.type, success=False, uid=uid, original_event=event)

    if not no_mail:
        await _notify_organizer(mailer, MailVariant.ORGANIZER_RESCHEDULE, event)

    return EventResult(
        type=credential.type,
        success=True,
        uid=uid,
        # Some providers answer updates with an empty body; keep their id.
        updated_event=updated or {uid_field(credential.type): booking_ref_uid},
        original_event=event,
    )
