# meetsync/services/video_client.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from meetsync.schemas.calendar_event import CalendarEvent
from meetsync.schemas.event_result import Credential, EventResult
from meetsync.services.email_notifier import Mailer, MailVariant
from meetsync.services.event_parser import get_uid
from meetsync.services.providers.base import VideoAdapter, uid_field

logger = logging.getLogger(__name__)


async def create_meeting(
    adapter: VideoAdapter,
    credential: Credential,
    event: CalendarEvent,
    mailer: Optional[Mailer] = None,
) -> EventResult:
    """
    Create a dedicated video meeting and mail its join details.

    The video mails replace the generic attendee confirmation for dedicated
    integrations.
    """
    uid = get_uid(event)

    success = True
    created: Optional[Dict[str, Any]] = None
    try:
        created = await adapter.create_event(event)
    except Exception:
        logger.exception("createMeeting failed on %s for uid=%s", credential.type, uid)
        success = False

    video_call_data = adapter.video_call_data(created)

    if video_call_data is not None:
        event.video_call_data = video_call_data
        if mailer is not None:
            for variant in (MailVariant.VIDEO_ORGANIZER, MailVariant.VIDEO_ATTENDEE):
                try:
                    await mailer.send_email(variant, event)
                except Exception:
                    logger.exception("Video mail (%s) failed for uid=%s", variant.value, uid)

    return EventResult(
        type=credential.type,
        success=success,
        uid=uid,
        created_event=created or None,
        original_event=event,
        video_call_data=video_call_data,
    )


async def update_meeting(
    adapter: VideoAdapter,
    credential: Credential,
    event: CalendarEvent,
    booking_ref_uid: Optional[str],
) -> EventResult:
    """
    Update an existing video meeting.

    `video_call_data` stays None when the provider does not echo the meeting
    credentials; the coordinator restores them from the stored reference.
    """
    uid = get_uid(event)

    if not booking_ref_uid:
        logger.info("No %s reference for uid=%s, skipping update", credential.type, uid)
        return EventResult(type=credential.type, success=True, uid=uid, original_event=event)

    try:
        updated = await adapter.update_event(booking_ref_uid, event)
    except Exception:
        logger.exception("updateMeeting failed on %s for uid=%s", credential.type, uid)
        return EventResult(type=credential.type, success=False, uid=uid, original_event=event)

    return EventResult(
        type=credential.type,
        success=True,
        uid=uid,
        updated_event=updated or {uid_field(credential.type): booking_ref_uid},
        original_event=event,
        video_call_data=adapter.video_call_data(updated),
    )
