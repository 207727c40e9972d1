# meetsync/services/email_notifier.py
from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from enum import Enum
from typing import List, Protocol

from meetsync.core.config import get_settings
from meetsync.schemas.calendar_event import CalendarEvent
from meetsync.services.event_parser import get_change_event_footer

logger = logging.getLogger(__name__)


class MailVariant(str, Enum):
    """
    Notification mails the coordinator and the video client can send.
    """

    ORGANIZER_NEW = "organizer_new"
    ORGANIZER_RESCHEDULE = "organizer_reschedule"
    ATTENDEE_NEW = "attendee_new"
    ATTENDEE_RESCHEDULE = "attendee_reschedule"
    VIDEO_ORGANIZER = "video_organizer"
    VIDEO_ATTENDEE = "video_attendee"


_ORGANIZER_VARIANTS = {
    MailVariant.ORGANIZER_NEW,
    MailVariant.ORGANIZER_RESCHEDULE,
    MailVariant.VIDEO_ORGANIZER,
}

_SUBJECT_PREFIXES = {
    MailVariant.ORGANIZER_NEW: "New event",
    MailVariant.ORGANIZER_RESCHEDULE: "Rescheduled event",
    MailVariant.ATTENDEE_NEW: "Confirmed",
    MailVariant.ATTENDEE_RESCHEDULE: "Rescheduled",
    MailVariant.VIDEO_ORGANIZER: "New video meeting",
    MailVariant.VIDEO_ATTENDEE: "Video meeting confirmed",
}


class Mailer(Protocol):
    async def send_email(self, variant: MailVariant, event: CalendarEvent) -> bool:
        ...


def get_recipients(variant: MailVariant, event: CalendarEvent) -> List[str]:
    if variant in _ORGANIZER_VARIANTS:
        return [event.organizer.email]
    return [attendee.email for attendee in event.attendees if attendee.email]


def build_event_email_subject(variant: MailVariant, event: CalendarEvent) -> str:
    return (
        f"{_SUBJECT_PREFIXES[variant]}: {event.title} "
        f"at {event.start_time.isoformat()}"
    )


def build_event_email_body(variant: MailVariant, event: CalendarEvent) -> str:
    """
    Build a plain-text body describing the booking.
    """
    lines: list[str] = [event.title, ""]

    lines.append(f"When: {event.start_time.isoformat()} → {event.end_time.isoformat()}")
    lines.append(f"Organizer: {event.organizer.name} <{event.organizer.email}>")
    if event.attendees:
        lines.append(
            "Attendees: "
            + ", ".join(f"{a.name} <{a.email}>" for a in event.attendees)
        )
    if event.location:
        lines.append(f"Where: {event.location}")

    if event.video_call_data:
        lines.append("")
        lines.append(f"Join: {event.video_call_data.url}")
        lines.append(f"Meeting ID: {event.video_call_data.id}")
        if event.video_call_data.password:
            lines.append(f"Password: {event.video_call_data.password}")

    info = event.addition_information
    if info:
        if info.hangout_link:
            lines.append(f"Join: {info.hangout_link}")
        for entry in info.entry_points or []:
            if entry.uri:
                lines.append(f"{entry.label or entry.entry_point_type or 'Join'}: {entry.uri}")

    if event.description:
        lines.append("")
        lines.append(event.description)

    if variant not in _ORGANIZER_VARIANTS:
        lines.append("")
        lines.append(get_change_event_footer(event))

    return "\n".join(lines)


def send_event_email(variant: MailVariant, event: CalendarEvent) -> bool:
    """
    Send one notification mail via SMTP.

    Returns
    -------
    bool
        True if an attempt to send was made and succeeded.
        False if email sending is disabled/misconfigured, there is nobody to
        notify, or the SMTP conversation fails.
    """
    settings = get_settings()

    recipients = get_recipients(variant, event)
    if not recipients:
        return False

    if not settings.SMTP_HOST or not settings.SMTP_FROM_ADDRESS:
        # Email system not configured
        return False

    msg = EmailMessage()
    msg["Subject"] = build_event_email_subject(variant, event)
    msg["From"] = settings.SMTP_FROM_ADDRESS
    msg["To"] = ", ".join(recipients)
    msg["Content-Language"] = event.language
    msg.set_content(build_event_email_body(variant, event))

    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as smtp:
            if settings.SMTP_USE_TLS:
                smtp.starttls()
            if settings.SMTP_USERNAME and settings.SMTP_PASSWORD:
                smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
            smtp.send_message(msg)
        return True
    except (smtplib.SMTPException, OSError):
        logger.exception("Sending %s mail for '%s' failed", variant.value, event.title)
        return False


class SmtpMailer:
    """
    Mailer backed by send_event_email, run off the event loop.
    """

    async def send_email(self, variant: MailVariant, event: CalendarEvent) -> bool:
        return await asyncio.to_thread(send_event_email, variant, event)
