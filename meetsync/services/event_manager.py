# meetsync/services/event_manager.py
from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Iterable, List, Optional, Sequence, Tuple

from meetsync.core.config import Settings, get_settings
from meetsync.core.errors import BookingNotFoundError, NoSuitableCredentialError
from meetsync.schemas.calendar_event import (
    CalendarEvent,
    ConferenceCreateRequest,
    ConferenceData,
    VideoCallData,
)
from meetsync.schemas.event_result import (
    CreateUpdateResult,
    Credential,
    EventResult,
    PartialBooking,
    PartialReference,
)
from meetsync.services import calendar_client, video_client
from meetsync.services.booking_repository import BookingRepository
from meetsync.services.calendar_client import addition_information_from
from meetsync.services.email_notifier import Mailer, MailVariant
from meetsync.services.providers.base import ProviderAdapter, provider_uid
from meetsync.services.providers.daily_video import FAKE_DAILY_CREDENTIAL
from meetsync.services.registry import ProviderRegistry

logger = logging.getLogger(__name__)

INTEGRATION_PREFIX = "integrations:"

# Locations that get a conference-creation request attached to the event.
CONFERENCE_LOCATIONS = frozenset(
    {
        "integrations:google:meet",
        "integrations:zoom",
        "integrations:daily",
    }
)

# Video providers that need their own API call to hand out join credentials.
# Google Meet is not listed: it is created through the calendar payload.
DEDICATED_INTEGRATIONS = frozenset({"integrations:zoom", "integrations:daily"})

# Reference fields that must all be present to rebuild VideoCallData.
REQUIRED_VIDEO_REFERENCE_FIELDS = {
    "zoom_video": ("meeting_id", "meeting_password", "meeting_url"),
}
DEFAULT_VIDEO_REFERENCE_FIELDS = ("meeting_id", "meeting_url")

NO_SUITABLE_CREDENTIAL_MESSAGE = (
    "No suitable credentials given for the requested integration name."
)


def _reference_for(booking: Optional[PartialBooking], credential_type: str) -> Optional[PartialReference]:
    if booking is None:
        return None
    return next((ref for ref in booking.references if ref.type == credential_type), None)


class EventManager:
    """
    Books one logical event across the user's calendar and video providers.

    A request runs through fixed stages:

        locate -> calendar dispatch -> [video dispatch] -> merge -> notify
        (-> cleanup of the old booking on reschedule)

    Only the first usable calendar credential is written to; a booking is not
    replicated across several calendar accounts. Calendar dispatch always runs
    before video dispatch.
    """

    def __init__(
        self,
        credentials: Iterable[Credential],
        *,
        registry: ProviderRegistry,
        booking_repository: Optional[BookingRepository] = None,
        mailer: Optional[Mailer] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        settings = settings or get_settings()
        credentials = list(credentials)

        self.registry = registry
        self.booking_repository = booking_repository
        self.mailer = mailer
        self.calendar_credentials: List[Credential] = [
            cred for cred in credentials if cred.type.endswith("_calendar")
        ]
        self.video_credentials: List[Credential] = [
            cred for cred in credentials if cred.type.endswith("_video")
        ]

        # Daily.co is configured per deployment, not per user.
        if settings.DAILY_API_KEY:
            self.video_credentials.append(FAKE_DAILY_CREDENTIAL)

    async def create(self, event: CalendarEvent) -> CreateUpdateResult:
        """
        Create all provider entries for a new booking.

        Raises
        ------
        NoSuitableCredentialError
            The location asks for a dedicated video integration the user has
            not connected.
        """
        self._require_language(event)
        evt = self.process_location(event)
        is_dedicated = self.is_dedicated_integration(evt.location)

        # Dedicated integrations send their own video mail instead.
        results = await self.create_all_calendar_events(evt, no_mail=is_dedicated)

        if is_dedicated:
            result = await self.create_video_event(evt)
            if result.video_call_data:
                evt.video_call_data = result.video_call_data
            results.append(result)
        else:
            await self.send_attendee_mail(MailVariant.ATTENDEE_NEW, results, evt)

        return CreateUpdateResult(
            results=results,
            references_to_create=self.build_references(results),
        )

    async def update(self, event: CalendarEvent, reschedule_uid: Optional[str]) -> CreateUpdateResult:
        """
        Move the booking `reschedule_uid` to the data in `event`, then delete
        the old booking together with its references and attendees.

        Raises
        ------
        ValueError
            No reschedule uid was given.
        BookingNotFoundError
            No booking exists for the uid. Nothing is deleted.
        NoSuitableCredentialError
            As in create().
        """
        if not reschedule_uid:
            raise ValueError(
                "EventManager.update was called without a reschedule_uid. "
                "This should never happen."
            )
        if self.booking_repository is None:
            raise RuntimeError("EventManager.update needs a booking repository")

        self._require_language(event)
        evt = self.process_location(event)

        booking = await self.booking_repository.find_booking_by_uid(reschedule_uid)
        if booking is None:
            raise BookingNotFoundError(f"booking not found for uid={reschedule_uid}")

        is_dedicated = self.is_dedicated_integration(evt.location)

        results = await self.update_all_calendar_events(evt, booking, no_mail=is_dedicated)

        if is_dedicated:
            result = await self.update_video_event(evt, booking)
            if result.video_call_data:
                evt.video_call_data = result.video_call_data
            results.append(result)
        else:
            await self.send_attendee_mail(MailVariant.ATTENDEE_RESCHEDULE, results, evt)

        await asyncio.gather(
            self.booking_repository.delete_references(booking.id),
            self.booking_repository.delete_attendees(booking.id),
            self.booking_repository.delete_booking(booking.id),
        )

        references = self.build_references(results, booking.references)
        return CreateUpdateResult(
            results=results,
            references_to_create=references or list(booking.references),
        )

    @staticmethod
    def _require_language(event: CalendarEvent) -> None:
        if not event.language:
            raise ValueError("CalendarEvent.language must be set before booking")

    @staticmethod
    def is_dedicated_integration(location: Optional[str]) -> bool:
        """
        True if the location names a video provider that must be called on
        its own to obtain meeting credentials (Zoom, Daily). Google Meet is
        not dedicated: it rides along with the calendar payload.
        """
        return location in DEDICATED_INTEGRATIONS

    @staticmethod
    def process_location(event: CalendarEvent) -> CalendarEvent:
        """
        Attach a conference-creation request to events located on a known
        integration. The request id is derived from the location string, so
        processing the same event twice yields the same id.
        """
        location = event.location
        if location and location in CONFERENCE_LOCATIONS:
            request_id = str(uuid.uuid5(uuid.NAMESPACE_URL, location))
            event.conference_data = ConferenceData(
                create_request=ConferenceCreateRequest(request_id=request_id)
            )
            event.location = location
        return event

    def _first_calendar(self) -> Optional[Tuple[Credential, ProviderAdapter]]:
        for credential in self.calendar_credentials:
            adapter = self.registry.get_adapter(credential)
            if adapter is not None:
                return credential, adapter
            logger.debug("No adapter for calendar credential type %s", credential.type)
        return None

    async def create_all_calendar_events(
        self,
        event: CalendarEvent,
        no_mail: bool = False,
    ) -> List[EventResult]:
        """
        Create the event on the first calendar credential. No calendar
        connected means no results, not an error.
        """
        first = self._first_calendar()
        if first is None:
            return []
        credential, adapter = first
        return [
            await calendar_client.create_event(
                adapter, credential, event, mailer=self.mailer, no_mail=no_mail
            )
        ]

    async def update_all_calendar_events(
        self,
        event: CalendarEvent,
        booking: PartialBooking,
        no_mail: bool = False,
    ) -> List[EventResult]:
        first = self._first_calendar()
        if first is None:
            return []
        credential, adapter = first
        reference = _reference_for(booking, credential.type)
        return [
            await calendar_client.update_event(
                adapter,
                credential,
                event,
                reference.uid if reference else None,
                mailer=self.mailer,
                no_mail=no_mail,
            )
        ]

    def get_video_credential(self, event: CalendarEvent) -> Optional[Credential]:
        """
        Pick the video credential matching the event's integration location.
        """
        if not event.location:
            return None
        integration_name = event.location.replace(INTEGRATION_PREFIX, "")
        return next(
            (cred for cred in self.video_credentials if integration_name in cred.type),
            None,
        )

    def _video_target(self, event: CalendarEvent) -> Tuple[Credential, ProviderAdapter]:
        credential = self.get_video_credential(event)
        adapter = self.registry.get_adapter(credential) if credential else None
        if credential is None or adapter is None:
            raise NoSuitableCredentialError(NO_SUITABLE_CREDENTIAL_MESSAGE)
        return credential, adapter

    async def create_video_event(self, event: CalendarEvent) -> EventResult:
        credential, adapter = self._video_target(event)
        return await video_client.create_meeting(adapter, credential, event, mailer=self.mailer)

    async def update_video_event(self, event: CalendarEvent, booking: PartialBooking) -> EventResult:
        credential, adapter = self._video_target(event)
        reference = _reference_for(booking, credential.type)

        result = await video_client.update_meeting(
            adapter, credential, event, reference.uid if reference else None
        )
        # Some video integrations, such as Zoom, don't return any data about
        # the meeting when updating it.
        if result.video_call_data is None:
            result.video_call_data = self.booking_reference_to_video_call_data(reference)
        return result

    @staticmethod
    def booking_reference_to_video_call_data(
        reference: Optional[PartialReference],
    ) -> Optional[VideoCallData]:
        """
        Rebuild VideoCallData from a stored reference, or None if the
        reference is missing any field the provider requires.
        """
        if reference is None:
            return None

        required = REQUIRED_VIDEO_REFERENCE_FIELDS.get(
            reference.type, DEFAULT_VIDEO_REFERENCE_FIELDS
        )
        if not all(getattr(reference, field) for field in required):
            return None

        return VideoCallData(
            type=reference.type,
            id=reference.meeting_id or "",
            password=reference.meeting_password or "",
            url=reference.meeting_url or "",
        )

    @staticmethod
    def build_references(
        results: Sequence[EventResult],
        prior_references: Sequence[PartialReference] = (),
    ) -> List[PartialReference]:
        """
        One reference per successful result that identifies a provider entry.

        Updates whose response carries no id keep the uid of the prior
        reference of the same provider.
        """
        references: List[PartialReference] = []
        for result in results:
            if not result.success:
                continue

            uid = provider_uid(result.type, result.provider_event)
            if not uid:
                prior = next((ref for ref in prior_references if ref.type == result.type), None)
                uid = prior.uid if prior else ""
            if not uid:
                continue

            video = result.video_call_data
            references.append(
                PartialReference(
                    type=result.type,
                    uid=uid,
                    meeting_id=video.id if video else None,
                    meeting_password=video.password if video else None,
                    meeting_url=video.url if video else None,
                )
            )
        return references

    async def send_attendee_mail(
        self,
        variant: MailVariant,
        results: Sequence[EventResult],
        event: CalendarEvent,
    ) -> None:
        """
        Send the attendee confirmation unless a provider already did.

        Mail failures are logged and never fail the booking.
        """
        if any(
            (result.provider_event or {}).get("disableConfirmationEmail")
            for result in results
        ):
            return

        first_success = next(
            (result for result in results if result.success and result.provider_event),
            None,
        )
        event.addition_information = addition_information_from(
            first_success.provider_event if first_success else None
        )

        if self.mailer is None:
            return
        try:
            await self.mailer.send_email(variant, event)
        except Exception:
            logger.exception("Attendee mail (%s) failed for '%s'", variant.value, event.title)
