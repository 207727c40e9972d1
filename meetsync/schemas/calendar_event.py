# meetsync/schemas/calendar_event.py

from pydantic import AwareDatetime, BaseModel, Field


class Person(BaseModel):
    """
    Organizer or attendee of a booking.
    """

    name: str = Field(..., examples=["Jane Doe"])
    email: str = Field(..., examples=["jane@example.com"])
    time_zone: str = Field(
        ...,
        description="IANA timezone name used when rendering times for this person.",
        examples=["Europe/Berlin"],
    )


class Team(BaseModel):
    name: str
    members: list[str] = Field(default_factory=list)


class EntryPoint(BaseModel):
    """
    One way of joining a conference (video link, dial-in number, ...).
    """

    entry_point_type: str | None = None
    uri: str | None = None
    label: str | None = None
    pin: str | None = None
    access_code: str | None = None
    meeting_code: str | None = None
    passcode: str | None = None
    password: str | None = None


class ConferenceCreateRequest(BaseModel):
    request_id: str = Field(
        ...,
        description="Stable id derived from the integration location.",
    )


class ConferenceData(BaseModel):
    create_request: ConferenceCreateRequest


class AdditionInformation(BaseModel):
    """
    Metadata returned by a provider after the event was created, relayed to
    attendees in the confirmation mail.
    """

    conference_data: dict | None = Field(
        None,
        description="Provider conference payload, e.g. Google Meet conferenceData.",
    )
    entry_points: list[EntryPoint] | None = None
    hangout_link: str | None = None


class VideoCallData(BaseModel):
    """
    Normalized description of a video meeting, independent of the provider.
    """

    type: str = Field(..., examples=["zoom_video"])
    id: str = Field(..., examples=["85012345678"])
    password: str = Field(..., examples=["a1b2c3"])
    url: str = Field(..., examples=["https://zoom.us/j/85012345678"])


class CalendarEvent(BaseModel):
    """
    Canonical event passed to every provider adapter.

    Built fresh per request and mutated in place while the booking is
    orchestrated (location enrichment, addition information, video data).
    A non-null `uid` means the event is a reschedule of an existing booking.
    """

    type: str = Field(..., description="Event type tag (slug of the booked event type).")
    title: str
    start_time: AwareDatetime
    end_time: AwareDatetime
    description: str | None = None
    team: Team | None = None
    location: str | None = Field(
        None,
        description="Free-form location or an `integrations:<name>` sentinel.",
        examples=["integrations:zoom"],
    )
    organizer: Person
    attendees: list[Person] = Field(default_factory=list)
    conference_data: ConferenceData | None = None
    language: str = Field(
        ...,
        min_length=1,
        description="Locale used for attendee-facing text.",
        examples=["en"],
    )
    addition_information: AdditionInformation | None = None
    uid: str | None = None
    video_call_data: VideoCallData | None = None


class IntegrationCalendar(BaseModel):
    """
    A calendar exposed by a connected provider account.
    """

    external_id: str
    integration: str
    name: str
    primary: bool = False


class SelectedCalendar(BaseModel):
    """
    A calendar the user picked for conflict checking.
    """

    integration: str = Field(..., examples=["google_calendar"])
    external_id: str = Field(..., examples=["primary"])


class BusyTime(BaseModel):
    start: str
    end: str
