# meetsync/schemas/requests.py

from pydantic import AwareDatetime, BaseModel, Field

from meetsync.schemas.calendar_event import CalendarEvent, SelectedCalendar


class BookingRequest(BaseModel):
    """
    Payload for creating or rescheduling a booking on a user's providers.
    """

    user_id: int = Field(..., description="Owner of the credentials to book with.", examples=[1])
    event: CalendarEvent


class AvailabilityRequest(BaseModel):
    user_id: int = Field(..., examples=[1])
    date_from: AwareDatetime
    date_to: AwareDatetime
    selected_calendars: list[SelectedCalendar] | None = Field(
        None,
        description=(
            "Calendars to check. When omitted, the user's stored selection is used."
        ),
    )
