# meetsync/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models in the meetsync service.
    """
    pass


# Import ORM models so that Base.metadata is aware of them
# This import should stay at the bottom to avoid circular dependencies.
from meetsync.models.credential import Credential, SelectedCalendar  # noqa: E402,F401
from meetsync.models.booking import Attendee, Booking, BookingReference  # noqa: E402,F401
