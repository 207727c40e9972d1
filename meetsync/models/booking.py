# meetsync/models/booking.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from meetsync.db.base import Base


class Booking(Base):
    """
    A booked meeting. Provider-side copies are tracked through BookingReference.
    """

    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    uid = Column(String(64), nullable=False, unique=True, index=True)
    user_id = Column(Integer, nullable=True, index=True)
    title = Column(String(255), nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)

    references = relationship(
        "BookingReference",
        back_populates="booking",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    attendees = relationship(
        "Attendee",
        back_populates="booking",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Booking id={self.id} uid={self.uid} title={self.title!r}>"


class BookingReference(Base):
    """
    Which provider holds which identifier for a booking.
    """

    __tablename__ = "booking_references"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(
        Integer,
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type = Column(String(64), nullable=False)
    uid = Column(String(255), nullable=False)
    meeting_id = Column(String(255), nullable=True)
    meeting_password = Column(String(255), nullable=True)
    meeting_url = Column(String(1024), nullable=True)

    booking = relationship("Booking", back_populates="references")


class Attendee(Base):
    __tablename__ = "attendees"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(
        Integer,
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    time_zone = Column(String(64), nullable=False)

    booking = relationship("Booking", back_populates="attendees")
