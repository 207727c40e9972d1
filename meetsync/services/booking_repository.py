# meetsync/services/booking_repository.py
from __future__ import annotations

from typing import Optional, Protocol

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from meetsync.models.booking import Attendee, Booking, BookingReference
from meetsync.schemas.event_result import PartialBooking, PartialReference


class BookingRepository(Protocol):
    """
    Persistence collaborator the coordinator needs during a reschedule.
    """

    async def find_booking_by_uid(self, uid: str) -> Optional[PartialBooking]:
        ...

    async def delete_references(self, booking_id: int) -> None:
        ...

    async def delete_attendees(self, booking_id: int) -> None:
        ...

    async def delete_booking(self, booking_id: int) -> None:
        ...


class SqlBookingRepository:
    """
    SQLAlchemy implementation of BookingRepository.

    Every method opens its own session, so the three deletions of a reschedule
    can run concurrently.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def find_booking_by_uid(self, uid: str) -> Optional[PartialBooking]:
        stmt = (
            select(Booking)
            .where(Booking.uid == uid)
            .options(selectinload(Booking.references))
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            booking = result.scalar_one_or_none()

        if booking is None:
            return None

        return PartialBooking(
            id=booking.id,
            references=[
                PartialReference.model_validate(ref) for ref in booking.references
            ],
        )

    async def delete_references(self, booking_id: int) -> None:
        async with self._session_factory() as session:
            await session.execute(
                delete(BookingReference).where(BookingReference.booking_id == booking_id)
            )
            await session.commit()

    async def delete_attendees(self, booking_id: int) -> None:
        async with self._session_factory() as session:
            await session.execute(delete(Attendee).where(Attendee.booking_id == booking_id))
            await session.commit()

    async def delete_booking(self, booking_id: int) -> None:
        async with self._session_factory() as session:
            await session.execute(delete(Booking).where(Booking.id == booking_id))
            await session.commit()
