# meetsync/services/credential_store.py
from __future__ import annotations

from typing import Any, Dict, List

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from meetsync.models.credential import Credential as CredentialRow
from meetsync.models.credential import SelectedCalendar as SelectedCalendarRow
from meetsync.schemas.calendar_event import SelectedCalendar
from meetsync.schemas.event_result import Credential


class SqlCredentialStore:
    """
    Reads a user's credentials and writes refreshed token blobs back.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def update_credential_key(self, credential_id: int, key: Dict[str, Any]) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(CredentialRow)
                .where(CredentialRow.id == credential_id)
                .values(key=key)
            )
            await session.commit()

    async def load_credentials(self, user_id: int) -> List[Credential]:
        stmt = (
            select(CredentialRow)
            .where(CredentialRow.user_id == user_id)
            .order_by(CredentialRow.id)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            rows = result.scalars().all()
        return [Credential.model_validate(row) for row in rows]

    async def load_selected_calendars(self, user_id: int) -> List[SelectedCalendar]:
        stmt = select(SelectedCalendarRow).where(SelectedCalendarRow.user_id == user_id)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            rows = result.scalars().all()
        return [
            SelectedCalendar(integration=row.integration, external_id=row.external_id)
            for row in rows
        ]
