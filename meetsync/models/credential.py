# meetsync/models/credential.py
from sqlalchemy import JSON, Column, Integer, String, UniqueConstraint

from meetsync.db.base import Base


class Credential(Base):
    """
    A connected provider account. `key` holds the provider's token blob and is
    rewritten whenever an access token is refreshed.
    """

    __tablename__ = "credentials"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    type = Column(String(64), nullable=False)
    key = Column(JSON, nullable=False, default=dict)

    def __repr__(self) -> str:
        return f"<Credential id={self.id} user_id={self.user_id} type={self.type}>"


class SelectedCalendar(Base):
    """
    A calendar the user wants checked for conflicts.
    """

    __tablename__ = "selected_calendars"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    integration = Column(String(64), nullable=False)
    external_id = Column(String(255), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "integration",
            "external_id",
            name="uq_selected_calendars_user_integration_external",
        ),
    )
