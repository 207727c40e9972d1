# meetsync/api/dependencies/services.py
from fastapi import Depends

from meetsync.db.session import AsyncSessionLocal
from meetsync.services.booking_repository import SqlBookingRepository
from meetsync.services.credential_store import SqlCredentialStore
from meetsync.services.email_notifier import SmtpMailer
from meetsync.services.registry import ProviderRegistry


def get_credential_store() -> SqlCredentialStore:
    return SqlCredentialStore(AsyncSessionLocal)


def get_booking_repository() -> SqlBookingRepository:
    return SqlBookingRepository(AsyncSessionLocal)


def get_mailer() -> SmtpMailer:
    return SmtpMailer()


def get_registry(
    store: SqlCredentialStore = Depends(get_credential_store),
) -> ProviderRegistry:
    return ProviderRegistry(store)
