# meetsync/api/routes/internal.py
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Query

from meetsync.api.dependencies.internal_auth import verify_internal_api_key
from meetsync.api.dependencies.services import (
    get_booking_repository,
    get_credential_store,
    get_mailer,
    get_registry,
)
from meetsync.core.errors import BookingNotFoundError, NoSuitableCredentialError
from meetsync.schemas.calendar_event import BusyTime, IntegrationCalendar
from meetsync.schemas.event_result import CreateUpdateResult
from meetsync.schemas.requests import AvailabilityRequest, BookingRequest
from meetsync.services.availability import get_busy_calendar_times, list_calendars
from meetsync.services.booking_repository import SqlBookingRepository
from meetsync.services.credential_store import SqlCredentialStore
from meetsync.services.email_notifier import SmtpMailer
from meetsync.services.event_manager import EventManager
from meetsync.services.registry import ProviderRegistry

router = APIRouter(
    prefix="/internal",
    tags=["Internal"],
    dependencies=[Depends(verify_internal_api_key)],
)


async def _event_manager(
    user_id: int,
    store: SqlCredentialStore,
    registry: ProviderRegistry,
    repository: SqlBookingRepository,
    mailer: SmtpMailer,
) -> EventManager:
    credentials = await store.load_credentials(user_id)
    return EventManager(
        credentials,
        registry=registry,
        booking_repository=repository,
        mailer=mailer,
    )


@router.post(
    "/events",
    response_model=CreateUpdateResult,
    status_code=HTTPStatus.OK,
    summary="Create a booking on the user's calendar and video providers",
    description=(
        "Creates the event on the user's first connected calendar and, for "
        "`integrations:zoom` / `integrations:daily` locations, a dedicated video "
        "meeting. Returns per-provider results plus the references the caller "
        "should persist."
    ),
)
async def create_event(
    payload: BookingRequest,
    store: SqlCredentialStore = Depends(get_credential_store),
    registry: ProviderRegistry = Depends(get_registry),
    repository: SqlBookingRepository = Depends(get_booking_repository),
    mailer: SmtpMailer = Depends(get_mailer),
) -> CreateUpdateResult:
    manager = await _event_manager(payload.user_id, store, registry, repository, mailer)
    try:
        return await manager.create(payload.event)
    except NoSuitableCredentialError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)) from exc


@router.post(
    "/events/{reschedule_uid}/reschedule",
    response_model=CreateUpdateResult,
    status_code=HTTPStatus.OK,
    summary="Reschedule an existing booking",
    description=(
        "Moves the provider entries of booking `reschedule_uid` to the new "
        "event data, then deletes the old booking with its references and "
        "attendees. The new booking and `references_to_create` are **not** "
        "stored by this service: the caller must persist them under a new "
        "booking uid, otherwise a further reschedule of the same booking "
        "answers 404."
    ),
)
async def reschedule_event(
    reschedule_uid: str,
    payload: BookingRequest,
    store: SqlCredentialStore = Depends(get_credential_store),
    registry: ProviderRegistry = Depends(get_registry),
    repository: SqlBookingRepository = Depends(get_booking_repository),
    mailer: SmtpMailer = Depends(get_mailer),
) -> CreateUpdateResult:
    manager = await _event_manager(payload.user_id, store, registry, repository, mailer)
    try:
        return await manager.update(payload.event, reschedule_uid)
    except BookingNotFoundError as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc)) from exc
    except NoSuitableCredentialError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)) from exc


@router.post(
    "/availability",
    response_model=list[BusyTime],
    status_code=HTTPStatus.OK,
    summary="Busy times across all of a user's providers",
)
async def busy_times(
    payload: AvailabilityRequest,
    store: SqlCredentialStore = Depends(get_credential_store),
    registry: ProviderRegistry = Depends(get_registry),
) -> list[BusyTime]:
    credentials = await store.load_credentials(payload.user_id)
    selected = payload.selected_calendars
    if selected is None:
        selected = await store.load_selected_calendars(payload.user_id)

    return await get_busy_calendar_times(
        credentials,
        payload.date_from,
        payload.date_to,
        selected,
        registry=registry,
    )


@router.get(
    "/calendars",
    response_model=list[IntegrationCalendar],
    status_code=HTTPStatus.OK,
    summary="Calendars exposed by a user's connected providers",
)
async def calendars(
    user_id: int = Query(..., description="Owner of the credentials."),
    store: SqlCredentialStore = Depends(get_credential_store),
    registry: ProviderRegistry = Depends(get_registry),
) -> list[IntegrationCalendar]:
    credentials = await store.load_credentials(user_id)
    return await list_calendars(credentials, registry=registry)
