# meetsync/services/availability.py
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from meetsync.schemas.calendar_event import BusyTime, IntegrationCalendar, SelectedCalendar
from meetsync.schemas.event_result import Credential
from meetsync.services.providers.base import ProviderAdapter
from meetsync.services.registry import ProviderRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _concurrency_limit(registry: ProviderRegistry, concurrency: Optional[int]) -> int:
    limit = registry.settings.AVAILABILITY_CONCURRENCY if concurrency is None else concurrency
    if limit < 1:
        raise ValueError(f"concurrency must be at least 1, got {limit}")
    return limit


async def _fan_out(
    adapters: Sequence[ProviderAdapter],
    call: Callable[[ProviderAdapter], Awaitable[List[T]]],
    concurrency: int,
) -> List[T]:
    """
    Run `call` for every adapter with at most `concurrency` calls in flight
    and flatten the results in adapter order. A failing adapter contributes
    nothing.
    """
    semaphore = asyncio.Semaphore(concurrency)

    async def call_with_semaphore(adapter: ProviderAdapter) -> List[T]:
        async with semaphore:
            return await call(adapter)

    results = await asyncio.gather(
        *(call_with_semaphore(adapter) for adapter in adapters),
        return_exceptions=True,
    )

    flattened: List[T] = []
    for adapter, result in zip(adapters, results):
        if isinstance(result, BaseException):
            logger.warning(
                "%s query failed, ignoring provider: %s", adapter.integration_type, result
            )
            continue
        flattened.extend(result)
    return flattened


async def get_busy_calendar_times(
    credentials: Sequence[Credential],
    date_from: datetime,
    date_to: datetime,
    selected_calendars: Sequence[SelectedCalendar],
    *,
    registry: ProviderRegistry,
    concurrency: Optional[int] = None,
) -> List[BusyTime]:
    """
    Collect busy intervals from every provider the user has connected.

    Parameters
    ----------
    credentials:
        All of the user's credentials; unknown types are skipped.
    selected_calendars:
        The user's calendar selection, applied by each provider.
    concurrency:
        Maximum provider calls in flight. Defaults to the
        registry settings' AVAILABILITY_CONCURRENCY.
    """
    limit = _concurrency_limit(registry, concurrency)
    adapters = registry.get_adapters(credentials)
    return await _fan_out(
        adapters,
        lambda adapter: adapter.get_availability(date_from, date_to, selected_calendars),
        limit,
    )


async def list_calendars(
    credentials: Sequence[Credential],
    *,
    registry: ProviderRegistry,
    concurrency: Optional[int] = None,
) -> List[IntegrationCalendar]:
    """
    All calendars exposed by the user's connected providers.
    """
    limit = _concurrency_limit(registry, concurrency)
    adapters = registry.get_adapters(credentials)
    return await _fan_out(adapters, lambda adapter: adapter.list_calendars(), limit)
