# tests/test_availability.py
import asyncio
from datetime import datetime, timezone

import pytest

from meetsync.core.config import Settings
from meetsync.core.errors import ProviderError
from meetsync.schemas.calendar_event import BusyTime, IntegrationCalendar, SelectedCalendar
from meetsync.schemas.event_result import Credential
from meetsync.services.availability import get_busy_calendar_times, list_calendars
from meetsync.services.registry import ProviderRegistry

WINDOW_FROM = datetime(2025, 3, 3, 0, 0, tzinfo=timezone.utc)
WINDOW_TO = datetime(2025, 3, 4, 0, 0, tzinfo=timezone.utc)


class ConcurrencyTracker:
    def __init__(self) -> None:
        self.in_flight = 0
        self.peak = 0


class TrackedAdapter:
    """
    Availability-only adapter that records how many calls overlap.
    """

    def __init__(self, name: str, tracker: ConcurrencyTracker, fail: bool = False) -> None:
        self.integration_type = name
        self.tracker = tracker
        self.fail = fail
        self.seen_selection = None

    async def get_availability(self, date_from, date_to, selected_calendars):
        self.seen_selection = selected_calendars
        self.tracker.in_flight += 1
        self.tracker.peak = max(self.tracker.peak, self.tracker.in_flight)
        try:
            await asyncio.sleep(0.01)
            if self.fail:
                raise ProviderError("boom", provider=self.integration_type)
            return [BusyTime(start=f"{self.integration_type}-start", end=f"{self.integration_type}-end")]
        finally:
            self.tracker.in_flight -= 1

    async def list_calendars(self):
        if self.fail:
            raise ProviderError("boom", provider=self.integration_type)
        return [
            IntegrationCalendar(
                external_id=f"{self.integration_type}-primary",
                integration=self.integration_type,
                name="Primary",
                primary=True,
            )
        ]


class FakeCredentialStore:
    async def update_credential_key(self, credential_id, key):
        return None


def _registry(adapters, settings=None):
    factories = {
        adapter.integration_type: (lambda credential, store, settings, a=adapter: a)
        for adapter in adapters
    }
    return ProviderRegistry(
        FakeCredentialStore(),
        settings=settings or Settings(DAILY_API_KEY=None),
        factories=factories,
    )


def _credentials(adapters):
    return [
        Credential(id=index, type=adapter.integration_type, key={})
        for index, adapter in enumerate(adapters)
    ]


@pytest.mark.asyncio
async def test_busy_times_respect_concurrency_limit():
    """
    Eight providers, at most five queries in flight.
    """
    tracker = ConcurrencyTracker()
    adapters = [TrackedAdapter(f"cal{i}_calendar", tracker) for i in range(8)]

    busy = await get_busy_calendar_times(
        _credentials(adapters),
        WINDOW_FROM,
        WINDOW_TO,
        [],
        registry=_registry(adapters),
        concurrency=5,
    )

    assert len(busy) == 8
    assert 1 < tracker.peak <= 5
    # Results stay in credential order
    assert busy[0].start == "cal0_calendar-start"
    assert busy[-1].start == "cal7_calendar-start"


@pytest.mark.asyncio
async def test_failing_provider_is_skipped():
    tracker = ConcurrencyTracker()
    adapters = [
        TrackedAdapter("good_calendar", tracker),
        TrackedAdapter("broken_calendar", tracker, fail=True),
    ]

    busy = await get_busy_calendar_times(
        _credentials(adapters),
        WINDOW_FROM,
        WINDOW_TO,
        [],
        registry=_registry(adapters),
        concurrency=2,
    )

    assert [slot.start for slot in busy] == ["good_calendar-start"]


@pytest.mark.asyncio
async def test_unknown_credential_types_are_ignored():
    tracker = ConcurrencyTracker()
    adapters = [TrackedAdapter("good_calendar", tracker)]
    credentials = _credentials(adapters) + [Credential(id=99, type="caldav_calendar", key={})]
    selection = [SelectedCalendar(integration="good_calendar", external_id="primary")]

    busy = await get_busy_calendar_times(
        credentials,
        WINDOW_FROM,
        WINDOW_TO,
        selection,
        registry=_registry(adapters),
        concurrency=5,
    )

    assert len(busy) == 1
    assert adapters[0].seen_selection == selection


@pytest.mark.asyncio
async def test_no_credentials_means_no_busy_times():
    busy = await get_busy_calendar_times(
        [],
        WINDOW_FROM,
        WINDOW_TO,
        [],
        registry=_registry([]),
        concurrency=5,
    )
    assert busy == []


@pytest.mark.asyncio
async def test_list_calendars_merges_providers_and_skips_failures():
    tracker = ConcurrencyTracker()
    adapters = [
        TrackedAdapter("a_calendar", tracker),
        TrackedAdapter("b_calendar", tracker, fail=True),
        TrackedAdapter("c_calendar", tracker),
    ]

    calendars = await list_calendars(
        _credentials(adapters),
        registry=_registry(adapters),
        concurrency=5,
    )

    assert [cal.external_id for cal in calendars] == [
        "a_calendar-primary",
        "c_calendar-primary",
    ]


@pytest.mark.asyncio
async def test_default_limit_comes_from_registry_settings():
    tracker = ConcurrencyTracker()
    adapters = [TrackedAdapter(f"cal{i}_calendar", tracker) for i in range(6)]
    registry = _registry(adapters, Settings(DAILY_API_KEY=None, AVAILABILITY_CONCURRENCY=2))

    busy = await get_busy_calendar_times(
        _credentials(adapters),
        WINDOW_FROM,
        WINDOW_TO,
        [],
        registry=registry,
    )

    assert len(busy) == 6
    assert tracker.peak <= 2


@pytest.mark.asyncio
async def test_zero_concurrency_is_rejected():
    tracker = ConcurrencyTracker()
    adapters = [TrackedAdapter("good_calendar", tracker)]

    with pytest.raises(ValueError):
        await get_busy_calendar_times(
            _credentials(adapters),
            WINDOW_FROM,
            WINDOW_TO,
            [],
            registry=_registry(adapters),
            concurrency=0,
        )
    assert tracker.peak == 0
