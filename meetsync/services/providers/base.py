# meetsync/services/providers/base.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence

import httpx

from meetsync.core.errors import ProviderError
from meetsync.schemas.calendar_event import (
    BusyTime,
    CalendarEvent,
    IntegrationCalendar,
    SelectedCalendar,
    VideoCallData,
)

ProviderEvent = Dict[str, Any]


class ProviderAdapter(Protocol):
    """
    Capability set every calendar/video provider exposes to the coordinator.

    Video providers implement the same surface: `create_event` creates the
    meeting, and `list_calendars` returns an empty list.
    """

    integration_type: str

    async def create_event(self, event: CalendarEvent) -> ProviderEvent:
        ...

    async def update_event(self, uid: str, event: CalendarEvent) -> Optional[ProviderEvent]:
        ...

    async def delete_event(self, uid: str) -> None:
        ...

    async def get_availability(
        self,
        date_from: datetime,
        date_to: datetime,
        selected_calendars: Sequence[SelectedCalendar],
    ) -> List[BusyTime]:
        ...

    async def list_calendars(self) -> List[IntegrationCalendar]:
        ...


class VideoAdapter(ProviderAdapter, Protocol):
    """
    Provider that hands out joinable meeting credentials.
    """

    def video_call_data(self, meeting: Optional[ProviderEvent]) -> Optional[VideoCallData]:
        ...


# Providers name their event identifier differently; everything not listed
# here uses "id".
UID_FIELDS: Dict[str, str] = {
    "daily_video": "name",
}


def uid_field(integration_type: str) -> str:
    return UID_FIELDS.get(integration_type, "id")


def provider_uid(integration_type: str, payload: Optional[ProviderEvent]) -> str:
    """
    Extract the provider-native identifier from a create/update payload.
    """
    if not payload:
        return ""
    value = payload.get(uid_field(integration_type))
    return "" if value is None else str(value)


def selected_calendar_ids(
    selected_calendars: Sequence[SelectedCalendar],
    integration_type: str,
) -> Optional[List[str]]:
    """
    Apply the user's calendar selection to one integration.

    Returns
    -------
    list[str] | None
        - The external ids selected for this integration.
        - An empty list when only calendars of *other* integrations are
          selected, meaning this integration must not be queried.
        - None when nothing is selected at all, meaning every calendar of the
          integration should be queried.
    """
    if not selected_calendars:
        return None
    return [
        cal.external_id
        for cal in selected_calendars
        if cal.integration == integration_type and cal.external_id
    ]


class JsonApiClient:
    """
    Thin authenticated JSON client shared by the provider adapters.

    Each call asks `token_getter` for a bearer token, so a refresh happens
    transparently before the request goes out.
    """

    def __init__(
        self,
        provider: str,
        base_url: str,
        token_getter: Callable[[], Awaitable[str]],
        timeout_seconds: float = 10.0,
    ) -> None:
        self._provider = provider
        self._base_url = base_url.rstrip("/")
        self._token_getter = token_getter
        self._timeout_seconds = timeout_seconds

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """
        Issue an authenticated request and raise ProviderError on non-2xx.

        `path` is either an absolute URL or relative to the configured base URL.
        """
        token = await self._token_getter()

        if path.startswith("http://") or path.startswith("https://"):
            url = path
        else:
            url = f"{self._base_url}/{path.lstrip('/')}"

        request_headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }
        if headers:
            request_headers.update(headers)

        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                resp = await client.request(
                    method=method.upper(),
                    url=url,
                    headers=request_headers,
                    params=params,
                    json=json,
                )
        except httpx.HTTPError as exc:
            raise ProviderError(
                f"{self._provider} {method.upper()} {url} failed: {exc}",
                provider=self._provider,
            ) from exc

        if resp.status_code // 100 != 2:
            raise ProviderError(
                f"{self._provider} {method.upper()} failed "
                f"(status={resp.status_code}): {resp.text}",
                provider=self._provider,
                status_code=resp.status_code,
            )
        return resp

    async def get_json(self, path: str, *, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        resp = await self.request("GET", path, params=params)
        return resp.json()

    async def post_json(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Dict[str, Any]:
        resp = await self.request("POST", path, params=params, json=json)
        return resp.json()

    async def send(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Like request(), but tolerates empty bodies (PATCH/DELETE answering
        204 No Content) by returning None.
        """
        resp = await self.request(method, path, params=params, json=json)
        if resp.status_code == 204 or not resp.text:
            return None
        return resp.json()
