# meetsync/services/registry.py
from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Optional

from meetsync.core.config import Settings, get_settings
from meetsync.schemas.event_result import Credential
from meetsync.services.providers.base import ProviderAdapter
from meetsync.services.providers.daily_video import DailyVideoAdapter
from meetsync.services.providers.google_calendar import GoogleCalendarAdapter
from meetsync.services.providers.office365_calendar import Office365CalendarAdapter
from meetsync.services.providers.zoom_video import ZoomVideoAdapter
from meetsync.services.token_refresh import CredentialStore

AdapterFactory = Callable[[Credential, CredentialStore, Settings], ProviderAdapter]

ADAPTER_FACTORIES: Dict[str, AdapterFactory] = {
    "google_calendar": GoogleCalendarAdapter,
    "office365_calendar": Office365CalendarAdapter,
    "zoom_video": ZoomVideoAdapter,
    "daily_video": DailyVideoAdapter,
}


class ProviderRegistry:
    """
    Maps a credential's type to a freshly built provider adapter.

    Adapters are built per lookup so every request starts from the stored key
    blob. Unknown or retired types (e.g. `caldav_calendar`, `apple_calendar`)
    resolve to None and are skipped by callers.
    """

    def __init__(
        self,
        store: CredentialStore,
        settings: Optional[Settings] = None,
        factories: Optional[Dict[str, AdapterFactory]] = None,
    ) -> None:
        self._store = store
        self._settings = settings or get_settings()
        self._factories = dict(ADAPTER_FACTORIES if factories is None else factories)

    @property
    def settings(self) -> Settings:
        return self._settings

    def get_adapter(self, credential: Credential) -> Optional[ProviderAdapter]:
        factory = self._factories.get(credential.type)
        if factory is None:
            return None
        return factory(credential, self._store, self._settings)

    def get_adapters(self, credentials: Iterable[Credential]) -> List[ProviderAdapter]:
        adapters = (self.get_adapter(credential) for credential in credentials)
        return [adapter for adapter in adapters if adapter is not None]
