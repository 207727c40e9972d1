# meetsync/services/token_refresh.py
from __future__ import annotations

import base64
import logging
import time
from typing import Any, Dict, Optional, Protocol

import httpx

from meetsync.core.config import Settings, get_settings
from meetsync.core.errors import TokenRefreshError
from meetsync.schemas.event_result import Credential

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
OFFICE365_TOKEN_URL = "https://login.microsoftonline.com/common/oauth2/v2.0/token"
ZOOM_TOKEN_URL = "https://zoom.us/oauth/token"

OFFICE365_SCOPE = "User.Read Calendars.Read Calendars.ReadWrite"

# google-auth refreshes tokens that expire within the next five minutes
GOOGLE_EAGER_REFRESH_SECONDS = 5 * 60


class CredentialStore(Protocol):
    """
    Persistence collaborator used to write refreshed token blobs back.
    """

    async def update_credential_key(self, credential_id: int, key: Dict[str, Any]) -> None:
        ...


class OAuthTokenRefresher:
    """
    Hands out a valid bearer token for a single stored credential.

    Responsibilities
    ----------------
    - Decide whether the stored access token is (about to be) expired.
    - Exchange the stored refresh token for a new access token when needed.
    - Persist the new key blob through the CredentialStore before using it.

    Notes
    -----
    - The credential's own `key` dict is never mutated. A refresh builds a new
      dict, persists it, and only then replaces the cached copy.
    - Refreshes are not serialized across requests. If two requests race on the
      same refresh token and the provider rejects the loser, that request gets
      a TokenRefreshError and the next request picks up the persisted token.
    """

    def __init__(
        self,
        credential: Credential,
        store: CredentialStore,
        *,
        provider: str,
        token_url: str,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        scope: Optional[str] = None,
        expiry_in_millis: bool = False,
        eager_refresh_seconds: int = 0,
        basic_auth: bool = False,
        legacy_expiry_field: Optional[str] = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._credential_id = credential.id
        self._key: Dict[str, Any] = dict(credential.key or {})
        self._store = store
        self._provider = provider
        self._token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._scope = scope
        self._expiry_in_millis = expiry_in_millis
        self._eager_refresh_seconds = eager_refresh_seconds
        self._basic_auth = basic_auth
        self._legacy_expiry_field = legacy_expiry_field
        self._timeout_seconds = timeout_seconds

    def is_expired(self, now: Optional[float] = None) -> bool:
        """
        True when the cached token is missing or expires within the eager
        refresh window. `now` is seconds since the epoch.
        """
        if not self._key.get("access_token"):
            return True

        expiry = self._key.get("expiry_date")
        if expiry is None and self._legacy_expiry_field:
            expiry = self._key.get(self._legacy_expiry_field)
        if not isinstance(expiry, (int, float)):
            return True

        now = time.time() if now is None else now
        expiry_seconds = expiry / 1000.0 if self._expiry_in_millis else float(expiry)
        return expiry_seconds <= now + self._eager_refresh_seconds

    async def get_token(self) -> str:
        """
        Return a valid access token, refreshing it first if it has expired.
        """
        if not self.is_expired():
            return self._key["access_token"]

        new_key = await self._refresh()
        await self._store.update_credential_key(self._credential_id, new_key)
        self._key = new_key
        logger.info(
            "Refreshed %s token for credential %s", self._provider, self._credential_id
        )
        return new_key["access_token"]

    def _build_request(self) -> tuple[Dict[str, str], Dict[str, str]]:
        refresh_token = self._key.get("refresh_token")
        if not refresh_token:
            raise TokenRefreshError(
                f"Credential {self._credential_id} has no refresh_token",
                provider=self._provider,
            )

        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }
        headers = {"Content-Type": "application/x-www-form-urlencoded"}

        if self._basic_auth:
            raw = f"{self._client_id}:{self._client_secret}".encode()
            headers["Authorization"] = "Basic " + base64.b64encode(raw).decode()
        else:
            if self._client_id:
                data["client_id"] = self._client_id
            if self._client_secret:
                data["client_secret"] = self._client_secret

        if self._scope:
            data["scope"] = self._scope

        return data, headers

    async def _refresh(self) -> Dict[str, Any]:
        """
        Exchange the refresh token and build the new key blob.
        """
        data, headers = self._build_request()

        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                resp = await client.post(self._token_url, data=data, headers=headers)
        except httpx.HTTPError as exc:
            raise TokenRefreshError(
                f"Token refresh request to {self._provider} failed: {exc}",
                provider=self._provider,
            ) from exc

        if resp.status_code != 200:
            raise TokenRefreshError(
                f"Failed to refresh {self._provider} token "
                f"(status={resp.status_code}): {resp.text}",
                provider=self._provider,
                status_code=resp.status_code,
            )

        payload = resp.json()
        access_token = payload.get("access_token")
        expires_in = payload.get("expires_in")

        if not access_token or not isinstance(expires_in, (int, float)):
            raise TokenRefreshError(
                f"Invalid token response from {self._provider} "
                "(missing access_token/expires_in)",
                provider=self._provider,
            )

        now = time.time()
        if self._expiry_in_millis:
            expiry_date = int((now + float(expires_in)) * 1000)
        else:
            expiry_date = int(round(now + float(expires_in)))

        new_key = {**self._key, **payload}
        new_key["access_token"] = access_token
        new_key["expiry_date"] = expiry_date
        if self._legacy_expiry_field:
            # Older writers read the absolute expiry from this field.
            new_key[self._legacy_expiry_field] = expiry_date
        # Some providers only return a refresh token when it rotates.
        if not payload.get("refresh_token"):
            new_key["refresh_token"] = self._key.get("refresh_token")
        return new_key


def google_token_refresher(
    credential: Credential,
    store: CredentialStore,
    settings: Optional[Settings] = None,
) -> OAuthTokenRefresher:
    settings = settings or get_settings()
    return OAuthTokenRefresher(
        credential,
        store,
        provider="google_calendar",
        token_url=GOOGLE_TOKEN_URL,
        client_id=settings.GOOGLE_CLIENT_ID,
        client_secret=settings.GOOGLE_CLIENT_SECRET,
        expiry_in_millis=True,
        eager_refresh_seconds=GOOGLE_EAGER_REFRESH_SECONDS,
        timeout_seconds=settings.PROVIDER_TIMEOUT_SECONDS,
    )


def office365_token_refresher(
    credential: Credential,
    store: CredentialStore,
    settings: Optional[Settings] = None,
) -> OAuthTokenRefresher:
    settings = settings or get_settings()
    return OAuthTokenRefresher(
        credential,
        store,
        provider="office365_calendar",
        token_url=OFFICE365_TOKEN_URL,
        client_id=settings.MS_GRAPH_CLIENT_ID,
        client_secret=settings.MS_GRAPH_CLIENT_SECRET,
        scope=OFFICE365_SCOPE,
        timeout_seconds=settings.PROVIDER_TIMEOUT_SECONDS,
    )


def zoom_token_refresher(
    credential: Credential,
    store: CredentialStore,
    settings: Optional[Settings] = None,
) -> OAuthTokenRefresher:
    settings = settings or get_settings()
    return OAuthTokenRefresher(
        credential,
        store,
        provider="zoom_video",
        token_url=ZOOM_TOKEN_URL,
        client_id=settings.ZOOM_CLIENT_ID,
        client_secret=settings.ZOOM_CLIENT_SECRET,
        basic_auth=True,
        legacy_expiry_field="expires_in",
        timeout_seconds=settings.PROVIDER_TIMEOUT_SECONDS,
    )
