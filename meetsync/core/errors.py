# meetsync/core/errors.py
from __future__ import annotations


class ProviderError(RuntimeError):
    """
    Raised when a calendar/video provider call fails in a non-recoverable way
    (non-2xx response, malformed payload, transport failure).
    """

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class TokenRefreshError(ProviderError):
    """
    Raised when an expired access token cannot be exchanged for a new one.
    """


class NoSuitableCredentialError(Exception):
    """
    The event asks for a dedicated video integration, but none of the user's
    credentials match it. A configuration problem; retrying will not help.
    """


class BookingNotFoundError(LookupError):
    """
    No booking exists for the uid passed to a reschedule.
    """
