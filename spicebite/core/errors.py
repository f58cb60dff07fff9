"""
Client error taxonomy.

Every failure surfaced by the client core derives from SpiceBiteError so the
UI layer can catch the whole family, while still telling apart the cases that
need different handling (re-login, retry, inline message).
"""

from typing import Any, Optional


class SpiceBiteError(RuntimeError):
    """Base class for all client core errors."""


class NetworkError(SpiceBiteError):
    """Raised when the backend could not be reached (timeout, DNS, refused)."""


class SessionExpired(SpiceBiteError):
    """Raised when the token exchange is exhausted and re-login is required."""


class InvalidCredentials(SpiceBiteError):
    """Raised when login or signup is rejected by the backend."""


class ChatUnavailable(SpiceBiteError):
    """Raised when the realtime chat channel cannot be used."""


class ValidationError(SpiceBiteError):
    """Raised for malformed local input, e.g. checking out an empty cart."""


class ApiError(SpiceBiteError):
    """Raised when a backend endpoint answers with a non-success status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        detail: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail
