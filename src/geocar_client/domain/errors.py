from __future__ import annotations


class GeoCarError(Exception):
    """Base class for every failure raised by the client layer."""


class NetworkError(GeoCarError):
    """Transport-level failure (DNS, connection reset, timeout). Retryable by the caller."""


class HttpError(GeoCarError):
    """Non-2xx response carrying the server's message."""

    def __init__(self, status: int, message: str = "") -> None:
        self.status = status
        self.message = message or f"HTTP {status}"
        super().__init__(self.message)


class AuthExpired(HttpError):
    """Authorization failed after the single recovery attempt.

    From the identity client the session has already been cleared, so handlers
    can send the user back to login without further cleanup. From the geo
    client it means the re-hydrated key was rejected too; the caller forces a
    full logout instead of retrying.
    """


class InvalidCredentials(HttpError):
    pass


class InvalidCode(HttpError):
    """Verification code rejected. Not retryable with the same code."""


class ExpiredChallenge(HttpError):
    """Temporary token of a verification ceremony is missing or stale."""


class MissingCredential(GeoCarError):
    """A required token or geo API key is absent from the store."""


class ResolutionNotFound(GeoCarError):
    """No geocoding or place-search hit for the given text."""


class ValidationError(GeoCarError):
    """Client-side input check failed before any request was sent."""
