from __future__ import annotations

from typing import Any, Literal, Protocol

AuthMode = Literal["access", "temp", "auto", "none"]


class IdentityApiPort(Protocol):
    """Authenticated JSON calls against the identity service."""

    async def request(
        self,
        path: str,
        method: str = "GET",
        body: Any | None = None,
        auth_mode: AuthMode = "auto",
    ) -> Any:
        """Returns parsed JSON, raw text, or None. Raises HttpError/AuthExpired/NetworkError."""
        ...
