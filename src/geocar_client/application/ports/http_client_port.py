from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol
import json


@dataclass(frozen=True)
class MultipartBody:
    """Pre-built multipart payload. Sent untouched, without a JSON content type."""

    fields: Mapping[str, str] = field(default_factory=dict)
    files: Mapping[str, Any] = field(default_factory=dict)


class HttpResponse:
    def __init__(
        self,
        status_code: int,
        text: str,
        url: str,
        headers: Mapping[str, str],
        *,
        raw: Any | None = None,
    ) -> None:
        self.status_code = status_code
        self.text = text
        self.url = url
        self.headers = {k.lower(): v for k, v in dict(headers).items()}
        self._raw = raw

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def content_type(self) -> str:
        return (self.headers.get("content-type") or "").lower()

    @property
    def is_json(self) -> bool:
        return "application/json" in self.content_type or self.content_type.endswith("+json")

    def json(self) -> Any:
        if self._raw is not None and hasattr(self._raw, "json"):
            return self._raw.json()
        return json.loads(self.text)


class HttpClientPort(Protocol):
    """Minimal async HTTP client abstraction."""

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        json_body: Any | None = None,
        multipart: MultipartBody | None = None,
    ) -> HttpResponse: ...

    async def aclose(self) -> None: ...
