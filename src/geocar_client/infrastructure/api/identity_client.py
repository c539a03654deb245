from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from geocar_client.application.ports.http_client_port import HttpClientPort, HttpResponse, MultipartBody
from geocar_client.application.ports.identity_api_port import AuthMode, IdentityApiPort
from geocar_client.application.services.token_store import SecureTokenStore
from geocar_client.domain.errors import AuthExpired, HttpError
from geocar_client.infrastructure.metrics import API_REQUESTS, AUTH_RECOVERIES

logger = logging.getLogger(__name__)

NO_CONTENT = (204, 205)


def error_message(resp: HttpResponse) -> str:
    """Best human-readable message from an error response."""
    if resp.is_json:
        try:
            data = resp.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            for key in ("message", "error", "detail"):
                if data.get(key):
                    return str(data[key])
    return resp.text.strip() or f"HTTP {resp.status_code}"


def parse_body(resp: HttpResponse) -> Any:
    if resp.status_code in NO_CONTENT:
        return None
    if resp.is_json:
        if not resp.text.strip():
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise HttpError(resp.status_code, "Malformed JSON response") from e
    return resp.text


class IdentityApiClient(IdentityApiPort):
    """Bearer-token client for the identity/profile service.

    The token is picked per call: ``access`` and ``temp`` read their own
    slot, ``auto`` prefers the access token and falls back to the temporary
    one, ``none`` sends no Authorization header.

    A 401 on an ``access``/``auto`` call clears the stored session once and
    surfaces AuthExpired. The request is replayed only if a fresh token
    appeared in the store meanwhile.
    """

    def __init__(
        self,
        http: HttpClientPort,
        tokens: SecureTokenStore,
        base_url: str,
        *,
        on_auth_expired: Callable[[], None] | None = None,
    ) -> None:
        self.http = http
        self.tokens = tokens
        self.base_url = base_url.rstrip("/")
        self.on_auth_expired = on_auth_expired

    def _log(self, msg: str) -> None:
        logger.info("[IdentityApiClient] %s", msg)

    def _token_for(self, auth_mode: AuthMode) -> str | None:
        if auth_mode == "access":
            return self.tokens.get_access_token()
        if auth_mode == "temp":
            return self.tokens.get_temp_token()
        if auth_mode == "auto":
            return self.tokens.get_access_token() or self.tokens.get_temp_token()
        return None

    async def _send(self, path: str, method: str, body: Any, token: str | None) -> HttpResponse:
        headers: dict[str, str] = {}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        kwargs: dict[str, Any] = {"headers": headers}
        if isinstance(body, MultipartBody):
            kwargs["multipart"] = body
        elif body is not None:
            headers["Content-Type"] = "application/json"
            kwargs["json_body"] = body
        resp = await self.http.request(method, f"{self.base_url}{path}", **kwargs)
        API_REQUESTS.labels(service="identity", status=str(resp.status_code)).inc()
        return resp

    async def request(
        self,
        path: str,
        method: str = "GET",
        body: Any | None = None,
        auth_mode: AuthMode = "auto",
    ) -> Any:
        """Performs a call and returns parsed JSON, raw text, or None for 204/205."""
        method = method.upper()
        token = self._token_for(auth_mode)
        resp = await self._send(path, method, body, token)

        if resp.status_code == 401 and auth_mode in ("access", "auto"):
            AUTH_RECOVERIES.labels(service="identity").inc()
            self._log(f"{method} {path} -> 401, clearing session")
            self._expire_session()
            fresh = self._token_for(auth_mode)
            if fresh and fresh != token:
                resp = await self._send(path, method, body, fresh)
                if resp.status_code == 401:
                    self._expire_session()
                    raise AuthExpired(401, error_message(resp))
            else:
                raise AuthExpired(401, error_message(resp))

        if not resp.ok:
            raise HttpError(resp.status_code, error_message(resp))
        return parse_body(resp)

    def _expire_session(self) -> None:
        self.tokens.clear_all()
        if self.on_auth_expired is not None:
            self.on_auth_expired()

    # ---------- Helpers ----------
    async def get_json(self, path: str, *, auth_mode: AuthMode = "auto") -> Any:
        return await self.request(path, "GET", auth_mode=auth_mode)

    async def post_json(self, path: str, body: Any | None = None, *, auth_mode: AuthMode = "auto") -> Any:
        return await self.request(path, "POST", body if body is not None else {}, auth_mode=auth_mode)

    async def put_json(self, path: str, body: Any, *, auth_mode: AuthMode = "auto") -> Any:
        return await self.request(path, "PUT", body, auth_mode=auth_mode)

    async def delete(self, path: str, *, auth_mode: AuthMode = "auto") -> Any:
        return await self.request(path, "DELETE", auth_mode=auth_mode)
