from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol
from urllib.parse import quote

from geocar_client.application.ports.geo_api_port import GeoApiPort, ViewportMode
from geocar_client.application.ports.http_client_port import HttpClientPort, HttpResponse
from geocar_client.application.services.token_store import SecureTokenStore
from geocar_client.domain.entities.profile import Profile
from geocar_client.domain.errors import AuthExpired, HttpError, MissingCredential
from geocar_client.infrastructure.api.identity_client import error_message, parse_body
from geocar_client.infrastructure.metrics import API_REQUESTS, AUTH_RECOVERIES

logger = logging.getLogger(__name__)

AUTH_FAILURES = (401, 403)


class SessionHydrator(Protocol):
    async def hydrate(self) -> Profile: ...


class GeoApiClient(GeoApiPort):
    """API-key client for the geodata service (``x-api-key`` header).

    The key is the one derived from the stored profile. A missing key triggers
    one hydrate; a 401/403 triggers one hydrate plus one identical resend.
    Anything beyond that is terminal and surfaces as AuthExpired, leaving the
    forced logout to the caller.
    """

    def __init__(
        self,
        http: HttpClientPort,
        tokens: SecureTokenStore,
        session: SessionHydrator,
        base_url: str,
    ) -> None:
        self.http = http
        self.tokens = tokens
        self.session = session
        self.base_url = base_url.rstrip("/")

    def _log(self, msg: str) -> None:
        logger.info("[GeoApiClient] %s", msg)

    async def _ensure_key(self) -> str:
        key = self.tokens.get_geo_api_key()
        if key:
            return key
        self._log("No geo API key stored, hydrating session")
        await self.session.hydrate()
        key = self.tokens.get_geo_api_key()
        if not key:
            raise MissingCredential("Geo API key unavailable after hydrating the session")
        return key

    async def _send(
        self,
        path: str,
        method: str,
        body: Any | None,
        params: Mapping[str, Any] | None,
        key: str,
    ) -> HttpResponse:
        headers = {"x-api-key": key}
        kwargs: dict[str, Any] = {"headers": headers, "params": params}
        if body is not None:
            headers["Content-Type"] = "application/json"
            kwargs["json_body"] = body
        resp = await self.http.request(method, f"{self.base_url}{path}", **kwargs)
        API_REQUESTS.labels(service="geo", status=str(resp.status_code)).inc()
        return resp

    async def request(
        self,
        path: str,
        method: str = "GET",
        body: Any | None = None,
        *,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        method = method.upper()
        key = await self._ensure_key()
        resp = await self._send(path, method, body, params, key)

        if resp.status_code in AUTH_FAILURES:
            AUTH_RECOVERIES.labels(service="geo").inc()
            self._log(f"{method} {path} -> {resp.status_code}, re-hydrating and retrying once")
            await self.session.hydrate()
            key = self.tokens.get_geo_api_key()
            if not key:
                raise MissingCredential("Geo API key disappeared after re-hydrating the session")
            resp = await self._send(path, method, body, params, key)
            if resp.status_code in AUTH_FAILURES:
                raise AuthExpired(resp.status_code, error_message(resp))

        if not resp.ok:
            raise HttpError(resp.status_code, error_message(resp))
        return parse_body(resp)

    # ---------- Imóveis ----------
    async def fetch_viewport(self, bbox: str, *, limit: int = 200, mode: ViewportMode = "intersects") -> Any:
        return await self.request("/imoveis/viewport", params={"bbox": bbox, "limit": limit, "mode": mode})

    async def fetch_near(self, lat: float, lng: float, *, radius_km: float = 1, limit: int = 10) -> Any:
        return await self.request(
            "/imoveis/near",
            params={"lat": lat, "lng": lng, "radiusKm": radius_km, "limit": limit},
        )

    async def fetch_by_cpf(self, cpf: str) -> Any:
        return await self.request(f"/imoveis/cpf/{quote(cpf, safe='')}")

    async def fetch_by_id(self, property_id: str) -> Any:
        return await self.request(f"/imoveis/{quote(str(property_id), safe='')}")
