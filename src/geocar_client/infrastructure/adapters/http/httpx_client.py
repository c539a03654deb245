from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential, wait_random

from geocar_client.application.ports.http_client_port import HttpClientPort, HttpResponse, MultipartBody
from geocar_client.domain.errors import NetworkError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = frozenset({502, 503, 504})


class HttpTemporaryError(Exception):
    def __init__(self, message: str, response: HttpResponse | None = None) -> None:
        super().__init__(message)
        self.response = response


class HttpxClient(HttpClientPort):
    def __init__(
        self,
        timeout: float = 30.0,
        *,
        max_attempts: int = 3,
        backoff_initial: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """HTTP client adapter backed by a persistent httpx.AsyncClient.

        - Retries transport errors and gateway statuses with exponential backoff
        - Returns the last gateway response once attempts are exhausted
        - Raises NetworkError when the transport never succeeded

        Args:
            timeout (float, optional): Timeout for requests. Defaults to 30.0.
            max_attempts (int, optional): Attempts per request, including the first. Defaults to 3.
            backoff_initial (float, optional): First backoff wait in seconds. Defaults to 1.0.
            transport (httpx.AsyncBaseTransport | None, optional): Custom transport, e.g. httpx.MockTransport.
        """
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers={
                "Accept": "application/json, text/plain, */*",
                "User-Agent": "geocar-client/0.1 httpx",
            },
            follow_redirects=True,
            transport=transport,
        )
        self._max_attempts = max(1, max_attempts)
        self._backoff_initial = backoff_initial

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        json_body: Any | None = None,
        multipart: MultipartBody | None = None,
    ) -> HttpResponse:
        """Sends a request, retrying temporary failures.

        Args:
            method (str): HTTP method.
            url (str): Absolute URL.
            params (Mapping[str, Any] | None, optional): Query parameters.
            headers (Mapping[str, str] | None, optional): Headers to include.
            json_body (Any | None, optional): Body serialized as JSON.
            multipart (MultipartBody | None, optional): Body sent as multipart/form-data.

        Returns:
            HttpResponse: Response from the server.
        """
        retrying = AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._backoff_initial, max=8) + wait_random(0, self._backoff_initial),
            retry=retry_if_exception_type(HttpTemporaryError),
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await self._send(method, url, params, headers, json_body, multipart)
        except HttpTemporaryError as e:
            if e.response is not None:
                return e.response
            raise NetworkError(str(e)) from e
        raise NetworkError(f"{method} {url} -> no attempt made")

    async def _send(
        self,
        method: str,
        url: str,
        params: Mapping[str, Any] | None,
        headers: Mapping[str, str] | None,
        json_body: Any | None,
        multipart: MultipartBody | None,
    ) -> HttpResponse:
        kwargs: dict[str, Any] = {"params": params, "headers": headers}
        if multipart is not None:
            kwargs["data"] = dict(multipart.fields)
            kwargs["files"] = dict(multipart.files)
        elif json_body is not None:
            kwargs["json"] = json_body
        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise HttpTemporaryError(f"{method} {url}: {e}") from e
        out = HttpResponse(resp.status_code, resp.text, str(resp.url), resp.headers, raw=resp)
        if resp.status_code in RETRYABLE_STATUS:
            logger.warning("%s %s -> %s, will retry", method, url, resp.status_code)
            raise HttpTemporaryError(f"{method} {url} -> {resp.status_code}", response=out)
        return out

    async def aclose(self) -> None:
        await self._client.aclose()
