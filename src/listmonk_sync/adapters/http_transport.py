"""httpx-based transport that turns every exchange into an ``ApiResponse`` envelope."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, TypedDict

import httpx
from aiolimiter import AsyncLimiter

from listmonk_sync.domain.response import ApiResponse

if TYPE_CHECKING:
    from types import TracebackType

    from listmonk_sync.config.transport import TransportConfig
    from listmonk_sync.domain.ports import JsonBody, QueryParams

log = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Request timed out"
JSON_ERROR_MESSAGE = "Failed to parse JSON response"
_EMPTY_STATUSES = frozenset({204, 205})


class AsyncClientOptions(TypedDict, total=False):
    base_url: str
    timeout: float
    headers: dict[str, str]
    auth: httpx.BasicAuth
    transport: httpx.AsyncBaseTransport


def _envelope(response: httpx.Response) -> ApiResponse[object]:
    status = response.status_code
    reason = response.reason_phrase or ""
    if status in _EMPTY_STATUSES or not response.content.strip():
        data: object = None
        message = reason
    else:
        try:
            payload = json.loads(response.content)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            return ApiResponse.error(f"{JSON_ERROR_MESSAGE}: {exc}", code=status)
        if isinstance(payload, Mapping) and "data" in payload:
            data = payload["data"]
        else:
            data = payload
        remote_message = payload.get("message") if isinstance(payload, Mapping) else None
        message = remote_message if isinstance(remote_message, str) else reason

    if response.is_success:
        return ApiResponse.ok(data, code=status, message=message)
    return ApiResponse.error(message, code=status, data=data)


class ApiTransport:
    """Authenticated JSON access to one REST API.

    Timeouts, network errors and undecodable bodies are reported as failed
    envelopes; nothing is retried.
    """

    def __init__(
        self,
        config: TransportConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._limiter: AsyncLimiter | None = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit
            else None
        )
        self._log_level = logging.INFO if config.debug else logging.DEBUG

        headers = {"Accept": "application/json"}
        if config.default_headers:
            headers.update(config.default_headers)

        client_kwargs: AsyncClientOptions = {
            "base_url": config.base_url.rstrip("/"),
            "timeout": config.timeout_seconds,
            "headers": headers,
        }
        if config.auth is not None:
            client_kwargs["auth"] = httpx.BasicAuth(*config.auth)
        if transport is not None:
            client_kwargs["transport"] = transport
        self._client = httpx.AsyncClient(**client_kwargs)

    async def __aenter__(self) -> ApiTransport:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: QueryParams | None = None,
        json: JsonBody | None = None,
    ) -> ApiResponse[object]:
        log.log(
            self._log_level,
            "%s %s %s params=%s body=%s",
            self.config.name,
            method,
            path,
            params,
            json,
        )

        async def do_request() -> httpx.Response:
            return await self._client.request(
                method,
                path,
                params=_query(params),
                json=dict(json) if json is not None else None,
            )

        try:
            response = await self._send(do_request)
        except httpx.TimeoutException as exc:
            log.warning("%s %s %s timed out: %s", self.config.name, method, path, exc)
            return ApiResponse.error(TIMEOUT_MESSAGE, code=504)
        except httpx.HTTPError as exc:
            log.warning("%s %s %s failed: %s", self.config.name, method, path, exc)
            return ApiResponse.error(str(exc) or type(exc).__name__, code=500)

        envelope = _envelope(response)
        log.log(
            self._log_level,
            "%s %s %s -> %s %s",
            self.config.name,
            method,
            path,
            envelope.code,
            envelope.message,
        )
        return envelope

    async def get(self, path: str, *, params: QueryParams | None = None) -> ApiResponse[object]:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, *, json: JsonBody | None = None) -> ApiResponse[object]:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, *, json: JsonBody | None = None) -> ApiResponse[object]:
        return await self.request("PUT", path, json=json)

    async def delete(
        self,
        path: str,
        *,
        params: QueryParams | None = None,
        json: JsonBody | None = None,
    ) -> ApiResponse[object]:
        return await self.request("DELETE", path, params=params, json=json)

    async def _send(self, func: Callable[[], Awaitable[httpx.Response]]) -> httpx.Response:
        if self._limiter is None:
            return await func()
        async with self._limiter:
            return await func()


def _query(params: QueryParams | None) -> list[tuple[str, str | int]] | None:
    if params is None:
        return None
    if isinstance(params, Mapping):
        return list(params.items())
    return list(params)
