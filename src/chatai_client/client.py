import asyncio
import logging
from collections.abc import Awaitable, AsyncIterator
from contextlib import aclosing
from typing import Any, TypeVar

import httpx
from pydantic import ValidationError

from chatai_client.errors import ChatAIError, ErrorKind, http_error, network_error
from chatai_client.request_id import request_id_headers
from chatai_client.schemas import ChatChunk, ChatOptions, ChatResponse, build_chat_request
from chatai_client.settings import ClientConfig
from chatai_client.sse import aiter_chunks

JSON_MEDIA_TYPE = "application/json"
EVENT_STREAM_MEDIA_TYPE = "text/event-stream"

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _config_error(exc: ValidationError) -> ChatAIError:
    fields = sorted({str(err["loc"][0]) for err in exc.errors() if err["loc"]})
    if "api_key" in fields:
        return ChatAIError("API key is required", ErrorKind.CONFIG)
    return ChatAIError(f"Invalid client configuration: {', '.join(fields)}", ErrorKind.CONFIG)


def _api_error(payload: dict) -> ChatAIError:
    detail = payload.get("response") or payload.get("message") or "Unknown error"
    return ChatAIError(f"API returned error: {detail}", ErrorKind.API, response=payload)


def _resolve_options(options: ChatOptions | None, option_fields: dict[str, Any]) -> ChatOptions:
    if options is None:
        return ChatOptions(**option_fields)
    return options.merged(**option_fields)


class _Deadline:
    """One fixed point in time bounding every await of a single call."""

    def __init__(self, seconds: float) -> None:
        self._loop = asyncio.get_running_loop()
        self._expires_at = self._loop.time() + seconds

    async def run(self, awaitable: Awaitable[T]) -> T:
        remaining = max(self._expires_at - self._loop.time(), 0)
        return await asyncio.wait_for(awaitable, remaining)


async def _next_or_none(iterator: AsyncIterator[bytes]) -> bytes | None:
    try:
        return await anext(iterator)
    except StopAsyncIteration:
        return None


async def _read_before(deadline: _Deadline, byte_stream: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    # The deadline covers each pull, never a yield.
    while True:
        data = await deadline.run(_next_or_none(byte_stream))
        if data is None:
            return
        yield data


class _SharedTransport(httpx.AsyncBaseTransport):
    """Lends a caller-owned transport to a per-call client without closing it."""

    def __init__(self, transport: httpx.AsyncBaseTransport) -> None:
        self._transport = transport

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        return await self._transport.handle_async_request(request)

    async def aclose(self) -> None:
        pass


class ChatAIClient:
    """Async client for the ChatAI chat endpoint.

    The instance only holds a private copy of its configuration. Every call
    opens its own ``httpx.AsyncClient`` and runs against one deadline of
    ``timeout_seconds``, so one client can serve concurrent calls. A
    ``transport`` passed in is shared by those calls and stays open; closing
    it is up to the caller.

    ``chat`` returns the whole answer; ``chat_stream`` is an async generator of
    decoded SSE chunks. Every failure other than a malformed stream frame is
    raised as :class:`ChatAIError`; inspect ``error.kind`` to tell them apart.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        **overrides: Any,
    ) -> None:
        try:
            if config is None:
                config = ClientConfig(**overrides)
            elif overrides:
                config = ClientConfig(**{**config.model_dump(), **overrides})
        except ValidationError as exc:
            raise _config_error(exc) from exc
        self._config = config.model_copy(deep=True)
        self._transport = _SharedTransport(transport) if transport is not None else None

    @property
    def config(self) -> ClientConfig:
        return self._config.model_copy(deep=True)

    def get_config(self) -> dict[str, Any]:
        return self._config.public_view()

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self._config.timeout_seconds),
            transport=self._transport,
        )

    def _params(self) -> dict[str, str]:
        return {"apikey": self._config.api_key}

    def _headers(self, accept: str) -> dict[str, str]:
        headers = {
            "Content-Type": JSON_MEDIA_TYPE,
            "Accept": accept,
            "Origin": self._config.origin,
        }
        headers.update(request_id_headers())
        headers.update(self._config.headers)
        return headers

    async def chat(
        self,
        query: str,
        options: ChatOptions | None = None,
        **option_fields: Any,
    ) -> ChatResponse:
        request = build_chat_request(query, _resolve_options(options, option_fields), stream=False)
        logger.debug(
            "chat request url=%s stream=false session_id=%s",
            self._config.base_url,
            request.session_id,
        )
        deadline = _Deadline(self._config.timeout_seconds)

        try:
            async with self._http_client() as client:
                resp = await deadline.run(
                    client.post(
                        self._config.base_url,
                        params=self._params(),
                        json=request.to_payload(),
                        headers=self._headers(JSON_MEDIA_TYPE),
                    )
                )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            logger.warning("chat request timed out after %ss", self._config.timeout_seconds)
            raise network_error("request timed out") from exc
        except httpx.RequestError as exc:
            logger.warning("chat request failed: %s", exc)
            raise network_error(str(exc) or exc.__class__.__name__) from exc

        logger.debug("chat response status=%s", resp.status_code)
        if not resp.is_success:
            logger.warning("chat api error status=%s", resp.status_code)
            raise http_error(resp.status_code, resp.text)

        try:
            payload = resp.json()
        except ValueError as exc:
            raise network_error(f"invalid JSON in response body: {exc}") from exc
        if not isinstance(payload, dict):
            raise network_error("response body is not a JSON object")
        if payload.get("error"):
            logger.warning("chat api returned error flag session_id=%s", payload.get("sessionId"))
            raise _api_error(payload)

        try:
            return ChatResponse.model_validate(payload)
        except ValidationError as exc:
            raise network_error(f"unexpected response payload: {exc.error_count()} invalid fields") from exc

    async def chat_stream(
        self,
        query: str,
        options: ChatOptions | None = None,
        **option_fields: Any,
    ) -> AsyncIterator[ChatChunk]:
        request = build_chat_request(query, _resolve_options(options, option_fields), stream=True)
        logger.debug(
            "chat request url=%s stream=true session_id=%s",
            self._config.base_url,
            request.session_id,
        )
        deadline = _Deadline(self._config.timeout_seconds)

        try:
            async with self._http_client() as client:
                outbound = client.build_request(
                    "POST",
                    self._config.base_url,
                    params=self._params(),
                    json=request.to_payload(),
                    headers=self._headers(EVENT_STREAM_MEDIA_TYPE),
                )
                resp = await deadline.run(client.send(outbound, stream=True))
                try:
                    logger.debug("chat response status=%s", resp.status_code)
                    if not resp.is_success:
                        raw = await deadline.run(resp.aread())
                        logger.warning("chat api error status=%s", resp.status_code)
                        raise http_error(resp.status_code, raw.decode("utf-8", "replace"))

                    try:
                        async with aclosing(_read_before(deadline, resp.aiter_bytes())) as byte_stream:
                            async with aclosing(aiter_chunks(byte_stream)) as chunks:
                                async for chunk in chunks:
                                    yield chunk
                    except httpx.StreamError as exc:
                        raise ChatAIError("No response body received", ErrorKind.NO_BODY) from exc
                finally:
                    await resp.aclose()
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            logger.warning("chat stream timed out after %ss", self._config.timeout_seconds)
            raise network_error("request timed out") from exc
        except httpx.RequestError as exc:
            logger.warning("chat stream failed: %s", exc)
            raise network_error(str(exc) or exc.__class__.__name__) from exc
