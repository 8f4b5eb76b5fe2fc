"""Client for the portfolio assistant chat API."""

import asyncio
import logging
from typing import AsyncGenerator

import httpx
from pydantic import ValidationError

from portfolio_chat.config import settings, strip_api_version
from portfolio_chat.errors import (
    GENERIC_ERROR_MESSAGE,
    RATE_LIMITED_MESSAGE,
    STREAM_UNSUPPORTED_MESSAGE,
    NetworkUnreachableError,
    RateLimitedError,
    RequestTimeoutError,
    ServerError,
)
from portfolio_chat.models import ChatRequest, ChatResponse, ErrorEvent, StreamEvent
from portfolio_chat.sse import aiter_stream_events

logger = logging.getLogger(__name__)


def _read_detail(response: httpx.Response) -> str | None:
    """Pull a string ``detail`` out of an error body, if there is one."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("detail"), str):
        return body["detail"] or None
    return None


def _request_body(message: str, thread_id: str) -> dict:
    message = message.strip()
    if not message:
        raise ValueError("Message must be non-empty")
    if not thread_id:
        raise ValueError("Thread id must be non-empty")
    return ChatRequest(message=message, thread_id=thread_id).model_dump()


class ChatApiClient:
    """HTTP client for the chat backend.

    ``stream_message`` is the primary transport; ``send_message_sync`` is the
    single-shot fallback.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        stream_connect_timeout: float | None = None,
        sync_timeout: float | None = None,
    ):
        if base_url:
            api_base = strip_api_version(base_url)
            self.stream_url = f"{api_base}{settings.stream_path}"
            self.sync_url = f"{api_base}{settings.sync_path}"
        else:
            self.stream_url = settings.stream_url
            self.sync_url = settings.sync_url
        self.stream_connect_timeout = (
            stream_connect_timeout
            if stream_connect_timeout is not None
            else settings.stream_connect_timeout
        )
        self.sync_timeout = sync_timeout if sync_timeout is not None else settings.sync_timeout
        self._transport = transport

    def _client(self, timeout: httpx.Timeout | float) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=timeout)

    async def stream_message(
        self,
        message: str,
        thread_id: str,
    ) -> AsyncGenerator[StreamEvent, None]:
        """
        Stream a chat turn from the SSE endpoint.

        Server-side failures (429, other error statuses, a body-less success)
        are yielded as ErrorEvent. Only network-level faults raise, as
        NetworkUnreachableError, so the caller can fall back to the
        single-shot endpoint. Cancelling the consuming task aborts the read.

        Yields:
            Typed stream events in arrival order

        """
        body = _request_body(message, thread_id)
        # No read timeout: the session's safety timer bounds the whole turn
        timeout = httpx.Timeout(None, connect=self.stream_connect_timeout)

        try:
            async with self._client(timeout) as client:
                async with client.stream("POST", self.stream_url, json=body) as response:
                    if response.status_code == 429:
                        logger.warning("Chat stream rate limited")
                        yield ErrorEvent(message=RATE_LIMITED_MESSAGE)
                        return

                    if not response.is_success:
                        await response.aread()
                        detail = _read_detail(response)
                        logger.warning(
                            f"Chat stream HTTP {response.status_code}: {detail or 'no detail'}"
                        )
                        yield ErrorEvent(message=detail or GENERIC_ERROR_MESSAGE)
                        return

                    if (
                        response.status_code == 204
                        or response.headers.get("content-length") == "0"
                    ):
                        yield ErrorEvent(message=STREAM_UNSUPPORTED_MESSAGE)
                        return

                    async for event in aiter_stream_events(response.aiter_lines()):
                        yield event
        except httpx.TransportError as e:
            logger.warning(f"Chat stream transport error: {e!r}")
            raise NetworkUnreachableError() from e
        except httpx.HTTPError as e:
            # Undecodable body and similar: the server answered, but unusably
            logger.error(f"Chat stream failed: {e!r}")
            yield ErrorEvent(message=GENERIC_ERROR_MESSAGE)

    async def send_message_sync(self, message: str, thread_id: str) -> ChatResponse:
        """
        Send a chat turn to the single-shot endpoint.

        Returns:
            ChatResponse with the full answer

        Raises:
            RateLimitedError: HTTP 429
            ServerError: any other non-success status or an unusable body
            RequestTimeoutError: no answer within sync_timeout
            NetworkUnreachableError: connection-level failure

        """
        body = _request_body(message, thread_id)
        try:
            return await asyncio.wait_for(self._post_sync(body), timeout=self.sync_timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.error(f"Chat request timed out after {self.sync_timeout}s")
            raise RequestTimeoutError() from e
        except httpx.TransportError as e:
            logger.error(f"Chat request error: {e!r}")
            raise NetworkUnreachableError() from e
        except httpx.HTTPError as e:
            logger.error(f"Chat request failed: {e!r}")
            raise ServerError() from e

    async def _post_sync(self, body: dict) -> ChatResponse:
        async with self._client(self.sync_timeout) as client:
            response = await client.post(self.sync_url, json=body)

        if response.status_code == 429:
            raise RateLimitedError()
        if response.status_code == 500:
            raise ServerError(_read_detail(response), status_code=500)
        if not response.is_success:
            logger.error(f"Chat request HTTP {response.status_code}")
            raise ServerError(status_code=response.status_code)

        try:
            return ChatResponse.model_validate_json(response.content)
        except ValidationError as e:
            logger.error(f"Unexpected chat response body: {e}")
            raise ServerError(status_code=response.status_code) from e
