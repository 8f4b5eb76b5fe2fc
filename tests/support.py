"""Helpers for faking the chat backend with httpx.MockTransport."""

import asyncio
import json
from typing import Any, Callable

import httpx

BASE_URL = "http://chat.test"
STREAM_PATH = "/api/v2/chat/stream"
SYNC_PATH = "/api/v1/chat"


def sse(*events: tuple[str, Any]) -> bytes:
    """Encode (event type, payload) pairs as an SSE body."""
    return "".join(
        f"event: {event}\ndata: {json.dumps(data)}\n\n" for event, data in events
    ).encode()


def undecodable(request: httpx.Request, body: dict) -> httpx.Response:
    """A success whose body does not match its declared gzip encoding."""
    return httpx.Response(
        200,
        headers={"content-encoding": "gzip"},
        stream=httpx.ByteStream(b"not gzip at all"),
    )


async def chunked(body: bytes, *cuts: int):
    """Yield body split at the given offsets."""
    start = 0
    for cut in (*cuts, len(body)):
        yield body[start:cut]
        start = cut


async def hanging_body(*chunks: bytes):
    """Yield chunks, then never finish."""
    for chunk in chunks:
        yield chunk
    await asyncio.Event().wait()


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll predicate until it holds."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.005)


class FakeBackend:
    """Routes requests to per-endpoint handlers and records request bodies.

    Handlers take (request, parsed JSON body) and return an httpx.Response,
    directly or as a coroutine, or raise to simulate a transport fault.
    """

    def __init__(self, stream=None, sync=None):
        self.stream = stream
        self.sync = sync
        self.stream_requests: list[dict] = []
        self.sync_requests: list[dict] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if request.url.path == STREAM_PATH:
            self.stream_requests.append(body)
            handler = self.stream
        elif request.url.path == SYNC_PATH:
            self.sync_requests.append(body)
            handler = self.sync
        else:
            return httpx.Response(404, json={"detail": "Not Found"})

        if handler is None:
            raise AssertionError(f"Unexpected request to {request.url.path}")
        result = handler(request, body)
        if asyncio.iscoroutine(result):
            result = await result
        return result
