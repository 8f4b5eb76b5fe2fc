"""Server-Sent Events framing: encoding for the mock backend, line-pair
decoding for the client."""

import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, AsyncIterable

from pydantic import ValidationError

from portfolio_chat.models.events import StreamEvent, parse_event

logger = logging.getLogger(__name__)


@dataclass
class SSEEvent:
    """An SSE event to send to clients."""

    event: str
    data: Any
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])

    def encode(self) -> str:
        """Encode as SSE format."""
        lines = [
            f"id: {self.id}",
            f"event: {self.event}",
            f"data: {json.dumps(self.data)}",
            "",  # Empty line to end the event
        ]
        return "\n".join(lines) + "\n"


class SSEDecoder:
    """Pairs ``event:`` lines with the ``data:`` line that follows them.

    Lines come already split and decoded (``httpx.Response.aiter_lines``).
    An ``event:`` line still waiting for its ``data:`` line is held until
    the next call.
    """

    def __init__(self):
        self._event_type: str | None = None

    def feed_line(self, line: str) -> tuple[str, Any] | None:
        """Return (event type, payload) once a line completes an event."""
        line = line.rstrip("\r\n")
        if line.startswith("event:"):
            self._event_type = line[6:].strip() or None
            return None

        if not line.startswith("data:") or self._event_type is None:
            # Blank separators, id: lines, comments, orphan data
            return None

        # Both "data: {...}" and "data:{...}" are valid
        payload = line[6:] if line.startswith("data: ") else line[5:]
        event_type, self._event_type = self._event_type, None
        try:
            return event_type, json.loads(payload)
        except json.JSONDecodeError:
            logger.debug(f"Skipping malformed {event_type} data line: {payload[:80]!r}")
            return None


async def aiter_sse(lines: AsyncIterable[str]) -> AsyncGenerator[tuple[str, Any], None]:
    """Yield (event type, JSON payload) pairs from a stream of text lines."""
    decoder = SSEDecoder()
    async for line in lines:
        item = decoder.feed_line(line)
        if item is not None:
            yield item


async def aiter_stream_events(
    lines: AsyncIterable[str],
) -> AsyncGenerator[StreamEvent, None]:
    """Yield typed chat events, skipping unknown types and invalid payloads."""
    async for event_type, data in aiter_sse(lines):
        try:
            event = parse_event(event_type, data)
        except ValidationError as e:
            logger.debug(f"Skipping invalid {event_type} payload: {e}")
            continue
        if event is None:
            logger.debug(f"Ignoring unknown event type {event_type!r}")
            continue
        yield event
