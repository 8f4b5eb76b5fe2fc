"""Typed events decoded from the chat stream."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from pydantic import TypeAdapter

from portfolio_chat.models.conversation import Source


class EventType(str, Enum):
    """Stream event types."""

    THINKING = "thinking"
    TOKEN = "token"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"
    SOURCES = "sources"
    EMAIL_STATUS = "email_status"
    DONE = "done"
    ERROR = "error"
    THREAD_RESET = "thread_reset"


@dataclass(frozen=True)
class ThinkingEvent:
    text: str


@dataclass(frozen=True)
class TokenEvent:
    text: str


@dataclass(frozen=True)
class ToolCallEvent:
    name: str


@dataclass(frozen=True)
class ToolResultEvent:
    preview: str


@dataclass(frozen=True)
class SourcesEvent:
    sources: list[Source] = field(default_factory=list)


@dataclass(frozen=True)
class EmailStatusEvent:
    sent: bool


@dataclass(frozen=True)
class DoneEvent:
    """Stream finished; an empty thread_id means the identity is unchanged."""

    thread_id: str = ""


@dataclass(frozen=True)
class ErrorEvent:
    message: str


@dataclass(frozen=True)
class ThreadResetEvent:
    message: str


StreamEvent = Union[
    ThinkingEvent,
    TokenEvent,
    ToolCallEvent,
    ToolResultEvent,
    SourcesEvent,
    EmailStatusEvent,
    DoneEvent,
    ErrorEvent,
    ThreadResetEvent,
]

_sources_adapter = TypeAdapter(list[Source])


def _first(data: Any, *keys: str, default: Any = "") -> Any:
    """Return the first truthy value among keys, as a JS ``a || b || c`` would."""
    if not isinstance(data, dict):
        return default
    for key in keys:
        value = data.get(key)
        if value:
            return value
    return default


def parse_event(event_type: str, data: Any) -> StreamEvent | None:
    """Build a typed event from a decoded (type, payload) pair.

    Returns None for unknown event types. Payloads that fail validation
    raise pydantic.ValidationError; the decoder treats that like a malformed
    line.
    """
    try:
        kind = EventType(event_type)
    except ValueError:
        return None

    if kind is EventType.THINKING:
        return ThinkingEvent(text=str(_first(data, "text", "step")))
    if kind is EventType.TOKEN:
        return TokenEvent(text=str(_first(data, "text", "token", "content")))
    if kind is EventType.TOOL_CALL:
        return ToolCallEvent(name=str(_first(data, "tool", "name")))
    if kind is EventType.TOOL_RESULT:
        return ToolResultEvent(preview=str(_first(data, "preview", "result", "output")))
    if kind is EventType.SOURCES:
        raw = data if isinstance(data, list) else _first(data, "sources", default=[])
        return SourcesEvent(sources=_sources_adapter.validate_python(raw))
    if kind is EventType.EMAIL_STATUS:
        sent = None
        if isinstance(data, dict):
            # ?? semantics: an explicit False must not fall through to the alias
            sent = data.get("sent")
            if sent is None:
                sent = data.get("email_sent")
        return EmailStatusEvent(sent=bool(sent))
    if kind is EventType.DONE:
        return DoneEvent(thread_id=str(_first(data, "thread_id")))
    if kind is EventType.ERROR:
        return ErrorEvent(
            message=str(_first(data, "message", "detail", default="An error occurred."))
        )
    return ThreadResetEvent(
        message=str(_first(data, "message", default="Conversation was reset."))
    )
