"""Shared Pydantic models and stream event types."""

from portfolio_chat.models.conversation import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    Source,
)
from portfolio_chat.models.events import (
    DoneEvent,
    EmailStatusEvent,
    ErrorEvent,
    EventType,
    SourcesEvent,
    StreamEvent,
    ThinkingEvent,
    ThreadResetEvent,
    TokenEvent,
    ToolCallEvent,
    ToolResultEvent,
    parse_event,
)

__all__ = [
    # Conversation
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "Source",
    # Stream events
    "EventType",
    "StreamEvent",
    "ThinkingEvent",
    "TokenEvent",
    "ToolCallEvent",
    "ToolResultEvent",
    "SourcesEvent",
    "EmailStatusEvent",
    "DoneEvent",
    "ErrorEvent",
    "ThreadResetEvent",
    "parse_event",
]
