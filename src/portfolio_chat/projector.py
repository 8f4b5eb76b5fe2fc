"""Projection of stream events onto the in-progress bot message."""

from portfolio_chat.models import (
    ChatMessage,
    DoneEvent,
    EmailStatusEvent,
    ErrorEvent,
    SourcesEvent,
    StreamEvent,
    ThinkingEvent,
    ThreadResetEvent,
    TokenEvent,
    ToolCallEvent,
    ToolResultEvent,
)


def project_event(message: ChatMessage, event: StreamEvent) -> ChatMessage:
    """Return a copy of message with event applied.

    Thread renaming (done) and thread resets are whole-session concerns and
    are handled by ChatSession, not here.
    """
    if isinstance(event, ThinkingEvent):
        return message.model_copy(
            update={"thinking_steps": [*message.thinking_steps, event.text]}
        )
    if isinstance(event, TokenEvent):
        return message.model_copy(update={"text": message.text + event.text})
    if isinstance(event, SourcesEvent):
        return message.model_copy(update={"sources": list(event.sources)})
    if isinstance(event, EmailStatusEvent):
        return message.model_copy(update={"email_sent": event.sent})
    if isinstance(event, DoneEvent):
        return message.model_copy(update={"is_streaming": False})
    if isinstance(event, ErrorEvent):
        return message.model_copy(
            update={"text": event.message, "is_error": True, "is_streaming": False}
        )
    if isinstance(event, (ToolCallEvent, ToolResultEvent, ThreadResetEvent)):
        # Thinking events already announce tool progress
        return message
    raise TypeError(f"Unhandled stream event: {event!r}")
