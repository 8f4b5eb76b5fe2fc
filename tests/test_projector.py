"""Unit tests for the event projector."""

import pytest

from portfolio_chat.models import (
    ChatMessage,
    DoneEvent,
    EmailStatusEvent,
    ErrorEvent,
    Source,
    SourcesEvent,
    ThinkingEvent,
    ThreadResetEvent,
    TokenEvent,
    ToolCallEvent,
    ToolResultEvent,
)
from portfolio_chat.projector import project_event


@pytest.fixture
def placeholder() -> ChatMessage:
    return ChatMessage(role="bot", is_streaming=True)


class TestProjectEvent:
    """Test each event's effect on the bot message."""

    def test_tokens_append(self, placeholder):
        message = project_event(placeholder, TokenEvent("Hi"))
        message = project_event(message, TokenEvent(" there"))
        assert message.text == "Hi there"
        assert message.is_streaming

    def test_thinking_steps_append_in_order(self, placeholder):
        message = project_event(placeholder, ThinkingEvent("Searching..."))
        message = project_event(message, ThinkingEvent("Generating response..."))
        assert message.thinking_steps == ["Searching...", "Generating response..."]

    def test_sources_replace(self, placeholder):
        first = [Source(document="a.md")]
        second = [Source(document="b.md"), Source(document="c.md")]
        message = project_event(placeholder, SourcesEvent(first))
        message = project_event(message, SourcesEvent(second))
        assert [s.document for s in message.sources] == ["b.md", "c.md"]

    def test_email_status(self, placeholder):
        assert placeholder.email_sent is None
        assert project_event(placeholder, EmailStatusEvent(True)).email_sent is True
        assert project_event(placeholder, EmailStatusEvent(False)).email_sent is False

    def test_done_stops_streaming(self, placeholder):
        message = project_event(project_event(placeholder, TokenEvent("ok")), DoneEvent("t2"))
        assert not message.is_streaming
        assert message.text == "ok"
        assert not message.is_error

    def test_error_replaces_text(self, placeholder):
        message = project_event(project_event(placeholder, TokenEvent("partial")), ErrorEvent("boom"))
        assert message.text == "boom"
        assert message.is_error
        assert not message.is_streaming

    @pytest.mark.parametrize(
        "event",
        [ToolCallEvent("search"), ToolResultEvent("3 docs"), ThreadResetEvent("expired")],
    )
    def test_ignored_events(self, placeholder, event):
        assert project_event(placeholder, event) == placeholder

    def test_input_is_not_mutated(self, placeholder):
        project_event(placeholder, TokenEvent("Hi"))
        project_event(placeholder, ThinkingEvent("step"))
        assert placeholder.text == ""
        assert placeholder.thinking_steps == []

    def test_unknown_event_raises(self, placeholder):
        with pytest.raises(TypeError):
            project_event(placeholder, object())
