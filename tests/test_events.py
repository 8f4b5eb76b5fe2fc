"""Unit tests for stream event parsing."""

import pytest
from pydantic import ValidationError

from portfolio_chat.models import (
    DoneEvent,
    EmailStatusEvent,
    ErrorEvent,
    SourcesEvent,
    ThinkingEvent,
    ThreadResetEvent,
    TokenEvent,
    ToolCallEvent,
    ToolResultEvent,
    parse_event,
)


class TestParseEvent:
    """Test mapping (type, payload) pairs to typed events."""

    def test_primary_fields(self):
        assert parse_event("thinking", {"text": "Searching..."}) == ThinkingEvent("Searching...")
        assert parse_event("token", {"text": "Hi"}) == TokenEvent("Hi")
        assert parse_event("tool_call", {"tool": "search"}) == ToolCallEvent("search")
        assert parse_event("tool_result", {"preview": "3 docs"}) == ToolResultEvent("3 docs")
        assert parse_event("done", {"thread_id": "t2"}) == DoneEvent("t2")
        assert parse_event("error", {"message": "boom"}) == ErrorEvent("boom")
        assert parse_event("thread_reset", {"message": "expired"}) == ThreadResetEvent("expired")

    def test_alias_fields(self):
        """Older backends use alternate field names."""
        assert parse_event("thinking", {"step": "Step 1"}) == ThinkingEvent("Step 1")
        assert parse_event("token", {"token": "a"}) == TokenEvent("a")
        assert parse_event("token", {"content": "b"}) == TokenEvent("b")
        assert parse_event("tool_call", {"name": "email"}) == ToolCallEvent("email")
        assert parse_event("tool_result", {"output": "ok"}) == ToolResultEvent("ok")
        assert parse_event("error", {"detail": "bad"}) == ErrorEvent("bad")

    def test_defaults_for_missing_fields(self):
        assert parse_event("token", {}) == TokenEvent("")
        assert parse_event("done", {}) == DoneEvent("")
        assert parse_event("error", {}) == ErrorEvent("An error occurred.")
        assert parse_event("thread_reset", {}) == ThreadResetEvent("Conversation was reset.")
        assert parse_event("email_status", {}) == EmailStatusEvent(False)

    def test_email_status_false_does_not_fall_through(self):
        """An explicit sent=False wins over the email_sent alias."""
        assert parse_event("email_status", {"sent": False, "email_sent": True}) == EmailStatusEvent(False)
        assert parse_event("email_status", {"email_sent": True}) == EmailStatusEvent(True)

    def test_sources_as_object_or_bare_list(self):
        item = {"document": "cv.pdf", "chunk": "Python", "relevance_score": 0.8}
        wrapped = parse_event("sources", {"sources": [item]})
        bare = parse_event("sources", [item])
        assert isinstance(wrapped, SourcesEvent)
        assert wrapped == bare
        assert wrapped.sources[0].relevance_score == 0.8

    def test_invalid_sources_raise(self):
        with pytest.raises(ValidationError):
            parse_event("sources", {"sources": [{"document": "cv.pdf", "relevance_score": 3}]})

    def test_unknown_type_returns_none(self):
        assert parse_event("heartbeat", {}) is None
