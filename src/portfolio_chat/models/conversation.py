"""Conversation, message and wire models."""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


def _uuid() -> str:
    return str(uuid.uuid4())


class Source(BaseModel):
    """A retrieved document excerpt backing an answer."""

    document: str = Field(..., description="Source document name")
    chunk: str = Field("", description="Excerpt used for the answer")
    relevance_score: float = Field(0.0, ge=0.0, le=1.0, description="Relevance in [0, 1]")


class ChatMessage(BaseModel):
    """A single record in the session history."""

    id: str = Field(default_factory=_uuid, description="Unique message ID")
    role: Literal["user", "bot"] = Field(..., description="Message role")
    text: str = Field("", description="Message text, appended to while streaming")
    timestamp: datetime = Field(default_factory=datetime.now, description="Creation timestamp")

    is_streaming: bool = Field(False, description="Still receiving stream events")
    is_error: bool = Field(False, description="Turn ended in a failure")
    is_fallback: bool = Field(False, description="Answered by the single-shot endpoint")

    sources: list[Source] = Field(default_factory=list, description="Attached sources")
    email_sent: bool | None = Field(None, description="Contact email outcome, None if unknown")
    thinking_steps: list[str] = Field(default_factory=list, description="Progress announcements")


class ChatRequest(BaseModel):
    """Request body for both chat endpoints."""

    message: str = Field(..., description="User message")
    thread_id: str = Field(..., description="Conversation identity")


class ChatResponse(BaseModel):
    """Response body of the single-shot chat endpoint."""

    response: str = Field(..., description="Assistant answer")
    thread_id: str = Field(..., description="Possibly renamed conversation identity")
    sources: list[Source] = Field(default_factory=list)
    email_sent: bool = Field(False)
