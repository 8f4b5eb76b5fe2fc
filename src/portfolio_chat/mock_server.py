"""Mock chat backend for local development and integration tests.

Implements both chat endpoints with canned, pattern-matched answers so the
client can be exercised without the real assistant:

- greetings get a short hello
- contact requests ("email him", "get in touch") report email_status sent
- "reset my session" style messages emit thread_reset
- anything else gets thinking steps, a tool call, sources and a streamed answer
"""

import asyncio
import logging
import re
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.responses import StreamingResponse

from portfolio_chat.config import settings
from portfolio_chat.models import ChatRequest, ChatResponse, EventType, Source
from portfolio_chat.sse import SSEEvent

logger = logging.getLogger(__name__)

GREETING_PATTERNS = [
    r"^(hi|hello|hey|greetings|good\s+(morning|afternoon|evening))[\s!.,]*$",
]

CONTACT_PATTERNS = [
    r"\b(email|contact|reach|message)\b.*\b(him|shashikar)\b",
    r"\bget in touch\b",
]

RESET_PATTERNS = [
    r"\breset\b.*\b(session|conversation|chat)\b",
]

MOCK_SOURCES = [
    Source(
        document="resume.pdf",
        chunk="Built retrieval-augmented assistants with FastAPI and LangGraph.",
        relevance_score=0.91,
    ),
    Source(
        document="projects.md",
        chunk="Portfolio chatbot streaming answers over server-sent events.",
        relevance_score=0.78,
    ),
]


def detect_intent(message: str) -> str:
    """Classify a message as greeting, contact, reset or general."""
    lower = message.lower().strip()
    for pattern in GREETING_PATTERNS:
        if re.search(pattern, lower):
            return "greeting"
    for pattern in RESET_PATTERNS:
        if re.search(pattern, lower):
            return "reset"
    for pattern in CONTACT_PATTERNS:
        if re.search(pattern, lower):
            return "contact"
    return "general"


def canned_reply(message: str) -> tuple[str, list[Source], bool]:
    """Return (answer, sources, email_sent) for a message."""
    intent = detect_intent(message)
    if intent == "greeting":
        return "Hello! What would you like to know about Shashikar's work?", [], False
    if intent == "contact":
        return "Done! I've sent your message to Shashikar. He'll get back to you soon.", [], True

    truncated = message[:100] + "..." if len(message) > 100 else message
    return f"Here's what I found about: {truncated}", list(MOCK_SOURCES), False


async def mock_event_stream(
    request: ChatRequest,
    token_delay: float = 0.0,
) -> AsyncGenerator[str, None]:
    """Generate the SSE body for one turn."""
    intent = detect_intent(request.message)
    logger.info(f"Mock stream: intent '{intent}' on thread {request.thread_id}")

    if intent == "reset":
        yield SSEEvent(
            event=EventType.THREAD_RESET.value,
            data={"message": "Your session expired, so I started a new conversation."},
        ).encode()
        return

    answer, sources, email_sent = canned_reply(request.message)

    yield SSEEvent(event=EventType.THINKING.value, data={"text": "Searching portfolio..."}).encode()
    if intent == "contact":
        yield SSEEvent(event=EventType.TOOL_CALL.value, data={"tool": "send_email"}).encode()
        yield SSEEvent(event=EventType.TOOL_RESULT.value, data={"preview": "sent"}).encode()
        yield SSEEvent(event=EventType.EMAIL_STATUS.value, data={"sent": email_sent}).encode()
    elif sources:
        yield SSEEvent(event=EventType.TOOL_CALL.value, data={"tool": "search_documents"}).encode()
        yield SSEEvent(
            event=EventType.TOOL_RESULT.value,
            data={"preview": f"{len(sources)} documents"},
        ).encode()
    yield SSEEvent(event=EventType.THINKING.value, data={"text": "Generating response..."}).encode()

    # Word by word, keeping the separating spaces
    for token in re.findall(r"\S+\s*", answer):
        if token_delay:
            await asyncio.sleep(token_delay)
        yield SSEEvent(event=EventType.TOKEN.value, data={"text": token}).encode()

    if sources:
        yield SSEEvent(
            event=EventType.SOURCES.value,
            data={"sources": [s.model_dump() for s in sources]},
        ).encode()
    yield SSEEvent(event=EventType.DONE.value, data={"thread_id": request.thread_id}).encode()


def create_sse_response(generator: AsyncGenerator[str, None]) -> StreamingResponse:
    """Create an SSE StreamingResponse."""
    return StreamingResponse(
        generator,
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )


def create_app(token_delay: float | None = None) -> FastAPI:
    """Build the mock backend app."""
    delay = settings.mock_token_delay if token_delay is None else token_delay
    app = FastAPI(title="Portfolio Chat Mock API")

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "ok", "service": "portfolio-chat-mock"}

    @app.post(settings.stream_path)
    async def chat_stream(request: ChatRequest):
        """Stream a canned answer as server-sent events."""
        return create_sse_response(mock_event_stream(request, token_delay=delay))

    @app.post(settings.sync_path, response_model=ChatResponse)
    async def chat(request: ChatRequest):
        """Answer in one response."""
        answer, sources, email_sent = canned_reply(request.message)
        return ChatResponse(
            response=answer,
            thread_id=request.thread_id,
            sources=sources,
            email_sent=email_sent,
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    from portfolio_chat.logging_config import configure_logging

    configure_logging(settings.log_level)
    uvicorn.run(app, host=settings.host, port=settings.port)
