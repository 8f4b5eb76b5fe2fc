"""Chat session: message history, in-flight turn and the stream/fallback logic.

A turn streams from the SSE endpoint first. Only a network-level failure of
the stream falls back to the single-shot endpoint; errors reported by the
server are shown as they are. At most one turn is in flight per session, and
a new send always supersedes the previous one.
"""

import asyncio
import logging
from contextlib import aclosing
from enum import Enum
from functools import partial
from typing import Callable

from portfolio_chat.config import settings
from portfolio_chat.errors import (
    CANCELLED_MESSAGE,
    EMPTY_TURN_MESSAGE,
    ChatError,
    NetworkUnreachableError,
)
from portfolio_chat.models import (
    ChatMessage,
    ChatResponse,
    DoneEvent,
    ErrorEvent,
    ThreadResetEvent,
)
from portfolio_chat.projector import project_event
from portfolio_chat.services.chat_api import ChatApiClient
from portfolio_chat.thread_store import JsonFileStore, ThreadIdentityStore

logger = logging.getLogger(__name__)

WELCOME_ID = "welcome"

Subscriber = Callable[["ChatSession"], None]


class CancelReason(str, Enum):
    """Why an in-flight turn was cancelled."""

    SUPERSEDED = "superseded"  # A newer send took over
    CLEARED = "cleared"
    TIMEOUT = "timeout"
    USER = "user"


class TurnHandle:
    """Cancellation handle shared by the safety timer and the session."""

    def __init__(self, bot_id: str):
        self.bot_id = bot_id
        self.task: asyncio.Task | None = None
        self.reason: CancelReason | None = None
        self._timer: asyncio.TimerHandle | None = None

    def arm(self, seconds: float, callback: Callable[[], None]) -> None:
        self._timer = asyncio.get_running_loop().call_later(seconds, callback)

    def disarm(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def cancel(self, reason: CancelReason) -> bool:
        """Cancel the turn; only the first call has any effect."""
        if self.reason is not None or self.task is None or self.task.done():
            return False
        self.reason = reason
        self.disarm()
        self.task.cancel()
        return True


def _finalize_stream(message: ChatMessage) -> ChatMessage:
    # An empty successful stream is a failed turn
    if not message.text and not message.is_error:
        return message.model_copy(
            update={"text": EMPTY_TURN_MESSAGE, "is_error": True, "is_streaming": False}
        )
    return message.model_copy(update={"is_streaming": False})


def _finalize_cancelled(message: ChatMessage, reason: CancelReason) -> ChatMessage:
    if not message.is_streaming:
        return message
    if reason in (CancelReason.SUPERSEDED, CancelReason.CLEARED):
        return message.model_copy(update={"is_streaming": False})
    return message.model_copy(
        update={
            "text": message.text or CANCELLED_MESSAGE,
            "is_error": not message.text,
            "is_streaming": False,
        }
    )


def _start_fallback(message: ChatMessage) -> ChatMessage:
    return message.model_copy(update={"thinking_steps": [], "is_fallback": True})


def _apply_fallback(message: ChatMessage, result: ChatResponse) -> ChatMessage:
    return message.model_copy(
        update={
            "text": result.response,
            "sources": result.sources,
            "email_sent": result.email_sent,
            "is_streaming": False,
            "is_fallback": True,
        }
    )


def _fail(message: ChatMessage, text: str) -> ChatMessage:
    return message.model_copy(update={"text": text, "is_error": True, "is_streaming": False})


class ChatSession:
    """One conversation with the assistant.

    Owns the message history, the current thread id and the in-flight turn.
    Sessions share nothing, so several can run side by side.
    """

    def __init__(
        self,
        client: ChatApiClient | None = None,
        identity: ThreadIdentityStore | None = None,
        *,
        turn_timeout: float | None = None,
        welcome_message: str | None = None,
    ):
        self.client = client or ChatApiClient()
        self.identity = identity or ThreadIdentityStore(JsonFileStore())
        self.turn_timeout = turn_timeout if turn_timeout is not None else settings.turn_timeout
        self.welcome_message = welcome_message or settings.welcome_message

        self.thread_id = self.identity.get()
        self.error: str | None = None
        self._messages: list[ChatMessage] = [self._welcome()]
        self._in_flight: TurnHandle | None = None
        self._subscribers: list[Subscriber] = []

    @property
    def messages(self) -> list[ChatMessage]:
        """Snapshot of the history."""
        return list(self._messages)

    @property
    def is_loading(self) -> bool:
        return self._in_flight is not None

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Call callback after every history change. Returns an unsubscribe function."""
        self._subscribers.append(callback)
        return lambda: self._subscribers.remove(callback)

    async def send(self, text: str) -> ChatMessage | None:
        """Run one turn and return its final bot message.

        Returns None for blank input, or when a thread reset or clear dropped
        the turn's message from the history.
        """
        trimmed = text.strip()
        if not trimmed:
            return None

        if self._in_flight is not None:
            self._cancel_turn(self._in_flight, CancelReason.SUPERSEDED)
            self._in_flight = None

        self.error = None
        user = ChatMessage(role="user", text=trimmed)
        bot = ChatMessage(role="bot", is_streaming=True)
        self._messages.extend([user, bot])
        self._notify()

        handle = TurnHandle(bot.id)
        handle.task = asyncio.create_task(self._run_turn(trimmed, handle))
        handle.arm(self.turn_timeout, partial(self._cancel_turn, handle, CancelReason.TIMEOUT))
        self._in_flight = handle
        logger.info(f"Turn started on thread {self.thread_id}")

        try:
            await handle.task
        except asyncio.CancelledError:
            # Our own caller being cancelled must propagate
            current = asyncio.current_task()
            if handle.reason is None or (current is not None and current.cancelling()):
                raise
            logger.info(f"Turn cancelled ({handle.reason.value})")
        finally:
            handle.disarm()
            if self._in_flight is handle:
                self._in_flight = None

        return self._find(bot.id)

    async def retry(self) -> ChatMessage | None:
        """Resubmit the last user message, dropping it and everything after it."""
        index = next(
            (i for i in range(len(self._messages) - 1, -1, -1) if self._messages[i].role == "user"),
            None,
        )
        if index is None:
            return None

        text = self._messages[index].text
        del self._messages[index:]
        self._notify()
        return await self.send(text)

    def cancel(self) -> None:
        """Abort the in-flight turn, keeping the history."""
        if self._in_flight is not None:
            self._cancel_turn(self._in_flight, CancelReason.USER)
            self._in_flight = None

    def clear(self) -> None:
        """Abort any in-flight turn and start a new conversation."""
        if self._in_flight is not None:
            self._cancel_turn(self._in_flight, CancelReason.CLEARED)
            self._in_flight = None

        self.thread_id = self.identity.reset()
        self._messages = [self._welcome()]
        self.error = None
        logger.info(f"Conversation cleared, new thread {self.thread_id}")
        self._notify()

    async def _run_turn(self, text: str, handle: TurnHandle) -> None:
        try:
            try:
                await self._stream_turn(text, handle.bot_id)
            except NetworkUnreachableError:
                logger.warning("Stream unavailable, falling back to single-shot request")
                await self._fallback_turn(text, handle.bot_id)
        except asyncio.CancelledError:
            self._update(
                handle.bot_id,
                partial(_finalize_cancelled, reason=handle.reason or CancelReason.USER),
            )
            raise

    async def _stream_turn(self, text: str, bot_id: str) -> None:
        async with aclosing(self.client.stream_message(text, self.thread_id)) as events:
            async for event in events:
                if isinstance(event, ThreadResetEvent):
                    self._reset_thread(event.message)
                    return

                self._update(bot_id, partial(project_event, event=event))

                if isinstance(event, ErrorEvent):
                    return
                if isinstance(event, DoneEvent):
                    self._rename_thread(event.thread_id)
                    break

        self._update(bot_id, _finalize_stream)

    async def _fallback_turn(self, text: str, bot_id: str) -> None:
        self._update(bot_id, _start_fallback)
        try:
            result = await self.client.send_message_sync(text, self.thread_id)
        except ChatError as e:
            logger.error(f"Fallback request failed: {e.message}")
            self.error = e.message
            self._update(bot_id, partial(_fail, text=e.message))
            return

        self._rename_thread(result.thread_id)
        self._update(bot_id, partial(_apply_fallback, result=result))

    def _cancel_turn(self, handle: TurnHandle, reason: CancelReason) -> None:
        if handle.cancel(reason):
            # Finalize now; the task may never get to run its own handler
            self._update(handle.bot_id, partial(_finalize_cancelled, reason=reason))

    def _reset_thread(self, notice: str) -> None:
        self.thread_id = self.identity.reset()
        self._messages = [self._welcome(), ChatMessage(role="bot", text=notice)]
        logger.info(f"Server reset the conversation, new thread {self.thread_id}")
        self._notify()

    def _rename_thread(self, thread_id: str) -> None:
        if thread_id and thread_id != self.thread_id:
            self.identity.replace(thread_id)
            self.thread_id = thread_id

    def _welcome(self) -> ChatMessage:
        return ChatMessage(id=WELCOME_ID, role="bot", text=self.welcome_message)

    def _find(self, message_id: str) -> ChatMessage | None:
        return next((m for m in self._messages if m.id == message_id), None)

    def _update(self, message_id: str, updater: Callable[[ChatMessage], ChatMessage]) -> None:
        for i, message in enumerate(self._messages):
            if message.id == message_id:
                self._messages[i] = updater(message)
                self._notify()
                return

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback(self)
            except Exception:
                logger.exception("Session subscriber failed")
