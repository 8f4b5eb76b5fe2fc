"""Conversational session client for the portfolio assistant."""

from portfolio_chat.errors import (
    ChatError,
    NetworkUnreachableError,
    RateLimitedError,
    RequestTimeoutError,
    ServerError,
)
from portfolio_chat.services.chat_api import ChatApiClient
from portfolio_chat.session import CancelReason, ChatSession
from portfolio_chat.thread_store import JsonFileStore, MemoryStore, ThreadIdentityStore

__all__ = [
    "ChatSession",
    "CancelReason",
    "ChatApiClient",
    "ThreadIdentityStore",
    "JsonFileStore",
    "MemoryStore",
    "ChatError",
    "NetworkUnreachableError",
    "RateLimitedError",
    "RequestTimeoutError",
    "ServerError",
]
