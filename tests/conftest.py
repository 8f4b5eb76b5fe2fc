"""Shared fixtures."""

from typing import Callable

import httpx
import pytest

from portfolio_chat.services.chat_api import ChatApiClient
from portfolio_chat.session import ChatSession
from portfolio_chat.thread_store import THREAD_ID_KEY, MemoryStore, ThreadIdentityStore
from tests.support import BASE_URL, FakeBackend


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore({THREAD_ID_KEY: "t1"})


@pytest.fixture
def make_client() -> Callable[..., ChatApiClient]:
    def _make(backend: FakeBackend, **kwargs) -> ChatApiClient:
        return ChatApiClient(BASE_URL, transport=httpx.MockTransport(backend), **kwargs)

    return _make


@pytest.fixture
def make_session(store, make_client) -> Callable[..., ChatSession]:
    def _make(backend: FakeBackend, *, turn_timeout: float = 5.0, **client_kwargs) -> ChatSession:
        return ChatSession(
            make_client(backend, **client_kwargs),
            ThreadIdentityStore(store),
            turn_timeout=turn_timeout,
            welcome_message="Welcome!",
        )

    return _make
