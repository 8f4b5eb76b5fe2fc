"""Durable conversation identity.

The thread id correlates turns into one server-side conversation. It lives
behind a narrow key-value interface so sessions can persist it to disk or
keep it in memory (tests, throwaway sessions).
"""

import json
import logging
import os
import tempfile
import uuid
from pathlib import Path
from typing import Protocol

from portfolio_chat.config import settings

logger = logging.getLogger(__name__)

THREAD_ID_KEY = "chatbot_thread_id"


class KeyValueStore(Protocol):
    """Minimal persistence boundary."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    """Process-local store."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStore:
    """Flat JSON object on disk, rewritten atomically on every set."""

    def __init__(self, path: Path | None = None):
        self.path = path or settings.state_path

    def _load(self) -> dict[str, str]:
        try:
            if not self.path.exists():
                return {}
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning(f"Failed to read state from {self.path}; starting empty")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring non-object state in {self.path}")
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        try:
            self._atomic_write(json.dumps(data, indent=2))
        except OSError as e:
            logger.warning(f"Failed to persist {key} to {self.path}: {e}")

    def _atomic_write(self, content: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_path, self.path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()


class ThreadIdentityStore:
    """Owns the current thread id and its persistence."""

    def __init__(self, store: KeyValueStore | None = None, key: str = THREAD_ID_KEY):
        self._store = store if store is not None else MemoryStore()
        self._key = key

    def get(self) -> str:
        """Return the persisted thread id, creating one on first use."""
        stored = self._store.get(self._key)
        if stored:
            return stored
        return self.reset()

    def replace(self, new_id: str) -> None:
        """Persist new_id as the current thread id."""
        if not new_id:
            raise ValueError("Thread id must be non-empty")
        self._store.set(self._key, new_id)

    def reset(self) -> str:
        """Generate, persist and return a fresh thread id."""
        new_id = str(uuid.uuid4())
        self._store.set(self._key, new_id)
        logger.debug(f"New thread id {new_id}")
        return new_id
