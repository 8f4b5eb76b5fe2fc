"""Configuration management."""

import re
from pathlib import Path

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Older deployments pointed the client at a versioned prefix; endpoints are
# built from the bare origin.
_API_VERSION_SUFFIX = re.compile(r"/api/v[12](/.*)?$")


def strip_api_version(url: str) -> str:
    """Strip a trailing ``/api/v1`` or ``/api/v2`` path (and anything after it)."""
    return _API_VERSION_SUFFIX.sub("", url.rstrip("/")) if url else url


class Settings(BaseSettings):
    """Client settings."""

    # Backend
    chat_api_url: str = "http://localhost:8000"
    stream_path: str = "/api/v2/chat/stream"
    sync_path: str = "/api/v1/chat"

    @computed_field
    @property
    def api_base(self) -> str:
        """Backend origin with any API version suffix removed."""
        return strip_api_version(self.chat_api_url)

    @computed_field
    @property
    def stream_url(self) -> str:
        return f"{self.api_base}{self.stream_path}"

    @computed_field
    @property
    def sync_url(self) -> str:
        return f"{self.api_base}{self.sync_path}"

    # Timeouts (seconds)
    stream_connect_timeout: float = 10.0
    sync_timeout: float = 60.0
    turn_timeout: float = 60.0  # Safety timer for a whole turn, fallback included

    # Local state (conversation identity)
    state_path: Path = Path.home() / ".portfolio_chat" / "state.json"

    welcome_message: str = (
        "Hi! I'm Shashikar's AI assistant. Ask me about his projects, skills, "
        "or experience, or ask me to send him a message!"
    )

    # Logging
    log_level: str = "INFO"

    # Mock backend
    host: str = "127.0.0.1"
    port: int = 8000
    mock_token_delay: float = 0.02

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


# Global settings instance
settings = Settings()
