"""Configuration via pydantic-settings (reads from .env or environment variables)."""

from __future__ import annotations

from pathlib import Path
from typing import ClassVar

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_NAME = "reddit-desk"
APP_VERSION = "0.1.0"


class RedditConfig(BaseSettings):
    """Reddit API endpoints and request parameters."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="REDDIT_",
    )

    user_agent: str = Field(default=f"{APP_NAME}:{APP_VERSION} (desktop client)")
    auth_url: str = Field(default="https://www.reddit.com/api/v1/access_token")
    api_base: str = Field(default="https://oauth.reddit.com")
    timeout: float = 15.0
    page_size: int = 25  # posts per listing page
    comment_limit: int = 200
    comment_depth: int = 8
    # Thumbnail height the preview picker aims for (pixels)
    preview_target_height: int = 100


class AppConfig(BaseSettings):
    """Desktop shell parameters: keychain entry, caches, worker pool."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="REDDIT_DESK_",
    )

    keyring_service: str = APP_NAME
    keyring_username: str = "credentials"
    data_dir: Path = Field(default=Path.home() / ".reddit-desk")
    image_cache_max_bytes: int = 64 * 1024 * 1024
    workers: int = 4
    # Seconds between redraws while background work is pending
    poll_interval: float = 0.25
    log_level: str = "INFO"

    @property
    def preferences_path(self) -> Path:
        return self.data_dir / "preferences.json"


# Singleton instances (import these in application code)
reddit_config = RedditConfig()
app_config = AppConfig()
