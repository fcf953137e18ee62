"""User preferences persisted as JSON in the data directory."""

from __future__ import annotations

from pathlib import Path

from loguru import logger
from pydantic import BaseModel, ValidationError

from reddit_desk.client.schemas import HOME_FEED


class Preferences(BaseModel):
    dark_mode: bool = True
    default_feed: str = HOME_FEED
    sort: str = "hot"

    @classmethod
    def load(cls, path: Path) -> Preferences:
        """Read preferences from ``path``; defaults when missing or unreadable."""
        if not path.exists():
            return cls()
        try:
            return cls.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as exc:
            logger.warning(f"Ignoring unreadable preferences file {path}: {exc}")
            return cls()

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
