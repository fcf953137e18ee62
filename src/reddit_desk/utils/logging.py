"""
Logging configuration for reddit-desk.

Sets up loguru with a single human-readable stderr sink. Modules log
through ``from loguru import logger`` directly.
"""

from __future__ import annotations

import sys

from loguru import logger

from reddit_desk.config import app_config

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{module}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def setup_logging(log_level: str | None = None) -> None:
    """Replace loguru's default handler with one at the configured level.

    Args:
        log_level: Override level (DEBUG, INFO, WARNING, ERROR). Defaults to
            ``REDDIT_DESK_LOG_LEVEL``.
    """
    level = (log_level or app_config.log_level).upper()

    logger.remove()
    logger.add(sys.stderr, format=_FORMAT, level=level, colorize=True)
    logger.debug(f"Logging initialized with level: {level}")
