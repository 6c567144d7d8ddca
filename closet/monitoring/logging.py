"""Logging configuration module."""

from __future__ import annotations

import logging

from closet.config.settings import ClosetSettings, get_settings


def configure_logging(settings: ClosetSettings | None = None) -> None:
    """Configure root logger according to project conventions."""

    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
