"""Logging configuration helpers for the quiz server."""

from __future__ import annotations

import logging
from logging import Logger


def configure_logging(level: int = logging.INFO) -> Logger:
    """Configure basic logging for the application and return the package logger."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    # uvicorn installs its own handlers; keep its access log quieter than ours.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    return logging.getLogger("quiz_arena")
