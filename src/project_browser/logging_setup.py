"""Logging to stderr through rich."""

from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

LOG_LEVEL_ENV = "PROJECT_BROWSER_LOG"


def level_for(verbosity: int) -> int:
    override = os.environ.get(LOG_LEVEL_ENV, "").strip().upper()
    if override:
        level = logging.getLevelName(override)
        if isinstance(level, int):
            return level
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


def setup_logging(verbosity: int = 0) -> None:
    """Configure the package logger. Calling it again only adjusts the level."""
    logger = logging.getLogger("project_browser")
    logger.setLevel(level_for(verbosity))
    if any(isinstance(h, RichHandler) for h in logger.handlers):
        return

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="%H:%M:%S"))
    logger.addHandler(handler)
