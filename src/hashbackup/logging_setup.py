"""Logging configuration for the hashbackup CLI and service."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from hashbackup.config import LoggingSettings

PACKAGE_LOGGER = "hashbackup"
LOG_FILENAME = "hashbackup.log"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(
    settings: LoggingSettings,
    log_dir: Path | None = None,
    *,
    console: Console | None = None,
) -> logging.Logger:
    """Attach console and rotating-file handlers to the package logger.

    Calling this again replaces the handlers installed by the previous call.

    Args:
        settings: Level and rotation limits.
        log_dir: Directory for ``hashbackup.log``; no file handler when None.
        console: Rich console for terminal output; stderr by default.

    Returns:
        logging.Logger: The configured package logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logger.setLevel(level)

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / LOG_FILENAME,
            maxBytes=max(1, settings.max_size_mb) * 1024 * 1024,
            backupCount=max(0, settings.backup_count),
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging", "LOG_FILENAME", "PACKAGE_LOGGER"]
