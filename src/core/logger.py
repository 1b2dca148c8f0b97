"""Logging utilities.

The TUI owns the terminal, so log records go to a file (when `CW_LOG_FILE` is
set) or nowhere. Plain mode can additionally log to stderr through Rich.
User input (email, API key, domain text) is never passed to a logger.
"""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "cwbackup"


def setup_logger(
    level: str | int = logging.INFO,
    *,
    log_file: Path | None = None,
    console: Console | None = None,
    name: str = LOGGER_NAME,
) -> logging.Logger:
    """Set up and configure the application logger.

    Args:
        level: Logging level name or number.
        log_file: Append records to this file when given.
        console: Also render records on this Rich console (plain mode).
        name: Logger name.

    Returns:
        Configured logger instance.
    """

    logger = logging.getLogger(name)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    if console is not None:
        logger.addHandler(RichHandler(console=console, show_path=False, markup=False))

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger


def get_logger(component: str) -> logging.Logger:
    return logging.getLogger(f"{LOGGER_NAME}.{component}")
