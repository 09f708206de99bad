"""Logging configuration."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "versiontrim"
EVENT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _level(name: str) -> int:
    value = getattr(logging, name.upper(), None)
    return value if isinstance(value, int) else logging.INFO


def setup_logging(level: str = "INFO", verbose: bool = False, log_file: Optional[str] = None) -> logging.Logger:
    """Configure the package logger.

    Warnings and errors go to stderr through rich; info-level events are
    written only to the optional plain-text event log.

    Args:
        level: Minimum level for the event log file
        verbose: Show debug output on the console
        log_file: Plain-text event log path (optional, appended to)

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_level = logging.DEBUG if verbose else max(logging.WARNING, _level(level))
    console_handler = RichHandler(console=Console(stderr=True), show_path=verbose, rich_tracebacks=verbose)
    console_handler.setLevel(console_level)
    logger.addHandler(console_handler)

    file_level = logging.DEBUG if verbose else _level(level)
    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(EVENT_LOG_FORMAT))
        file_handler.setLevel(file_level)
        logger.addHandler(file_handler)

    logger.setLevel(min(console_level, file_level))

    # boto3 is chatty at debug level
    for noisy in ("boto3", "botocore", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger
