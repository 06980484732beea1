"""Logging helpers for the command line entry point."""

from __future__ import annotations

import logging
import os
import sys

LOGGER_NAME = "recursive_wrapper"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def configure_stdio_utf8() -> None:
    """Force stdout/stderr to UTF-8 so paths with non-ASCII names never crash on Windows consoles."""
    try:
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")  # type: ignore[union-attr]
        sys.stderr.reconfigure(encoding="utf-8", errors="replace")  # type: ignore[union-attr]
    except (AttributeError, ValueError):
        # Replaced or detached streams (pytest capture, pipes) keep their defaults.
        pass


def setup_operational_logger(
    level: str | int = logging.INFO,
    *,
    log_file: str | os.PathLike[str] | None = None,
) -> logging.Logger:
    """
    Configure the package logger for one build invocation.

    Logs go to stderr at `level`; when `log_file` is given, a UTF-8 file under that
    path additionally receives everything down to DEBUG.
    """

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_dir = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False

    logger.debug("Operational logging initialized (level=%s)", logging.getLevelName(stream_handler.level))
    if log_file is not None:
        logger.debug("Operational log file: %s", log_file)

    return logger
