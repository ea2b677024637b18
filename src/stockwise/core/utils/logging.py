"""
Logging configuration using loguru.

Call setup_logging() once at process start (the CLI does this); library
modules just import ``loguru.logger`` directly.
"""

from __future__ import annotations

import os
import sys

from loguru import logger

_CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> <level>[{level.name}]</level> {message}"
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{line} | {message}"


def setup_logging(
    level: str = "INFO",
    log_dir: str | None = None,
    log_name: str = "stockwise.log",
    fmt: str = _CONSOLE_FORMAT,
    rotation: str = "10 MB",
    retention: str = "30 days",
) -> str | None:
    """
    Configure loguru with console and optional file output.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR).
        log_dir: Directory for the rotating log file. If None, only logs to stderr.
        log_name: File name inside ``log_dir``.
        fmt: Loguru format string for the console sink.
        rotation: Log file rotation size.
        retention: How long to keep rotated logs.

    Returns:
        Path of the log file, or None when file logging is off.
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=fmt)

    if not log_dir:
        return None

    log_dir = os.path.expanduser(log_dir)
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, log_name)
    logger.add(
        log_file,
        level=level.upper(),
        format=_FILE_FORMAT,
        rotation=rotation,
        retention=retention,
        encoding="utf-8",
    )
    return log_file
