"""Logging infrastructure for pkgmigrate.

Progress lines (SKIP, DOWNLOADED, publish commands) go to stdout, warnings and
errors go to stderr. Console output is optionally colored; a rotating log file
can be enabled alongside it.
"""

import logging
import logging.handlers
import os
import sys
from typing import Optional

ANSI_COLORS = {
    "red": 31,
    "green": 32,
    "yellow": 33,
    "blue": 34,
    "gray": 90,
}

LEVEL_COLORS = {
    logging.DEBUG: "gray",
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "red",
}


def color_text(text: str, color: Optional[str] = None) -> str:
    """Wrap text in an ANSI color escape sequence.

    Args:
        text: Text to color
        color: Color name from ANSI_COLORS; default foreground when None

    Returns:
        Colored text
    """
    code = ANSI_COLORS.get(color, 39) if color else 39
    return f"\033[{code}m{text}\033[0m"


class ColorFormatter(logging.Formatter):
    """Formatter that colors the whole record by level."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        return color_text(message, LEVEL_COLORS.get(record.levelno))


class _MaxLevelFilter(logging.Filter):
    """Pass only records below a level."""

    def __init__(self, max_level: int):
        super().__init__()
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.max_level


def setup_logger(
    name: str = "pkgmigrate",
    level: str = "INFO",
    color: bool = True,
    log_dir: Optional[str] = None,
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    max_bytes: int = 10485760,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """Set up a logger with split console handlers and an optional file handler.

    Args:
        name: Logger name (child loggers such as ``pkgmigrate.downloader``
            propagate to it)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        color: Color console output by level
        log_dir: Directory for a rotating log file; no file logging when None
        log_format: Custom log format string for the file handler
        date_format: Custom date format string (ISO 8601 by default)
        max_bytes: Maximum log file size before rotation
        backup_count: Number of backup log files to keep

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Validate and set log level
    level_upper = level.upper()
    if not hasattr(logging, level_upper):
        raise ValueError(
            f"Invalid log level: {level}. "
            f"Must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL"
        )
    logger.setLevel(getattr(logging, level_upper))

    # Prevent duplicate handlers
    if logger.handlers:
        return logger

    if log_format is None:
        log_format = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
    if date_format is None:
        date_format = "%Y-%m-%dT%H:%M:%S"

    console_formatter: logging.Formatter
    if color:
        console_formatter = ColorFormatter("%(message)s")
    else:
        console_formatter = logging.Formatter("%(message)s")

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(console_formatter)
    stdout_handler.addFilter(_MaxLevelFilter(logging.WARNING))
    logger.addHandler(stdout_handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(console_formatter)
    stderr_handler.setLevel(logging.WARNING)
    logger.addHandler(stderr_handler)

    # File handler with rotation
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, f"{name}.log")
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count
        )
        file_handler.setFormatter(logging.Formatter(log_format, datefmt=date_format))
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get an existing logger by name.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
