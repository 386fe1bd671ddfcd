"""
Logging setup for the FlowX migration engine.

The CLI logs through a Rich console handler; a JSON formatter is available
for machine-readable output, and a log file rotates once it grows past
max_log_size. Engine components receive a logger at construction time and
fall back to get_logger() children of the ``flowx_migrate`` logger.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler


ROOT_LOGGER_NAME = "flowx_migrate"

PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
PLAIN_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class LogCategory(str, Enum):
    """Engine area a log record belongs to, passed as ``extra={"category": ...}``."""
    SYSTEM = "system"
    ANALYSIS = "analysis"
    MIGRATION = "migration"
    BACKUP = "backup"
    ROLLBACK = "rollback"
    VALIDATION = "validation"
    CLI = "cli"


# Attributes every LogRecord carries; anything else came in through ``extra``.
_STANDARD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "category", "taskName"}


def _category_of(record: logging.LogRecord) -> str:
    category = getattr(record, "category", LogCategory.SYSTEM)
    try:
        return LogCategory(category).value
    except ValueError:
        return LogCategory.SYSTEM.value


class StructuredFormatter(logging.Formatter):
    """Render each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "category": _category_of(record),
            "logger": record.name,
            "message": record.getMessage(),
        }
        extra = {
            key: value for key, value in vars(record).items()
            if key not in _STANDARD_ATTRIBUTES
        }
        if extra:
            entry["extra"] = extra
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _file_formatter(structured: bool) -> logging.Formatter:
    if structured:
        return StructuredFormatter()
    return logging.Formatter(fmt=PLAIN_FORMAT, datefmt=PLAIN_DATE_FORMAT)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    rich_console: bool = True,
    structured_logging: bool = False,
    max_log_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    console: Optional[Console] = None,
) -> logging.Logger:
    """
    Configure the ``flowx_migrate`` logger.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file, rotated at max_log_size
        rich_console: Log to a Rich console rather than a plain stream
        structured_logging: Emit JSON lines (disables the Rich handler)
        max_log_size: Size in bytes at which the log file rotates
        backup_count: Rotated log files to keep
        console: Rich console to log to (defaults to stderr)

    Returns:
        The configured root engine logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers.clear()

    if rich_console and not structured_logging:
        stream_handler: logging.Handler = RichHandler(
            console=console or Console(stderr=True),
            show_time=False,
            show_path=False,
            rich_tracebacks=True,
        )
    else:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(_file_formatter(structured_logging))
    logger.addHandler(stream_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_log_size, backupCount=backup_count, encoding="utf-8"
        )
        file_handler.setFormatter(_file_formatter(structured_logging))
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a specific component."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
