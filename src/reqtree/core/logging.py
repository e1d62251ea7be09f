"""
reqtree Logging Configuration

Wires the ``reqtree`` and ``aiohttp`` loggers to a console handler and an
optional rotating file. The root logger belongs to the host application and
is left alone.
"""

import logging
import logging.config
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from .config import get_config

# Loggers owned by this package; everything else propagates to the host's root
PACKAGE_LOGGERS = {
    "reqtree": None,
    # Connection pool and client internals are noisy below WARNING
    "aiohttp": "WARNING",
}

LINE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class StructuredFormatter(logging.Formatter):
    """Formatter that appends a record's ``structured_data`` as ``key=value`` pairs."""

    def formatMessage(self, record: logging.LogRecord) -> str:
        message = super().formatMessage(record)
        data = getattr(record, "structured_data", None)
        if not data:
            return message
        pairs = " ".join(f"{key}={value!r}" for key, value in data.items())
        return f"{message} | {pairs}"


def _formatter(fmt: str, structured: bool) -> Dict[str, Any]:
    formatter: Dict[str, Any] = {"format": fmt, "datefmt": DATE_FORMAT}
    if structured:
        formatter["()"] = StructuredFormatter
    return formatter


def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[Path] = None,
    enable_structured: bool = True,
) -> None:
    """
    Configure logging for reqtree.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (defaults to ``logging.file_path`` from config)
        enable_structured: Append ``log_structured`` data to formatted lines
    """
    config = get_config()
    level = log_level or config.logging.level

    if log_file is None and config.logging.file_path:
        log_file = Path(config.logging.file_path)

    handlers: Dict[str, Dict[str, Any]] = {
        "reqtree.console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "line",
            "stream": sys.stderr,
        }
    }
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers["reqtree.file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": "file",
            "filename": str(log_file),
            "maxBytes": config.logging.max_file_size,
            "backupCount": config.logging.backup_count,
            "encoding": "utf-8",
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "line": _formatter(LINE_FORMAT, enable_structured),
                "file": _formatter(FILE_FORMAT, enable_structured),
            },
            "handlers": handlers,
            "loggers": {
                name: {
                    "level": logger_level or level,
                    "handlers": list(handlers),
                    "propagate": False,
                }
                for name, logger_level in PACKAGE_LOGGERS.items()
            },
        }
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def log_structured(
    logger: logging.Logger, level: int, message: str, **structured_data: Any
) -> None:
    """
    Log a message with structured data.

    The data travels on the record as ``structured_data``; the message itself
    is not changed.

    Args:
        logger: Logger instance
        level: Logging level
        message: Log message
        **structured_data: Additional structured data to include
    """
    logger.log(level, message, extra={"structured_data": structured_data}, stacklevel=2)
