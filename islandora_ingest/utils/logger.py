"""
Structured logging configuration for the Islandora REST ingester.

Provides dual-output logging:
- Console: Human-readable format for CLI users
- File: JSON format for machine parsing and analysis
"""

import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Optional

ROOT_LOGGER_NAME = "islandora_ingest"

# Standard LogRecord attributes; anything else came in through `extra`
_RECORD_ATTRIBUTES = {
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "message",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "thread",
    "threadName",
    "taskName",
    "exc_info",
    "exc_text",
    "stack_info",
}

NOISY_LOGGERS = ("httpx", "httpcore")


class JSONFormatter(logging.Formatter):
    """Format log records as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """
        Convert log record to JSON format.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log string
        """
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRIBUTES:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Format log records for human-readable console output."""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",  # Reset
    }

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record for console with colors.

        Args:
            record: Log record to format

        Returns:
            Colored, human-readable log string
        """
        color = self.COLORS.get(record.levelname, self.COLORS["RESET"])
        reset = self.COLORS["RESET"]

        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        log_parts = [
            f"{color}{record.levelname:8}{reset}",
            f"[{timestamp}]",
            f"{record.getMessage()}",
        ]

        if record.exc_info:
            log_parts.append(f"\n{self.formatException(record.exc_info)}")

        return " ".join(log_parts)


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    console_output: bool = True,
) -> logging.Logger:
    """
    Configure structured logging with console and file handlers.

    Args:
        log_level: Console logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to JSON log file (default: ./ingester.log)
        console_output: Whether to output logs to console

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, log_level.upper()))
        console_handler.setFormatter(ConsoleFormatter())
        logger.addHandler(console_handler)

    if log_file is None:
        log_file = Path("ingester.log")

    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)  # Always log DEBUG to file
    file_handler.setFormatter(JSONFormatter())
    logger.addHandler(file_handler)

    # Keep request-level chatter out of the ingest log
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.debug(f"Logging configured: level={log_level}, file={log_file}")
    return logger


def log_structured(
    logger: logging.Logger,
    level: str,
    message: str,
    **kwargs: Any,
) -> None:
    """
    Log message with structured metadata.

    Args:
        logger: Logger instance
        level: Log level (debug, info, warning, error, critical)
        message: Log message
        **kwargs: Additional structured data to include in log
    """
    log_func = getattr(logger, level.lower())
    log_func(message, extra=kwargs)


def log_object_status(logger: logging.Logger, result) -> None:
    """
    Record the full result tree of one top-level directory.

    Logged at DEBUG, so it reaches the JSON log file but not the console
    at the default level.

    Args:
        logger: Logger instance
        result: IngestResult of the directory
    """
    log_structured(
        logger,
        "debug",
        f"Result for {result.directory}: {result.status}",
        ingest_result=result.to_dict(),
    )
