"""Structured logging configuration using structlog."""

import logging
import logging.handlers
import re
import sys
from pathlib import Path
from typing import Any, List

import structlog
from structlog.types import Processor

# Chatty third-party loggers and the level they are held at
NOISY_LOGGERS = {
    "yfinance": logging.WARNING,
    "peewee": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "apscheduler.executors.default": logging.WARNING,
}

_SIZE_UNITS = {
    "": 1,
    "B": 1,
    "K": 1024,
    "KB": 1024,
    "M": 1024**2,
    "MB": 1024**2,
    "G": 1024**3,
    "GB": 1024**3,
}


def setup_logging(
    level: str = "INFO",
    format_type: str = "structured",
    file_enabled: bool = False,
    file_path: str = "data/breakout_scanner.log",
    max_file_size: str = "10MB",
    backup_count: int = 5,
) -> None:
    """
    Set up application logging with structlog.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: 'structured' for JSON lines, 'plain' for console output
        file_enabled: Whether to also write to a rotating log file
        file_path: Path to log file
        max_file_size: Rotation size such as '10MB'
        backup_count: Number of rotated files to keep
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    for name, noisy_level in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(max(noisy_level, log_level))

    structlog.configure(
        processors=_processors(format_type),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    if file_enabled:
        _add_file_handler(file_path, max_file_size, backup_count, log_level)


def _processors(format_type: str) -> List[Processor]:
    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if format_type == "plain":
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    else:
        processors.append(structlog.processors.JSONRenderer())
    return processors


def _add_file_handler(
    file_path: str, max_file_size: str, backup_count: int, log_level: int
) -> None:
    log_file = Path(file_path)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        filename=log_file,
        maxBytes=_parse_file_size(max_file_size),
        backupCount=backup_count,
    )
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logging.getLogger().addHandler(handler)


def _parse_file_size(size_str: str) -> int:
    """Parse '512', '2KB', '10MB' or '1GB' into bytes."""
    match = re.fullmatch(r"\s*(\d+)\s*([KMG]?B?)\s*", size_str.upper())
    if match is None:
        raise ValueError(f"Invalid file size: {size_str!r}")
    number, unit = match.groups()
    return int(number) * _SIZE_UNITS[unit]


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name, normally the calling module's ``__name__``
    """
    return structlog.get_logger(name)


def bind_scan_context(**context: Any) -> None:
    """Attach context (scan id, mode) to every log line in the current task."""
    structlog.contextvars.bind_contextvars(**context)


def clear_scan_context() -> None:
    structlog.contextvars.clear_contextvars()


def log_performance(operation: str, duration_ms: float, **context: Any) -> None:
    """
    Log how long an operation took.

    Args:
        operation: Name of the operation
        duration_ms: Duration in milliseconds
        **context: Additional context such as counts
    """
    get_logger("performance").info(
        "Performance metric",
        operation=operation,
        duration_ms=round(duration_ms, 2),
        **context,
    )
