"""Logging configuration for opwait.

This module provides structured logging via loguru. Logging is disabled by
default (library behavior) and enabled when the application calls
setup_logging.

Example:
    from opwait import LogConfig, operation_wait, setup_logging

    handler_ids = setup_logging(LogConfig(level="DEBUG", console=True))
    try:
        operation_wait(waiter, "bucket creation", timeout_minutes=4)
    finally:
        teardown_logging(handler_ids)
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, TypeAlias

from loguru import logger

# Disable by default (library behavior)
logger.disable("opwait")

LogLevel: TypeAlias = Literal["DEBUG", "INFO", "WARNING", "ERROR", "TRACE"]

_CONTEXT_KEYS = ("activity", "operation", "attempt")


def _format_context(record: Any) -> str:
    extra = record.get("extra", {})
    parts = [f"{k}={extra[k]}" for k in _CONTEXT_KEYS if k in extra]
    return f" [{' '.join(parts)}]" if parts else ""


CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan>"
    "<dim>{extra[_ctx]}</dim> - "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{name}:{function}:{line}{extra[_ctx]} - {message}"
)


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Logging configuration.

    Attributes:
        level: Minimum log level for the console sink.
        file: Path to log file. None disables file output.
        console: Whether to log to stderr.
        rotation: File rotation policy (e.g., "50 MB", "1 day").
        retention: Number of old log files to keep.
    """

    level: LogLevel = "INFO"
    file: str | None = None
    console: bool = True
    rotation: str = "50 MB"
    retention: int = 10


def setup_logging(config: LogConfig) -> list[int]:
    """Enable opwait logging and return handler IDs for cleanup."""
    logger.enable("opwait")
    logger.configure(patcher=lambda r: r["extra"].update(_ctx=_format_context(r)))
    handler_ids: list[int] = []

    if config.console:
        hid = logger.add(
            sys.stderr,
            level=config.level,
            format=CONSOLE_FORMAT,
            colorize=True,
            filter="opwait",
        )
        handler_ids.append(hid)

    if config.file:
        Path(config.file).parent.mkdir(parents=True, exist_ok=True)
        hid = logger.add(
            config.file,
            level="DEBUG",
            format=FILE_FORMAT,
            filter="opwait",
            rotation=config.rotation,
            retention=config.retention,
            compression="zip",
            diagnose=False,
            enqueue=False,
        )
        handler_ids.append(hid)

    return handler_ids


def teardown_logging(handler_ids: list[int]) -> None:
    """Remove handlers and disable logging."""
    for hid in handler_ids:
        logger.remove(hid)
    logger.disable("opwait")
