"""Centralized logging configuration using loguru.

Provides:
- Level selection from Settings with --verbose/--quiet overrides
- One console sink whose lines carry the work-item and run context
- Routing of stdlib loggers (SQLAlchemy, aiosqlite, pacing events) into loguru
- Optional rotating file sink
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Hashable
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger, Record

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Third-party loggers and the level they are held at unless running verbose
_NOISY_LOGGERS: dict[str, int] = {
    "sqlalchemy.engine": logging.WARNING,
    "sqlalchemy.pool": logging.WARNING,
    "aiosqlite": logging.WARNING,
}

_configured = False


class InterceptHandler(logging.Handler):
    """Forward stdlib log records to loguru.

    The pacing event dispatcher and the storage libraries log through the
    standard library; this keeps their output in the same sinks.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging-module frames so loguru reports the real caller
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.bind(name=record.name).opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def _console_format(record: Record) -> str:
    """Console line: time, level, source, then run/item context when bound."""
    extra = record["extra"]
    source = "{extra[name]}" if "name" in extra else "{name}"
    context = ""
    if "run" in extra:
        context += " run={extra[run]}"
    if "item" in extra:
        context += " item={extra[item]}"
    return (
        "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | "
        f"<cyan>{source}</cyan><magenta>{context}</magenta> - "
        "<level>{message}</level>\n{exception}"
    )


def _file_format(record: Record) -> str:
    source = "{extra[name]}" if "name" in record["extra"] else "{name}"
    return (
        "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
        f"{source}:{{function}}:{{line}} | {{extra}} | {{message}}\n{{exception}}"
    )


def setup_logging(
    level: LogLevel = "INFO",
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    serialize: bool = False,
) -> Logger:
    """Configure loguru sinks and stdlib interception.

    Args:
        level: Base log level from config
        verbose: Use DEBUG (wins over ``quiet``)
        quiet: Use WARNING
        log_file: Optional path for a rotating file sink that records DEBUG
        rotation: When to rotate the log file (e.g. "10 MB", "1 day")
        retention: How long to keep rotated logs
        serialize: Write the file sink as JSON lines

    Returns:
        The configured loguru logger
    """
    global _configured

    effective: LogLevel = "DEBUG" if verbose else "WARNING" if quiet else level

    logger.remove()
    logger.add(sys.stderr, level=effective, format=_console_format, colorize=True)

    if log_file:
        logger.add(
            log_file,
            level="DEBUG",
            format=_file_format,
            rotation=rotation,
            retention=retention,
            compression="gz",
            serialize=serialize,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name, quiet_level in _NOISY_LOGGERS.items():
        # SQL statements are only worth seeing when debugging
        if effective in ("TRACE", "DEBUG") and name == "sqlalchemy.engine":
            logging.getLogger(name).setLevel(logging.INFO)
        else:
            logging.getLogger(name).setLevel(quiet_level)

    _configured = True
    return logger


def get_logger(name: str) -> Logger:
    """Logger bound to a module name.

    Usage:
        logger = get_logger(__name__)
        logger.info("Cache hit for key: {}", key)
    """
    return logger.bind(name=name)


def bind_item(identity: Hashable) -> Logger:
    """Scheduler logger carrying the identity of the work item being processed."""
    return logger.bind(name="batch_pacer.scheduler", item=str(identity))


class LogContext:
    """Bind context to every log call made inside the block.

    Context follows the current asyncio task, so a scheduler run tagged with
    ``LogContext(run=3)`` tags every line its loop emits.

    Usage:
        with LogContext(run=run_id):
            await self._run(...)
    """

    def __init__(self, **context: Any) -> None:
        self._context = context
        self._manager: Any = None

    def __enter__(self) -> Logger:
        self._manager = logger.contextualize(**self._context)
        self._manager.__enter__()
        return logger

    def __exit__(self, *exc_info: Any) -> None:
        if self._manager is not None:
            self._manager.__exit__(*exc_info)
            self._manager = None


def is_configured() -> bool:
    return _configured


def reset_logging() -> None:
    """Remove all sinks (used between tests)."""
    global _configured
    logger.remove()
    _configured = False
