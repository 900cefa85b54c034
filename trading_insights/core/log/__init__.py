"""Process-wide logging: rich console output, optional daily files, bound context.

Records go through a ``QueueHandler`` so request handlers and the seeding loop
never block on console or file I/O; a ``QueueListener`` fans them out to the
rich console handler and, when ``LOG_DIR`` is set, a midnight-rotated file.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from queue import SimpleQueue
from threading import RLock
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from .context import ContextFilter, log_context
from .progress import progress_manager
from .timing import timeit

__all__ = [
    "configure_logging",
    "get_logger",
    "init_logging",
    "log_context",
    "progress_manager",
    "shutdown_logging",
    "timeit",
]

ROOT_LOGGER_NAME = "trading_insights"
LOG_FILE_NAME = "trading_insights.log"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(context)s%(message)s"
FILE_BACKUP_DAYS = 14

# Driver and HTTP client chatter stays at WARNING unless we log more than that.
QUIET_LOGGERS = ("neo4j", "httpx", "httpcore", "sqlalchemy.engine", "uvicorn.access")


@dataclass(frozen=True)
class _Options:
    level: int = logging.INFO
    log_dir: Optional[Path] = None
    console: bool = True


_lock = RLock()
_active: Optional[_Options] = None
_listener: Optional[QueueListener] = None
_queue_handler: Optional[QueueHandler] = None
_context_filter = ContextFilter()


def _level(value: str | int) -> int:
    if isinstance(value, int):
        return value
    resolved = logging.getLevelName(str(value).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _console_handler(level: int) -> logging.Handler:
    console = Console(stderr=True)
    progress_manager.use_console(console)
    handler = RichHandler(
        console=console,
        rich_tracebacks=True,
        show_path=False,
        markup=False,
        log_time_format="%H:%M:%S",
    )
    handler.setFormatter(logging.Formatter("%(context)s%(message)s"))
    handler.setLevel(level)
    return handler


def _file_handler(directory: Path, level: int) -> logging.Handler:
    directory.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        directory / LOG_FILE_NAME,
        when="midnight",
        backupCount=FILE_BACKUP_DAYS,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler.setLevel(level)
    return handler


def _apply(options: _Options) -> None:
    global _active, _listener, _queue_handler

    _stop_locked()
    root = logging.getLogger()

    targets: list[logging.Handler] = []
    if options.console:
        targets.append(_console_handler(options.level))
    if options.log_dir is not None:
        targets.append(_file_handler(options.log_dir, options.level))

    queue_handler = QueueHandler(SimpleQueue())
    queue_handler.setLevel(options.level)
    queue_handler.addFilter(_context_filter)
    root.addHandler(queue_handler)
    _queue_handler = queue_handler
    root.setLevel(logging.NOTSET)

    listener = QueueListener(queue_handler.queue, *targets, respect_handler_level=True)
    listener.start()
    _listener = listener

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(options.level, logging.WARNING))
    _active = options


def init_logging(
    *, level: str | int = "INFO", log_dir: Optional[Path | str] = None, console: bool = True
) -> None:
    """Install the handlers; calling again with the same options is a no-op."""

    options = _Options(
        level=_level(level),
        log_dir=Path(log_dir) if log_dir else None,
        console=console,
    )
    with _lock:
        if options != _active:
            _apply(options)


def configure_logging(settings) -> None:
    """Install handlers from a :class:`~trading_insights.core.config.LoggingSettings`."""

    init_logging(level=settings.level, log_dir=settings.log_dir)


def _stop_locked() -> None:
    global _active, _listener, _queue_handler
    if _queue_handler is not None:
        logging.getLogger().removeHandler(_queue_handler)
        _queue_handler = None
    if _listener is not None:
        _listener.stop()
        for handler in _listener.handlers:
            handler.close()
        _listener = None
    _active = None


def shutdown_logging() -> None:
    """Flush queued records and detach the handlers."""

    with _lock:
        _stop_locked()
        progress_manager.reset_console()


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger, installing the default handlers on first use."""

    with _lock:
        if _active is None:
            init_logging()
    return logging.getLogger(name or ROOT_LOGGER_NAME)
