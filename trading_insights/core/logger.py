"""Shortcut imports for the shared logging utilities."""
from __future__ import annotations

from .log import (
    configure_logging,
    get_logger,
    init_logging,
    log_context,
    progress_manager,
    shutdown_logging,
    timeit,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "init_logging",
    "log_context",
    "progress_manager",
    "shutdown_logging",
    "timeit",
]
