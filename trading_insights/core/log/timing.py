"""Duration logging for seeding and graph round trips."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from time import monotonic
from typing import Iterator, Optional


class Stopwatch:
    """Counts processed items while a ``timeit`` block runs."""

    def __init__(self, total: Optional[int] = None) -> None:
        self.started = monotonic()
        self.total = total
        self.count = 0

    def add(self, amount: int = 1) -> None:
        self.count += amount

    @property
    def elapsed(self) -> float:
        return monotonic() - self.started

    @property
    def items(self) -> Optional[int]:
        if self.total is not None:
            return self.total
        return self.count or None


@contextmanager
def timeit(
    label: str,
    *,
    logger: Optional[logging.Logger] = None,
    level: int = logging.INFO,
    unit: str = "items",
    total: Optional[int] = None,
) -> Iterator[Stopwatch]:
    """Log how long the block took, with throughput when an item count is known.

    A block that raises is logged at ERROR and the exception propagates.
    """

    log = logger or logging.getLogger("trading_insights.timing")
    watch = Stopwatch(total)
    try:
        yield watch
    except Exception:
        log.error("%s failed after %.2fs", label, watch.elapsed)
        raise

    elapsed = watch.elapsed
    items = watch.items
    if items is None:
        log.log(level, "%s completed in %.3fs", label, elapsed)
    elif elapsed > 0:
        log.log(level, "%s completed in %.3fs (%d %s, %.0f %s/s)", label, elapsed, items, unit, items / elapsed, unit)
    else:
        log.log(level, "%s completed in %.3fs (%d %s)", label, elapsed, items, unit)
