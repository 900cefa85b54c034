"""Progress bars for long-running seeding loops."""
from __future__ import annotations

from typing import Iterable, Iterator, Optional, TypeVar

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TextColumn,
    TimeRemainingColumn,
)

T = TypeVar("T")


class ProgressManager:
    """Draw transient rich progress bars on the logging console.

    Bars only render on an interactive terminal, so test runs, CI logs and
    uvicorn workers see plain log lines.
    """

    def __init__(self) -> None:
        self._console = Console(stderr=True)

    def use_console(self, console: Console) -> None:
        self._console = console

    def reset_console(self) -> None:
        self._console = Console(stderr=True)

    def track(
        self,
        iterable: Iterable[T],
        *,
        description: str,
        total: Optional[int] = None,
    ) -> Iterator[T]:
        if total is None and hasattr(iterable, "__len__"):
            total = len(iterable)  # type: ignore[arg-type]

        progress = Progress(
            TextColumn("{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeRemainingColumn(),
            console=self._console,
            transient=True,
            disable=not self._console.is_terminal,
        )
        with progress:
            task_id = progress.add_task(description, total=total)
            for item in iterable:
                yield item
                progress.advance(task_id)


progress_manager = ProgressManager()
