"""Progress sinks for policy resolution.

``RichProgress`` renders a live bar on stderr; ``CountingProgress`` only
counts, which is what silent runs and tests use.
"""

from __future__ import annotations

import threading

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeRemainingColumn,
)


class CountingProgress:
    """In-memory progress counter, safe to advance from several threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.total: int | None = None
        self.current = 0
        self.started = False
        self.stopped = False

    def start(self, total: int) -> None:
        with self._lock:
            self.total = total
            self.current = 0
            self.started = True
            self.stopped = False

    def advance(self) -> None:
        with self._lock:
            self.current += 1

    def stop(self) -> None:
        with self._lock:
            self.stopped = True


class RichProgress:
    """Live progress bar: ``progress [████░░░░] 45% 1234/2750 0:01:12``."""

    def __init__(self, console: Console | None = None, description: str = "progress") -> None:
        self._progress = Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            MofNCompleteColumn(),
            TimeRemainingColumn(),
            console=console or Console(stderr=True),
            transient=False,
        )
        self._description = description
        self._task: TaskID | None = None

    def start(self, total: int) -> None:
        self._task = self._progress.add_task(self._description, total=total, completed=0)
        self._progress.start()

    def advance(self) -> None:
        if self._task is not None:
            self._progress.advance(self._task)

    def stop(self) -> None:
        self._progress.stop()

    @property
    def completed(self) -> float:
        if self._task is None:
            return 0
        return self._progress.tasks[0].completed


__all__ = ["CountingProgress", "RichProgress"]
