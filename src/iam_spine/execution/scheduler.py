"""Concurrency scheduler: bounded asyncio fan-out with index-aligned results.

WHY
───
Resolving thousands of policy versions one by one takes hours; firing them
all at once gets the account throttled. The scheduler runs a fixed list of
independent tasks with at most ``max_concurrency`` in flight and hands the
outcomes back in **input order**, whatever order they finished in.

ARCHITECTURE
────────────
::

    ConcurrencyScheduler
      ├── .add(task, name)     ─ enqueue a zero-arg coroutine factory
      ├── .run_all()           ─ asyncio.gather + FIFO semaphore
      └── ExecutionResult      ─ outcomes[i] ↔ task i, succeeded / failed

    admission : index order (tasks created in order, semaphore wakes FIFO)
    completion: unconstrained
    collection: by index, never by completion

The scheduler performs no retry and no error interpretation. A task is
expected to return ``Ok``/``Err``; a task that raises anyway is recorded as
``Err(exception)`` so every index still gets exactly one outcome.

Example::

    scheduler = ConcurrencyScheduler(max_concurrency=10)
    for policy in policies:
        scheduler.add(partial(resolver.resolve, policy), name=policy.policy_name)
    result = await scheduler.run_all()
    print(result.succeeded, result.failed)
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from iam_spine.core.logging import get_logger
from iam_spine.core.result import Err, Ok, Result

T = TypeVar("T")

Task = Callable[[], Awaitable[Result[T]]]

logger = get_logger(__name__)


@dataclass
class ScheduledTask(Generic[T]):
    """A single task and its execution record."""

    index: int
    name: str
    task: Task[T]
    status: str = "pending"
    outcome: Result[T] | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def duration_seconds(self) -> float | None:
        """Wall-clock duration if both timestamps are set."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None


@dataclass
class ExecutionResult(Generic[T]):
    """Outcome of a scheduler run, index-aligned with the input task list."""

    batch_id: str
    items: list[ScheduledTask[T]]
    started_at: datetime
    completed_at: datetime
    max_concurrency: int
    peak_in_flight: int = 0

    @property
    def outcomes(self) -> list[Result[T]]:
        """One outcome per task, in input order."""
        return [item.outcome for item in self.items]  # type: ignore[misc]

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index: int) -> Result[T]:
        return self.items[index].outcome  # type: ignore[return-value]

    @property
    def succeeded(self) -> int:
        return sum(1 for i in self.items if i.status == "completed")

    @property
    def failed(self) -> int:
        return sum(1 for i in self.items if i.status == "failed")

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def duration_seconds(self) -> float:
        """Wall-clock duration of the entire run."""
        return (self.completed_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Serialise for logging."""
        return {
            "batch_id": self.batch_id,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "max_concurrency": self.max_concurrency,
            "peak_in_flight": self.peak_in_flight,
            "duration_seconds": self.duration_seconds,
            "items": [
                {
                    "index": i.index,
                    "name": i.name,
                    "status": i.status,
                    "duration_seconds": i.duration_seconds,
                }
                for i in self.items
            ],
        }


class ConcurrencyScheduler(Generic[T]):
    """Run independent tasks with at most ``max_concurrency`` in flight.

    Parameters
    ----------
    max_concurrency : int
        Maximum simultaneous tasks (default 10). Values below 1 are clamped
        to 1, which runs the list serially.
    """

    def __init__(self, max_concurrency: int = 10) -> None:
        self._max_concurrency = max(1, int(max_concurrency))
        self._items: list[ScheduledTask[T]] = []
        self._batch_id = str(uuid.uuid4())

    # ── Building ─────────────────────────────────────────────────────

    def add(self, task: Task[T], name: str | None = None) -> ConcurrencyScheduler[T]:
        """Append a task; its index is its position in the list.

        Returns:
            ``self`` for fluent chaining.
        """
        index = len(self._items)
        self._items.append(
            ScheduledTask(index=index, name=name or f"task-{index}", task=task)
        )
        return self

    def extend(self, tasks: Iterable[Task[T]]) -> ConcurrencyScheduler[T]:
        for task in tasks:
            self.add(task)
        return self

    # ── Execution ────────────────────────────────────────────────────

    async def run_all(self) -> ExecutionResult[T]:
        """Execute every task once, bounded by ``max_concurrency``.

        Returns:
            :class:`ExecutionResult` whose ``outcomes[i]`` belongs to task ``i``.
        """
        sem = asyncio.Semaphore(self._max_concurrency)
        started_at = datetime.now(UTC)
        in_flight = 0
        peak_in_flight = 0

        logger.info(
            "scheduler.start",
            batch_id=self._batch_id,
            items=len(self._items),
            max_concurrency=self._max_concurrency,
        )

        async def _run_one(item: ScheduledTask[T]) -> None:
            nonlocal in_flight, peak_in_flight
            async with sem:
                in_flight += 1
                peak_in_flight = max(peak_in_flight, in_flight)
                item.started_at = datetime.now(UTC)
                item.status = "running"
                try:
                    outcome = await item.task()
                except Exception as e:
                    logger.warning(
                        "scheduler.task_raised",
                        batch_id=self._batch_id,
                        index=item.index,
                        name=item.name,
                        error=str(e),
                    )
                    outcome = Err(e)
                finally:
                    in_flight -= 1

                if not isinstance(outcome, (Ok, Err)):
                    outcome = Ok(outcome)
                item.outcome = outcome
                item.status = "completed" if outcome.is_ok() else "failed"
                item.completed_at = datetime.now(UTC)

        if self._items:
            await asyncio.gather(*[_run_one(item) for item in self._items])

        result = ExecutionResult(
            batch_id=self._batch_id,
            items=list(self._items),
            started_at=started_at,
            completed_at=datetime.now(UTC),
            max_concurrency=self._max_concurrency,
            peak_in_flight=peak_in_flight,
        )

        logger.info(
            "scheduler.complete",
            batch_id=self._batch_id,
            succeeded=result.succeeded,
            failed=result.failed,
            peak_in_flight=peak_in_flight,
            duration_seconds=result.duration_seconds,
        )

        return result

    # ── Inspection ───────────────────────────────────────────────────

    @property
    def task_count(self) -> int:
        """Number of tasks queued."""
        return len(self._items)

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    @property
    def batch_id(self) -> str:
        return self._batch_id


async def run_bounded(tasks: Iterable[Task[T]], limit: int) -> list[Result[T]]:
    """Run ``tasks`` with at most ``limit`` in flight; outcomes in input order."""
    scheduler: ConcurrencyScheduler[T] = ConcurrencyScheduler(max_concurrency=limit)
    scheduler.extend(tasks)
    result = await scheduler.run_all()
    return result.outcomes


__all__ = [
    "Task",
    "ScheduledTask",
    "ExecutionResult",
    "ConcurrencyScheduler",
    "run_bounded",
]
