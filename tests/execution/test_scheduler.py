"""Tests for ConcurrencyScheduler: bounded fan-out with index-aligned results."""

from __future__ import annotations

import asyncio
import random
import uuid

import pytest

from iam_spine.core.result import Err, Ok
from iam_spine.execution.scheduler import (
    ConcurrencyScheduler,
    ExecutionResult,
    ScheduledTask,
    run_bounded,
)


# ── Helpers ──────────────────────────────────────────────────────────────


def _value_task(value):
    async def task():
        return Ok(value)

    return task


def _sleepy_task(value, delay):
    async def task():
        await asyncio.sleep(delay)
        return Ok(value)

    return task


class _InFlightTracker:
    """Instrumented tasks recording how many run at once."""

    def __init__(self) -> None:
        self.active = 0
        self.max_active = 0
        self.started: list[int] = []

    def task(self, index: int, delay: float = 0.01):
        async def task():
            self.started.append(index)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            await asyncio.sleep(delay)
            self.active -= 1
            return Ok(index)

        return task


# ── ScheduledTask / ExecutionResult ──────────────────────────────────────


class TestScheduledTask:
    def test_defaults(self):
        item = ScheduledTask(index=0, name="x", task=_value_task(1))
        assert item.status == "pending"
        assert item.outcome is None
        assert item.duration_seconds is None


class TestConstruction:
    def test_add_returns_self(self):
        scheduler = ConcurrencyScheduler(max_concurrency=5)
        assert scheduler.add(_value_task(1)) is scheduler

    def test_task_count(self):
        scheduler = ConcurrencyScheduler()
        scheduler.add(_value_task(1)).add(_value_task(2))
        assert scheduler.task_count == 2

    def test_default_names_use_index(self):
        scheduler = ConcurrencyScheduler()
        scheduler.extend([_value_task(1), _value_task(2)])
        assert [i.name for i in scheduler._items] == ["task-0", "task-1"]

    @pytest.mark.parametrize("limit", [0, -1, -100])
    def test_non_positive_limit_clamped(self, limit):
        assert ConcurrencyScheduler(max_concurrency=limit).max_concurrency == 1

    def test_batch_id_is_uuid(self):
        uuid.UUID(ConcurrencyScheduler().batch_id)


# ── Execution ────────────────────────────────────────────────────────────


class TestRunAll:
    @pytest.mark.asyncio
    async def test_empty_list(self):
        result = await ConcurrencyScheduler(max_concurrency=3).run_all()
        assert isinstance(result, ExecutionResult)
        assert len(result) == 0
        assert result.outcomes == []
        assert result.succeeded == 0
        assert result.failed == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("n", [1, 7, 40])
    @pytest.mark.parametrize("limit", [1, 3, 10, 100])
    async def test_results_index_aligned(self, n, limit):
        scheduler = ConcurrencyScheduler(max_concurrency=limit)
        rng = random.Random(n * 31 + limit)
        for i in range(n):
            scheduler.add(_sleepy_task(i, rng.uniform(0, 0.005)))
        result = await scheduler.run_all()
        assert len(result) == n
        assert [o.unwrap() for o in result.outcomes] == list(range(n))
        assert result.succeeded == n

    @pytest.mark.asyncio
    async def test_completion_order_does_not_leak(self):
        scheduler = ConcurrencyScheduler(max_concurrency=3)
        scheduler.add(_sleepy_task("slow", 0.05))
        scheduler.add(_sleepy_task("medium", 0.02))
        scheduler.add(_sleepy_task("fast", 0.0))
        result = await scheduler.run_all()
        assert [o.unwrap() for o in result.outcomes] == ["slow", "medium", "fast"]
        assert result[0] == Ok("slow")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [1, 2, 5])
    async def test_concurrency_bounded(self, limit):
        tracker = _InFlightTracker()
        scheduler = ConcurrencyScheduler(max_concurrency=limit)
        for i in range(12):
            scheduler.add(tracker.task(i))
        result = await scheduler.run_all()
        assert tracker.max_active <= limit
        assert tracker.max_active == limit
        assert result.peak_in_flight == limit

    @pytest.mark.asyncio
    async def test_admission_in_index_order(self):
        tracker = _InFlightTracker()
        scheduler = ConcurrencyScheduler(max_concurrency=2)
        for i in range(8):
            scheduler.add(tracker.task(i, delay=0.001 * (8 - i)))
        await scheduler.run_all()
        assert tracker.started == list(range(8))

    @pytest.mark.asyncio
    async def test_clamped_limit_runs_serially(self):
        tracker = _InFlightTracker()
        scheduler = ConcurrencyScheduler(max_concurrency=0)
        for i in range(5):
            scheduler.add(tracker.task(i))
        await scheduler.run_all()
        assert tracker.max_active == 1

    @pytest.mark.asyncio
    async def test_each_task_runs_exactly_once(self):
        counts = [0] * 20

        def make(i):
            async def task():
                counts[i] += 1
                await asyncio.sleep(0)
                return Ok(i)

            return task

        scheduler = ConcurrencyScheduler(max_concurrency=4)
        scheduler.extend(make(i) for i in range(20))
        await scheduler.run_all()
        assert counts == [1] * 20

    @pytest.mark.asyncio
    async def test_failures_collected_not_interpreted(self):
        error = ValueError("lookup failed")

        async def failing():
            return Err(error)

        scheduler = ConcurrencyScheduler(max_concurrency=2)
        scheduler.add(_value_task("a")).add(failing).add(_value_task("c"))
        result = await scheduler.run_all()
        assert result.outcomes[1] == Err(error)
        assert result.succeeded == 2
        assert result.failed == 1
        assert [i.status for i in result.items] == ["completed", "failed", "completed"]

    @pytest.mark.asyncio
    async def test_raising_task_recorded_as_err(self):
        async def boom():
            raise RuntimeError("unexpected")

        scheduler = ConcurrencyScheduler(max_concurrency=2)
        scheduler.add(boom).add(_value_task("ok"))
        result = await scheduler.run_all()
        assert len(result) == 2
        assert isinstance(result[0], Err)
        assert str(result[0].error) == "unexpected"
        assert result[1].unwrap() == "ok"

    @pytest.mark.asyncio
    async def test_timestamps_and_to_dict(self):
        scheduler = ConcurrencyScheduler()
        scheduler.add(_value_task(1), name="first")
        result = await scheduler.run_all()
        assert result.duration_seconds >= 0
        assert result.items[0].duration_seconds is not None
        data = result.to_dict()
        assert data["total"] == 1
        assert data["items"][0]["name"] == "first"
        assert data["max_concurrency"] == 10


class TestRunBounded:
    @pytest.mark.asyncio
    async def test_returns_outcomes_in_order(self):
        outcomes = await run_bounded(
            [_sleepy_task(i, 0.001 * (5 - i)) for i in range(5)], limit=2
        )
        assert [o.unwrap() for o in outcomes] == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_same_result_for_any_limit(self):
        serial = await run_bounded([_value_task(i) for i in range(10)], limit=-5)
        parallel = await run_bounded([_value_task(i) for i in range(10)], limit=10)
        assert serial == parallel
