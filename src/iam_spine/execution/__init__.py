"""iam-spine execution: bounded concurrency and retry.

::

    ConcurrencyScheduler (scheduler.py)
      ├── at most N tasks in flight (FIFO semaphore)
      └── ExecutionResult, index-aligned with the input tasks
            │
            ▼  each task usually wraps
    RetryContext (retry.py)
      ├── JitteredBackoff  ─ base + uniform jitter, bounded retries
      └── NoRetry          ─ single attempt
"""

from iam_spine.execution.retry import (
    JitteredBackoff,
    NoRetry,
    RetryContext,
    RetryStrategy,
    retrying,
)
from iam_spine.execution.scheduler import (
    ConcurrencyScheduler,
    ExecutionResult,
    ScheduledTask,
    run_bounded,
)

__all__ = [
    "JitteredBackoff",
    "NoRetry",
    "RetryContext",
    "RetryStrategy",
    "retrying",
    "ConcurrencyScheduler",
    "ExecutionResult",
    "ScheduledTask",
    "run_bounded",
]
