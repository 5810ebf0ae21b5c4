"""Retry strategies with jittered backoff for fallible async lookups.

A :class:`RetryContext` drives one operation through a
:class:`RetryStrategy`. Unlike a plain decorator it never raises: the final
outcome is always an ``Ok`` or ``Err`` so a batch can keep going when a
single item gives up.

Example:
    >>> from iam_spine.execution.retry import JitteredBackoff, RetryContext
    >>>
    >>> strategy = JitteredBackoff(max_retries=3)
    >>> ctx = RetryContext(strategy)
    >>> result = await ctx.run_async(fetch_version, arn, "v3")
    >>> ctx.attempts
    1
"""

from __future__ import annotations

import asyncio
import random
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, TypeVar

from iam_spine.core.logging import get_logger
from iam_spine.core.result import Err, Ok, Result

T = TypeVar("T")

logger = get_logger(__name__)

RetryCallback = Callable[[int, Exception, float], None]


class RetryStrategy(ABC):
    """Abstract base for retry strategies."""

    @abstractmethod
    def next_delay(self, retry: int) -> float:
        """Calculate delay before the next attempt.

        Args:
            retry: Zero-based retry number (0 = first retry)

        Returns:
            Delay in seconds before next attempt
        """
        ...

    @abstractmethod
    def should_retry(self, retry: int, error: Exception | None = None) -> bool:
        """Determine if another attempt should be made.

        Args:
            retry: Number of retries already spent
            error: The exception that caused the failure

        Returns:
            True if should retry, False otherwise
        """
        ...


@dataclass
class JitteredBackoff(RetryStrategy):
    """Fixed base delay plus uniform jitter.

    Delay = base_delay + uniform[0, jitter)

    With the defaults every wait falls in ``[2s, 7s)``, which spreads
    retries from many concurrent lookups instead of hammering the API in
    lock-step.

    Attributes:
        max_retries: Retries after the initial attempt (total attempts = max_retries + 1)
        base_delay: Minimum delay in seconds
        jitter: Width of the random part in seconds
        retryable: Optional classifier; None means every error is retried
    """

    max_retries: int = 3
    base_delay: float = 2.0
    jitter: float = 5.0
    retryable: Callable[[Exception], bool] | None = None

    def next_delay(self, retry: int) -> float:
        return self.base_delay + self.jitter * random.random()

    def should_retry(self, retry: int, error: Exception | None = None) -> bool:
        if retry >= self.max_retries:
            return False

        if error is not None and self.retryable is not None:
            return self.retryable(error)

        return True


@dataclass
class NoRetry(RetryStrategy):
    """No retry - fail after the first attempt."""

    def next_delay(self, retry: int) -> float:
        return 0.0

    def should_retry(self, retry: int, error: Exception | None = None) -> bool:
        return False


@dataclass
class RetryContext:
    """State of one operation being retried.

    Example:
        >>> ctx = RetryContext(JitteredBackoff(max_retries=3), on_retry=notify)
        >>> result = await ctx.run_async(lambda: call_api())
        >>> result.is_ok(), ctx.attempts
    """

    strategy: RetryStrategy
    on_retry: RetryCallback | None = None
    attempt: int = field(default=0, init=False)
    last_error: Exception | None = field(default=None, init=False)
    errors: list[tuple[int, Exception, datetime]] = field(default_factory=list, init=False)

    @property
    def attempts(self) -> int:
        """Number of attempts made."""
        return self.attempt

    async def run_async(
        self,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> Result[T]:
        """Execute an async function with retry logic.

        Returns:
            ``Ok(value)`` from the first successful call, or ``Err(last_error)``
            once the strategy declines another attempt.
        """
        while True:
            self.attempt += 1
            try:
                value = await func(*args, **kwargs)
            except Exception as e:
                self.last_error = e
                self.errors.append((self.attempt, e, datetime.now(UTC)))
                retries_spent = self.attempt - 1

                if not self.strategy.should_retry(retries_spent, e):
                    logger.debug(
                        "retry.exhausted",
                        attempts=self.attempt,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    return Err(e)

                delay = self.strategy.next_delay(retries_spent)
                logger.debug(
                    "retry.attempt_failed",
                    attempt=self.attempt,
                    delay_seconds=round(delay, 3),
                    error=str(e),
                )
                await asyncio.sleep(delay)

                if self.on_retry:
                    self.on_retry(self.attempt, e, delay)
                continue

            return Ok(value)


def retrying(
    func: Callable[[], Awaitable[T]],
    strategy: RetryStrategy | None = None,
    on_retry: RetryCallback | None = None,
) -> Callable[[], Awaitable[Result[T]]]:
    """Wrap a zero-argument async operation so it retries and never raises.

    Each call of the returned function starts from a fresh
    :class:`RetryContext`.

    Example:
        >>> fetch = retrying(lambda: lookup(arn, "v1"), JitteredBackoff(max_retries=3))
        >>> result = await fetch()
    """
    if strategy is None:
        strategy = JitteredBackoff()

    async def wrapper() -> Result[T]:
        ctx = RetryContext(strategy=strategy, on_retry=on_retry)
        return await ctx.run_async(func)

    return wrapper


__all__ = [
    "RetryStrategy",
    "JitteredBackoff",
    "NoRetry",
    "RetryContext",
    "RetryCallback",
    "retrying",
]
