"""Per-policy resolution: lookup with retry, parse, attach, report progress.

Each eligible policy becomes one scheduler task whose body is
:meth:`PolicyResolver.resolve`:

::

    get_policy_version(arn, default_version_id)   ← retried (JitteredBackoff)
        │ Err  → "Failed to get policy X even after N attempts" → Err(LookupFailedError)
        ▼ Ok(payload)
    parse_policy_version(payload)                  ← never retried
        │ ParseError → "Failed to parse policy X"  → Err(ParseError)
        ▼
    policy.attach_version(...)                     → Ok(policy)

    progress.advance() runs on every path.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from iam_spine.core.errors import LookupFailedError, ParseError
from iam_spine.core.logging import get_logger
from iam_spine.core.result import Err, Ok, Result
from iam_spine.execution.retry import JitteredBackoff, RetryContext, RetryStrategy
from iam_spine.policies.models import Policy, parse_policy_version
from iam_spine.policies.protocols import ProgressSink, StatusReporter, VersionLookup
from iam_spine.policies.progress import CountingProgress
from iam_spine.policies.reporting import NullReporter

logger = get_logger(__name__)


class PolicyResolver:
    """Resolves one policy at a time; share one instance across a batch.

    Args:
        lookup: Version lookup collaborator.
        strategy: Retry strategy for the lookup (default: 3 retries, 2-7s waits).
        progress: Sink advanced once per finished policy.
        reporter: Sink for human-readable status lines.
    """

    def __init__(
        self,
        lookup: VersionLookup,
        strategy: RetryStrategy | None = None,
        progress: ProgressSink | None = None,
        reporter: StatusReporter | None = None,
    ) -> None:
        self.lookup = lookup
        self.strategy = strategy or JitteredBackoff()
        self.progress = progress or CountingProgress()
        self.reporter = reporter or NullReporter()

    def task_for(self, policy: Policy) -> Callable[[], Awaitable[Result[Policy]]]:
        """Deferred task for the scheduler."""

        async def task() -> Result[Policy]:
            return await self.resolve(policy)

        return task

    async def resolve(self, policy: Policy) -> Result[Policy]:
        try:
            return await self._resolve(policy)
        finally:
            self.progress.advance()

    async def _resolve(self, policy: Policy) -> Result[Policy]:
        arn = policy.arn or ""
        version_id = policy.default_version_id or ""

        def _on_retry(attempt: int, error: Exception, delay: float) -> None:
            self.reporter.error(str(error))
            self.reporter.info(f"Retrying ({attempt})...")

        ctx = RetryContext(strategy=self.strategy, on_retry=_on_retry)
        fetched = await ctx.run_async(self.lookup.get_policy_version, arn, version_id)

        match fetched:
            case Err(error):
                retries = max(ctx.attempts - 1, 0)
                self.reporter.error(str(error))
                self.reporter.error(
                    f"Failed to get policy {policy.display_key} even after "
                    f"{retries} attempts. Skipping it."
                )
                logger.warning(
                    "resolver.lookup_failed",
                    policy=policy.display_key,
                    arn=arn,
                    attempts=ctx.attempts,
                    error=str(error),
                )
                return Err(
                    LookupFailedError(
                        f"Failed to get policy {policy.display_key} after {ctx.attempts} attempts",
                        attempts=ctx.attempts,
                        cause=error,
                    ).with_context(
                        policy_name=policy.policy_name, arn=arn, version_id=version_id
                    )
                )
            case Ok(payload):
                return self._attach(policy, payload)

    def _attach(self, policy: Policy, payload: str) -> Result[Policy]:
        arn = policy.arn or ""
        try:
            version = parse_policy_version(payload)
        except ParseError as e:
            self.reporter.error(f"Failed to parse policy {policy.display_key} to JSON.")
            self.reporter.error(str(payload))
            logger.warning(
                "resolver.parse_failed",
                policy=policy.display_key,
                arn=arn,
                payload_bytes=len(payload),
            )
            return Err(
                e.with_context(
                    policy_name=policy.policy_name,
                    arn=arn,
                    version_id=policy.default_version_id,
                )
            )

        policy.attach_version(version)
        logger.debug("resolver.resolved", policy=policy.display_key, version_id=version.version_id)
        return Ok(policy)


__all__ = ["PolicyResolver"]
