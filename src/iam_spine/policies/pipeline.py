"""Resolution pipeline: list, resolve in parallel, aggregate, emit.

WHY
───
A full run touches every AWS managed policy (well over a thousand). Each
needs its own ``get-policy-version`` call, any of which may be throttled.
The pipeline fans those calls out through the
:class:`~iam_spine.execution.scheduler.ConcurrencyScheduler`, tolerates
individual failures, and always produces the same document for the same
inputs.

ARCHITECTURE
────────────
::

    PolicySource.list_policies()          fatal on failure
        │
        ▼ eligible_policies()             Arn + DefaultVersionId present
    PolicyResolver.task_for(policy) × N
        │
        ▼ ConcurrencyScheduler.run_all()  ≤ concurrency in flight
    ExecutionResult (index-aligned)
        │
        ▼ aggregate_policies()            Ok only, stable sort, last write wins
    OutputSink.emit(document)             fatal on failure
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from iam_spine.core.errors import ParseError
from iam_spine.core.logging import LogContext, get_logger
from iam_spine.core.result import Ok, Result
from iam_spine.execution.retry import JitteredBackoff, RetryStrategy
from iam_spine.execution.scheduler import ConcurrencyScheduler, ExecutionResult
from iam_spine.policies.models import Policy
from iam_spine.policies.progress import CountingProgress
from iam_spine.policies.protocols import (
    OutputSink,
    PolicySource,
    ProgressSink,
    StatusReporter,
    VersionLookup,
)
from iam_spine.policies.reporting import NullReporter
from iam_spine.policies.resolver import PolicyResolver

logger = get_logger(__name__)


def eligible_policies(policies: Iterable[Policy]) -> list[Policy]:
    """Policies that carry both an ``Arn`` and a ``DefaultVersionId``."""
    return [p for p in policies if p.is_eligible]


def aggregate_policies(outcomes: Iterable[Result[Policy]]) -> dict[str, dict[str, Any]]:
    """Build the output document from resolution outcomes.

    Failed outcomes are dropped. Successful policies are stable-sorted by
    display key and inserted in that order, so when two policies share a
    name the later one overwrites the earlier.
    """
    resolved = [outcome.value for outcome in outcomes if isinstance(outcome, Ok)]
    resolved.sort(key=lambda p: p.display_key)

    document: dict[str, dict[str, Any]] = {}
    for policy in resolved:
        key = policy.display_key
        if key in document:
            # TODO: decide whether duplicate names should be merged or reported as failures
            logger.warning("pipeline.duplicate_key", policy=key, arn=policy.arn)
        document[key] = policy.to_output()
    return document


@dataclass
class PipelineReport:
    """What a pipeline run produced.

    ``failures`` maps each failed policy ARN to ``"lookup"`` or ``"parse"``.
    """

    total: int
    document: dict[str, dict[str, Any]]
    execution: ExecutionResult[Policy]
    destination: str | None = None
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> int:
        return self.execution.succeeded

    @property
    def failed(self) -> int:
        return self.execution.failed

    @property
    def summary(self) -> str:
        return f"{self.succeeded} out of {self.total} policies were successfully resolved"


class ResolutionPipeline:
    """Top-level orchestration of one resolution run.

    Args:
        source: Lists candidate policies.
        lookup: Fetches individual policy versions.
        output: Receives the aggregate document; ``None`` skips emission.
        concurrency: Maximum lookups in flight (clamped to >= 1).
        strategy: Retry strategy for lookups.
        progress: Progress sink.
        reporter: Status line sink.
    """

    def __init__(
        self,
        source: PolicySource,
        lookup: VersionLookup,
        output: OutputSink | None = None,
        *,
        concurrency: int = 10,
        strategy: RetryStrategy | None = None,
        progress: ProgressSink | None = None,
        reporter: StatusReporter | None = None,
    ) -> None:
        self.source = source
        self.lookup = lookup
        self.output = output
        self.concurrency = max(1, int(concurrency))
        self.strategy = strategy or JitteredBackoff()
        self.progress = progress or CountingProgress()
        self.reporter = reporter or NullReporter()

    async def run(self) -> PipelineReport:
        self.reporter.info("Listing all AWS managed policies...")
        policies = eligible_policies(await self.source.list_policies())
        total = len(policies)

        resolver = PolicyResolver(
            self.lookup,
            strategy=self.strategy,
            progress=self.progress,
            reporter=self.reporter,
        )
        scheduler: ConcurrencyScheduler[Policy] = ConcurrencyScheduler(
            max_concurrency=self.concurrency
        )
        for policy in policies:
            scheduler.add(resolver.task_for(policy), name=policy.display_key)

        async with LogContext(batch_id=scheduler.batch_id):
            self.reporter.info(
                f"Found {total} AWS managed policies. Extracting their details..."
            )
            self.progress.start(total)
            try:
                execution = await scheduler.run_all()
            finally:
                self.progress.stop()

            document = aggregate_policies(execution.outcomes)
            report = PipelineReport(
                total=total,
                document=document,
                execution=execution,
                failures={
                    policies[item.index].arn or item.name: _failure_kind(item.outcome.error)
                    for item in execution.items
                    if item.outcome is not None and item.outcome.is_err()
                },
            )
            self.reporter.success(report.summary)
            logger.info(
                "pipeline.resolved",
                total=total,
                succeeded=report.succeeded,
                failed=report.failed,
            )

            if self.output is not None:
                report.destination = self.output.emit(document)
                if report.destination is not None:
                    self.reporter.success(
                        f"{report.succeeded} policies successfully saved to {report.destination}"
                    )

        return report


def _failure_kind(error: Exception) -> str:
    if isinstance(error, ParseError):
        return "parse"
    return "lookup"


__all__ = [
    "PipelineReport",
    "ResolutionPipeline",
    "aggregate_policies",
    "eligible_policies",
]
