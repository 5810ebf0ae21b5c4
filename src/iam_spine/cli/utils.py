"""
CLI utility helpers: consoles, settings overrides and pipeline wiring.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer
from rich.console import Console

from iam_spine.core.errors import SpineError, is_retryable
from iam_spine.core.settings import FetchSettings
from iam_spine.execution.retry import JitteredBackoff
from iam_spine.policies.aws_cli import AwsCli, AwsCliPolicySource, AwsCliVersionLookup
from iam_spine.policies.output import JsonFileOutput, StdoutOutput
from iam_spine.policies.pipeline import ResolutionPipeline
from iam_spine.policies.progress import CountingProgress, RichProgress
from iam_spine.policies.reporting import ConsoleReporter

# stdout carries the JSON document; everything human-readable goes to stderr.
err_console = Console(stderr=True)


def load_settings(**overrides: Any) -> FetchSettings:
    """Environment settings with non-``None`` CLI overrides applied on top."""
    return FetchSettings(**{k: v for k, v in overrides.items() if v is not None})


def build_pipeline(settings: FetchSettings, console: Console | None = None) -> ResolutionPipeline:
    """Wire the AWS CLI collaborators, sinks and retry strategy from settings."""
    console = console or err_console
    cli = AwsCli(executable=settings.aws_executable)
    strategy = JitteredBackoff(
        max_retries=settings.max_retries,
        base_delay=settings.backoff_base_seconds,
        jitter=settings.backoff_jitter_seconds,
        retryable=is_retryable if settings.classify_errors else None,
    )
    output = (
        JsonFileOutput(settings.output_path)
        if settings.output_path is not None
        else StdoutOutput()
    )
    progress = CountingProgress() if settings.silent else RichProgress(console)

    return ResolutionPipeline(
        AwsCliPolicySource(cli, scope=settings.scope),
        AwsCliVersionLookup(cli),
        output,
        concurrency=settings.concurrency,
        strategy=strategy,
        progress=progress,
        reporter=ConsoleReporter(console, silent=settings.silent),
    )


def fail(error: SpineError) -> None:
    """Print a fatal error and exit with status 1."""
    err_console.print(
        f"[bold red]Error[/bold red] ({error.category.value}): {error.message}",
        highlight=False,
    )
    raise typer.Exit(code=1)


def resolve_path(value: Path | None) -> Path | None:
    return value.expanduser() if value is not None else None
