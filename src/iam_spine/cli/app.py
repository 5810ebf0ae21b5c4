"""
Root Typer application for the iam-spine CLI.

    iam-spine fetch [--concurrency N] [--save FILE] [--silent] ...
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from typer import Typer

from iam_spine.core.errors import SpineError
from iam_spine.core.logging import configure_logging, get_logger

app = Typer(
    name="iam-spine",
    help="iam-spine: resolve AWS managed IAM policy documents in bulk.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

logger = get_logger(__name__)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        from iam_spine import __version__

        try:
            v = pkg_version("iam-spine")
        except PackageNotFoundError:
            v = __version__
        typer.echo(f"iam-spine {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """iam-spine CLI: list managed policies and fetch their documents."""


# ── Commands ─────────────────────────────────────────────────────────────


@app.command("fetch")
def fetch(
    concurrency: int | None = typer.Option(
        None, "--concurrency", "-c", help="Maximum lookups in flight (default 10, minimum 1)."
    ),
    save: Path | None = typer.Option(
        None, "--save", "-s", help="Write the document to this file instead of stdout."
    ),
    silent: bool | None = typer.Option(
        None, "--silent/--verbose", help="Suppress status lines and the progress bar."
    ),
    scope: str | None = typer.Option(None, "--scope", help="list-policies scope: AWS, Local or All."),
    retries: int | None = typer.Option(
        None, "--retries", min=0, help="Retries per policy after the first failed lookup."
    ),
    classify_errors: bool | None = typer.Option(
        None,
        "--classify-errors/--retry-all-errors",
        help="Stop retrying errors known to be permanent.",
    ),
    aws_executable: str | None = typer.Option(None, "--aws", help="Path to the aws executable."),
    log_level: str | None = typer.Option(None, "--log-level", help="Structured log level."),
) -> None:
    """Fetch the default version document of every managed policy."""
    from iam_spine.cli.utils import build_pipeline, fail, load_settings, resolve_path

    settings = load_settings(
        concurrency=concurrency,
        output_path=resolve_path(save),
        silent=silent,
        scope=scope,
        max_retries=retries,
        classify_errors=classify_errors,
        aws_executable=aws_executable,
        log_level=log_level,
    )
    configure_logging(level=settings.log_level, json_format=settings.log_json)
    logger.debug("cli.fetch", **settings.model_dump(mode="json"))

    pipeline = build_pipeline(settings)
    try:
        asyncio.run(pipeline.run())
    except SpineError as e:
        logger.error("cli.fetch_failed", **e.to_dict())
        fail(e)
