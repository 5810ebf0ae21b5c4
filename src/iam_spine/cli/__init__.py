"""iam-spine command-line interface."""

from iam_spine.cli.app import app

__all__ = ["app"]
