"""
Collaborator protocols for policy resolution.

The resolution engine depends on shape, not implementation: anything with the
right async methods can be a record source or a version lookup, which is how
the tests drive the pipeline without an AWS account.

Architecture:
    ::

        protocols.py
        ├── PolicySource     — list every candidate policy (fatal on failure)
        ├── VersionLookup    — fetch one policy version payload (retried)
        ├── ProgressSink     — start / advance / stop
        ├── StatusReporter   — human-readable info / success / error lines
        └── OutputSink       — persist or print the aggregate document
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from iam_spine.policies.models import Policy


@runtime_checkable
class PolicySource(Protocol):
    """Lists candidate policies.

    Must raise (``SourceUnavailableError`` / ``ParseError``) instead of
    returning a partial list; the pipeline does not retry it.
    """

    async def list_policies(self) -> list[Policy]: ...


@runtime_checkable
class VersionLookup(Protocol):
    """Fetches the raw payload for one policy version."""

    async def get_policy_version(self, arn: str, version_id: str) -> str: ...


@runtime_checkable
class ProgressSink(Protocol):
    """Progress feedback; ``advance`` is called once per finished task."""

    def start(self, total: int) -> None: ...

    def advance(self) -> None: ...

    def stop(self) -> None: ...


@runtime_checkable
class StatusReporter(Protocol):
    """Human-readable status lines (retries, failures, summary)."""

    def info(self, message: str) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


@runtime_checkable
class OutputSink(Protocol):
    """Destination of the aggregate document."""

    def emit(self, document: dict[str, Any]) -> str | None:
        """Write the document; return a human-readable destination, if any."""
        ...


__all__ = [
    "PolicySource",
    "VersionLookup",
    "ProgressSink",
    "StatusReporter",
    "OutputSink",
]
