"""
Shared pytest fixtures for iam-spine tests.

Collaborator fakes live in ``tests._support.fakes``; this module only wires
fixtures and keeps structlog state from leaking between tests.
"""

from __future__ import annotations

import pytest
import structlog

from iam_spine.execution.retry import JitteredBackoff
from tests._support.fakes import RecordingReporter


@pytest.fixture
def no_wait_strategy() -> JitteredBackoff:
    """Default retry budget without the real 2-7s waits."""
    return JitteredBackoff(max_retries=3, base_delay=0.0, jitter=0.0)


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture(autouse=True)
def _reset_structlog():
    """CLI tests configure structlog against a captured stream; undo it."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
