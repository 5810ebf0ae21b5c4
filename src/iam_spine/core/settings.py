"""Fetch settings for iam-spine.

Configuration is environment-driven (``IAM_SPINE_*`` variables and an
optional ``.env`` file) and validated by pydantic at startup. Command-line
options override whatever the environment provides.

Examples:
    >>> from iam_spine.core.settings import FetchSettings
    >>> FetchSettings(concurrency=0).concurrency
    1
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FetchSettings(BaseSettings):
    """Settings for one resolution run.

    Fields
    ──────
    concurrency            : Maximum lookups in flight (clamped to >= 1)
    max_retries            : Retries after the first failed lookup
    backoff_base_seconds   : Fixed part of the delay between attempts
    backoff_jitter_seconds : Upper bound of the random part of that delay
    scope                  : ``--scope`` passed to ``aws iam list-policies``
    aws_executable         : Name or path of the AWS CLI binary
    silent                 : Suppress status lines and the progress bar
    output_path            : Write the document here instead of stdout
    classify_errors        : Stop retrying errors known to be permanent
    log_level / log_json   : Structlog configuration
    """

    model_config = SettingsConfigDict(
        env_prefix="IAM_SPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Execution ────────────────────────────────────────────────
    concurrency: int = 10
    max_retries: int = Field(default=3, ge=0)
    backoff_base_seconds: float = Field(default=2.0, ge=0)
    backoff_jitter_seconds: float = Field(default=5.0, ge=0)
    classify_errors: bool = False

    # ── Source ───────────────────────────────────────────────────
    scope: str = "AWS"
    aws_executable: str = "aws"

    # ── Output ───────────────────────────────────────────────────
    silent: bool = False
    output_path: Path | None = None

    # ── Observability ────────────────────────────────────────────
    log_level: str = "WARNING"
    log_json: bool | None = None

    @field_validator("concurrency", mode="before")
    @classmethod
    def _clamp_concurrency(cls, value: object) -> object:
        if value is None:
            return 10
        try:
            number = int(value)  # type: ignore[call-overload]
        except (TypeError, ValueError):
            return value
        return max(1, number)

    @field_validator("output_path", mode="after")
    @classmethod
    def _resolve_output_path(cls, value: Path | None) -> Path | None:
        return value.expanduser().resolve() if value is not None else None
