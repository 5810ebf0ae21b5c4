"""
Structured error types for iam-spine.

Every failure the fetcher can produce is a :class:`SpineError` carrying a
category, a retry hint, structured context and an optional chained cause.
The resolution engine never inspects messages; it only asks
:func:`is_retryable` when error classification is switched on.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                        SpineError                            │
        │        (category, retryable, context, cause)                 │
        ├─────────────────────────────────────────────────────────────┤
        │  TransientError       SourceError          ConfigError       │
        │  (retryable=True)     (SOURCE)             (CONFIG)          │
        │       │                   │                    │             │
        │  NetworkError        SourceUnavailable    MissingConfig      │
        │                      ParseError                              │
        │                      LookupFailedError    StorageError       │
        └─────────────────────────────────────────────────────────────┘

Pipeline-fatal errors are the ones raised out of the record source and the
output sink. Per-policy errors travel inside ``Err`` values instead.

Examples:
    >>> error = NetworkError("aws exited with status 255")
    >>> error.retryable
    True
    >>> ParseError("bad payload").with_context(policy_name="ReadOnlyAccess")
    ParseError('bad payload', category=PARSE)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and reporting."""

    NETWORK = "NETWORK"
    SOURCE = "SOURCE"
    PARSE = "PARSE"
    CONFIG = "CONFIG"
    STORAGE = "STORAGE"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Known keys get their own attribute; anything else lands in ``metadata``.
    """

    policy_name: str | None = None
    arn: str | None = None
    version_id: str | None = None
    command: str | None = None
    path: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Non-empty fields only."""
        result: dict[str, Any] = {}
        for key in ("policy_name", "arn", "version_id", "command", "path"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result["metadata"] = dict(self.metadata)
        return result


class SpineError(Exception):
    """
    Base exception for all iam-spine errors.

    Subclasses set ``default_category`` and ``default_retryable``; callers may
    override both per instance.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> SpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise SourceError("Failed").with_context(command="aws iam list-policies")
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# TRANSIENT ERRORS (Usually Retryable)
# =============================================================================


class TransientError(SpineError):
    """Temporary error that may succeed on retry."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class NetworkError(TransientError):
    """The lookup process failed (network, throttling, non-zero exit)."""

    default_category = ErrorCategory.NETWORK


# =============================================================================
# SOURCE ERRORS
# =============================================================================


class SourceError(SpineError):
    """
    Error from the remote policy source.

    Default not retryable.
    """

    default_category = ErrorCategory.SOURCE
    default_retryable = False


class SourceUnavailableError(SourceError):
    """The record source could not be reached or returned nothing usable."""

    pass


class ParseError(SourceError):
    """A payload could not be decoded into the expected structure."""

    default_category = ErrorCategory.PARSE
    default_retryable = False


class LookupFailedError(SourceError):
    """A version lookup kept failing after every allowed attempt."""

    def __init__(self, message: str, *, attempts: int, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.attempts = attempts

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["attempts"] = self.attempts
        return result


# =============================================================================
# CONFIG / STORAGE ERRORS
# =============================================================================


class ConfigError(SpineError):
    """Invalid or missing configuration. Never retryable."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class MissingConfigError(ConfigError):
    """A required executable or setting is not available."""

    def __init__(self, key: str, message: str | None = None):
        super().__init__(message or f"Missing required configuration: {key}")
        self.key = key


class StorageError(SpineError):
    """The aggregate document could not be written."""

    default_category = ErrorCategory.STORAGE
    default_retryable = False


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, SpineError):
        return error.retryable
    retryable_types = (
        ConnectionError,
        BrokenPipeError,
        OSError,
    )
    return isinstance(error, retryable_types)


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, SpineError):
        return error.category
    if isinstance(error, (ConnectionError, OSError)):
        return ErrorCategory.NETWORK
    if isinstance(error, ValueError):
        return ErrorCategory.PARSE
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "SpineError",
    "TransientError",
    "NetworkError",
    "SourceError",
    "SourceUnavailableError",
    "ParseError",
    "LookupFailedError",
    "ConfigError",
    "MissingConfigError",
    "StorageError",
    "is_retryable",
    "categorize_error",
]
