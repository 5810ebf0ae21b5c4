"""iam-spine core -- errors, results, logging and settings.

Layer 1 -- Type System & Errors
    errors.py          Structured error hierarchy (SpineError, TransientError)
    result.py          Result[T] envelope (Ok / Err / try_result)

Layer 2 -- Runtime plumbing
    logging.py         structlog configuration (stderr only)
    settings.py        FetchSettings (pydantic-settings)
"""

from iam_spine.core.errors import (
    ConfigError,
    ErrorCategory,
    ErrorContext,
    LookupFailedError,
    MissingConfigError,
    NetworkError,
    ParseError,
    SourceError,
    SourceUnavailableError,
    SpineError,
    StorageError,
    TransientError,
    categorize_error,
    is_retryable,
)
from iam_spine.core.result import Err, Ok, Result, partition_results, try_result

__all__ = [
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "LookupFailedError",
    "MissingConfigError",
    "NetworkError",
    "ParseError",
    "SourceError",
    "SourceUnavailableError",
    "SpineError",
    "StorageError",
    "TransientError",
    "categorize_error",
    "is_retryable",
    "Err",
    "Ok",
    "Result",
    "partition_results",
    "try_result",
]
