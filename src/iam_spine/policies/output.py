"""Output sinks for the aggregate policy document.

Both sinks serialize with tab indentation and keep non-ASCII text as-is.
Exactly one sink is used per run: a file when ``--save`` was given,
standard output otherwise.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, TextIO

from iam_spine.core.errors import StorageError
from iam_spine.core.logging import get_logger

logger = get_logger(__name__)


def serialize_document(document: dict[str, Any]) -> str:
    """Serialize the aggregate as tab-indented JSON, preserving key order."""
    return json.dumps(document, indent="\t", ensure_ascii=False, default=str)


class JsonFileOutput:
    """Write the document to ``path``, replacing any existing file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser().resolve()

    def emit(self, document: dict[str, Any]) -> str:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(serialize_document(document), encoding="utf-8")
        except OSError as e:
            raise StorageError(
                f"Failed to write policies to {self.path}: {e}", cause=e
            ).with_context(path=str(self.path)) from e

        logger.info("output.file_written", path=str(self.path), policies=len(document))
        return str(self.path)


class StdoutOutput:
    """Print the document on standard output."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def emit(self, document: dict[str, Any]) -> None:
        stream = self._stream or sys.stdout
        try:
            stream.write(serialize_document(document))
            stream.write("\n")
            stream.flush()
        except OSError as e:
            raise StorageError(f"Failed to print policies: {e}", cause=e) from e
        return None


__all__ = ["JsonFileOutput", "StdoutOutput", "serialize_document"]
