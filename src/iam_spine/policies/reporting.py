"""Human-readable status reporters.

Status lines go to stderr with the same glyphs the tool has always used:
``✔`` success, ``i`` info, ``x`` error. ``--silent`` swaps in
:class:`NullReporter`.
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape


class ConsoleReporter:
    """Rich console reporter; prints nothing when ``silent`` is set."""

    def __init__(self, console: Console | None = None, *, silent: bool = False) -> None:
        self._console = console or Console(stderr=True)
        self._silent = silent

    def info(self, message: str) -> None:
        self._print("bold cyan", "i", message)

    def success(self, message: str) -> None:
        self._print("bold green", "✔", message)

    def error(self, message: str) -> None:
        self._print("bold red", "x", message)

    def _print(self, style: str, glyph: str, message: str) -> None:
        if self._silent:
            return
        self._console.print(f"[{style}]{glyph} {escape(message)}[/{style}]", highlight=False)


class NullReporter:
    """Discards every status line."""

    def info(self, message: str) -> None:
        pass

    def success(self, message: str) -> None:
        pass

    def error(self, message: str) -> None:
        pass


__all__ = ["ConsoleReporter", "NullReporter"]
