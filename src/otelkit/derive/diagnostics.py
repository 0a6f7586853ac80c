"""Rendering of derivation errors as compiler-style diagnostics."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ._source import SourceLocation, source_line
from .errors import DeriveError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Diagnostic:
    """A derivation error with the source line it points at.

    Args:
        code: Error kind, e.g. ``MissingRequiredOption``
        message: What went wrong
        detail: Hint on how to fix it
        location: Position of the offending annotation or class
        source_line: Text of the line at ``location``, when available
    """

    code: str
    message: str
    detail: str = ""
    location: SourceLocation | None = None
    source_line: str | None = None

    def render(self) -> str:
        """Render the diagnostic.

        Example::

            error[MissingRequiredOption]: missing required option `variant` ...
              --> app/models.py:12:1
               |
            12 | @otel(key="counter")
               | ^
               = help: add @otel(variant=<type>) naming a type convertible into Value
        """
        lines = [f"error[{self.code}]: {self.message}"]
        pad = " "
        if self.location is not None:
            lines.append(f"  --> {self.location}")
        if self.source_line is not None and self.location is not None:
            gutter = str(self.location.lineno)
            pad = " " * len(gutter)
            lines.append(f"{pad} |")
            lines.append(f"{gutter} | {self.source_line}")
            lines.append(f"{pad} | {' ' * self._caret_offset()}^")
        if self.detail:
            lines.append(f"{pad} = help: {self.detail}")
        return "\n".join(lines)

    def _caret_offset(self) -> int:
        line = self.source_line or ""
        indent = len(line) - len(line.lstrip())
        column = self.location.column if self.location is not None else None
        if column is None or column - 1 >= len(line):
            return indent
        return column - 1


def report(error: DeriveError) -> Diagnostic:
    """Build the diagnostic for ``error`` and attach it as ``error.diagnostic``."""
    location = error.location
    diagnostic = Diagnostic(
        code=error.code,
        message=error.message,
        detail=error.detail,
        location=location,
        source_line=source_line(location) if location is not None else None,
    )
    error.diagnostic = diagnostic
    logger.debug("Derivation failed:\n%s", diagnostic.render())
    return diagnostic
