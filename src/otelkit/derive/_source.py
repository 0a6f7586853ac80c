"""Internal helpers for locating annotations and class definitions in source."""

from __future__ import annotations

import inspect
import linecache
from dataclasses import dataclass, replace
from types import FrameType


@dataclass(frozen=True)
class SourceLocation:
    """Position of an annotation, option or class definition.

    Args:
        filename: Source file (or module name when the file is unknown)
        lineno: 1-based line number, if known
        column: 1-based column number, if known
    """

    filename: str
    lineno: int | None = None
    column: int | None = None

    def offset(self, line: int, column: int) -> SourceLocation:
        """Return the location of a token inside text that starts here.

        Args:
            line: 1-based line of the token within the text
            column: 0-based column of the token within its line

        Returns:
            Location translated into file coordinates
        """
        if self.lineno is None:
            return replace(self, column=column + 1)
        if line == 1:
            base_column = self.column or 1
            return replace(self, column=base_column + column)
        return replace(self, lineno=self.lineno + line - 1, column=column + 1)

    def __str__(self) -> str:
        if self.lineno is None:
            return self.filename
        if self.column is None:
            return f"{self.filename}:{self.lineno}"
        return f"{self.filename}:{self.lineno}:{self.column}"


UNKNOWN_LOCATION = SourceLocation("<unknown>")


def caller_frame(depth: int = 1) -> FrameType | None:
    """Return the frame ``depth`` levels above the caller of this function."""
    frame = inspect.currentframe()
    # Skip this helper's own frame as well.
    for _ in range(depth + 1):
        if frame is None:
            return None
        frame = frame.f_back
    return frame


def frame_location(frame: FrameType | None) -> SourceLocation:
    """Build a location for the line currently executing in ``frame``."""
    if frame is None:
        return UNKNOWN_LOCATION
    return SourceLocation(frame.f_code.co_filename, frame.f_lineno, None)


def definition_location(item: object) -> SourceLocation:
    """Locate the definition of a class or function.

    Falls back to the module name when the source cannot be found
    (interactive sessions, dynamically created classes).
    """
    module = getattr(item, "__module__", None) or "<unknown>"
    try:
        filename = inspect.getsourcefile(item)  # type: ignore[arg-type]
        _, lineno = inspect.getsourcelines(item)  # type: ignore[arg-type]
    except (OSError, TypeError):
        return SourceLocation(module)
    if filename is None:
        return SourceLocation(module)
    return SourceLocation(filename, lineno or None, None)


def source_line(location: SourceLocation) -> str | None:
    """Return the text of the line ``location`` points at, if available."""
    if location.lineno is None:
        return None
    line = linecache.getline(location.filename, location.lineno)
    if not line:
        return None
    return line.rstrip("\r\n")
