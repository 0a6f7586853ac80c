"""Errors raised while deriving telemetry conversions.

Every ``DeriveError`` is raised when the ``derive``/``otel`` decorators run,
never when a generated conversion is later called. ``ConversionError`` is the
only error raised at call time and signals a missing user-supplied conversion.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ._source import SourceLocation
    from .diagnostics import Diagnostic


class DeriveError(Exception):
    """Base class for errors detected while processing an annotated class."""

    code = "DeriveError"

    def __init__(
        self,
        message: str,
        detail: str = "",
        location: SourceLocation | None = None,
    ) -> None:
        """Initialize the error.

        Args:
            message: Short description naming the offending option or type
            detail: Optional hint on how to fix the problem
            location: Where the offending annotation or class is defined
        """
        self.message = message
        self.detail = detail
        self.location = location
        self.diagnostic: Diagnostic | None = None
        super().__init__(str(self))

    def __str__(self) -> str:
        text = f"{self.message}: {self.detail}" if self.detail else self.message
        if self.location is not None:
            return f"{self.location}: {text}"
        return text


class AnnotationSyntaxError(DeriveError):
    """The ``otel(...)`` annotation text is not well formed."""

    code = "SyntaxError"


class UnknownOption(DeriveError):
    """An option name other than ``key`` or ``variant`` was given."""

    code = "UnknownOption"


class MalformedOption(DeriveError):
    """An option was given a value of the wrong kind."""

    code = "MalformedOption"


class DuplicateOption(DeriveError):
    """The same option appears more than once for one class."""

    code = "DuplicateOption"


class MissingRequiredOption(DeriveError):
    """A capability needs an option the annotation does not provide."""

    code = "MissingRequiredOption"


class UnsupportedItemKind(DeriveError):
    """The decorated object is not a class conversions can be attached to."""

    code = "UnsupportedItemKind"


class UnknownCapability(DeriveError):
    """``derive`` was asked for something other than the four capabilities."""

    code = "UnknownCapability"


class UnsatisfiedPrecondition(DeriveError):
    """A strict-mode check found a conversion the generated code relies on missing."""

    code = "UnsatisfiedPrecondition"


class AnnotationOrderError(DeriveError):
    """``otel`` was applied to a class after ``derive`` already processed it."""

    code = "AnnotationOrderError"


class ConversionError(TypeError):
    """No conversion from a value into the requested target type exists."""
