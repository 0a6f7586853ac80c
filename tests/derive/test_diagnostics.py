"""Tests for diagnostic rendering and error locations."""

from __future__ import annotations

import linecache
from pathlib import Path

import pytest

from otelkit.derive import (
    Diagnostic,
    MalformedOption,
    MissingRequiredOption,
    UnknownOption,
    Value,
    derive,
    otel,
)
from otelkit.derive._source import SourceLocation
from otelkit.derive.diagnostics import report


class TestRender:
    """Compiler-style rendering."""

    def test_with_source_line(self) -> None:
        diagnostic = Diagnostic(
            code="MissingRequiredOption",
            message="missing required option `variant`",
            detail="add a variant",
            location=SourceLocation("models.py", 12, 1),
            source_line='@otel(key="counter")',
        )

        assert diagnostic.render() == "\n".join(
            [
                "error[MissingRequiredOption]: missing required option `variant`",
                "  --> models.py:12:1",
                "   |",
                '12 | @otel(key="counter")',
                "   | ^",
                "   = help: add a variant",
            ]
        )

    def test_caret_points_at_column(self) -> None:
        diagnostic = Diagnostic(
            code="MalformedOption",
            message="malformed option `key`",
            location=SourceLocation("models.py", 3, 7),
            source_line="@otel(key = 42)",
        )

        assert diagnostic.render().splitlines()[-1] == "  |       ^"

    def test_caret_defaults_to_indent(self) -> None:
        diagnostic = Diagnostic(
            code="UnknownOption",
            message="unknown option `name`",
            location=SourceLocation("models.py", 4),
            source_line="    @otel(name='x')",
        )

        assert diagnostic.render().splitlines()[-1] == "  |     ^"

    def test_without_source_line(self) -> None:
        diagnostic = Diagnostic(
            code="UnknownCapability",
            message="cannot derive `Span`",
            detail="expected Key, Value, StringValue or KeyValue",
            location=SourceLocation("<stdin>"),
        )

        assert diagnostic.render() == "\n".join(
            [
                "error[UnknownCapability]: cannot derive `Span`",
                "  --> <stdin>",
                "  = help: expected Key, Value, StringValue or KeyValue",
            ]
        )

    def test_message_only(self) -> None:
        assert Diagnostic(code="SyntaxError", message="bad").render() == "error[SyntaxError]: bad"


class TestReport:
    """Attaching diagnostics to errors."""

    def test_reads_source_line(self, tmp_path: Path) -> None:
        source = tmp_path / "models.py"
        source.write_text('@derive(Value)\n@otel(key="counter")\nclass Counter: ...\n')
        linecache.checkcache(str(source))
        error = MissingRequiredOption(
            "missing required option `variant`",
            detail="add a variant",
            location=SourceLocation(str(source), 2, 1),
        )

        diagnostic = report(error)

        assert error.diagnostic is diagnostic
        assert diagnostic.source_line == '@otel(key="counter")'
        assert diagnostic.code == "MissingRequiredOption"
        assert '2 | @otel(key="counter")' in diagnostic.render()

    def test_missing_file(self) -> None:
        error = UnknownOption("unknown option `x`", location=SourceLocation("nowhere.py", 1, 1))

        assert report(error).source_line is None

    def test_error_string_includes_location(self) -> None:
        error = UnknownOption(
            "unknown option `x`",
            detail="expected `key` or `variant`",
            location=SourceLocation("models.py", 5, 7),
        )

        assert str(error) == "models.py:5:7: unknown option `x`: expected `key` or `variant`"


class TestDecoratorDiagnostics:
    """Errors raised by the decorators carry rendered diagnostics."""

    def test_missing_variant_points_at_annotation(self) -> None:
        with pytest.raises(MissingRequiredOption) as exc_info:

            @derive(Value)
            @otel(key="counter")
            class Counter:
                pass

        diagnostic = exc_info.value.diagnostic
        assert diagnostic is not None
        assert diagnostic.location is not None
        assert diagnostic.location.filename.endswith("test_diagnostics.py")
        assert diagnostic.source_line is not None
        assert diagnostic.source_line.strip() == '@otel(key="counter")'
        assert diagnostic.render().startswith("error[MissingRequiredOption]: ")

    def test_text_option_column(self) -> None:
        with pytest.raises(MalformedOption) as exc_info:

            @otel("key = 42")
            class Numbered:
                pass

        diagnostic = exc_info.value.diagnostic
        assert diagnostic is not None
        assert diagnostic.location is not None
        assert diagnostic.source_line is not None
        column = diagnostic.location.column
        assert column is not None
        assert diagnostic.source_line[column - 1 :].startswith("key = 42")
        assert "expected a non-empty string literal, got 42" in diagnostic.render()
