"""Tests for the otel(...) annotation parser."""

from __future__ import annotations

import builtins

import pytest

from otelkit.derive import AnnotationSyntaxError, MalformedOption, StringValue
from otelkit.derive._source import SourceLocation
from otelkit.derive.grammar import (
    OptionKind,
    TypeReference,
    options_from_values,
    parse_annotation,
    parse_options,
)


class TestParseAnnotation:
    """Well-formed annotations."""

    def test_key_and_variant(self) -> None:
        options = parse_annotation('otel(key = "req", variant = StringValue)')

        assert [o.name for o in options] == ["key", "variant"]
        assert options[0].kind is OptionKind.STRING
        assert options[0].value == "req"
        assert options[1].kind is OptionKind.PATH
        assert options[1].value.path == "StringValue"
        assert options[1].value.resolve() is StringValue

    def test_empty_option_list(self) -> None:
        assert parse_annotation("otel()") == []

    def test_trailing_comma(self) -> None:
        options = parse_annotation('otel(key = "a",)')
        assert [o.value for o in options] == ["a"]

    def test_options_in_any_order(self) -> None:
        options = parse_annotation('otel(variant = int, key = "a")')
        assert [o.name for o in options] == ["variant", "key"]

    def test_multiline(self) -> None:
        text = 'otel(\n    key = "multi",  # the key\n    variant = int,\n)'
        options = parse_annotation(text)
        assert [o.name for o in options] == ["key", "variant"]

    def test_single_quotes_and_concatenation(self) -> None:
        options = parse_annotation("otel(key = 'http' '.request')")
        assert options[0].value == "http.request"

    def test_dotted_type_reference(self) -> None:
        options = parse_annotation(
            "otel(variant = builtins.int)", namespace={"builtins": builtins}
        )
        assert options[0].value.path == "builtins.int"
        assert options[0].value.resolve() is int

    def test_literals_are_kept_for_validation(self) -> None:
        options = parse_annotation("otel(key = 42, variant = -1, other = True)")
        assert [(o.kind, o.value) for o in options] == [
            (OptionKind.LITERAL, 42),
            (OptionKind.LITERAL, -1),
            (OptionKind.LITERAL, True),
        ]

    def test_unknown_names_are_not_rejected_by_parser(self) -> None:
        options = parse_annotation('otel(name = "x")')
        assert options[0].name == "name"


class TestParseOptions:
    """Bare option lists, as given to @otel("...")."""

    def test_bare_list(self) -> None:
        options = parse_options('key = "a", variant = int')
        assert [o.name for o in options] == ["key", "variant"]

    def test_empty_text(self) -> None:
        assert parse_options("") == []

    def test_rejects_trailing_tokens(self) -> None:
        with pytest.raises(AnnotationSyntaxError):
            parse_options('key = "a" )')


class TestSyntaxErrors:
    """Malformed annotation text."""

    @pytest.mark.parametrize(
        "text",
        [
            "",
            'otel(key = "x"',
            'otel key = "x"',
            'otel(key "x")',
            "otel(key = )",
            "otel(,)",
            'otel(key = "a",, variant = int)',
            'otel(key = "x" variant = int)',
            'other(key = "x")',
            'otel(key = "x") extra',
            "otel(key = $)",
            'otel(key = "x)',
            "otel(variant = int.)",
        ],
    )
    def test_rejected(self, text: str) -> None:
        with pytest.raises(AnnotationSyntaxError):
            parse_annotation(text)

    def test_error_points_at_offending_token(self) -> None:
        origin = SourceLocation("models.py", 10, 5)
        with pytest.raises(AnnotationSyntaxError) as exc_info:
            parse_annotation('otel(key "x")', origin=origin)

        assert exc_info.value.location == SourceLocation("models.py", 10, 14)
        assert "`=`" in exc_info.value.message


class TestLocations:
    """Option locations are mapped back onto the annotation origin."""

    def test_first_line_columns_shift_by_origin(self) -> None:
        options = parse_annotation(
            "otel(key = 1)", origin=SourceLocation("models.py", 10, 5)
        )
        assert options[0].location == SourceLocation("models.py", 10, 10)

    def test_following_lines_use_token_columns(self) -> None:
        options = parse_annotation(
            'otel(\n    key = "x",\n)', origin=SourceLocation("models.py", 10, 5)
        )
        assert options[0].location == SourceLocation("models.py", 11, 5)


class TestStringLiterals:
    """Only plain string literals decode as strings."""

    def test_bytes_literal_is_kept_as_bytes(self) -> None:
        options = parse_annotation('otel(key = b"x")')
        assert options[0].value == b"x"

    def test_escape_sequences(self) -> None:
        options = parse_annotation(r'otel(key = "a\"b")')
        assert options[0].value == 'a"b'


class TestTypeReference:
    """Resolution of type references."""

    def test_unknown_name(self) -> None:
        ref = TypeReference("Missing", namespace={})
        with pytest.raises(MalformedOption, match="cannot resolve"):
            ref.resolve()

    def test_unknown_attribute(self) -> None:
        ref = TypeReference("builtins.missing", namespace={"builtins": builtins})
        with pytest.raises(MalformedOption, match="`missing` not found"):
            ref.resolve()

    def test_not_a_class(self) -> None:
        ref = TypeReference("len")
        with pytest.raises(MalformedOption, match="is not a class"):
            ref.resolve()

    def test_resolved_reference(self) -> None:
        ref = TypeReference.to(float)
        assert ref.path == "float"
        assert ref.resolve() is float


class TestOptionsFromValues:
    """Keyword options given to @otel(...)."""

    def test_kinds(self) -> None:
        options = options_from_values({"key": "req", "variant": int, "other": 3})

        assert [o.kind for o in options] == [
            OptionKind.STRING,
            OptionKind.PATH,
            OptionKind.LITERAL,
        ]
        assert options[1].value.resolve() is int
