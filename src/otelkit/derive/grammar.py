"""Parser for ``otel(...)`` annotation text.

Grammar::

    annotation := "otel" "(" [option ("," option)* [","]] ")"
    option     := NAME "=" value
    value      := STRING+ | NAME ("." NAME)* | ["-"] NUMBER | True | False | None

The parser only checks syntax. Option names and value kinds are validated
when the options are built (see :mod:`otelkit.derive.options`), so a single
annotation can be shared by every capability derived on a class.

Example:
    >>> [o.name for o in parse_annotation('otel(key = "req", variant = StringValue)')]
    ['key', 'variant']
"""

from __future__ import annotations

import ast
import builtins
import io
import logging
import tokenize
from collections import ChainMap
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from ._source import UNKNOWN_LOCATION, SourceLocation
from .errors import AnnotationSyntaxError, MalformedOption
from .types import Key, KeyValue, StringValue, Value

logger = logging.getLogger(__name__)

ANNOTATION_NAME = "otel"

# Names resolvable in annotation text even when the module did not import them.
DEFAULT_NAMES: dict[str, Any] = {
    "Key": Key,
    "KeyValue": KeyValue,
    "StringValue": StringValue,
    "Value": Value,
}

_SKIPPED_TOKENS = {
    tokenize.NL,
    tokenize.NEWLINE,
    tokenize.COMMENT,
    tokenize.INDENT,
    tokenize.DEDENT,
    tokenize.ENCODING,
}
_CONSTANTS = {"True": True, "False": False, "None": None}


class OptionKind(str, Enum):
    """Syntactic kind of an option value."""

    STRING = "string"
    PATH = "path"
    LITERAL = "literal"


class TypeReference:
    """A reference to a class, written as a dotted name or given directly.

    Args:
        path: Dotted name as written (or the qualified name of ``target``)
        location: Where the reference appears
        namespace: Names the first path segment is looked up in
        target: The class itself, when already known
    """

    __slots__ = ("path", "location", "namespace", "_target")

    def __init__(
        self,
        path: str,
        location: SourceLocation | None = None,
        namespace: Mapping[str, Any] | None = None,
        target: Any = None,
    ) -> None:
        self.path = path
        self.location = location or UNKNOWN_LOCATION
        self.namespace = namespace
        self._target = target

    @classmethod
    def to(cls, target: Any, location: SourceLocation | None = None) -> TypeReference:
        """Build an already-resolved reference to ``target``."""
        path = getattr(target, "__qualname__", None) or repr(target)
        return cls(path, location=location, target=target)

    def resolve(self) -> type:
        """Return the referenced class.

        Raises:
            MalformedOption: If the name cannot be found or is not a class
        """
        target = self._target
        if target is None:
            target = self._lookup()
        if not isinstance(target, type):
            raise MalformedOption(
                f"`{self.path}` is not a class",
                detail="`variant` must name a type",
                location=self.location,
            )
        self._target = target
        return target

    def _lookup(self) -> Any:
        head, *rest = self.path.split(".")
        namespace = self.namespace if self.namespace is not None else resolution_namespace()
        if head not in namespace:
            raise MalformedOption(
                f"cannot resolve type reference `{self.path}`",
                detail=f"`{head}` is not defined where the annotation is written",
                location=self.location,
            )
        target = namespace[head]
        for part in rest:
            try:
                target = getattr(target, part)
            except AttributeError:
                raise MalformedOption(
                    f"cannot resolve type reference `{self.path}`",
                    detail=f"`{part}` not found",
                    location=self.location,
                ) from None
        return target

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TypeReference):
            return NotImplemented
        return self.path == other.path and self._target is other._target

    def __hash__(self) -> int:
        return hash(self.path)

    def __repr__(self) -> str:
        return f"TypeReference({self.path!r})"


@dataclass(frozen=True)
class RawOption:
    """One ``name = value`` pair before validation."""

    name: str
    kind: OptionKind
    value: Any
    location: SourceLocation


def resolution_namespace(
    local_names: Mapping[str, Any] | None = None,
    global_names: Mapping[str, Any] | None = None,
) -> ChainMap[str, Any]:
    """Build the lookup chain used for type references.

    Order: locals, globals, builtins, then the telemetry types.
    """
    maps: list[Mapping[str, Any]] = []
    if local_names is not None:
        maps.append(local_names)
    if global_names is not None:
        maps.append(global_names)
    maps.extend([vars(builtins), DEFAULT_NAMES])
    return ChainMap(*maps)  # type: ignore[arg-type]


def parse_annotation(
    text: str,
    origin: SourceLocation | None = None,
    namespace: Mapping[str, Any] | None = None,
) -> list[RawOption]:
    """Parse a complete ``otel(...)`` annotation.

    Args:
        text: Annotation text, e.g. ``'otel(key = "req")'``
        origin: Location of the first character of ``text``
        namespace: Names type references resolve against

    Returns:
        Parsed options in source order

    Raises:
        AnnotationSyntaxError: If the text does not match the grammar
        MalformedOption: If a string literal cannot be decoded
    """
    parser = _Parser(text, origin or UNKNOWN_LOCATION, namespace)
    return parser.parse_annotation()


def parse_options(
    text: str,
    origin: SourceLocation | None = None,
    namespace: Mapping[str, Any] | None = None,
) -> list[RawOption]:
    """Parse the option list of an annotation, without ``otel(`` ``)``.

    Args:
        text: Option list, e.g. ``'key = "req", variant = int'``
        origin: Location of the first character of ``text``
        namespace: Names type references resolve against

    Returns:
        Parsed options in source order
    """
    parser = _Parser(text, origin or UNKNOWN_LOCATION, namespace)
    return parser.parse_bare_options()


def options_from_values(
    values: Mapping[str, Any], location: SourceLocation | None = None
) -> list[RawOption]:
    """Turn keyword arguments given to ``otel(...)`` into raw options.

    Strings become string literals, classes become resolved type references
    and everything else is kept as a plain literal.
    """
    location = location or UNKNOWN_LOCATION
    options = []
    for name, value in values.items():
        if isinstance(value, str):
            kind = OptionKind.STRING
        elif isinstance(value, TypeReference):
            kind = OptionKind.PATH
        elif isinstance(value, type):
            kind = OptionKind.PATH
            value = TypeReference.to(value, location)
        else:
            kind = OptionKind.LITERAL
        options.append(RawOption(name, kind, value, location))
    return options


class _Parser:
    """Recursive-descent parser over ``tokenize`` tokens."""

    def __init__(
        self,
        text: str,
        origin: SourceLocation,
        namespace: Mapping[str, Any] | None,
    ) -> None:
        self._origin = origin
        self._namespace = namespace
        self._tokens = self._tokenize(text.strip())
        self._pos = 0

    def _tokenize(self, text: str) -> list[tokenize.TokenInfo]:
        tokens = []
        try:
            for tok in tokenize.generate_tokens(io.StringIO(text).readline):
                if tok.type in _SKIPPED_TOKENS:
                    continue
                if tok.type == tokenize.ENDMARKER:
                    break
                if tok.type == tokenize.ERRORTOKEN:
                    if tok.string.isspace():
                        continue
                    raise AnnotationSyntaxError(
                        f"unexpected character {tok.string!r}",
                        location=self._at(tok.start),
                    )
                tokens.append(tok)
        except (tokenize.TokenError, SyntaxError) as e:
            raise AnnotationSyntaxError(
                "unparsable annotation",
                detail="unbalanced parentheses or unterminated string",
                location=self._origin,
            ) from e
        return tokens

    def _at(self, position: tuple[int, int]) -> SourceLocation:
        return self._origin.offset(*position)

    def _peek(self) -> tokenize.TokenInfo | None:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return None

    def _next(self, expected: str) -> tokenize.TokenInfo:
        tok = self._peek()
        if tok is None:
            end = self._tokens[-1].end if self._tokens else (1, 0)
            raise AnnotationSyntaxError(
                f"expected {expected}, found end of annotation",
                location=self._at(end),
            )
        self._pos += 1
        return tok

    def _is_op(self, tok: tokenize.TokenInfo | None, symbol: str) -> bool:
        return tok is not None and tok.type == tokenize.OP and tok.string == symbol

    def _expect_op(self, symbol: str) -> tokenize.TokenInfo:
        tok = self._next(f"`{symbol}`")
        if not self._is_op(tok, symbol):
            raise AnnotationSyntaxError(
                f"expected `{symbol}`, found `{tok.string}`",
                location=self._at(tok.start),
            )
        return tok

    def _expect_name(self, what: str) -> tokenize.TokenInfo:
        tok = self._next(what)
        if tok.type != tokenize.NAME:
            raise AnnotationSyntaxError(
                f"expected {what}, found `{tok.string}`",
                location=self._at(tok.start),
            )
        return tok

    def _expect_end(self) -> None:
        tok = self._peek()
        if tok is not None:
            raise AnnotationSyntaxError(
                f"unexpected `{tok.string}` after annotation",
                location=self._at(tok.start),
            )

    def parse_annotation(self) -> list[RawOption]:
        name = self._expect_name(f"`{ANNOTATION_NAME}`")
        if name.string != ANNOTATION_NAME:
            raise AnnotationSyntaxError(
                f"expected `{ANNOTATION_NAME}`, found `{name.string}`",
                location=self._at(name.start),
            )
        self._expect_op("(")
        options = self._option_list(closing=")")
        self._expect_op(")")
        self._expect_end()
        logger.debug("Parsed annotation with %d option(s)", len(options))
        return options

    def parse_bare_options(self) -> list[RawOption]:
        options = self._option_list(closing=None)
        self._expect_end()
        return options

    def _option_list(self, closing: str | None) -> list[RawOption]:
        options: list[RawOption] = []
        while True:
            tok = self._peek()
            if tok is None or (closing is not None and self._is_op(tok, closing)):
                return options
            options.append(self._option())
            if not self._is_op(self._peek(), ","):
                return options
            self._pos += 1

    def _option(self) -> RawOption:
        name = self._expect_name("an option name")
        self._expect_op("=")
        kind, value = self._value(name.string)
        return RawOption(name.string, kind, value, self._at(name.start))

    def _value(self, option: str) -> tuple[OptionKind, Any]:
        tok = self._next(f"a value for `{option}`")
        if tok.type == tokenize.STRING:
            return OptionKind.STRING, self._string(tok)
        if tok.type == tokenize.NAME and tok.string in _CONSTANTS:
            return OptionKind.LITERAL, _CONSTANTS[tok.string]
        if tok.type == tokenize.NAME:
            return OptionKind.PATH, self._path(tok)
        if tok.type == tokenize.NUMBER:
            return OptionKind.LITERAL, ast.literal_eval(tok.string)
        if self._is_op(tok, "-") and self._peek() is not None:
            number = self._next("a number")
            if number.type == tokenize.NUMBER:
                return OptionKind.LITERAL, -ast.literal_eval(number.string)
        raise AnnotationSyntaxError(
            f"expected a value for `{option}`, found `{tok.string}`",
            location=self._at(tok.start),
        )

    def _string(self, first: tokenize.TokenInfo) -> Any:
        parts = [first]
        while (tok := self._peek()) is not None and tok.type == tokenize.STRING:
            parts.append(tok)
            self._pos += 1
        source = " ".join(part.string for part in parts)
        try:
            return ast.literal_eval(source)
        except (ValueError, SyntaxError) as e:
            raise MalformedOption(
                f"cannot decode string literal {source}",
                detail="use a plain string literal",
                location=self._at(first.start),
            ) from e

    def _path(self, first: tokenize.TokenInfo) -> TypeReference:
        names = [first.string]
        while self._is_op(self._peek(), "."):
            self._pos += 1
            names.append(self._expect_name("a name after `.`").string)
        return TypeReference(
            ".".join(names),
            location=self._at(first.start),
            namespace=self._namespace,
        )
