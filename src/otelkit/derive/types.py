"""Telemetry attribute data model targeted by derived conversions.

``Key``, ``Value``, ``StringValue`` and ``KeyValue`` mirror the attribute
shapes of the OpenTelemetry data model. They are plain immutable values; use
``to_attribute()`` / ``to_attribute_value()`` (or
:func:`otelkit.derive.conversions.to_attributes`) to hand them to the
OpenTelemetry API.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from opentelemetry.util.types import AttributeValue

ArrayItem = Union[bool, int, float, str]


@dataclass(frozen=True)
class Key:
    """Name of a telemetry attribute."""

    name: str

    def as_str(self) -> str:
        """Return the key as a string."""
        return self.name

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class StringValue:
    """Textual attribute value."""

    value: str

    def as_str(self) -> str:
        """Return the wrapped string."""
        return self.value

    def __str__(self) -> str:
        return self.value


class ValueKind(str, Enum):
    """Variants a ``Value`` can hold."""

    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    ARRAY = "array"


@dataclass(frozen=True)
class Value:
    """Typed payload of a telemetry attribute.

    Args:
        kind: Variant of the value
        payload: ``bool``/``int``/``float`` for scalars, ``StringValue`` for
            strings and a tuple of scalars or strings for arrays
        item_kind: Kind of the array items, ``None`` for scalars and the
            empty array
    """

    kind: ValueKind
    payload: Any
    item_kind: Optional[ValueKind] = None

    @classmethod
    def from_bool(cls, value: bool) -> Value:
        return cls(ValueKind.BOOL, value)

    @classmethod
    def from_int(cls, value: int) -> Value:
        return cls(ValueKind.INT, value)

    @classmethod
    def from_float(cls, value: float) -> Value:
        return cls(ValueKind.FLOAT, value)

    @classmethod
    def from_string(cls, value: str | StringValue) -> Value:
        if not isinstance(value, StringValue):
            value = StringValue(value)
        return cls(ValueKind.STRING, value)

    @classmethod
    def from_array(cls, items: tuple[ArrayItem, ...]) -> Value:
        items = tuple(items)
        item_kind = _item_kind(items[0]) if items else None
        return cls(ValueKind.ARRAY, items, item_kind)

    def as_str(self) -> str:
        """Render the value as text.

        Returns:
            ``true``/``false`` for booleans, the number for integers and
            floats, the string itself for strings and ``[a,b]`` for arrays
            (string items are quoted).

        Examples:
            >>> Value.from_int(3).as_str()
            '3'
            >>> Value.from_array(("a", "b")).as_str()
            '["a","b"]'
        """
        if self.kind is ValueKind.ARRAY:
            return "[" + ",".join(_render_item(item) for item in self.payload) + "]"
        return _render_item(self.payload, quote=False)

    def to_attribute_value(self) -> AttributeValue:
        """Return the value in the shape the OpenTelemetry API accepts."""
        if self.kind is ValueKind.STRING:
            return self.payload.as_str()
        if self.kind is ValueKind.ARRAY:
            return list(self.payload)
        return self.payload

    def __str__(self) -> str:
        return self.as_str()


@dataclass(frozen=True)
class KeyValue:
    """A telemetry attribute: a ``Key`` paired with a ``Value``."""

    key: Key
    value: Value

    @classmethod
    def new(cls, key: Any, value: Any) -> KeyValue:
        """Build a pair from anything convertible into ``Key`` and ``Value``.

        Args:
            key: A ``Key``, a string or an object with a Key conversion
            value: A ``Value``, a primitive or an object with a Value conversion

        Returns:
            The attribute pair

        Raises:
            ConversionError: If either side cannot be converted
        """
        from .conversions import to_key, to_value

        return cls(to_key(key), to_value(value))

    def to_attribute(self) -> tuple[str, AttributeValue]:
        """Return ``(name, value)`` ready for ``Span.set_attribute``."""
        return self.key.as_str(), self.value.to_attribute_value()


def _render_item(item: Any, quote: bool = True) -> str:
    if isinstance(item, bool):
        return "true" if item else "false"
    if isinstance(item, StringValue):
        item = item.as_str()
    if isinstance(item, str):
        return json.dumps(item, ensure_ascii=False) if quote else item
    return str(item)


def _item_kind(item: Any) -> ValueKind:
    if isinstance(item, bool):
        return ValueKind.BOOL
    if isinstance(item, int):
        return ValueKind.INT
    if isinstance(item, float):
        return ValueKind.FLOAT
    return ValueKind.STRING
