"""otelkit derive - telemetry attribute conversions for your own types.

Derives conversions into the telemetry attribute model (``Key``, ``Value``,
``StringValue``, ``KeyValue``) from a small annotation, instead of
hand-writing them.

Quick Start:
    >>> from otelkit.derive import Key, KeyValue, StringValue, Value
    >>> from otelkit.derive import derive, otel, to_attributes, to_key
    >>>
    >>> @derive(Key)
    ... class Auto:
    ...     pass
    >>> to_key(Auto()).as_str()
    'auto'
    >>>
    >>> @derive(Key, KeyValue, StringValue, Value)
    ... @otel(key="req", variant=StringValue)
    ... class Request:
    ...     def __init__(self, query):
    ...         self.query = query
    ...     def __str__(self):
    ...         return self.query
    >>>
    >>> span.set_attributes(to_attributes(Request("foo=bar")))
"""

from .config import DeriveConfig, configure, get_config, reset_config
from .conversions import (
    conversion,
    convert,
    has_conversion,
    register_conversion,
    to_attributes,
    to_key,
    to_key_value,
    to_string_value,
    to_value,
)
from .decorator import derive, derived_conversions, otel
from .diagnostics import Diagnostic
from .errors import (
    AnnotationOrderError,
    AnnotationSyntaxError,
    ConversionError,
    DeriveError,
    DuplicateOption,
    MalformedOption,
    MissingRequiredOption,
    UnknownCapability,
    UnknownOption,
    UnsatisfiedPrecondition,
    UnsupportedItemKind,
)
from .types import Key, KeyValue, StringValue, Value, ValueKind

__all__ = [
    # Decorators
    "derive",
    "otel",
    "derived_conversions",
    # Telemetry types
    "Key",
    "KeyValue",
    "StringValue",
    "Value",
    "ValueKind",
    # Conversions
    "conversion",
    "convert",
    "has_conversion",
    "register_conversion",
    "to_attributes",
    "to_key",
    "to_key_value",
    "to_string_value",
    "to_value",
    # Configuration
    "DeriveConfig",
    "configure",
    "get_config",
    "reset_config",
    # Errors
    "Diagnostic",
    "DeriveError",
    "AnnotationOrderError",
    "AnnotationSyntaxError",
    "ConversionError",
    "DuplicateOption",
    "MalformedOption",
    "MissingRequiredOption",
    "UnknownCapability",
    "UnknownOption",
    "UnsatisfiedPrecondition",
    "UnsupportedItemKind",
]
