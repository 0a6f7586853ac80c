"""Conversion dispatchers into the telemetry data model.

Each target type has a ``functools.singledispatch`` function (``to_key``,
``to_value``, ``to_string_value``, ``to_key_value``). Derived conversions and
user conversions registered with :func:`conversion` are added to these
dispatchers, so subclasses inherit them through the MRO.

Types may also implement a conversion by hand through the matching protocol
method (``__otel_key__``, ``__otel_value__``, ``__otel_string_value__``,
``__otel_key_value__``), which the dispatchers fall back to.

Example:
    @conversion(Counter, int)
    def counter_to_int(counter: Counter) -> int:
        return counter.count

    to_value(convert(counter, int))
"""

from __future__ import annotations

import functools
import logging
import threading
from typing import Any, Callable, Iterable, TypeVar

from opentelemetry.util.types import Attributes

from .errors import ConversionError
from .types import Key, KeyValue, StringValue, Value

logger = logging.getLogger(__name__)

T = TypeVar("T")
F = TypeVar("F", bound=Callable[..., Any])

_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1

# Protocol methods installed by ``derive`` and honoured by the dispatchers.
BY_VALUE_METHODS: dict[type, str] = {
    Key: "__otel_key__",
    Value: "__otel_value__",
    StringValue: "__otel_string_value__",
    KeyValue: "__otel_key_value__",
}

_intermediate_dispatchers: dict[type, Any] = {}
_registry_lock = threading.Lock()


def _describe(value: Any) -> str:
    return type(value).__qualname__


def _from_protocol(value: Any, target: type[T]) -> T:
    method = getattr(type(value), BY_VALUE_METHODS[target], None)
    if method is not None:
        return method(value)
    raise ConversionError(
        f"no conversion from {_describe(value)} into {target.__name__}; "
        f"derive it with @derive({target.__name__}) or register one with "
        f"@conversion({_describe(value)}, {target.__name__})"
    )


@functools.singledispatch
def to_key(value: Any) -> Key:
    """Convert ``value`` into a ``Key``.

    Raises:
        ConversionError: If ``value`` has no Key conversion
    """
    return _from_protocol(value, Key)


@to_key.register
def _(value: Key) -> Key:
    return value


@to_key.register
def _(value: str) -> Key:
    return Key(value)


@functools.singledispatch
def to_string_value(value: Any) -> StringValue:
    """Convert ``value`` into a ``StringValue``.

    Raises:
        ConversionError: If ``value`` has no StringValue conversion
    """
    return _from_protocol(value, StringValue)


@to_string_value.register
def _(value: StringValue) -> StringValue:
    return value


@to_string_value.register
def _(value: str) -> StringValue:
    return StringValue(value)


@functools.singledispatch
def to_value(value: Any) -> Value:
    """Convert ``value`` into a ``Value``.

    Booleans, 64-bit integers, floats, strings, ``StringValue`` and
    homogeneous lists or tuples of those are converted directly.

    Raises:
        ConversionError: If ``value`` has no Value conversion
    """
    return _from_protocol(value, Value)


@to_value.register
def _(value: Value) -> Value:
    return value


@to_value.register
def _(value: bool) -> Value:
    return Value.from_bool(value)


@to_value.register
def _(value: int) -> Value:
    if not _I64_MIN <= value <= _I64_MAX:
        raise ConversionError(f"integer {value} does not fit in 64 bits")
    return Value.from_int(value)


@to_value.register
def _(value: float) -> Value:
    return Value.from_float(value)


@to_value.register
def _(value: str) -> Value:
    return Value.from_string(value)


@to_value.register
def _(value: StringValue) -> Value:
    return Value.from_string(value)


@to_value.register(list)
@to_value.register(tuple)
def _(value: Iterable[Any]) -> Value:
    items = [item.as_str() if isinstance(item, StringValue) else item for item in value]
    if not items:
        return Value.from_array(())
    for kind in (bool, int, float, str):
        if all(type(item) is kind for item in items):
            if kind is int and not all(_I64_MIN <= item <= _I64_MAX for item in items):
                raise ConversionError("array contains an integer that does not fit in 64 bits")
            return Value.from_array(tuple(items))
    kinds = sorted({type(item).__name__ for item in items})
    raise ConversionError(
        f"array items must all be bool, int, float or str, got {', '.join(kinds)}"
    )


@functools.singledispatch
def to_key_value(value: Any) -> KeyValue:
    """Convert ``value`` into a ``KeyValue``.

    A two-item tuple is read as ``(key, value)``.

    Raises:
        ConversionError: If ``value`` has no KeyValue conversion
    """
    return _from_protocol(value, KeyValue)


@to_key_value.register
def _(value: KeyValue) -> KeyValue:
    return value


@to_key_value.register
def _(value: tuple) -> KeyValue:
    if len(value) != 2:
        raise ConversionError(
            f"expected a (key, value) pair, got a tuple of {len(value)} items"
        )
    return KeyValue.new(value[0], value[1])


_TARGET_DISPATCHERS: dict[type, Any] = {
    Key: to_key,
    Value: to_value,
    StringValue: to_string_value,
    KeyValue: to_key_value,
}


def _construct(target: type[T]) -> Callable[[Any], T]:
    def construct(value: Any) -> T:
        try:
            return target(value)  # type: ignore[call-arg]
        except (TypeError, ValueError) as e:
            raise ConversionError(
                f"no conversion from {_describe(value)} into {target.__qualname__}; "
                f"register one with @conversion({_describe(value)}, {target.__qualname__})"
            ) from e

    construct.__name__ = f"construct_{target.__name__}"
    return construct


def dispatcher_for(target: type) -> Any:
    """Return the singledispatch function converting into ``target``.

    The four telemetry types use their module-level dispatchers. Any other
    type gets a dispatcher on first use whose default calls ``target(value)``.

    Args:
        target: Type to convert into

    Returns:
        A ``functools.singledispatch`` function
    """
    dispatcher = _TARGET_DISPATCHERS.get(target)
    if dispatcher is not None:
        return dispatcher
    with _registry_lock:
        dispatcher = _intermediate_dispatchers.get(target)
        if dispatcher is None:
            dispatcher = functools.singledispatch(_construct(target))
            _intermediate_dispatchers[target] = dispatcher
        return dispatcher


def convert(value: Any, target: type[T]) -> T:
    """Convert ``value`` into ``target`` using registered conversions.

    Args:
        value: Object to convert
        target: Destination type

    Returns:
        ``value`` itself if it already is a ``target``, otherwise the result
        of the registered conversion

    Raises:
        ConversionError: If no conversion applies
    """
    if isinstance(value, target):
        return value
    return dispatcher_for(target)(value)


def register_conversion(source: type, target: type, func: Callable[[Any], Any]) -> None:
    """Register ``func`` as the conversion from ``source`` into ``target``.

    Args:
        source: Type whose instances ``func`` accepts
        target: Type ``func`` returns
        func: Conversion taking one ``source`` instance
    """
    dispatcher = dispatcher_for(target)
    with _registry_lock:
        dispatcher.register(source, func)
    logger.debug(
        "Registered conversion %s -> %s", source.__qualname__, target.__qualname__
    )


def conversion(source: type, target: type) -> Callable[[F], F]:
    """Decorator registering a conversion from ``source`` into ``target``.

    Example:
        @conversion(Config, Key)
        def config_key(_: Config) -> Key:
            return Key("config")
    """

    def decorator(func: F) -> F:
        register_conversion(source, target, func)
        return func

    return decorator


def has_conversion(source: type, target: type) -> bool:
    """Check whether instances of ``source`` can be converted into ``target``.

    Only registered conversions and protocol methods count; the constructor
    fallback used for other intermediate types is not considered.
    """
    if issubclass(source, target):
        return True
    dispatcher = dispatcher_for(target)
    if dispatcher.dispatch(source) is not dispatcher.dispatch(object):
        return True
    method = BY_VALUE_METHODS.get(target)
    return method is not None and hasattr(source, method)


def to_attributes(*items: Any) -> Attributes:
    """Convert items into an OpenTelemetry attribute mapping.

    Each item goes through ``to_key_value``; later items win on duplicate keys.

    Example:
        span.set_attributes(to_attributes(request, ("retry", 2)))
    """
    attributes: dict[str, Any] = {}
    for item in items:
        name, value = to_key_value(item).to_attribute()
        attributes[name] = value
    return attributes
