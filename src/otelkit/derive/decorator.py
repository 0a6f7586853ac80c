"""Class decorators deriving telemetry conversions.

``otel`` records the annotation of a class and ``derive`` turns it into
conversion functions::

    @derive(Key, KeyValue, StringValue, Value)
    @otel(key="req", variant=StringValue)
    class Request:
        def __init__(self, query: str) -> None:
            self.query = query

        def __str__(self) -> str:
            return self.query

    to_key_value(Request("foo=bar")) == KeyValue.new("req", "foo=bar")

Decorators apply bottom-up, so ``otel`` must sit below ``derive``. The
annotation may also be written as text, ``@otel('key = "req", variant = StringValue')``.
"""

from __future__ import annotations

import logging
import re
from types import MappingProxyType
from typing import Any, Callable, Mapping, TypeVar

from ._codegen import GeneratedConversion
from ._source import SourceLocation, caller_frame, frame_location, source_line
from .capabilities import Derivation, resolve_capability
from .config import DeriveConfig, get_config
from .conversions import register_conversion
from .descriptor import describe
from .diagnostics import report
from .errors import AnnotationOrderError, AnnotationSyntaxError, DeriveError, UnknownCapability
from .grammar import (
    RawOption,
    options_from_values,
    parse_annotation,
    parse_options,
    resolution_namespace,
)
from .options import Annotation, build_options

logger = logging.getLogger(__name__)

C = TypeVar("C", bound=type)

ANNOTATION_ATTR = "__otel_annotation__"
DERIVED_ATTR = "__otel_derived__"

_FULL_FORM = re.compile(r"^\s*otel\s*\(")


def otel(text: str | None = None, /, **options: Any) -> Callable[[C], C]:
    """Attach an ``otel`` annotation to a class.

    Args:
        text: Annotation as text, either the option list
            (``'key = "req", variant = int'``) or the full ``otel(...)`` form
        **options: Options as keyword arguments (``key="req", variant=int``)

    Returns:
        Class decorator storing the annotation for a later ``derive``

    Raises:
        AnnotationSyntaxError: If ``text`` is malformed or both forms are given
        DuplicateOption: If an option repeats one from an earlier block
    """
    frame = caller_frame()
    location = frame_location(frame)
    if frame is not None:
        namespace = resolution_namespace(frame.f_locals, frame.f_globals)
    else:
        namespace = resolution_namespace()
    del frame

    try:
        raw = _raw_options(text, options, location, namespace)
    except DeriveError as e:
        report(e)
        raise

    def decorator(cls: C) -> C:
        try:
            describe(cls)
            if DERIVED_ATTR in vars(cls):
                raise AnnotationOrderError(
                    f"`otel` applied to `{cls.__qualname__}` after `derive`",
                    detail="place @otel(...) below @derive(...)",
                    location=location,
                )
            annotation = vars(cls).get(ANNOTATION_ATTR)
            # Each block is validated before it is attached.
            build_options([*(annotation.options if annotation else []), *raw])
            if annotation is None:
                annotation = Annotation(namespace=namespace)
                setattr(cls, ANNOTATION_ATTR, annotation)
            annotation.extend(raw, location)
        except DeriveError as e:
            report(e)
            raise
        return cls

    return decorator


def derive(*capabilities: Any, config: DeriveConfig | None = None) -> Callable[[C], C]:
    """Derive telemetry conversions for a class.

    Args:
        *capabilities: Any of ``Key``, ``Value``, ``StringValue``,
            ``KeyValue`` (the types or their names)
        config: Overrides the process-wide configuration for this call

    Returns:
        Class decorator registering the conversions and returning the class

    Raises:
        DeriveError: If the class or its annotation is invalid; nothing is
            registered in that case. ``error.diagnostic`` holds the rendered
            diagnostic.

    Example:
        @derive(Value)
        @otel(variant=int)
        class Counter:
            ...
    """
    location = frame_location(caller_frame())

    def decorator(cls: C) -> C:
        try:
            _derive(cls, capabilities, config or get_config(), location)
        except DeriveError as e:
            report(e)
            raise
        return cls

    return decorator


def derived_conversions(cls: type) -> Mapping[str, GeneratedConversion]:
    """Return the conversions ``derive`` generated for ``cls``, by capability name."""
    return MappingProxyType(dict(vars(cls).get(DERIVED_ATTR, {})))


def _raw_options(
    text: str | None,
    options: dict[str, Any],
    location: SourceLocation,
    namespace: Mapping[str, Any],
) -> list[RawOption]:
    if text is None:
        return options_from_values(options, location)
    if options:
        raise AnnotationSyntaxError(
            "annotation given both as text and as keyword options",
            detail="use one form per otel(...) block",
            location=location,
        )
    origin = _text_origin(text, location)
    if _FULL_FORM.match(text):
        return parse_annotation(text, origin, namespace)
    return parse_options(text, origin, namespace)


def _text_origin(text: str, location: SourceLocation) -> SourceLocation:
    """Best-effort location of the first character of ``text`` in the source."""
    line = source_line(location)
    first = text.strip().splitlines()[0] if text.strip() else ""
    if line is None or not first:
        return location
    index = line.find(first)
    if index < 0:
        return location
    return SourceLocation(location.filename, location.lineno, index + 1)


def _derive(
    cls: type,
    capabilities: tuple[Any, ...],
    config: DeriveConfig,
    location: SourceLocation,
) -> None:
    if not capabilities:
        raise UnknownCapability(
            "derive() needs at least one capability",
            detail="expected Key, Value, StringValue or KeyValue",
            location=location,
        )
    derivations: list[Derivation] = []
    for request in capabilities:
        derivation = resolve_capability(request, location)
        if derivation not in derivations:
            derivations.append(derivation)

    descriptor = describe(cls)
    annotation = vars(cls).get(ANNOTATION_ATTR) or Annotation()
    options = build_options(annotation.options)

    plans = [
        (d, d.validate(cls, descriptor, options, annotation.location))
        for d in derivations
    ]
    if config.strict:
        pending = frozenset(d.target for d in derivations)
        for d, plan in plans:
            d.check_preconditions(cls, descriptor, plan, pending)
    generated = [(d, d.synthesize(cls, plan)) for d, plan in plans]

    derived = dict(vars(cls).get(DERIVED_ATTR, {}))
    for d, conversion in generated:
        register_conversion(cls, d.target, conversion.by_reference)
        setattr(cls, conversion.method_name, conversion.by_value)
        derived[d.name] = conversion
        if config.log_generated_source:
            logger.debug(
                "Generated %s conversion for %s:\n%s",
                d.name,
                descriptor.qualname,
                conversion.source,
            )
    setattr(cls, DERIVED_ATTR, derived)
    logger.debug(
        "Derived %s for %s",
        ", ".join(d.name for d in derivations),
        descriptor.qualname,
    )
