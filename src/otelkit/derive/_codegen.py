"""Compilation of synthesized conversion source."""

from __future__ import annotations

import linecache
from dataclasses import dataclass
from typing import Any, Callable


@dataclass(frozen=True)
class GeneratedConversion:
    """Conversion functions emitted for one capability on one class.

    Args:
        capability: Capability name (``Key``, ``Value``, ...)
        type_name: Qualified name of the annotated class
        source: Python source both functions were compiled from
        by_reference: ``(instance) -> target`` registered with the dispatcher
        by_value: Method installed on the class, forwarding to ``by_reference``
        method_name: Attribute name ``by_value`` is installed under
    """

    capability: str
    type_name: str
    source: str
    by_reference: Callable[[Any], Any]
    by_value: Callable[[Any], Any]
    method_name: str


def compile_conversion(
    *,
    capability: str,
    cls: type,
    source: str,
    namespace: dict[str, Any],
    reference_name: str,
    method_name: str,
) -> GeneratedConversion:
    """Compile emitted source and pull the two conversion functions out.

    The source is registered with ``linecache`` so tracebacks through the
    generated functions show their code.

    Args:
        capability: Capability name
        cls: Annotated class
        source: Module-level source defining ``reference_name`` and ``method_name``
        namespace: Globals the source runs with
        reference_name: Name of the by-reference function in ``source``
        method_name: Name of the by-value method in ``source``

    Returns:
        The compiled conversion pair
    """
    filename = f"<otel-derive {capability} {cls.__module__}.{cls.__qualname__}>"
    code = compile(source, filename, "exec")
    scope = dict(namespace)
    exec(code, scope)
    linecache.cache[filename] = (len(source), None, source.splitlines(True), filename)

    by_reference = scope[reference_name]
    by_value = scope[method_name]
    for func in (by_reference, by_value):
        func.__module__ = cls.__module__
        func.__qualname__ = f"{cls.__qualname__}.{func.__name__}"

    return GeneratedConversion(
        capability=capability,
        type_name=cls.__qualname__,
        source=source,
        by_reference=by_reference,
        by_value=by_value,
        method_name=method_name,
    )
