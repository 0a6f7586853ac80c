"""Minimal description of a class conversions are derived for."""

from __future__ import annotations

import enum
import inspect
from dataclasses import dataclass

from ._source import SourceLocation, definition_location
from .errors import UnsupportedItemKind


class Shape(str, enum.Enum):
    """Kind of data type a descriptor describes."""

    STRUCT = "struct"
    ENUM = "enum"


@dataclass(frozen=True)
class TypeDescriptor:
    """Name and shape of an annotated class.

    Fields and members are not inspected.
    """

    name: str
    qualname: str
    shape: Shape
    location: SourceLocation


def describe(item: object) -> TypeDescriptor:
    """Build the descriptor for a decorated item.

    Args:
        item: Object the decorator was applied to

    Returns:
        Descriptor with the class name and shape

    Raises:
        UnsupportedItemKind: If ``item`` is not a class, or is a built-in or
            extension class that conversions cannot be attached to
    """
    if not inspect.isclass(item):
        kind = _item_kind(item)
        raise UnsupportedItemKind(
            f"cannot derive conversions for {kind} `{_item_name(item)}`",
            detail="only classes and enums are supported",
            location=definition_location(item),
        )

    location = definition_location(item)
    if not _accepts_attributes(item):
        raise UnsupportedItemKind(
            f"cannot derive conversions for built-in type `{item.__qualname__}`",
            detail="register conversions for it with @conversion(...) instead",
            location=location,
        )

    shape = Shape.ENUM if issubclass(item, enum.Enum) else Shape.STRUCT
    return TypeDescriptor(
        name=item.__name__,
        qualname=item.__qualname__,
        shape=shape,
        location=location,
    )


def _accepts_attributes(cls: type) -> bool:
    probe = "__otel_probe__"
    try:
        setattr(cls, probe, None)
    except (TypeError, AttributeError):
        return False
    delattr(cls, probe)
    return True


def _item_kind(item: object) -> str:
    if inspect.isfunction(item) or inspect.isbuiltin(item) or inspect.ismethod(item):
        return "function"
    if inspect.ismodule(item):
        return "module"
    return f"{type(item).__name__} value"


def _item_name(item: object) -> str:
    return getattr(item, "__qualname__", None) or getattr(item, "__name__", None) or repr(item)
