"""Validated option record shared by every capability derived on a class."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Annotated, Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, StringConstraints, ValidationError

from ._source import SourceLocation
from .errors import DuplicateOption, MalformedOption, UnknownOption
from .grammar import RawOption, TypeReference

logger = logging.getLogger(__name__)

NonEmptyStr = Annotated[str, StringConstraints(strict=True, min_length=1)]

_EXPECTED_KINDS = {
    "key": "a non-empty string literal",
    "variant": "a type reference",
}


class AttributeOptions(BaseModel):
    """Options parsed from the ``otel`` annotation of one class.

    Both fields are optional here; capabilities that need one of them check
    for it themselves.
    """

    model_config = ConfigDict(
        frozen=True, extra="forbid", arbitrary_types_allowed=True
    )

    key: Optional[NonEmptyStr] = None
    variant: Optional[TypeReference] = None


@dataclass
class Annotation:
    """All ``otel`` blocks attached to one class, in application order.

    Args:
        options: Raw options of every block
        location: Location of the first block
        namespace: Names type references in the blocks resolve against
    """

    options: list[RawOption] = field(default_factory=list)
    location: SourceLocation | None = None
    namespace: Mapping[str, Any] | None = None

    def extend(self, options: list[RawOption], location: SourceLocation) -> None:
        """Append the options of another ``otel`` block."""
        if self.location is None:
            self.location = location
        self.options.extend(options)


def build_options(raw_options: list[RawOption]) -> AttributeOptions:
    """Validate raw options into an ``AttributeOptions`` record.

    Checks run in this order: duplicated names, unknown names, value kinds.

    Args:
        raw_options: Options as parsed from one or more ``otel`` blocks

    Returns:
        The immutable options record

    Raises:
        DuplicateOption: If an option name appears twice
        UnknownOption: If an option name is not ``key`` or ``variant``
        MalformedOption: If a value has the wrong kind
    """
    by_name: dict[str, RawOption] = {}
    for option in raw_options:
        previous = by_name.get(option.name)
        if previous is not None:
            raise DuplicateOption(
                f"duplicate option `{option.name}`",
                detail=f"first given at {previous.location}",
                location=option.location,
            )
        by_name[option.name] = option

    for option in raw_options:
        if option.name not in AttributeOptions.model_fields:
            raise UnknownOption(
                f"unknown option `{option.name}`",
                detail="expected `key` or `variant`",
                location=option.location,
            )

    # None is a malformed value, not an absent option.
    for option in raw_options:
        if option.value is None:
            raise MalformedOption(
                f"malformed option `{option.name}`",
                detail=f"expected {_EXPECTED_KINDS[option.name]}, got None",
                location=option.location,
            )

    try:
        options = AttributeOptions.model_validate(
            {name: option.value for name, option in by_name.items()}
        )
    except ValidationError as e:
        raise _translate(e, by_name) from None

    logger.debug("Built attribute options: %r", options)
    return options


def _translate(error: ValidationError, by_name: dict[str, RawOption]) -> Exception:
    """Map the first pydantic error onto ``MalformedOption``."""
    first = error.errors()[0]
    name = str(first["loc"][0]) if first["loc"] else ""
    location = by_name[name].location if name in by_name else None
    value = by_name[name].value if name in by_name else None
    return MalformedOption(
        f"malformed option `{name}`",
        detail=f"expected {_EXPECTED_KINDS.get(name, 'a valid value')}, got {value!r}",
        location=location,
    )
