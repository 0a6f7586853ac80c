"""Validators and code synthesizers for the four derivable capabilities.

Each capability validates the shared ``AttributeOptions`` into a plan, then
emits Python source for two functions: a by-reference conversion registered
with the target's dispatcher, and a by-value method that only forwards to it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

from ._codegen import GeneratedConversion, compile_conversion
from ._source import SourceLocation
from .conversions import BY_VALUE_METHODS, convert, has_conversion, to_key, to_value
from .descriptor import TypeDescriptor
from .errors import (
    MalformedOption,
    MissingRequiredOption,
    UnknownCapability,
    UnsatisfiedPrecondition,
)
from .options import AttributeOptions
from .types import Key, KeyValue, StringValue, Value

_TEMPLATE = """\
def {reference}(instance):
    {body}


def {method}(self):
    return {reference}(self)
"""

# Variants a subclass can be converted into by calling the variant itself.
_BUILTIN_VARIANTS = (int, float, str)

# Intermediate types whose constructor accepts any object.
_ALWAYS_CONSTRUCTIBLE = (str, bool)
_CONSTRUCTOR_PROTOCOLS: dict[type, tuple[str, ...]] = {
    int: ("__int__", "__index__"),
    float: ("__float__", "__index__"),
}


@dataclass
class ConversionPlan:
    """Validated inputs for one synthesizer run.

    Args:
        body: Single statement forming the by-reference function body
        namespace: Globals the emitted source needs
        variant: Intermediate type, for Value derivations
    """

    body: str
    namespace: dict[str, Any] = field(default_factory=dict)
    variant: type | None = None


class Derivation:
    """Base class for one derivable capability."""

    target: ClassVar[type]
    reference_name: ClassVar[str]

    @property
    def name(self) -> str:
        return self.target.__name__

    @property
    def method_name(self) -> str:
        return BY_VALUE_METHODS[self.target]

    def validate(
        self,
        cls: type,
        descriptor: TypeDescriptor,
        options: AttributeOptions,
        annotation_location: SourceLocation | None,
    ) -> ConversionPlan:
        """Check the options this capability uses and build its plan.

        Raises:
            DeriveError: If a required option is missing or malformed
        """
        raise NotImplementedError

    def synthesize(self, cls: type, plan: ConversionPlan) -> GeneratedConversion:
        """Emit and compile the conversion pair for ``cls``."""
        source = _TEMPLATE.format(
            reference=self.reference_name,
            method=self.method_name,
            body=plan.body,
        )
        return compile_conversion(
            capability=self.name,
            cls=cls,
            source=source,
            namespace=plan.namespace,
            reference_name=self.reference_name,
            method_name=self.method_name,
        )

    def check_preconditions(
        self,
        cls: type,
        descriptor: TypeDescriptor,
        plan: ConversionPlan,
        pending: frozenset[type],
    ) -> None:
        """Verify at decoration time what the generated code relies on.

        Only run in strict mode. ``pending`` holds the targets derived in the
        same ``derive`` call, which are not registered yet.

        Raises:
            UnsatisfiedPrecondition: If a required conversion is missing
        """


class KeyDerivation(Derivation):
    """``Key`` from an explicit ``key`` option or the lowercased class name."""

    target = Key
    reference_name = "key_from_ref"

    def validate(
        self,
        cls: type,
        descriptor: TypeDescriptor,
        options: AttributeOptions,
        annotation_location: SourceLocation | None,
    ) -> ConversionPlan:
        key = options.key if options.key is not None else default_key(descriptor)
        return ConversionPlan(body=f"return Key({key!r})", namespace={"Key": Key})


class ValueDerivation(Derivation):
    """``Value`` through the intermediate type named by ``variant``."""

    target = Value
    reference_name = "value_from_ref"

    def validate(
        self,
        cls: type,
        descriptor: TypeDescriptor,
        options: AttributeOptions,
        annotation_location: SourceLocation | None,
    ) -> ConversionPlan:
        if options.variant is None:
            raise MissingRequiredOption(
                f"missing required option `variant` for derive(Value) on `{descriptor.name}`",
                detail="add @otel(variant=<type>) naming a type convertible into Value",
                location=annotation_location or descriptor.location,
            )
        variant = options.variant.resolve()
        if issubclass(cls, variant) and variant in _BUILTIN_VARIANTS:
            # Instances already are the variant; build a plain one instead of
            # dispatching on cls again.
            return ConversionPlan(
                body="return to_value(variant(instance))",
                namespace={"to_value": to_value, "variant": variant},
                variant=variant,
            )
        if variant in (Value, KeyValue) or issubclass(cls, variant):
            raise MalformedOption(
                f"`variant` of `{descriptor.name}` cannot be `{variant.__qualname__}`",
                detail="name an intermediate type such as int, float, bool, str or StringValue",
                location=options.variant.location,
            )
        return ConversionPlan(
            body="return to_value(convert(instance, variant))",
            namespace={"to_value": to_value, "convert": convert, "variant": variant},
            variant=variant,
        )

    def check_preconditions(
        self,
        cls: type,
        descriptor: TypeDescriptor,
        plan: ConversionPlan,
        pending: frozenset[type],
    ) -> None:
        variant = plan.variant
        assert variant is not None
        if not (variant in pending or has_conversion(cls, variant) or _constructible(cls, variant)):
            raise UnsatisfiedPrecondition(
                f"`{descriptor.name}` has no conversion into `{variant.__qualname__}`",
                detail=f"register one with @conversion({descriptor.name}, {variant.__qualname__})",
                location=descriptor.location,
            )
        if not has_conversion(variant, Value):
            raise UnsatisfiedPrecondition(
                f"`variant` type `{variant.__qualname__}` does not convert into Value",
                detail="use bool, int, float, str, StringValue or a type with a Value conversion",
                location=descriptor.location,
            )


class StringValueDerivation(Derivation):
    """``StringValue`` from the class's ``str()`` representation."""

    target = StringValue
    reference_name = "string_value_from_ref"

    def validate(
        self,
        cls: type,
        descriptor: TypeDescriptor,
        options: AttributeOptions,
        annotation_location: SourceLocation | None,
    ) -> ConversionPlan:
        return ConversionPlan(
            body="return StringValue(str(instance))",
            namespace={"StringValue": StringValue},
        )

    def check_preconditions(
        self,
        cls: type,
        descriptor: TypeDescriptor,
        plan: ConversionPlan,
        pending: frozenset[type],
    ) -> None:
        if cls.__str__ is object.__str__ and cls.__repr__ is object.__repr__:
            raise UnsatisfiedPrecondition(
                f"`{descriptor.name}` does not define a string representation",
                detail="implement __str__",
                location=descriptor.location,
            )


class KeyValueDerivation(Derivation):
    """``KeyValue`` composed from the class's Key and Value conversions."""

    target = KeyValue
    reference_name = "key_value_from_ref"

    def validate(
        self,
        cls: type,
        descriptor: TypeDescriptor,
        options: AttributeOptions,
        annotation_location: SourceLocation | None,
    ) -> ConversionPlan:
        return ConversionPlan(
            body="return KeyValue(to_key(instance), to_value(instance))",
            namespace={"KeyValue": KeyValue, "to_key": to_key, "to_value": to_value},
        )

    def check_preconditions(
        self,
        cls: type,
        descriptor: TypeDescriptor,
        plan: ConversionPlan,
        pending: frozenset[type],
    ) -> None:
        for part in (Key, Value):
            if part not in pending and not has_conversion(cls, part):
                raise UnsatisfiedPrecondition(
                    f"`{descriptor.name}` has no conversion into {part.__name__}",
                    detail=f"derive it with @derive({part.__name__}, KeyValue) or register one",
                    location=descriptor.location,
                )


CAPABILITIES: dict[type, Derivation] = {
    derivation.target: derivation
    for derivation in (
        KeyDerivation(),
        ValueDerivation(),
        StringValueDerivation(),
        KeyValueDerivation(),
    )
}


def default_key(descriptor: TypeDescriptor) -> str:
    """Key used when no ``key`` option is given: the class name, lowercased.

    No word splitting happens, so ``HTTPRequest`` becomes ``httprequest``.
    """
    return descriptor.name.lower()


def resolve_capability(request: Any, location: SourceLocation | None = None) -> Derivation:
    """Map a ``derive`` argument to its capability.

    Args:
        request: One of the telemetry types, or its name
        location: Where ``derive`` was called

    Raises:
        UnknownCapability: If ``request`` is not one of the four capabilities
    """
    for target, derivation in CAPABILITIES.items():
        if request is target or request == target.__name__:
            return derivation
    raise UnknownCapability(
        f"cannot derive `{getattr(request, '__name__', request)}`",
        detail="expected Key, Value, StringValue or KeyValue",
        location=location,
    )


def _constructible(cls: type, variant: type) -> bool:
    if variant in _ALWAYS_CONSTRUCTIBLE:
        return True
    return any(hasattr(cls, method) for method in _CONSTRUCTOR_PROTOCOLS.get(variant, ()))
