"""Tests for derived Key conversions."""

from __future__ import annotations

import enum

from otelkit.derive import Key, derive, derived_conversions, otel, to_key


class TestDefaultKey:
    """Key defaults to the lowercased class name."""

    def test_auto(self) -> None:
        @derive(Key)
        class Auto:
            pass

        assert to_key(Auto()).as_str() == "auto"
        assert Auto().__otel_key__().as_str() == "auto"

    def test_no_word_splitting(self) -> None:
        @derive(Key)
        class HTTPRequest:
            pass

        assert to_key(HTTPRequest()).as_str() == "httprequest"

    def test_enum(self) -> None:
        @derive(Key)
        class Method(enum.Enum):
            GET = "get"
            POST = "post"

        assert to_key(Method.GET) == Key("method")
        assert to_key(Method.POST) == Key("method")

    def test_subclass_inherits_parent_key(self) -> None:
        @derive(Key)
        class Base:
            pass

        class Derived(Base):
            pass

        assert to_key(Derived()).as_str() == "base"


class TestExplicitKey:
    """An explicit ``key`` option overrides the default."""

    def test_overriden(self) -> None:
        @derive(Key)
        @otel(key="custom")
        class Overriden:
            pass

        assert to_key(Overriden()).as_str() == "custom"
        assert Overriden().__otel_key__().as_str() == "custom"

    def test_text_annotation(self) -> None:
        @derive(Key)
        @otel('key = "http.method"')
        class Verb:
            pass

        assert to_key(Verb()).as_str() == "http.method"

    def test_key_with_quotes_is_emitted_safely(self) -> None:
        @derive(Key)
        @otel(key='say "hi"\n')
        class Quoted:
            pass

        assert to_key(Quoted()).as_str() == 'say "hi"\n'

    def test_variant_is_ignored(self) -> None:
        @derive(Key)
        @otel(key="k", variant=int)
        class WithVariant:
            pass

        assert to_key(WithVariant()).as_str() == "k"


class TestGeneratedKeyConversion:
    """Shape of the generated functions."""

    def test_by_value_forwards_to_by_reference(self) -> None:
        @derive(Key)
        class Forwarded:
            pass

        conversion = derived_conversions(Forwarded)["Key"]
        instance = Forwarded()

        assert conversion.by_value(instance) == conversion.by_reference(instance)
        assert "return key_from_ref(self)" in conversion.source
        assert "return Key('forwarded')" in conversion.source

    def test_method_is_installed(self) -> None:
        @derive(Key)
        class Installed:
            pass

        assert Installed.__otel_key__.__qualname__.endswith("Installed.__otel_key__")
        assert Installed.__otel_key__.__module__ == __name__

    def test_values_are_equal_for_same_instance(self) -> None:
        @derive(Key)
        @otel(key="same")
        class Same:
            pass

        instance = Same()
        assert to_key(instance) == instance.__otel_key__() == Key("same")
