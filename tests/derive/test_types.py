"""Tests for the telemetry attribute data model."""

from __future__ import annotations

import dataclasses

import pytest

from otelkit.derive import Key, KeyValue, StringValue, Value, ValueKind


class TestKeyAndStringValue:
    def test_key(self) -> None:
        key = Key("http.method")
        assert key.as_str() == str(key) == "http.method"
        assert key == Key("http.method")
        assert hash(key) == hash(Key("http.method"))

    def test_string_value(self) -> None:
        value = StringValue("GET")
        assert value.as_str() == str(value) == "GET"
        assert value != StringValue("POST")

    def test_frozen(self) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            Key("a").name = "b"  # type: ignore[misc]


class TestValue:
    """Rendering and OpenTelemetry shapes of Value."""

    @pytest.mark.parametrize(
        "value, text",
        [
            (Value.from_bool(True), "true"),
            (Value.from_bool(False), "false"),
            (Value.from_int(-3), "-3"),
            (Value.from_float(0.25), "0.25"),
            (Value.from_string("foo=bar"), "foo=bar"),
            (Value.from_array((1, 2)), "[1,2]"),
            (Value.from_array(("a", "b")), '["a","b"]'),
            (Value.from_array((True, False)), "[true,false]"),
            (Value.from_array(()), "[]"),
        ],
    )
    def test_as_str(self, value: Value, text: str) -> None:
        assert value.as_str() == text
        assert str(value) == text

    def test_string_payload_is_string_value(self) -> None:
        value = Value.from_string("x")
        assert value.kind is ValueKind.STRING
        assert value.payload == StringValue("x")
        assert Value.from_string(StringValue("x")) == value

    @pytest.mark.parametrize(
        "value, expected",
        [
            (Value.from_bool(True), True),
            (Value.from_int(7), 7),
            (Value.from_float(1.5), 1.5),
            (Value.from_string("s"), "s"),
            (Value.from_array(("a", "b")), ["a", "b"]),
        ],
    )
    def test_to_attribute_value(self, value: Value, expected: object) -> None:
        assert value.to_attribute_value() == expected

    def test_kinds_are_distinguished(self) -> None:
        assert Value.from_int(1) != Value.from_bool(True)
        assert Value.from_int(1) == Value.from_int(1)


class TestKeyValue:
    def test_new_converts_both_sides(self) -> None:
        pair = KeyValue.new("retries", 2)

        assert pair == KeyValue(Key("retries"), Value.from_int(2))
        assert pair.to_attribute() == ("retries", 2)

    def test_new_with_typed_parts(self) -> None:
        pair = KeyValue.new(Key("tags"), Value.from_array(("a",)))
        assert pair.to_attribute() == ("tags", ["a"])
