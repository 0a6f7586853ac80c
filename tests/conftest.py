"""Shared pytest fixtures for all tests."""

from typing import Generator

import pytest
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from otelkit.derive import reset_config


class SpanCapture:
    """Helper to capture and analyze spans."""

    def __init__(self):
        self.exporter = InMemorySpanExporter()
        self.provider = TracerProvider()
        self.provider.add_span_processor(SimpleSpanProcessor(self.exporter))
        trace.set_tracer_provider(self.provider)

    def get_tracer(self, name: str = "otelkit.derive.tests"):
        """Get a tracer from the capturing provider."""
        return self.provider.get_tracer(name)

    def get_spans(self):
        """Get all captured spans."""
        return self.exporter.get_finished_spans()

    def clear(self):
        """Clear captured spans."""
        self.exporter.clear()


@pytest.fixture(scope="session")
def span_capture() -> SpanCapture:
    """Fixture to capture spans - created once for entire test session."""
    return SpanCapture()


@pytest.fixture
def spans(span_capture: SpanCapture) -> Generator[SpanCapture, None, None]:
    """Span capture cleared before each test that uses it."""
    span_capture.clear()
    yield span_capture


@pytest.fixture(autouse=True)
def default_config(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Run every test with the default configuration and no env overrides."""
    monkeypatch.delenv("OTEL_DERIVE_STRICT", raising=False)
    monkeypatch.delenv("OTEL_DERIVE_LOG_SOURCE", raising=False)
    reset_config()
    yield
    reset_config()
