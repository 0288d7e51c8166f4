"""OpenTelemetry test fixtures."""

from collections.abc import Generator

import pytest
from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from route_picker.core import telemetry
from route_picker.core.config import settings


@pytest.fixture
def otel_enabled_provider(
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[tuple[TracerProvider, InMemorySpanExporter]]:
    """
    TracerProvider recording spans in memory, installed as the global provider.

    Spans never leave the process. SimpleSpanProcessor exports synchronously,
    so spans are visible as soon as they end.

    Yields:
        Tuple of (TracerProvider, InMemorySpanExporter)
    """
    monkeypatch.setattr(settings, "OTEL_ENABLED", True)

    exporter = InMemorySpanExporter()
    provider = TracerProvider(
        resource=Resource(
            attributes={
                "service.name": "route-picker-test",
                "deployment.environment": "test",
            }
        )
    )
    provider.add_span_processor(SimpleSpanProcessor(exporter))

    # set_tracer_provider() refuses to replace a provider once set
    trace._TRACER_PROVIDER = provider  # type: ignore[attr-defined]

    yield provider, exporter

    exporter.clear()
    trace._TRACER_PROVIDER = None  # type: ignore[attr-defined]


@pytest.fixture(autouse=True)
def reset_tracer_provider() -> Generator[None]:
    """Reset the telemetry module globals so spans never leak between tests."""
    telemetry._tracer_slot.clear()
    telemetry._logger_slot.clear()
    trace._TRACER_PROVIDER = None  # type: ignore[attr-defined]

    yield

    telemetry._tracer_slot.clear()
    telemetry._logger_slot.clear()
    trace._TRACER_PROVIDER = None  # type: ignore[attr-defined]
