"""OpenTelemetry tracing and log export."""

import threading
from collections.abc import Callable, Generator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Generic, TypeVar

import structlog
from opentelemetry import trace
from opentelemetry._logs import set_logger_provider as otel_set_logger_provider
from opentelemetry.exporter.otlp.proto.http._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk._logs import LoggerProvider
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import SpanKind, Status, StatusCode

from route_picker import __version__
from route_picker.core.config import require_config, settings

if TYPE_CHECKING:
    from opentelemetry.trace.span import Span

logger = structlog.get_logger(__name__)

ProviderT = TypeVar("ProviderT", TracerProvider, LoggerProvider)


class _ProviderSlot(Generic[ProviderT]):
    """
    Process-wide provider created on first use.

    Providers own exporter threads, so they are built lazily in the uvicorn
    worker that uses them rather than at import time in the parent.
    """

    def __init__(self, name: str, factory: Callable[[], ProviderT]) -> None:
        self.name = name
        self._factory = factory
        self._lock = threading.Lock()
        self.provider: ProviderT | None = None

    def get(self) -> ProviderT | None:
        if not settings.OTEL_ENABLED:
            return None
        if self.provider is None:
            with self._lock:
                if self.provider is None:
                    self.provider = self._factory()
        return self.provider

    def shutdown(self) -> None:
        """Flush and stop the provider if one was created. Safe to call repeatedly."""
        if self.provider is not None:
            self.provider.shutdown()
            logger.info("otel_provider_shutdown", provider=self.name)

    def clear(self) -> None:
        self.provider = None


def _service_resource() -> Resource:
    return Resource(
        attributes={
            "service.name": settings.OTEL_SERVICE_NAME,
            "service.version": __version__,
            "deployment.environment": settings.OTEL_ENVIRONMENT,
        }
    )


def _parse_otlp_headers(headers_str: str) -> dict[str, str]:
    """
    Parse OTLP headers from comma-separated key=value pairs.

    Example:
        >>> _parse_otlp_headers("Authorization=Bearer token123,X-Custom=value")
        {'Authorization': 'Bearer token123', 'X-Custom': 'value'}
    """
    headers: dict[str, str] = {}
    for raw_pair in headers_str.split(","):
        pair = raw_pair.strip()
        if "=" in pair:
            key, value = pair.split("=", 1)
            headers[key.strip()] = value.strip()
        elif pair:
            logger.warning("otel_malformed_header", pair=pair)
    return headers


def _exporter_headers() -> dict[str, str]:
    return _parse_otlp_headers(settings.OTEL_EXPORTER_OTLP_HEADERS or "")


def _create_tracer_provider() -> TracerProvider:
    """
    Build the TracerProvider, exporting in batches when a traces endpoint is set.

    Raises:
        ValueError: If the traces endpoint is missing outside debug mode
    """
    if not settings.DEBUG:
        require_config("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT")

    provider = TracerProvider(resource=_service_resource())
    endpoint = settings.OTEL_EXPORTER_OTLP_TRACES_ENDPOINT
    if endpoint:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, headers=_exporter_headers())))
        logger.info("otel_tracer_provider_created", endpoint=endpoint, environment=settings.OTEL_ENVIRONMENT)
    else:
        logger.warning("otel_no_traces_endpoint_configured", message="traces will not be exported")
    return provider


def _create_logger_provider() -> LoggerProvider:
    """Build the LoggerProvider; the endpoint is optional since logs also go to stdout."""
    provider = LoggerProvider(resource=_service_resource())
    endpoint = settings.OTEL_EXPORTER_OTLP_LOGS_ENDPOINT
    if endpoint:
        provider.add_log_record_processor(
            BatchLogRecordProcessor(OTLPLogExporter(endpoint=endpoint, headers=_exporter_headers()))
        )
        logger.info("otel_logger_provider_created", endpoint=endpoint, log_level=settings.OTEL_LOG_LEVEL)
    else:
        logger.warning("otel_no_logs_endpoint_configured", message="logs will not be exported to OTLP")
    return provider


_tracer_slot = _ProviderSlot("tracer", _create_tracer_provider)
_logger_slot = _ProviderSlot("logger", _create_logger_provider)


def get_tracer_provider() -> TracerProvider | None:
    """Return the worker's TracerProvider, or None when OTEL is disabled."""
    return _tracer_slot.get()


def shutdown_tracer_provider() -> None:
    _tracer_slot.shutdown()


def get_logger_provider() -> LoggerProvider | None:
    """Return the worker's LoggerProvider, or None when OTEL is disabled."""
    return _logger_slot.get()


def set_logger_provider() -> None:
    """Install the LoggerProvider globally; call after fork (in lifespan)."""
    if provider := get_logger_provider():
        otel_set_logger_provider(provider)


def shutdown_logger_provider() -> None:
    _logger_slot.shutdown()


# OpenTelemetry attribute values can be primitives or lists of primitives
AttributeValue = str | int | float | bool | list[str] | list[int] | list[float] | list[bool]


@contextmanager
def service_span(
    name: str,
    service: str,
    kind: SpanKind = SpanKind.INTERNAL,
    **attributes: AttributeValue,
) -> Generator["Span"]:
    """Context manager for service operation spans with explicit status.

    Sets StatusCode.OK on successful completion; the SDK records exceptions
    and sets StatusCode.ERROR when one propagates. The tracer is looked up on
    every call so spans go to whichever provider the lifespan installed.

    Args:
        name: Span name (e.g., "action.updateRouteName")
        service: Service name for peer.service attribute
        kind: Span kind (default INTERNAL)
        **attributes: Additional span attributes

    Yields:
        Span: The active span for setting additional attributes
    """
    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span(name, kind=kind, attributes={"peer.service": service, **attributes}) as span:
        yield span
        span.set_status(Status(StatusCode.OK))
