"""Structured logging for the API and the CLI.

Everything, including stdlib loggers from uvicorn and SQLAlchemy, is rendered
by structlog. Events carry the request id bound by the access logging
middleware and, when a span is recording, its trace and span ids.
"""

import logging
import sys
from collections.abc import MutableMapping
from typing import Any, Literal

import structlog
from opentelemetry import trace
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.util.types import Attributes

LogFormat = Literal["console", "json"]

# Event keys that may hold a bearer token or an identity provider secret
REDACTED_KEYS = frozenset({"authorization", "token", "access_token", "id_token"})

# Third-party loggers held at WARNING whatever the application level
QUIET_LOGGERS = (
    "httpx",
    "httpcore",
    "aiosqlite",
    "sqlalchemy.engine.Engine",
    "opentelemetry.exporter.otlp.proto.http",
    "uvicorn.access",
)


def _add_otel_context(
    logger: logging.Logger, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Add OpenTelemetry trace and span IDs to log events for correlation."""
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def _redact_credentials(
    logger: logging.Logger, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    for key in event_dict.keys() & REDACTED_KEYS:
        event_dict[key] = "[redacted]"
    return event_dict


class FilteredOTLPHandler(LoggingHandler):
    """OTLP handler that drops record attributes the exporter cannot serialize.

    structlog leaves its ``_logger`` on every stdlib record, and LoggingHandler
    skips formatters, so it has to be removed here.
    See: https://github.com/open-telemetry/opentelemetry-python/issues/3649
    """

    DROP_ATTRIBUTES = frozenset({"_logger"})

    @staticmethod
    def _get_attributes(record: logging.LogRecord) -> Attributes:
        attributes = LoggingHandler._get_attributes(record)
        if attributes is None:
            return None
        return {k: v for k, v in attributes.items() if k not in FilteredOTLPHandler.DROP_ATTRIBUTES}


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _redact_credentials,
        _add_otel_context,
    ]


def _renderer(log_format: LogFormat) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def _otel_handler(provider: LoggerProvider, level_name: str) -> FilteredOTLPHandler:
    return FilteredOTLPHandler(level=logging.getLevelNamesMapping()[level_name], logger_provider=provider)


def configure_logging(*, log_level: str = "INFO", log_format: LogFormat | None = None) -> None:
    """
    Route structlog and stdlib logging through one structlog formatter on stdout.

    When OpenTelemetry is enabled and a LoggerProvider exists, records are
    also exported over OTLP at OTEL_LOG_LEVEL.

    Args:
        log_level: Log level name, case insensitive
        log_format: "console" or "json"; defaults to the LOG_FORMAT setting
    """
    # Lazy import: telemetry logs through this module
    from route_picker.core.config import settings  # noqa: PLC0415

    level = log_level.upper()
    processors = _shared_processors()

    structlog.configure(
        processors=[*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_format or settings.LOG_FORMAT),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(stdout_handler)
    root_logger.setLevel(level)

    if settings.OTEL_ENABLED:
        from route_picker.core.telemetry import get_logger_provider  # noqa: PLC0415

        if provider := get_logger_provider():
            root_logger.addHandler(_otel_handler(provider, settings.OTEL_LOG_LEVEL))
            structlog.get_logger(__name__).info(
                "otel_logging_handler_attached",
                level=settings.OTEL_LOG_LEVEL,
                endpoint=settings.OTEL_EXPORTER_OTLP_LOGS_ENDPOINT,
            )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
