"""Access logging middleware using structlog with OTEL trace correlation."""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "x-request-id"


class AccessLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log one structured event per HTTP request.

    Each request gets a request id (taken from X-Request-ID when the client
    sends one) bound into structlog's context, so every log line emitted
    while handling an action carries it. The id is echoed on the response.

    Log fields:
        - method, path, status_code, duration_ms
        - client_ip and forwarded_for (first X-Forwarded-For hop)
        - request_id
        - trace_id/span_id: added by the OTEL processor
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Bind the request id, run the request and log the outcome."""
        start_time = time.perf_counter()
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex

        client_ip = request.client.host if request.client else "unknown"
        forwarded_for = None
        if xff_header := request.headers.get("x-forwarded-for"):
            forwarded_for = xff_header.split(",")[0].strip()

        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        duration_ms = (time.perf_counter() - start_time) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id

        log_kwargs: dict[str, str | int | float | None] = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
            "client_ip": client_ip,
            "request_id": request_id,
        }
        if forwarded_for:
            log_kwargs["forwarded_for"] = forwarded_for

        logger.info("http_request", **log_kwargs)

        return response
