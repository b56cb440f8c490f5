"""HTTP middleware for request correlation, access logging and metrics.

``RequestContextMiddleware`` owns the request id: it reuses a well-formed
``X-Request-ID`` or mints a UUID, binds it into structlog's context for the
lifetime of the request, writes one ``request_completed`` access-log event
and echoes the id on the response.

``MetricsMiddleware`` feeds the HTTP series in ``metrics``. Series are keyed
by the matched route template, so ``/identity-management/user?access_token=...``
and friends never leak query data or create per-call label values.
"""

from __future__ import annotations

import re
import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from .logging import get_logger
from .metrics import (
    HTTP_REQUEST_DURATION_SECONDS,
    HTTP_REQUESTS_IN_FLIGHT,
    HTTP_REQUESTS_TOTAL,
)

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9\-]{8,128}$")

# Label used for requests that matched no route (404s, probes).
_UNMATCHED_ROUTE = "<unmatched>"


def resolve_request_id(candidate: str | None) -> str:
    """Return ``candidate`` when it is a well-formed id, else a fresh UUID4."""
    if candidate and _REQUEST_ID_PATTERN.fullmatch(candidate):
        return candidate
    return str(uuid.uuid4())


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or _UNMATCHED_ROUTE


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Correlate every log event of a request and emit its access log."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        started = time.perf_counter()
        with structlog.contextvars.bound_contextvars(request_id=request_id):
            response = await call_next(request)
            logger.info(
                "request_completed",
                method=request.method,
                route=_route_template(request),
                status=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Count, time and gauge in-flight HTTP requests per route template."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        HTTP_REQUESTS_IN_FLIGHT.inc()
        started = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            HTTP_REQUESTS_IN_FLIGHT.dec()
            route = _route_template(request)
            HTTP_REQUEST_DURATION_SECONDS.labels(request.method, route).observe(
                time.perf_counter() - started,
            )
            HTTP_REQUESTS_TOTAL.labels(request.method, route, str(status)).inc()
