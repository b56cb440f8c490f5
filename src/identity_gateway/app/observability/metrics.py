"""Prometheus series exported by the identity gateway on ``/metrics``.

All series live in the default registry so the process collectors that
``prometheus_client`` installs (CPU, memory, GC) are exported alongside.

Three groups:

``identity_gateway_http_*``
    Request count, latency and in-flight gauge, labelled by route template.
``identity_gateway_flow_total``
    One increment per finished identity flow, labelled by flow name and an
    outcome from ``FLOW_OUTCOMES``.
``identity_gateway_upstream_duration_seconds``
    Latency of each broker call, labelled by broker operation.
"""

from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

_LATENCY_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)

FLOW_OUTCOMES: tuple[str, ...] = (
    "ok",
    "unauthorized",
    "bad_request",
    "not_found",
    "upstream_fault",
)

HTTP_REQUESTS_TOTAL = Counter(
    "identity_gateway_http_requests_total",
    "Finished HTTP requests.",
    ["method", "route", "status"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "identity_gateway_http_request_duration_seconds",
    "Wall time spent serving an HTTP request.",
    ["method", "route"],
    buckets=_LATENCY_BUCKETS,
)

HTTP_REQUESTS_IN_FLIGHT = Gauge(
    "identity_gateway_http_requests_in_flight",
    "HTTP requests currently being served.",
)

FLOW_OUTCOMES_TOTAL = Counter(
    "identity_gateway_flow_total",
    "Identity flows by flow name and outcome.",
    ["flow", "outcome"],
)

UPSTREAM_DURATION_SECONDS = Histogram(
    "identity_gateway_upstream_duration_seconds",
    "Wall time of calls to the upstream identity broker.",
    ["operation"],
    buckets=_LATENCY_BUCKETS,
)


def record_flow_outcome(flow: str, outcome: str) -> None:
    if outcome not in FLOW_OUTCOMES:
        raise ValueError(f"unknown flow outcome {outcome!r}")
    FLOW_OUTCOMES_TOTAL.labels(flow=flow, outcome=outcome).inc()


def render_latest() -> tuple[bytes, str]:
    """Exposition payload for the default registry, plus its content type."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
