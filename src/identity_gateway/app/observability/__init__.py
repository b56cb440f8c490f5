"""Logging, metrics and request correlation for the gateway."""

from .logging import configure_logging, get_logger
from .metrics import record_flow_outcome, render_latest
from .middleware import MetricsMiddleware, RequestContextMiddleware

__all__ = [
    'MetricsMiddleware',
    'RequestContextMiddleware',
    'configure_logging',
    'get_logger',
    'record_flow_outcome',
    'render_latest',
]
