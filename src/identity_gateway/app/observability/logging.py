"""structlog setup for the identity gateway.

Gateway code logs through structlog; third-party libraries keep using the
stdlib ``logging`` module. Both end up in one stdout handler rendered
either as JSON lines or as coloured console output.

Per-request fields (``request_id``) are bound with
``structlog.contextvars`` by the HTTP middleware and merged into every
event emitted while the request runs.

Secret-bearing keys are scrubbed from every event before rendering, so a
careless ``logger.info("x", password=...)`` still never reaches a sink.

Usage::

    from identity_gateway.app.observability.logging import get_logger

    logger = get_logger(__name__)
    logger.info("token_issued", tenant_id="10000", client_id="web-app")
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

REDACTED = "[REDACTED]"

SENSITIVE_KEYS: frozenset[str] = frozenset({
    "authorization",
    "access_token",
    "refresh_token",
    "code",
    "password",
    "client_secret",
    "iam_client_secret",
    "platform_client_secret",
    "federated_client_secret",
    "broker_api_key",
    "credential_store_key",
})

# Libraries whose INFO output is noise next to the access log.
_QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore")

_configured = False


def _redact_secrets(
    logger: Any, method_name: str, event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog processor replacing values of ``SENSITIVE_KEYS``."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def _pre_chain() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        # Carries stdlib `extra=` fields; no-op for structlog events.
        structlog.stdlib.ExtraAdder(),
        _redact_secrets,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def configure_logging(*, level: str = "INFO", json_output: bool = True) -> None:
    """Install the gateway logging pipeline. Later calls are no-ops."""
    global _configured
    if _configured:
        return
    _configured = True

    pre_chain = _pre_chain()
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    ))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
