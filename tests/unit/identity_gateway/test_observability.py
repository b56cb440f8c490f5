"""Tests for gateway logging redaction and Prometheus metrics."""

from __future__ import annotations

import json
import logging

import structlog
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from identity_gateway.app import GatewaySettings, create_app
from identity_gateway.app.observability.logging import REDACTED, _pre_chain, _redact_secrets

from gateway_fakes import NOW, RECORD_A, CountingCredentialStore, basic_auth, make_broker


def _flow_count(flow: str, outcome: str) -> float:
    value = REGISTRY.get_sample_value(
        "identity_gateway_flow_total", {"flow": flow, "outcome": outcome},
    )
    return value or 0.0


def test_secret_keys_are_redacted():
    event = _redact_secrets(None, "info", {
        "event": "token_issued",
        "tenant_id": "1",
        "client_secret": "s3cret",
        "password": "pw",
        "refresh_token": "rt",
    })
    assert event["tenant_id"] == "1"
    assert event["client_secret"] == REDACTED
    assert event["password"] == REDACTED
    assert event["refresh_token"] == REDACTED


def test_metrics_endpoint_exposes_flow_counters():
    app = create_app(
        GatewaySettings(),
        credential_store=CountingCredentialStore([RECORD_A]),
        broker=make_broker(),
        clock=lambda: NOW,
    )
    client = TestClient(app)

    ok_before = _flow_count("service_account_token", "ok")
    denied_before = _flow_count("service_account_token", "unauthorized")

    client.get("/identity-management/account/token", headers=basic_auth("clientA", "secretA"))
    client.get("/identity-management/account/token")

    assert _flow_count("service_account_token", "ok") == ok_before + 1
    assert _flow_count("service_account_token", "unauthorized") == denied_before + 1

    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "identity_gateway_flow_total" in resp.text
    assert "identity_gateway_http_requests_total" in resp.text


def test_body_validation_counts_as_bad_request_outcome():
    app = create_app(
        GatewaySettings(),
        credential_store=CountingCredentialStore([RECORD_A]),
        broker=make_broker(),
        clock=lambda: NOW,
    )
    client = TestClient(app)

    before = _flow_count("token", "bad_request")
    resp = client.post(
        "/identity-management/token",
        headers=basic_auth("clientA", "secretA"),
        json={"code": {"a": 1}},
    )

    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_request"
    assert _flow_count("token", "bad_request") == before + 1


def test_stdlib_extra_fields_reach_rendered_event():
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_pre_chain(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.JSONRenderer(),
        ],
    )
    record = logging.LogRecord(
        "identity_gateway.app.upstream.broker_client", logging.INFO,
        __file__, 1, "User session ended", None, None,
    )
    record.tenant_id = "1"
    record.client_secret = "s3cret"

    event = json.loads(formatter.format(record))

    assert event["event"] == "User session ended"
    assert event["tenant_id"] == "1"
    assert event["client_secret"] == REDACTED
