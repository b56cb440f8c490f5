"""Shared fixtures for identity gateway unit tests."""

from __future__ import annotations

import pytest

from gateway_fakes import (
    RECORD_A,
    RECORD_B,
    RECORD_EXPIRED,
    CountingCredentialStore,
    RecordingBroker,
    make_broker,
)


@pytest.fixture
def credential_store() -> CountingCredentialStore:
    return CountingCredentialStore([RECORD_A, RECORD_B, RECORD_EXPIRED])


@pytest.fixture
def broker() -> RecordingBroker:
    return make_broker()
