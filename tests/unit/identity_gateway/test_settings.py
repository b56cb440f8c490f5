"""Unit tests for GatewaySettings validation and env loading."""

from __future__ import annotations

import dataclasses

import pytest

from identity_gateway.app.settings import GatewaySettings


def _staging(**overrides) -> GatewaySettings:
    defaults = {
        "environment": "staging",
        "broker_url": "https://broker.internal",
        "broker_api_key": "broker-key-not-real",
        "credential_store_url": "https://store.internal/rest/v1",
        "credential_store_key": "store-key-not-real",
    }
    defaults.update(overrides)
    return GatewaySettings(**defaults)


class TestDefaults:
    def test_local_defaults_are_valid(self):
        settings = GatewaySettings()
        assert settings.is_local
        assert settings.validate() == []
        assert settings.api_prefix == ""
        assert settings.upstream_timeout_seconds == 10.0

    def test_settings_are_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            GatewaySettings().environment = "production"  # type: ignore[misc]


class TestValidate:
    def test_complete_staging_is_valid(self):
        assert _staging().validate() == []

    @pytest.mark.parametrize("field", [
        "broker_api_key",
        "credential_store_url",
        "credential_store_key",
    ])
    def test_non_local_requires_connection_details(self, field):
        errors = _staging(**{field: ""}).validate()
        assert any(field in e for e in errors)

    def test_non_local_rejects_local_broker(self):
        errors = _staging(broker_url="http://localhost:8081").validate()
        assert any("broker_url" in e for e in errors)

    def test_timeout_must_be_positive(self):
        assert GatewaySettings(upstream_timeout_seconds=0).validate()

    @pytest.mark.parametrize("prefix", ["api", "/api/"])
    def test_bad_prefix(self, prefix):
        assert GatewaySettings(api_prefix=prefix).validate()

    def test_good_prefix(self):
        assert GatewaySettings(api_prefix="/api/v1").validate() == []


class TestFromEnv:
    def test_empty_env_gives_defaults(self):
        assert GatewaySettings.from_env({}) == GatewaySettings()

    def test_reads_all_fields(self):
        settings = GatewaySettings.from_env({
            "ENVIRONMENT": "production",
            "BROKER_URL": "https://broker.internal",
            "BROKER_API_KEY": "k",
            "UPSTREAM_TIMEOUT_SECONDS": "2.5",
            "CREDENTIAL_STORE_URL": "https://store.internal",
            "CREDENTIAL_STORE_KEY": "s",
            "API_PREFIX": "/api",
            "CORS_ORIGINS": "https://a.example.com, https://b.example.com",
            "LOG_LEVEL": "DEBUG",
            "LOG_FORMAT": "console",
        })
        assert settings.environment == "production"
        assert settings.upstream_timeout_seconds == 2.5
        assert settings.cors_origins == ("https://a.example.com", "https://b.example.com")
        assert settings.api_prefix == "/api"
        assert settings.log_format == "console"
        assert settings.validate() == []

    def test_bad_timeout_raises(self):
        with pytest.raises(ValueError, match="UPSTREAM_TIMEOUT_SECONDS"):
            GatewaySettings.from_env({"UPSTREAM_TIMEOUT_SECONDS": "soon"})
