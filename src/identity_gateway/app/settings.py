"""Identity gateway configuration settings.

GatewaySettings is the single configuration object accepted by create_app().
It is a plain dataclass (not env-coupled) so tests can inject config without
touching os.environ.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

_LOCAL_BROKER_URL = "http://localhost:8081"
_DEFAULT_TIMEOUT_SECONDS = 10.0
_DEFAULT_CORS_ORIGINS: tuple[str, ...] = (
    "http://localhost:5173",
    "http://localhost:3000",
)


@dataclass(frozen=True, slots=True)
class GatewaySettings:
    """Configuration for the identity gateway FastAPI application.

    All fields have sensible defaults for local development.
    Non-local environments must supply the broker and credential-store
    connection details.
    """

    # ── Environment ────────────────────────────────────────────────
    environment: str = "local"
    """One of: local, dev, staging, production."""

    # ── Upstream broker ────────────────────────────────────────────
    broker_url: str = _LOCAL_BROKER_URL
    """Base URL of the upstream identity broker."""

    broker_api_key: str = ""
    """Gateway's own key for the broker. Never log this."""

    upstream_timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS
    """Per-call timeout for broker and credential-store requests."""

    # ── Credential store (PostgREST) ───────────────────────────────
    credential_store_url: str = ""
    """PostgREST base URL holding credential and membership records."""

    credential_store_key: str = ""
    """Service key for the credential store. Never log this."""

    # ── HTTP surface ───────────────────────────────────────────────
    api_prefix: str = ""
    """Prefix prepended to the /identity-management routes (e.g. /api/v1)."""

    cors_origins: tuple[str, ...] = _DEFAULT_CORS_ORIGINS
    """Allowed CORS origins."""

    # ── Logging ────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "json"
    """``json`` for JSON lines, anything else for console rendering."""

    @property
    def is_local(self) -> bool:
        return self.environment == "local"

    def validate(self) -> list[str]:
        """Return a list of configuration errors. Empty means valid."""
        errors: list[str] = []
        if self.upstream_timeout_seconds <= 0:
            errors.append("upstream_timeout_seconds must be positive")
        if self.api_prefix and (
            not self.api_prefix.startswith("/") or self.api_prefix.endswith("/")
        ):
            errors.append("api_prefix must start with '/' and not end with '/'")
        if not self.is_local:
            if not self.broker_url or self.broker_url == _LOCAL_BROKER_URL:
                errors.append(f"{self.environment}: broker_url is required")
            if not self.broker_api_key:
                errors.append(f"{self.environment}: broker_api_key is required")
            if not self.credential_store_url:
                errors.append(f"{self.environment}: credential_store_url is required")
            if not self.credential_store_key:
                errors.append(f"{self.environment}: credential_store_key is required")
        return errors

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> GatewaySettings:
        """Build settings from environment variables.

        This is a convenience factory for production use. Tests should
        construct GatewaySettings directly.
        """
        if env is None:
            env = dict(os.environ)

        cors_raw = env.get("CORS_ORIGINS", "")
        cors = tuple(o.strip() for o in cors_raw.split(",") if o.strip()) if cors_raw else _DEFAULT_CORS_ORIGINS

        timeout_raw = env.get("UPSTREAM_TIMEOUT_SECONDS", "")
        try:
            timeout = float(timeout_raw) if timeout_raw else _DEFAULT_TIMEOUT_SECONDS
        except ValueError:
            raise ValueError(
                f"UPSTREAM_TIMEOUT_SECONDS must be a number, got {timeout_raw!r}"
            ) from None

        return cls(
            environment=env.get("ENVIRONMENT", "local"),
            broker_url=env.get("BROKER_URL", _LOCAL_BROKER_URL),
            broker_api_key=env.get("BROKER_API_KEY", ""),
            upstream_timeout_seconds=timeout,
            credential_store_url=env.get("CREDENTIAL_STORE_URL", ""),
            credential_store_key=env.get("CREDENTIAL_STORE_KEY", ""),
            api_prefix=env.get("API_PREFIX", ""),
            cors_origins=cors,
            log_level=env.get("LOG_LEVEL", "INFO"),
            log_format=env.get("LOG_FORMAT", "json"),
        )
