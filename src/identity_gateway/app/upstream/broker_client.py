"""Async HTTP client for the upstream identity broker.

Sends flow requests built by the RequestMediator to the broker's REST API.
Auth uses the gateway's own static bearer key (server-side only, a separate
credential space from every tenant secret carried in the payloads).

Calls are never retried here: a timeout or transport error surfaces as an
``UpstreamFault`` on the first attempt. Retrying an authentication or
logout call is the broker's decision, not the gateway's.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from identity_gateway.app.errors import NotFoundError, UpstreamFault, UpstreamTimeoutError
from identity_gateway.app.mediation.flow_requests import (
    AuthenticationRequest,
    AuthorizationRequest,
    AuthTokenRequest,
    CredentialsRequest,
    EndSessionRequest,
    OIDCConfigurationRequest,
    ServiceAccountTokenRequest,
    TokenRequest,
)
from identity_gateway.app.observability.metrics import UPSTREAM_DURATION_SECONDS

logger = logging.getLogger(__name__)

_API_ROOT = "/v1/identity"


# ── Client ───────────────────────────────────────────────────────


class BrokerClient:
    """Async HTTP client implementing the UpstreamBroker protocol."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str = "",
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")

        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient()
        self._timeout = float(timeout_seconds)

    def _auth_headers(self) -> dict[str, str]:
        # Never log these headers.
        if not self._api_key:
            return {}
        return {"Authorization": f"Bearer {self._api_key}"}

    def _raise_for_status(self, resp: httpx.Response, operation: str) -> None:
        if resp.status_code < 400:
            return

        message = f"Upstream {operation} failed with HTTP {resp.status_code}"
        try:
            payload = resp.json()
            if isinstance(payload, dict):
                message = str(payload.get("detail") or payload.get("message") or message)
        except ValueError:
            pass

        if resp.status_code == 404:
            raise NotFoundError(message)

        raise UpstreamFault(message, upstream_status=resp.status_code)

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        json: Any | None = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Execute one HTTP request. Timeouts and transport errors become UpstreamFault."""
        url = f"{self._base_url}{_API_ROOT}{path}"
        start = time.perf_counter()
        try:
            resp = await self._client.request(
                method,
                url,
                headers=self._auth_headers(),
                json=json,
                params=params,
                timeout=self._timeout,
            )
        except httpx.TimeoutException as e:
            logger.warning("Broker %s timed out after %.1fs", operation, self._timeout)
            raise UpstreamTimeoutError() from e
        except httpx.TransportError as e:
            logger.warning("Broker %s transport error: %s", operation, type(e).__name__)
            raise UpstreamFault("Upstream identity service unreachable") from e
        finally:
            UPSTREAM_DURATION_SECONDS.labels(operation=operation).observe(
                time.perf_counter() - start,
            )

        self._raise_for_status(resp, operation)
        return resp

    async def _post_object(self, operation: str, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        resp = await self._request(operation, "POST", path, json=payload)
        return self._json_object(resp, operation)

    @staticmethod
    def _json_object(resp: httpx.Response, operation: str) -> dict[str, Any]:
        try:
            result = resp.json()
        except ValueError as e:
            raise UpstreamFault(f"Upstream {operation} returned invalid JSON") from e
        if not isinstance(result, dict):
            raise UpstreamFault(
                f"Expected object from upstream {operation}, got {type(result).__name__}",
            )
        return result

    @staticmethod
    def _bool_field(result: dict[str, Any], key: str, operation: str) -> bool:
        value = result.get(key)
        if not isinstance(value, bool):
            raise UpstreamFault(f"Upstream {operation} response missing boolean {key!r}")
        return value

    # ── Public API ───────────────────────────────────────────────

    async def authenticate(self, request: AuthenticationRequest) -> dict[str, Any]:
        return await self._post_object("authenticate", "/authenticate", request.to_payload())

    async def is_authenticated(self, request: AuthTokenRequest) -> bool:
        result = await self._post_object(
            "is_authenticated", "/authenticate/status", request.to_payload(),
        )
        return self._bool_field(result, "authenticated", "is_authenticated")

    async def get_user(self, request: AuthTokenRequest) -> dict[str, Any]:
        return await self._post_object("get_user", "/user", request.to_payload())

    async def get_service_account_token(
        self, request: ServiceAccountTokenRequest,
    ) -> dict[str, Any]:
        return await self._post_object(
            "service_account_token", "/account/token", request.to_payload(),
        )

    async def end_session(self, request: EndSessionRequest) -> bool:
        result = await self._post_object("end_session", "/logout", request.to_payload())
        ended = self._bool_field(result, "status", "end_session")
        logger.info("User session ended", extra={"tenant_id": request.tenant_id})
        return ended

    async def authorize(self, request: AuthorizationRequest) -> dict[str, Any]:
        return await self._post_object("authorize", "/authorize", request.to_payload())

    async def token(self, request: TokenRequest) -> dict[str, Any]:
        return await self._post_object("token", "/token", request.to_payload())

    async def get_credentials(self, request: CredentialsRequest) -> dict[str, Any]:
        return await self._post_object("get_credentials", "/credentials", request.to_payload())

    async def get_oidc_configuration(
        self, request: OIDCConfigurationRequest,
    ) -> dict[str, Any]:
        resp = await self._request(
            "get_oidc_configuration",
            "GET",
            "/.well-known/openid-configuration",
            params=request.to_payload(),
        )
        return self._json_object(resp, "get_oidc_configuration")

    async def introspect_session(self, access_token: str) -> dict[str, Any] | None:
        """Return the broker's session record for ``access_token``, or None if unknown."""
        try:
            result = await self._post_object(
                "introspect_session",
                "/session/introspect",
                {"access_token": access_token},
            )
        except NotFoundError:
            return None
        return result

