"""Immutable upstream requests, one type per gateway flow.

Each request is built fresh by the RequestMediator from caller input plus
exactly one CredentialClaim, handed to the broker, then discarded.
``to_payload()`` renders the broker wire body.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class IdentityClaim:
    """Key/value identity claim forwarded with an access token."""

    key: str
    value: str

    def to_payload(self) -> dict[str, str]:
        return {'key': self.key, 'value': self.value}


@dataclass(frozen=True, slots=True)
class AuthenticationRequest:
    tenant_id: str
    client_id: str
    client_secret: str = field(repr=False)
    username: str
    password: str = field(repr=False)

    def to_payload(self) -> dict[str, Any]:
        return {
            'tenant_id': self.tenant_id,
            'client_id': self.client_id,
            'client_secret': self.client_secret,
            'username': self.username,
            'password': self.password,
        }


@dataclass(frozen=True, slots=True)
class AuthTokenRequest:
    """Access token plus the gateway-derived identity claims.

    Used by both the session-status and user-profile flows.
    """

    access_token: str = field(repr=False)
    claims: tuple[IdentityClaim, ...] = ()

    def claim_value(self, key: str) -> str | None:
        for claim in self.claims:
            if claim.key == key:
                return claim.value
        return None

    def to_payload(self) -> dict[str, Any]:
        return {
            'access_token': self.access_token,
            'claims': [c.to_payload() for c in self.claims],
        }


@dataclass(frozen=True, slots=True)
class ServiceAccountTokenRequest:
    tenant_id: str
    client_id: str
    client_secret: str = field(repr=False)

    def to_payload(self) -> dict[str, Any]:
        return {
            'tenant_id': self.tenant_id,
            'client_id': self.client_id,
            'client_secret': self.client_secret,
        }


@dataclass(frozen=True, slots=True)
class EndSessionRequest:
    tenant_id: str
    client_id: str
    client_secret: str = field(repr=False)
    refresh_token: str = field(repr=False)

    def to_payload(self) -> dict[str, Any]:
        return {
            'tenant_id': self.tenant_id,
            'client_id': self.client_id,
            'client_secret': self.client_secret,
            'refresh_token': self.refresh_token,
        }


@dataclass(frozen=True, slots=True)
class AuthorizationRequest:
    client_id: str
    redirect_uri: str
    tenant_id: int | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            'client_id': self.client_id,
            'redirect_uri': self.redirect_uri,
        }
        if self.tenant_id is not None:
            payload['tenant_id'] = self.tenant_id
        return payload


@dataclass(frozen=True, slots=True)
class TokenRequest:
    """Token exchange request. Only the fields of ``grant_type`` are set."""

    tenant_id: str
    client_id: str
    client_secret: str = field(repr=False)
    grant_type: str
    code: str | None = field(default=None, repr=False)
    redirect_uri: str | None = None
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    refresh_token: str | None = field(default=None, repr=False)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            'tenant_id': self.tenant_id,
            'client_id': self.client_id,
            'client_secret': self.client_secret,
            'grant_type': self.grant_type,
        }
        for key in ('code', 'redirect_uri', 'username', 'password', 'refresh_token'):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload


@dataclass(frozen=True, slots=True)
class CredentialsRequest:
    """Stored-credential lookup, keyed entirely by the resolved claim."""

    platform_client_id: str
    platform_client_secret: str = field(repr=False)
    platform_client_id_issued_at: int
    platform_client_secret_expires_at: int
    federated_client_id: str
    federated_client_secret: str = field(repr=False)
    iam_client_id: str
    iam_client_secret: str = field(repr=False)

    def to_payload(self) -> dict[str, Any]:
        return {
            'credentials': {
                'client_id': self.platform_client_id,
                'client_secret': self.platform_client_secret,
                'client_id_issued_at': self.platform_client_id_issued_at,
                'client_secret_expires_at': self.platform_client_secret_expires_at,
                'federated_client_id': self.federated_client_id,
                'federated_client_secret': self.federated_client_secret,
                'iam_client_id': self.iam_client_id,
                'iam_client_secret': self.iam_client_secret,
            },
        }


@dataclass(frozen=True, slots=True)
class OIDCConfigurationRequest:
    client_id: str

    def to_payload(self) -> dict[str, Any]:
        return {'client_id': self.client_id}
