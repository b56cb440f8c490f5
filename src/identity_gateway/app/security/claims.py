"""Resolved, tenant-scoped credential bundle.

A ``CredentialClaim`` is produced once per inbound call by the credential
resolver and discarded when the call ends. It is never persisted and never
logged in full: secret fields are excluded from ``repr`` and ``log_fields()``
only exposes identifiers.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Mapping

# Claim attributes that must be non-empty before a claim can be used.
REQUIRED_FIELDS: tuple[str, ...] = (
    'tenant_id',
    'iam_client_id',
    'iam_client_secret',
    'platform_client_id',
    'platform_client_secret',
)

# Stored credential record column -> claim attribute.
RECORD_FIELD_MAP: dict[str, str] = {
    'tenant_id': 'tenant_id',
    'iam_client_id': 'iam_client_id',
    'iam_client_secret': 'iam_client_secret',
    'client_id': 'platform_client_id',
    'client_secret': 'platform_client_secret',
    'client_id_issued_at': 'platform_client_id_issued_at',
    'client_secret_expires_at': 'platform_client_secret_expires_at',
    'federated_client_id': 'federated_client_id',
    'federated_client_secret': 'federated_client_secret',
}

# Record columns that must be present (timestamps may legitimately be 0).
REQUIRED_RECORD_COLUMNS: tuple[str, ...] = (
    'tenant_id',
    'iam_client_id',
    'iam_client_secret',
    'client_id',
    'client_secret',
    'client_id_issued_at',
    'client_secret_expires_at',
)


@dataclass(frozen=True, slots=True)
class CredentialClaim:
    """Tenant-scoped credentials attached to a single call.

    Attributes:
        tenant_id: Tenant the caller belongs to.
        iam_client_id / iam_client_secret: Tenant IAM credential pair.
        platform_client_id / platform_client_secret: Cross-tenant credential
            pair identifying the calling application.
        platform_client_id_issued_at: Epoch seconds the platform id was issued.
        platform_client_secret_expires_at: Epoch seconds the platform secret
            expires; ``0`` means it never expires.
        federated_client_id / federated_client_secret: Federated login
            provider credentials, empty when the tenant has none configured.
        username: Set only when resolution was anchored to an end-user token.

    Raises:
        ValueError: If a required field is empty. A partially populated claim
            is a programming error.
    """

    tenant_id: str
    iam_client_id: str
    iam_client_secret: str = field(repr=False)
    platform_client_id: str
    platform_client_secret: str = field(repr=False)
    platform_client_id_issued_at: int
    platform_client_secret_expires_at: int
    federated_client_id: str = ''
    federated_client_secret: str = field(default='', repr=False)
    username: str | None = None

    def __post_init__(self) -> None:
        missing = [name for name in REQUIRED_FIELDS if not getattr(self, name)]
        if missing:
            raise ValueError(
                f"CredentialClaim missing required fields: {', '.join(missing)}"
            )

    @classmethod
    def from_record(
        cls,
        record: Mapping[str, Any],
        *,
        username: str | None = None,
    ) -> CredentialClaim:
        """Build a claim from a stored credential record.

        Raises:
            ValueError: If the record lacks a required column.
        """
        missing = [col for col in REQUIRED_RECORD_COLUMNS if record.get(col) in (None, '')]
        if missing:
            raise ValueError(
                f"credential record missing columns: {', '.join(missing)}"
            )
        values: dict[str, Any] = {}
        for column, attr in RECORD_FIELD_MAP.items():
            value = record.get(column)
            if value is None:
                continue
            if attr.endswith('_at'):
                values[attr] = int(value)
            else:
                values[attr] = str(value)
        return cls(username=username, **values)

    def with_username(self, username: str) -> CredentialClaim:
        """Return a copy of this claim anchored to ``username``."""
        return dataclasses.replace(self, username=username)

    def is_expired(self, now: float) -> bool:
        expires_at = self.platform_client_secret_expires_at
        return expires_at > 0 and now >= expires_at

    def log_fields(self) -> dict[str, str]:
        """Identifiers that are safe to include in log events."""
        return {
            'tenant_id': self.tenant_id,
            'client_id': self.platform_client_id,
        }
