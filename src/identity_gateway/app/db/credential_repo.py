"""PostgREST-backed CredentialStore implementation.

Reads tenant credential records from ``identity.tenant_credentials``. One
row per platform client; ``is_primary`` marks the row used when a tenant is
resolved from an end-user session rather than from a client id.

Storage failures are converted to ``UpstreamFault`` here so the resolver
never mistakes a broken store for an unknown client.
"""

from __future__ import annotations

import logging
from typing import Any

from identity_gateway.app.errors import UpstreamFault, UpstreamTimeoutError

from .errors import PostgrestError, PostgrestTimeoutError
from .postgrest_client import PostgrestClient

logger = logging.getLogger(__name__)


class PostgrestCredentialRepository:
    """CredentialStore backed by identity.tenant_credentials via PostgREST."""

    TABLE = "identity.tenant_credentials"

    def __init__(self, client: PostgrestClient) -> None:
        self._client = client

    async def _select_one(self, filters: dict[str, Any]) -> dict[str, Any] | None:
        try:
            rows = await self._client.select(self.TABLE, filters=filters, limit=1)
        except PostgrestTimeoutError as exc:
            raise UpstreamTimeoutError("Credential store timed out") from exc
        except PostgrestError as exc:
            logger.error(
                "Credential lookup failed: status=%s code=%s",
                exc.status_code,
                exc.code,
            )
            raise UpstreamFault("Credential store lookup failed") from exc
        return rows[0] if rows else None

    async def get_by_client_id(self, client_id: str) -> dict[str, Any] | None:
        return await self._select_one({"client_id": client_id})

    async def get_by_tenant_id(self, tenant_id: str) -> dict[str, Any] | None:
        return await self._select_one({"tenant_id": tenant_id, "is_primary": True})
