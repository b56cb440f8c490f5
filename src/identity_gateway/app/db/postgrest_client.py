"""Read-only async PostgREST client used by the gateway's record stores.

The gateway never writes credential or membership rows, so the client only
knows how to run equality-filtered ``GET`` queries. Tables may be
schema-qualified (``identity.tenant_credentials``); the schema is selected
with PostgREST's ``Accept-Profile`` header.
"""

from __future__ import annotations

from typing import Any, Mapping

import httpx

from .errors import PostgrestError, PostgrestTimeoutError


def _eq(value: Any) -> str:
    if value is None:
        raise ValueError("equality filters cannot match NULL")
    if isinstance(value, bool):
        value = str(value).lower()
    return f"eq.{value}"


class PostgrestClient:
    """Equality lookups against a PostgREST endpoint with a service key.

    Args:
        base_url: PostgREST root, e.g. ``https://store.internal/rest/v1``.
        service_key: Key sent as ``apikey`` and bearer token. Never logged.
        http_client: Shared ``httpx.AsyncClient``; the owner closes it.
        default_schema: Schema used for unqualified table names.
        timeout_seconds: Per-request timeout.
    """

    def __init__(
        self,
        *,
        base_url: str,
        service_key: str,
        http_client: httpx.AsyncClient,
        default_schema: str = "public",
        timeout_seconds: float = 10.0,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")
        if not service_key:
            raise ValueError("service_key is required")
        self._root = base_url.rstrip("/")
        self._key = service_key
        self._http = http_client
        self._schema = default_schema or "public"
        self._timeout = float(timeout_seconds)

    def _target(self, table: str) -> tuple[str, str]:
        schema, dot, name = table.strip().rpartition(".")
        return (schema if dot else self._schema), name

    async def select(
        self,
        table: str,
        filters: Mapping[str, Any] | None = None,
        *,
        columns: str = "*",
        limit: int | None = None,
        order: str | None = None,
    ) -> list[dict[str, Any]]:
        """Return rows of ``table`` whose columns equal ``filters``.

        Raises:
            PostgrestTimeoutError: No response within the timeout.
            PostgrestError: Transport failure, error status or non-list body.
        """
        schema, name = self._target(table)
        params = {column: _eq(value) for column, value in (filters or {}).items()}
        params["select"] = columns
        if limit is not None:
            params["limit"] = str(limit)
        if order:
            params["order"] = order

        try:
            resp = await self._http.get(
                f"{self._root}/{name}",
                params=params,
                headers={
                    "apikey": self._key,
                    "Authorization": f"Bearer {self._key}",
                    "Accept-Profile": schema,
                },
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            raise PostgrestTimeoutError() from exc
        except httpx.TransportError as exc:
            raise PostgrestError(0, f"transport error: {type(exc).__name__}") from exc

        if resp.is_error:
            raise PostgrestError.from_response(resp)
        rows = resp.json()
        if not isinstance(rows, list):
            raise PostgrestError(resp.status_code, "select returned a non-list body")
        return rows
