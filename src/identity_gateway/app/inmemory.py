"""In-memory store implementations for local development.

These are used when ENVIRONMENT=local. They satisfy the store protocols
but hold everything in dicts (no persistence across restarts). Records
can be seeded at construction so tests and local runs share one shape
with the PostgREST-backed stores.
"""

from __future__ import annotations

from typing import Any, Iterable


class InMemoryCredentialStore:
    def __init__(self, records: Iterable[dict[str, Any]] = ()) -> None:
        self._by_client_id: dict[str, dict[str, Any]] = {}
        self._by_tenant_id: dict[str, dict[str, Any]] = {}
        for record in records:
            self.add(record)

    def add(self, record: dict[str, Any]) -> None:
        """Register a credential record. The first record per tenant is primary."""
        self._by_client_id[str(record["client_id"])] = record
        self._by_tenant_id.setdefault(str(record["tenant_id"]), record)

    async def get_by_client_id(self, client_id: str) -> dict[str, Any] | None:
        return self._by_client_id.get(client_id)

    async def get_by_tenant_id(self, tenant_id: str) -> dict[str, Any] | None:
        return self._by_tenant_id.get(tenant_id)


class InMemoryMembershipStore:
    def __init__(self, records: Iterable[dict[str, Any]] = ()) -> None:
        self._memberships: list[dict[str, Any]] = []
        for record in records:
            self.add(record)

    def add(self, record: dict[str, Any]) -> dict[str, Any]:
        membership = {"id": record.get("id") or len(self._memberships) + 1, **record}
        self._memberships.append(membership)
        return membership

    def _match(self, **criteria: str) -> list[dict[str, Any]]:
        return [
            m for m in self._memberships
            if all(str(m.get(key)) == value for key, value in criteria.items())
        ]

    async def find_by_group(self, group_id: str) -> list[dict[str, Any]]:
        return self._match(group_id=group_id)

    async def find_by_user_profile(self, user_profile_id: str) -> list[dict[str, Any]]:
        return self._match(user_profile_id=user_profile_id)

    async def find_by_group_and_user(
        self, group_id: str, user_profile_id: str,
    ) -> list[dict[str, Any]]:
        return self._match(group_id=group_id, user_profile_id=user_profile_id)

    async def find_by_group_user_and_type(
        self, group_id: str, user_profile_id: str, membership_type_id: str,
    ) -> list[dict[str, Any]]:
        return self._match(
            group_id=group_id,
            user_profile_id=user_profile_id,
            membership_type_id=membership_type_id,
        )

    async def find_by_group_and_type(
        self, group_id: str, membership_type_id: str,
    ) -> list[dict[str, Any]]:
        return self._match(group_id=group_id, membership_type_id=membership_type_id)
