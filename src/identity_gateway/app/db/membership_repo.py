"""PostgREST-backed MembershipStore implementation.

Read-only keyed lookups over ``identity.user_group_memberships``. The
gateway core never consults memberships; policy code elsewhere does.
"""

from __future__ import annotations

from typing import Any

from identity_gateway.app.errors import UpstreamFault

from .errors import PostgrestError
from .postgrest_client import PostgrestClient


class PostgrestMembershipRepository:
    """MembershipStore backed by identity.user_group_memberships via PostgREST."""

    TABLE = "identity.user_group_memberships"

    def __init__(self, client: PostgrestClient) -> None:
        self._client = client

    async def _find(self, **filters: str) -> list[dict[str, Any]]:
        try:
            return await self._client.select(self.TABLE, filters=filters, order="id.asc")
        except PostgrestError as exc:
            raise UpstreamFault("Membership store lookup failed") from exc

    async def find_by_group(self, group_id: str) -> list[dict[str, Any]]:
        return await self._find(group_id=group_id)

    async def find_by_user_profile(self, user_profile_id: str) -> list[dict[str, Any]]:
        return await self._find(user_profile_id=user_profile_id)

    async def find_by_group_and_user(
        self, group_id: str, user_profile_id: str,
    ) -> list[dict[str, Any]]:
        return await self._find(group_id=group_id, user_profile_id=user_profile_id)

    async def find_by_group_user_and_type(
        self, group_id: str, user_profile_id: str, membership_type_id: str,
    ) -> list[dict[str, Any]]:
        return await self._find(
            group_id=group_id,
            user_profile_id=user_profile_id,
            membership_type_id=membership_type_id,
        )

    async def find_by_group_and_type(
        self, group_id: str, membership_type_id: str,
    ) -> list[dict[str, Any]]:
        return await self._find(group_id=group_id, membership_type_id=membership_type_id)
