"""Store and broker protocol interfaces for dependency injection.

These protocols define the contracts that concrete implementations (InMemory
for local dev, PostgREST/HTTP for non-local) must satisfy. The app factory
accepts any implementation that matches these protocols.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .mediation.flow_requests import (
        AuthenticationRequest,
        AuthorizationRequest,
        AuthTokenRequest,
        CredentialsRequest,
        EndSessionRequest,
        OIDCConfigurationRequest,
        ServiceAccountTokenRequest,
        TokenRequest,
    )


@runtime_checkable
class CredentialStore(Protocol):
    """Read-only lookup of stored credential records."""

    async def get_by_client_id(self, client_id: str) -> dict[str, Any] | None: ...
    async def get_by_tenant_id(self, tenant_id: str) -> dict[str, Any] | None: ...


@runtime_checkable
class MembershipStore(Protocol):
    """Keyed lookup of group/user membership records."""

    async def find_by_group(self, group_id: str) -> list[dict[str, Any]]: ...
    async def find_by_user_profile(self, user_profile_id: str) -> list[dict[str, Any]]: ...
    async def find_by_group_and_user(
        self, group_id: str, user_profile_id: str,
    ) -> list[dict[str, Any]]: ...
    async def find_by_group_user_and_type(
        self, group_id: str, user_profile_id: str, membership_type_id: str,
    ) -> list[dict[str, Any]]: ...
    async def find_by_group_and_type(
        self, group_id: str, membership_type_id: str,
    ) -> list[dict[str, Any]]: ...


@runtime_checkable
class UpstreamBroker(Protocol):
    """Identity operations executed by the upstream broker.

    Implementations raise ``NotFoundError`` when the broker reports no
    matching tenant/credential and ``UpstreamFault`` for anything else.
    """

    async def authenticate(self, request: AuthenticationRequest) -> dict[str, Any]: ...
    async def is_authenticated(self, request: AuthTokenRequest) -> bool: ...
    async def get_user(self, request: AuthTokenRequest) -> dict[str, Any]: ...
    async def get_service_account_token(
        self, request: ServiceAccountTokenRequest,
    ) -> dict[str, Any]: ...
    async def end_session(self, request: EndSessionRequest) -> bool: ...
    async def authorize(self, request: AuthorizationRequest) -> dict[str, Any]: ...
    async def token(self, request: TokenRequest) -> dict[str, Any]: ...
    async def get_credentials(self, request: CredentialsRequest) -> dict[str, Any]: ...
    async def get_oidc_configuration(
        self, request: OIDCConfigurationRequest,
    ) -> dict[str, Any]: ...
    async def introspect_session(self, access_token: str) -> dict[str, Any] | None: ...
