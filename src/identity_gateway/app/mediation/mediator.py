"""Per-flow validation and upstream request construction.

The mediator turns (caller input, resolved claim) into a new immutable
flow request. Tenant ids, client ids and client secrets are always taken
from the claim; the methods here do not accept caller-supplied values for
those fields on any flow that performs resolution.

All validation failures raise ``BadRequestError`` naming the offending
field. Nothing here performs I/O.
"""

from __future__ import annotations

from urllib.parse import urlsplit

from identity_gateway.app.errors import BadRequestError
from identity_gateway.app.security.claims import CredentialClaim

from .flow_requests import (
    AuthenticationRequest,
    AuthorizationRequest,
    AuthTokenRequest,
    CredentialsRequest,
    EndSessionRequest,
    IdentityClaim,
    OIDCConfigurationRequest,
    ServiceAccountTokenRequest,
    TokenRequest,
)

GRANT_AUTHORIZATION_CODE = 'authorization_code'
GRANT_PASSWORD = 'password'
GRANT_REFRESH_TOKEN = 'refresh_token'
GRANT_CLIENT_CREDENTIALS = 'client_credentials'

SUPPORTED_GRANT_TYPES: frozenset[str] = frozenset({
    GRANT_AUTHORIZATION_CODE,
    GRANT_PASSWORD,
    GRANT_REFRESH_TOKEN,
    GRANT_CLIENT_CREDENTIALS,
})

_REDIRECT_SCHEMES = ('http', 'https')


def _require(value: str | None, field_name: str) -> str:
    if value is None or not value.strip():
        raise BadRequestError(field_name)
    return value


def validate_redirect_uri(redirect_uri: str | None) -> str:
    """Accept only absolute http(s) URIs with a host and no fragment."""
    value = _require(redirect_uri, 'redirect_uri').strip()
    try:
        parts = urlsplit(value)
        # Accessing .port validates the port component.
        parts.port
    except ValueError:
        raise BadRequestError('redirect_uri', 'Malformed redirect_uri') from None
    if parts.scheme.lower() not in _REDIRECT_SCHEMES or not parts.hostname:
        raise BadRequestError('redirect_uri', 'redirect_uri must be an absolute http(s) URI')
    if parts.fragment or value.endswith('#'):
        raise BadRequestError('redirect_uri', 'redirect_uri must not contain a fragment')
    return value


class RequestMediator:
    """Builds flow requests for the nine gateway flows."""

    def authenticate(
        self,
        claim: CredentialClaim,
        *,
        username: str | None,
        password: str | None,
    ) -> AuthenticationRequest:
        return AuthenticationRequest(
            tenant_id=claim.tenant_id,
            client_id=claim.iam_client_id,
            client_secret=claim.iam_client_secret,
            username=_require(username, 'username'),
            password=_require(password, 'password'),
        )

    def session_status(self, claim: CredentialClaim, *, access_token: str) -> AuthTokenRequest:
        return self._auth_token_request(claim, access_token)

    def user_profile(self, claim: CredentialClaim, *, access_token: str) -> AuthTokenRequest:
        return self._auth_token_request(claim, access_token)

    def _auth_token_request(self, claim: CredentialClaim, access_token: str) -> AuthTokenRequest:
        if not claim.username:
            # Only end-user resolution produces a claim with a username.
            raise ValueError('access-token flows require a user-anchored claim')
        return AuthTokenRequest(
            access_token=_require(access_token, 'access_token'),
            claims=(
                IdentityClaim('username', claim.username),
                IdentityClaim('tenantId', claim.tenant_id),
                IdentityClaim('clientId', claim.platform_client_id),
            ),
        )

    def service_account_token(self, claim: CredentialClaim) -> ServiceAccountTokenRequest:
        return ServiceAccountTokenRequest(
            tenant_id=claim.tenant_id,
            client_id=claim.iam_client_id,
            client_secret=claim.iam_client_secret,
        )

    def require_refresh_token(self, refresh_token: object) -> str:
        """Validate the end-session input. Runs before credential resolution."""
        if not isinstance(refresh_token, str) or not refresh_token.strip():
            raise BadRequestError('refresh_token', 'Missing or empty refresh_token')
        return refresh_token

    def end_session(self, claim: CredentialClaim, *, refresh_token: object) -> EndSessionRequest:
        return EndSessionRequest(
            tenant_id=claim.tenant_id,
            client_id=claim.iam_client_id,
            client_secret=claim.iam_client_secret,
            refresh_token=self.require_refresh_token(refresh_token),
        )

    def authorize(
        self,
        *,
        client_id: str | None,
        redirect_uri: str | None,
        tenant_id: str | int | None = None,
    ) -> AuthorizationRequest:
        """Public OAuth2 authorization-code step; no claim is involved."""
        parsed_tenant: int | None = None
        if tenant_id is not None and str(tenant_id).strip():
            try:
                parsed_tenant = int(str(tenant_id).strip())
            except ValueError:
                raise BadRequestError('tenant_id', 'tenant_id must be an integer') from None
        return AuthorizationRequest(
            client_id=self.require_client_id(client_id),
            redirect_uri=validate_redirect_uri(redirect_uri),
            tenant_id=parsed_tenant,
        )

    def token(
        self,
        claim: CredentialClaim,
        *,
        grant_type: str | None = None,
        code: str | None = None,
        redirect_uri: str | None = None,
        username: str | None = None,
        password: str | None = None,
        refresh_token: str | None = None,
    ) -> TokenRequest:
        """Token exchange. ``grant_type`` is inferred from the inputs when omitted."""
        if not grant_type:
            if code:
                grant_type = GRANT_AUTHORIZATION_CODE
            elif username:
                grant_type = GRANT_PASSWORD
            else:
                raise BadRequestError('grant_type')
        if grant_type not in SUPPORTED_GRANT_TYPES:
            raise BadRequestError('grant_type', 'Unsupported grant_type')

        fields: dict[str, str | None] = {}
        if grant_type == GRANT_AUTHORIZATION_CODE:
            fields['code'] = _require(code, 'code')
            fields['redirect_uri'] = validate_redirect_uri(redirect_uri)
        elif grant_type == GRANT_PASSWORD:
            fields['username'] = _require(username, 'username')
            fields['password'] = _require(password, 'password')
        elif grant_type == GRANT_REFRESH_TOKEN:
            fields['refresh_token'] = _require(refresh_token, 'refresh_token')

        return TokenRequest(
            tenant_id=claim.tenant_id,
            client_id=claim.iam_client_id,
            client_secret=claim.iam_client_secret,
            grant_type=grant_type,
            **fields,
        )

    def require_client_id(self, client_id: str | None) -> str:
        return _require(client_id, 'client_id').strip()

    def credentials(self, claim: CredentialClaim) -> CredentialsRequest:
        return CredentialsRequest(
            platform_client_id=claim.platform_client_id,
            platform_client_secret=claim.platform_client_secret,
            platform_client_id_issued_at=claim.platform_client_id_issued_at,
            platform_client_secret_expires_at=claim.platform_client_secret_expires_at,
            federated_client_id=claim.federated_client_id,
            federated_client_secret=claim.federated_client_secret,
            iam_client_id=claim.iam_client_id,
            iam_client_secret=claim.iam_client_secret,
        )

    def oidc_configuration(self, *, client_id: str | None) -> OIDCConfigurationRequest:
        return OIDCConfigurationRequest(client_id=self.require_client_id(client_id))
