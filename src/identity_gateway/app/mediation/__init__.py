"""Flow validation and upstream request construction."""

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
from .mediator import (
    SUPPORTED_GRANT_TYPES,
    RequestMediator,
    validate_redirect_uri,
)

__all__ = [
    'AuthTokenRequest',
    'AuthenticationRequest',
    'AuthorizationRequest',
    'CredentialsRequest',
    'EndSessionRequest',
    'IdentityClaim',
    'OIDCConfigurationRequest',
    'RequestMediator',
    'SUPPORTED_GRANT_TYPES',
    'ServiceAccountTokenRequest',
    'TokenRequest',
    'validate_redirect_uri',
]
