"""Credential resolution for the identity gateway."""

from .claims import CredentialClaim
from .credential_resolver import (
    CredentialResolver,
    decode_client_credentials,
    get_authorization_header,
)

__all__ = [
    'CredentialClaim',
    'CredentialResolver',
    'decode_client_credentials',
    'get_authorization_header',
]
