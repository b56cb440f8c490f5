"""PostgREST-backed stores for credential and membership records."""

from .credential_repo import PostgrestCredentialRepository
from .errors import (
    PostgrestAuthError,
    PostgrestError,
    PostgrestNotFoundError,
    PostgrestTimeoutError,
)
from .membership_repo import PostgrestMembershipRepository
from .postgrest_client import PostgrestClient

__all__ = [
    'PostgrestAuthError',
    'PostgrestClient',
    'PostgrestCredentialRepository',
    'PostgrestError',
    'PostgrestMembershipRepository',
    'PostgrestNotFoundError',
    'PostgrestTimeoutError',
]
