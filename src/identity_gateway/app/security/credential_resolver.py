"""Credential resolution: inbound transport credentials -> CredentialClaim.

Two resolution paths exist and are never substitutable:

  - Header resolution: ``Authorization: Basic|Bearer base64(client_id:client_secret)``
    is decoded, the client's stored credential record is looked up, the secret
    is compared in constant time and the platform secret's expiry is checked.
  - User-token resolution: an opaque end-user access token is introspected
    against the broker's session state and mapped to its tenant's record.

Flows that act on behalf of an end user run both through ``resolve_end_user``.
The first failing step aborts the pipeline before the next step runs.

Every rejection raises the same ``UnauthorizedError`` so callers cannot tell
an unknown client from a wrong secret. The precise reason is only logged at
debug level, and never with secret material. Store and broker faults propagate
unchanged as ``UpstreamFault``.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import time
from typing import Any, Callable, Mapping

from identity_gateway.app.errors import UnauthorizedError, UpstreamFault
from identity_gateway.app.observability.logging import get_logger
from identity_gateway.app.protocols import CredentialStore, UpstreamBroker

from .claims import CredentialClaim

logger = get_logger(__name__)

# Schemes accepted in the Authorization header. Both carry base64(id:secret).
ACCEPTED_SCHEMES: frozenset[str] = frozenset({'basic', 'bearer'})


# ── Header helpers ───────────────────────────────────────────────────


def get_authorization_header(headers: Mapping[str, str]) -> str | None:
    """Return the Authorization header value from any header mapping.

    Starlette ``Headers`` are case-insensitive; plain dicts are scanned.
    """
    value = headers.get('authorization')
    if value is None:
        for key, candidate in headers.items():
            if key.lower() == 'authorization':
                return candidate
    return value


def decode_client_credentials(authorization: str | None) -> tuple[str, str] | None:
    """Decode ``<scheme> base64(client_id:client_secret)``.

    Returns None for any malformed value: missing header, unknown scheme,
    bad base64, non-UTF-8 bytes, missing ``:`` separator or empty parts.
    """
    if not authorization:
        return None
    parts = authorization.strip().split(None, 1)
    if len(parts) != 2 or parts[0].lower() not in ACCEPTED_SCHEMES:
        return None
    try:
        decoded = base64.b64decode(parts[1].strip(), validate=True).decode('utf-8')
    except (binascii.Error, ValueError):
        return None
    client_id, sep, client_secret = decoded.partition(':')
    if not sep or not client_id or not client_secret:
        return None
    return client_id, client_secret


def _reject(reason: str, **fields: Any) -> UnauthorizedError:
    logger.debug('credential_rejected', reason=reason, **fields)
    return UnauthorizedError()


# ── Resolver ─────────────────────────────────────────────────────────


class CredentialResolver:
    """Resolves inbound credentials into tenant-scoped claims.

    Args:
        credential_store: Read-only lookup of stored credential records.
        broker: Upstream broker, used only for session introspection.
        clock: Returns the current time in epoch seconds.
    """

    def __init__(
        self,
        credential_store: CredentialStore,
        broker: UpstreamBroker,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = credential_store
        self._broker = broker
        self._clock = clock

    def _claim_from_record(
        self,
        record: Mapping[str, Any],
        *,
        username: str | None = None,
    ) -> CredentialClaim:
        try:
            return CredentialClaim.from_record(record, username=username)
        except (TypeError, ValueError) as exc:
            # Misconfigured store row: fail closed, but not as a caller error.
            logger.error('credential_record_invalid', error=str(exc))
            raise UpstreamFault('Credential store returned an invalid record') from exc

    async def resolve_from_headers(
        self,
        headers: Mapping[str, str],
        expected_client_id: str | None = None,
    ) -> CredentialClaim:
        """Resolve the calling application from its Authorization header.

        Args:
            headers: Inbound request headers.
            expected_client_id: When given, the decoded client id must equal
                it (guards against presenting one client's credentials while
                asking about another).

        Raises:
            UnauthorizedError: Header absent, malformed, unknown, mismatched
                or expired.
            UpstreamFault: The credential store failed.
        """
        decoded = decode_client_credentials(get_authorization_header(headers))
        if decoded is None:
            raise _reject('malformed_or_missing_header')
        client_id, client_secret = decoded

        if expected_client_id is not None and not hmac.compare_digest(
            client_id.encode(), expected_client_id.encode(),
        ):
            raise _reject('client_id_mismatch', client_id=client_id)

        record = await self._store.get_by_client_id(client_id)
        if record is None:
            raise _reject('unknown_client', client_id=client_id)

        stored_secret = str(record.get('client_secret') or '')
        if not stored_secret or not hmac.compare_digest(
            client_secret.encode(), stored_secret.encode(),
        ):
            raise _reject('secret_mismatch', client_id=client_id)

        claim = self._claim_from_record(record)
        if claim.platform_client_id != client_id:
            raise _reject('record_client_mismatch', client_id=client_id)
        if claim.is_expired(self._clock()):
            raise _reject('secret_expired', client_id=client_id)

        logger.debug('credential_resolved', source='header', **claim.log_fields())
        return claim

    async def resolve_from_user_token(self, access_token: str | None) -> CredentialClaim:
        """Resolve an end-user access token into a user-anchored claim.

        Raises:
            UnauthorizedError: Token empty, unknown, inactive or expired, or
                its tenant has no credential record.
            UpstreamFault: The broker or the credential store failed.
        """
        if not access_token or not access_token.strip():
            raise _reject('empty_user_token')

        session = await self._broker.introspect_session(access_token)
        if not session or not session.get('active'):
            raise _reject('unknown_user_token')

        username = session.get('username')
        tenant_id = session.get('tenant_id')
        if not username or tenant_id in (None, ''):
            raise _reject('incomplete_session')

        exp = session.get('exp')
        if exp is not None:
            try:
                expired = float(exp) <= self._clock()
            except (TypeError, ValueError):
                raise _reject('invalid_session_expiry') from None
            if expired:
                raise _reject('user_token_expired')

        record = await self._store.get_by_tenant_id(str(tenant_id))
        if record is None:
            raise _reject('unknown_tenant', tenant_id=str(tenant_id))

        claim = self._claim_from_record(record, username=str(username))
        logger.debug('credential_resolved', source='user_token', **claim.log_fields())
        return claim

    async def resolve_end_user(
        self,
        headers: Mapping[str, str],
        access_token: str | None,
    ) -> CredentialClaim:
        """Two-step resolution for flows acting on behalf of an end user.

        Step 1 authorizes the calling application from its headers; step 2
        authorizes the end-user token. A failure in step 1 means step 2
        never runs. The result is the application's claim anchored to the
        username resolved from the token. A token issued for a different
        tenant than the calling application is rejected.
        """
        app_claim = await self.resolve_from_headers(headers)
        return await self.attach_end_user(app_claim, access_token)

    async def attach_end_user(
        self,
        app_claim: CredentialClaim,
        access_token: str | None,
    ) -> CredentialClaim:
        """Step 2 of ``resolve_end_user`` for an already resolved application claim."""
        user_claim = await self.resolve_from_user_token(access_token)

        if user_claim.tenant_id != app_claim.tenant_id:
            raise _reject(
                'cross_tenant_user_token',
                tenant_id=app_claim.tenant_id,
                token_tenant_id=user_claim.tenant_id,
            )

        return app_claim.with_username(str(user_claim.username))
