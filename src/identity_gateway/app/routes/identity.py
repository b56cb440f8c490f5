"""Identity management endpoints.

Nine flows, each following the same pipeline:

    resolve credential -> build flow request -> dispatch to broker -> respond

Response contracts:
  POST /identity-management/authenticate              -> broker token object
  POST /identity-management/authenticate/status       -> true | false
  GET  /identity-management/user?access_token=        -> broker user object
  GET  /identity-management/account/token             -> broker token object
  POST /identity-management/user/logout               -> true | false
  GET  /identity-management/authorize                 -> broker authorization object
  POST /identity-management/token                     -> broker token object
  GET  /identity-management/credentials?client_id=    -> broker credentials object
  GET  /identity-management/.well-known/openid-configuration?client_id=
                                                      -> OIDC metadata

Bodies are parsed only after the calling application is resolved, so an
unauthenticated caller learns nothing about the expected input. The one
exception is logout, which checks its refresh token first.

Errors are raised as ``GatewayError`` subclasses and rendered by the
application's exception handler. Tenant ids, client ids and client secrets
found in request bodies are ignored; the resolved claim is the only source
for them.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Iterator, TypeVar

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict, ValidationError

from identity_gateway.app.errors import (
    BadRequestError,
    GatewayError,
    InvalidRequestError,
    NotFoundError,
    UnauthorizedError,
    UpstreamFault,
)
from identity_gateway.app.mediation import RequestMediator
from identity_gateway.app.observability.logging import get_logger
from identity_gateway.app.observability.metrics import record_flow_outcome
from identity_gateway.app.protocols import UpstreamBroker
from identity_gateway.app.security import CredentialResolver

logger = get_logger(__name__)

# Checked in order; UpstreamFault subclasses share one outcome.
_OUTCOMES: tuple[tuple[type[GatewayError], str], ...] = (
    (UnauthorizedError, 'unauthorized'),
    (BadRequestError, 'bad_request'),
    (NotFoundError, 'not_found'),
    (UpstreamFault, 'upstream_fault'),
)


# ── Request schemas ──────────────────────────────────────────────────


class AuthenticateBody(BaseModel):
    model_config = ConfigDict(extra='ignore')

    username: str | None = None
    password: str | None = None


class SessionStatusBody(BaseModel):
    """Session-status input. Any ``claims`` sent by the caller are dropped."""

    model_config = ConfigDict(extra='ignore')

    access_token: str | None = None


class TokenBody(BaseModel):
    model_config = ConfigDict(extra='ignore')

    grant_type: str | None = None
    code: str | None = None
    redirect_uri: str | None = None
    username: str | None = None
    password: str | None = None
    refresh_token: str | None = None


# ── Helpers ──────────────────────────────────────────────────────────


@contextmanager
def _observe_flow(flow: str) -> Iterator[None]:
    """Record the flow outcome metric and log rejected flows."""
    try:
        yield
    except GatewayError as exc:
        outcome = next(
            (name for cls, name in _OUTCOMES if isinstance(exc, cls)),
            'upstream_fault',
        )
        record_flow_outcome(flow, outcome)
        logger.info(
            'flow_rejected',
            flow=flow,
            outcome=outcome,
            status=exc.status_code,
            error=exc.code,
        )
        raise
    record_flow_outcome(flow, 'ok')


async def _read_json_object(request: Request) -> dict[str, Any]:
    """Parse the body as a JSON object. An empty body reads as ``{}``."""
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise BadRequestError('body', 'Request body must be valid JSON') from None
    if not isinstance(payload, dict):
        raise BadRequestError('body', 'Request body must be a JSON object')
    return payload


_BodyT = TypeVar('_BodyT', bound=BaseModel)


async def _parse_body(request: Request, model: type[_BodyT]) -> _BodyT:
    """Validate the JSON body against ``model``. Field names only are reported."""
    payload = await _read_json_object(request)
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        fields = sorted({
            '.'.join(str(part) for part in err['loc']) or 'body'
            for err in exc.errors()
        })
        raise InvalidRequestError(fields) from None


# ── Route factory ────────────────────────────────────────────────────


def create_identity_router(
    resolver: CredentialResolver,
    mediator: RequestMediator,
    broker: UpstreamBroker,
) -> APIRouter:
    """Create the identity management router.

    Args:
        resolver: Turns inbound credentials into claims.
        mediator: Validates input and builds flow requests.
        broker: Executes flow requests upstream.
    """
    router = APIRouter(prefix='/identity-management', tags=['identity'])

    @router.post('/authenticate')
    async def authenticate(request: Request):
        """Authenticate an end user against the tenant IAM."""
        with _observe_flow('authenticate'):
            claim = await resolver.resolve_from_headers(request.headers)
            body = await _parse_body(request, AuthenticateBody)
            flow_request = mediator.authenticate(
                claim,
                username=body.username,
                password=body.password,
            )
            result = await broker.authenticate(flow_request)
        logger.info('user_authenticated', **claim.log_fields())
        return result

    @router.post('/authenticate/status')
    async def session_status(request: Request):
        """Report whether an end-user access token is still authenticated."""
        with _observe_flow('session_status'):
            app_claim = await resolver.resolve_from_headers(request.headers)
            access_token = (await _parse_body(request, SessionStatusBody)).access_token
            claim = await resolver.attach_end_user(app_claim, access_token)
            flow_request = mediator.session_status(claim, access_token=access_token or '')
            authenticated = await broker.is_authenticated(flow_request)
        return authenticated

    @router.get('/user')
    async def user_profile(request: Request, access_token: str | None = None):
        """Fetch the profile of the end user owning ``access_token``."""
        with _observe_flow('user_profile'):
            claim = await resolver.resolve_end_user(request.headers, access_token)
            flow_request = mediator.user_profile(claim, access_token=access_token or '')
            profile = await broker.get_user(flow_request)
        return profile

    @router.get('/account/token')
    async def service_account_token(request: Request):
        """Mint a service-account token for the calling application's tenant."""
        with _observe_flow('service_account_token'):
            claim = await resolver.resolve_from_headers(request.headers)
            result = await broker.get_service_account_token(
                mediator.service_account_token(claim),
            )
        logger.info('service_account_token_issued', **claim.log_fields())
        return result

    @router.post('/user/logout')
    async def end_session(request: Request):
        """End an end-user session.

        The refresh token is validated before the caller is resolved, so an
        empty request never touches the credential store.
        """
        with _observe_flow('end_session'):
            payload = await _read_json_object(request)
            refresh_token = mediator.require_refresh_token(payload.get('refresh_token'))
            claim = await resolver.resolve_from_headers(request.headers)
            ended = await broker.end_session(
                mediator.end_session(claim, refresh_token=refresh_token),
            )
        return ended

    @router.get('/authorize')
    async def authorize(
        client_id: str | None = None,
        redirect_uri: str | None = None,
        tenant_id: str | None = None,
    ):
        """OAuth2 authorization-code step. Public; no credential is resolved."""
        with _observe_flow('authorize'):
            flow_request = mediator.authorize(
                client_id=client_id,
                redirect_uri=redirect_uri,
                tenant_id=tenant_id,
            )
            result = await broker.authorize(flow_request)
        return result

    @router.post('/token')
    async def token(request: Request):
        """Exchange a code, password, refresh token or client credentials for tokens."""
        with _observe_flow('token'):
            claim = await resolver.resolve_from_headers(request.headers)
            body = await _parse_body(request, TokenBody)
            flow_request = mediator.token(
                claim,
                grant_type=body.grant_type,
                code=body.code,
                redirect_uri=body.redirect_uri,
                username=body.username,
                password=body.password,
                refresh_token=body.refresh_token,
            )
            result = await broker.token(flow_request)
        logger.info('token_issued', grant_type=flow_request.grant_type, **claim.log_fields())
        return result

    @router.get('/credentials')
    async def stored_credentials(request: Request, client_id: str | None = None):
        """Return the stored credentials of the calling client.

        The header credential must belong to ``client_id`` itself.
        """
        with _observe_flow('credentials'):
            expected = mediator.require_client_id(client_id)
            claim = await resolver.resolve_from_headers(
                request.headers, expected_client_id=expected,
            )
            result = await broker.get_credentials(mediator.credentials(claim))
        return result

    @router.get('/.well-known/openid-configuration')
    async def oidc_configuration(client_id: str | None = None):
        """Publish OIDC discovery metadata for the tenant owning ``client_id``."""
        with _observe_flow('oidc_configuration'):
            flow_request = mediator.oidc_configuration(client_id=client_id)
            try:
                metadata = await broker.get_oidc_configuration(flow_request)
            except NotFoundError as exc:
                raise NotFoundError(
                    exc.detail or 'No tenant is registered for this client',
                    code='tenant_not_found',
                ) from exc
        return metadata

    return router
