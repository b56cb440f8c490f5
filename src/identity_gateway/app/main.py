"""Identity gateway FastAPI application factory.

The create_app() factory is the single entry point for building the gateway
ASGI application. It wires middleware (request context, metrics, CORS), the
identity routes, and injects store/broker implementations via
dependency injection.

Usage:
    # Local development
    from identity_gateway.app import create_app, GatewaySettings
    app = create_app(GatewaySettings())

    # Non-local (PostgREST stores and HTTP broker built from settings)
    settings = GatewaySettings.from_env()
    app = create_app(settings)

    # Testing (full DI control)
    app = create_app(settings, credential_store=store, broker=fake_broker)
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Callable

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from .errors import GatewayError, InvalidRequestError
from .mediation import RequestMediator
from .observability import (
    MetricsMiddleware,
    RequestContextMiddleware,
    configure_logging,
    get_logger,
    render_latest,
)
from .protocols import CredentialStore, MembershipStore, UpstreamBroker
from .security import CredentialResolver
from .settings import GatewaySettings

logger = get_logger(__name__)

WWW_AUTHENTICATE = 'Basic realm="identity-gateway"'


@dataclass(frozen=True)
class AppDependencies:
    """Container for all injected store/broker instances.

    Stored on ``app.state.deps`` so route handlers and policy code can
    access them.
    """

    credential_store: CredentialStore
    membership_store: MembershipStore
    broker: UpstreamBroker


def _build_inmemory_stores() -> tuple[CredentialStore, MembershipStore]:
    """Construct empty in-memory stores for local development."""
    from .inmemory import InMemoryCredentialStore, InMemoryMembershipStore

    return InMemoryCredentialStore(), InMemoryMembershipStore()


def _build_postgrest_stores(
    settings: GatewaySettings,
    http_client: httpx.AsyncClient,
) -> tuple[CredentialStore, MembershipStore]:
    """Construct PostgREST-backed stores from settings."""
    from .db import (
        PostgrestClient,
        PostgrestCredentialRepository,
        PostgrestMembershipRepository,
    )

    client = PostgrestClient(
        base_url=settings.credential_store_url,
        service_key=settings.credential_store_key,
        http_client=http_client,
        timeout_seconds=settings.upstream_timeout_seconds,
    )
    return PostgrestCredentialRepository(client), PostgrestMembershipRepository(client)


# ── Exception handlers ──────────────────────────────────────────────


async def _gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    headers = {'WWW-Authenticate': WWW_AUTHENTICATE} if exc.status_code == 401 else None
    if exc.status_code >= 500:
        logger.error('upstream_fault', error=exc.code, detail=exc.detail, path=request.url.path)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def _validation_error_handler(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    # Name the offending fields only; never echo submitted values.
    fields = sorted({
        '.'.join(str(part) for part in err.get('loc', ())[1:]) or 'body'
        for err in exc.errors()
    })
    error = InvalidRequestError(fields)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# ── Factory ─────────────────────────────────────────────────────────


def create_app(
    settings: GatewaySettings | None = None,
    *,
    credential_store: CredentialStore | None = None,
    membership_store: MembershipStore | None = None,
    broker: UpstreamBroker | None = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """Create a configured identity gateway FastAPI application.

    Args:
        settings: Application settings. Defaults to local-dev settings.
        credential_store, membership_store: Store overrides. When None,
            local mode uses in-memory implementations and non-local mode
            builds PostgREST-backed stores from settings.
        broker: Upstream broker override. When None, an HTTP BrokerClient
            is built from settings.
        clock: Epoch-seconds clock used for expiry checks.

    Returns:
        Configured FastAPI application ready for uvicorn.run().

    Raises:
        ValueError: If settings validation fails.
    """
    if settings is None:
        settings = GatewaySettings()

    errors = settings.validate()
    if errors:
        raise ValueError(
            "Identity gateway settings validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    configure_logging(
        level=settings.log_level,
        json_output=settings.log_format == 'json',
    )

    # Owned outbound client; only created when something needs it.
    owned_client: httpx.AsyncClient | None = None

    if credential_store is None or membership_store is None:
        if settings.is_local:
            default_credentials, default_memberships = _build_inmemory_stores()
        else:
            owned_client = httpx.AsyncClient()
            default_credentials, default_memberships = _build_postgrest_stores(
                settings, owned_client,
            )
        credential_store = credential_store or default_credentials
        membership_store = membership_store or default_memberships

    if broker is None:
        from .upstream import BrokerClient

        owned_client = owned_client or httpx.AsyncClient()
        broker = BrokerClient(
            base_url=settings.broker_url,
            api_key=settings.broker_api_key,
            http_client=owned_client,
            timeout_seconds=settings.upstream_timeout_seconds,
        )

    deps = AppDependencies(
        credential_store=credential_store,
        membership_store=membership_store,
        broker=broker,
    )

    # Lifespan
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info('gateway_startup', environment=settings.environment)
        yield
        if owned_client is not None:
            await owned_client.aclose()
        logger.info('gateway_shutdown')

    app = FastAPI(
        title="Identity Gateway",
        description="Multi-tenant identity gateway in front of the upstream identity broker",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.deps = deps
    app.state.settings = settings

    # ── Middleware stack (applied in reverse order) ──────────────
    # Order of execution: RequestContext -> Metrics -> CORS -> route

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(GatewayError, _gateway_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    # ── Routes ──────────────────────────────────────────────────

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "environment": settings.environment,
        }

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        payload, content_type = render_latest()
        return Response(content=payload, media_type=content_type)

    from .routes import create_identity_router

    resolver = CredentialResolver(deps.credential_store, deps.broker, clock=clock)
    app.include_router(
        create_identity_router(resolver, RequestMediator(), deps.broker),
        prefix=settings.api_prefix,
    )

    return app


# For uvicorn, use --factory flag:
#   uvicorn identity_gateway.app.main:create_app --factory
# This avoids executing create_app() at import time.
