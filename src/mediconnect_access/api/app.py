"""
mediconnect_access.api.app

FastAPI app factory for the MediConnect access control service.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Build the injected collaborators (verifier, revocation list, directory, audit trail).
- Initialize and dispose shared infrastructure (DB engine/session factory).
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from mediconnect_access import __version__
from mediconnect_access.api.deps import jwt_config
from mediconnect_access.api.routers.access_control import router as access_control_router
from mediconnect_access.api.routers.auth import router as auth_router
from mediconnect_access.api.routers.dev_auth import router as dev_auth_router
from mediconnect_access.api.routers.health import router as health_router
from mediconnect_access.audit.store import AuditStore, InMemoryAuditStore, SqlAuditStore
from mediconnect_access.audit.trail import AuditTrail
from mediconnect_access.auth.revocation import RevocationList
from mediconnect_access.auth.verifier import CredentialVerifier
from mediconnect_access.db.init_db import init_db
from mediconnect_access.db.session import create_engine, create_sessionmaker
from mediconnect_access.directory.users import InMemoryUserDirectory, UserDirectory, demo_users
from mediconnect_access.observability.logging import configure_logging, get_logger
from mediconnect_access.observability.middleware import RequestContextMiddleware
from mediconnect_access.settings import Settings

log = get_logger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings: Settings = app.state.settings
    log.info("startup", env=settings.env, audit_backend=settings.audit_backend)
    if getattr(app.state, "audit_trail", None) is None:
        # Create the async DB engine once and stash it on app.state for disposal.
        engine = create_engine(settings)
        app.state.engine = engine
        if settings.env in ("dev", "test"):
            # Dev/test convenience: create tables automatically. Prod should use Alembic migrations.
            await init_db(engine)
        app.state.audit_trail = AuditTrail(SqlAuditStore(create_sessionmaker(engine)))
    try:
        yield
    finally:
        engine = getattr(app.state, "engine", None)
        if engine is not None:
            await engine.dispose()
        log.info("shutdown")


def create_app(
    *,
    settings: Settings,
    audit_store: AuditStore | None = None,
    directory: UserDirectory | None = None,
) -> FastAPI:
    configure_logging(service_name=settings.service_name, level=settings.log_level)

    app = FastAPI(
        title="MediConnect Access Control",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=_lifespan,
    )

    revocations = RevocationList() if settings.revocation_enabled else None
    if directory is None:
        seed = settings.seed_demo_users and settings.env != "prod"
        directory = InMemoryUserDirectory(demo_users() if seed else None)

    app.state.settings = settings
    app.state.revocations = revocations
    app.state.verifier = CredentialVerifier(jwt_config(settings), revocations=revocations)
    app.state.directory = directory
    app.state.engine = None
    if audit_store is not None:
        app.state.audit_trail = AuditTrail(audit_store)
    elif settings.audit_backend == "memory":
        app.state.audit_trail = AuditTrail(InMemoryAuditStore())

    app.add_middleware(RequestContextMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router)
    app.include_router(access_control_router)
    if settings.env != "prod":
        app.include_router(dev_auth_router)

    return app


# --- Module Notes -----------------------------------------------------------
# Tests inject an `audit_store` or pick `audit_backend="memory"`; the SQL store is
# only built at startup because it needs the async engine.
