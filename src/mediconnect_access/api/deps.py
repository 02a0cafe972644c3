"""
mediconnect_access.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings and the injected stores.
- Encapsulate app.state access patterns.
"""

from __future__ import annotations

from fastapi import Request

from mediconnect_access.audit.trail import AuditTrail
from mediconnect_access.auth.jwt import JwtConfig
from mediconnect_access.auth.revocation import RevocationList
from mediconnect_access.directory.users import UserDirectory
from mediconnect_access.settings import Settings


def jwt_config(settings: Settings) -> JwtConfig:
    return JwtConfig(
        alg=settings.jwt_alg,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
        secret=settings.jwt_secret,
    )


def settings_dep(request: Request) -> Settings:
    # The app's own settings, not a fresh env read.
    return request.app.state.settings  # type: ignore[attr-defined]


def audit_trail_dep(request: Request) -> AuditTrail:
    return request.app.state.audit_trail  # type: ignore[attr-defined]


def directory_dep(request: Request) -> UserDirectory:
    return request.app.state.directory  # type: ignore[attr-defined]


def revocations_dep(request: Request) -> RevocationList | None:
    return request.app.state.revocations  # type: ignore[attr-defined]


# --- Module Notes -----------------------------------------------------------
# Everything on app.state is created in `api.app.create_app` (or its startup hook).
