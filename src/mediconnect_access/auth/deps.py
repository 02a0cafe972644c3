"""
mediconnect_access.auth.deps

FastAPI dependency functions for authentication and authorization.

Responsibilities:
- Convert a bearer token into a typed `Principal`.
- Enforce RBAC via reusable dependency factories.
- Map core failures to uniform 401/403 responses and log them as security events.
"""

from __future__ import annotations

from typing import Any

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN

from mediconnect_access.auth.engine import Decision, authorize, authorize_any_role, require
from mediconnect_access.auth.errors import AuthorizationDenied, CredentialError
from mediconnect_access.auth.models import Principal
from mediconnect_access.auth.roles import Permission, Role
from mediconnect_access.auth.verifier import CredentialVerifier
from mediconnect_access.observability.logging import get_logger

log = get_logger(__name__)

_bearer = HTTPBearer(auto_error=False)


def verifier_from_app(request: Request) -> CredentialVerifier:
    # Built once in `api.app.create_app`.
    return request.app.state.verifier  # type: ignore[attr-defined]


def unauthenticated() -> HTTPException:
    return HTTPException(
        status_code=HTTP_401_UNAUTHORIZED,
        detail=CredentialError.public_message,
        headers={"WWW-Authenticate": "Bearer"},
    )


def forbidden() -> HTTPException:
    return HTTPException(status_code=HTTP_403_FORBIDDEN, detail=AuthorizationDenied.public_message)


def get_principal(
    request: Request,
    _: HTTPAuthorizationCredentials | None = Depends(_bearer),  # declares the scheme in OpenAPI
    verifier: CredentialVerifier = Depends(verifier_from_app),
) -> Principal:
    try:
        # The raw header, so a non-Bearer scheme is reported as invalid rather than missing.
        return verifier.verify_header(request.headers.get("authorization"))
    except CredentialError as e:
        # The reason stays in the logs; clients get one generic message.
        log.warning("authentication_failed", reason=type(e).__name__)
        raise unauthenticated() from e


def ensure(decision: Decision, principal: Principal | None, **context: Any) -> None:
    try:
        require(decision)
    except AuthorizationDenied as e:
        log.warning(
            "authorization_denied",
            user_id=principal.user_id if principal else None,
            role=str(principal.role) if principal else None,
            **context,
        )
        raise forbidden() from e


def require_permission(permission: Permission):
    def _dep(principal: Principal = Depends(get_principal)) -> Principal:
        ensure(authorize(principal, permission), principal, permission=permission.value)
        return principal

    return _dep


def require_roles(*allowed: Role):
    allowed_set = frozenset(allowed)

    def _dep(principal: Principal = Depends(get_principal)) -> Principal:
        ensure(
            authorize_any_role(principal, allowed_set),
            principal,
            allowed_roles=sorted(r.value for r in allowed_set),
        )
        return principal

    return _dep


# --- Module Notes -----------------------------------------------------------
# Ownership checks need the target user, so routes call `ensure(authorize_access(...))`
# themselves after loading it.
