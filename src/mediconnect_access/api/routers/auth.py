"""
mediconnect_access.api.routers.auth

Authentication lifecycle endpoints.

Responsibilities:
- Login: check credentials against the directory and issue a signed token.
- Current user lookup.
- Logout: revoke the presented token.
- Record LOGIN/LOGOUT events in the audit trail.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_404_NOT_FOUND

from mediconnect_access.api.auditing import request_event, schedule_audit
from mediconnect_access.api.deps import (
    audit_trail_dep,
    directory_dep,
    jwt_config,
    revocations_dep,
    settings_dep,
)
from mediconnect_access.audit.models import AuditAction
from mediconnect_access.audit.trail import AuditTrail
from mediconnect_access.auth.deps import get_principal
from mediconnect_access.auth.jwt import issue_token
from mediconnect_access.auth.models import Principal
from mediconnect_access.auth.revocation import RevocationList
from mediconnect_access.directory.users import UserDirectory, verify_password
from mediconnect_access.observability.logging import get_logger
from mediconnect_access.settings import Settings

log = get_logger(__name__)

router = APIRouter(prefix="/v1/auth", tags=["auth"])


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=256)
    password: str = Field(min_length=1, max_length=256)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: dict[str, Any]


@router.post("/login", response_model=LoginResponse)
async def login(
    request: Request,
    body: LoginRequest,
    background: BackgroundTasks,
    directory: UserDirectory = Depends(directory_dep),
    trail: AuditTrail = Depends(audit_trail_dep),
    settings: Settings = Depends(settings_dep),
) -> LoginResponse:
    user = await directory.find_by_email(body.email)
    if user is None or not user.is_active or not verify_password(body.password, user.password_hash):
        # Failed logins are security events for the operational log, not audit records.
        log.warning("login_failed", email=body.email)
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    token = issue_token(
        cfg=jwt_config(settings),
        subject=user.id,
        role=user.role.value,
        email=user.email,
        name=user.name,
        tenant_id=user.tenant_id,
        ttl=timedelta(minutes=settings.jwt_ttl_minutes),
    )

    schedule_audit(
        background,
        trail,
        request_event(
            request,
            user_id=user.id,
            user_email=user.email,
            action=AuditAction.login,
            resource_type="AUTH",
            resource_id=user.id,
        ),
    )
    log.info("login_succeeded", user_id=user.id)
    return LoginResponse(access_token=token, user=user.public_dict())


@router.get("/me")
async def me(
    principal: Principal = Depends(get_principal),
    directory: UserDirectory = Depends(directory_dep),
) -> dict[str, Any]:
    user = await directory.find_by_identity(principal.user_id)
    if user is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="User not found")
    return user.public_dict()


@router.post("/logout")
async def logout(
    request: Request,
    background: BackgroundTasks,
    principal: Principal = Depends(get_principal),
    trail: AuditTrail = Depends(audit_trail_dep),
    revocations: RevocationList | None = Depends(revocations_dep),
) -> dict[str, str]:
    if revocations is not None and principal.token_id and principal.expires_at:
        revocations.revoke(principal.token_id, principal.expires_at)

    schedule_audit(
        background,
        trail,
        request_event(
            request,
            user_id=principal.user_id,
            user_email=principal.email,
            action=AuditAction.logout,
            resource_type="AUTH",
            resource_id=principal.user_id,
        ),
    )
    return {"message": "Logged out successfully"}


# --- Module Notes -----------------------------------------------------------
# Without revocation enabled, logout only asks the client to discard its token.
