"""
mediconnect_access.api.routers.access_control

Administrative access control endpoints.

Responsibilities:
- User listing, creation and lookup with role gating and ownership checks.
- Per-user permission grants.
- Role registry and effective-permission introspection.
- Audit log queries, chain verification and compliance export.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field, field_validator
from starlette.status import HTTP_201_CREATED, HTTP_404_NOT_FOUND, HTTP_409_CONFLICT

from mediconnect_access.api.auditing import request_event, schedule_audit
from mediconnect_access.api.deps import audit_trail_dep, directory_dep
from mediconnect_access.audit.models import AuditAction, AuditFilter
from mediconnect_access.audit.trail import AuditTrail
from mediconnect_access.auth.deps import ensure, get_principal, require_roles
from mediconnect_access.auth.engine import (
    Decision,
    authorize,
    authorize_access,
    authorize_any_role,
)
from mediconnect_access.auth.models import Principal
from mediconnect_access.auth.roles import Permission, Role, grants, list_roles, permissions_of
from mediconnect_access.directory.users import DuplicateUserError, UserDirectory

router = APIRouter(prefix="/v1/access-control", tags=["access-control"])

USER_VIEWERS = (Role.clinic_admin, Role.account_manager, Role.customer_success)
USER_MANAGERS = (Role.clinic_admin, Role.account_manager)


class CreateUserRequest(BaseModel):
    name: str = Field(min_length=1, max_length=256)
    email: str = Field(min_length=3, max_length=256)
    password: str = Field(min_length=8, max_length=256)
    role: Role
    tenant_id: str | None = Field(default=None, max_length=128)
    is_active: bool = True


class UpdatePermissionsRequest(BaseModel):
    permissions: list[Permission] = Field(default_factory=list)


class CheckPermissionRequest(BaseModel):
    permission: Permission

    @field_validator("permission", mode="before")
    @classmethod
    def _lowercase(cls, value: Any) -> Any:
        # Accept "VIEW_OWN_PROFILE" as well as "view_own_profile".
        return value.lower() if isinstance(value, str) else value


def audit_filter_dep(
    user_id: str | None = Query(default=None),
    action: AuditAction | None = Query(default=None),
    resource_type: str | None = Query(default=None),
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
) -> AuditFilter:
    return AuditFilter(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        start=start_date,
        end=end_date,
    )


def _audit(
    background: BackgroundTasks,
    trail: AuditTrail,
    request: Request,
    principal: Principal,
    action: AuditAction,
    resource_type: str,
    resource_id: str | None = None,
    *,
    status_code: int = 200,
    extra: dict[str, Any] | None = None,
) -> None:
    schedule_audit(
        background,
        trail,
        request_event(
            request,
            user_id=principal.user_id,
            user_email=principal.email,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            status_code=status_code,
            extra=extra,
        ),
    )


@router.get("/users")
async def list_users(
    request: Request,
    background: BackgroundTasks,
    principal: Principal = Depends(require_roles(*USER_VIEWERS)),
    directory: UserDirectory = Depends(directory_dep),
    trail: AuditTrail = Depends(audit_trail_dep),
) -> dict[str, Any]:
    users = await directory.list_users()
    _audit(background, trail, request, principal, AuditAction.view, "USER")
    return {"users": [u.public_dict() for u in users]}


@router.post("/users", status_code=HTTP_201_CREATED)
async def create_user(
    request: Request,
    body: CreateUserRequest,
    background: BackgroundTasks,
    principal: Principal = Depends(require_roles(*USER_MANAGERS)),
    directory: UserDirectory = Depends(directory_dep),
    trail: AuditTrail = Depends(audit_trail_dep),
) -> dict[str, Any]:
    # No creating accounts ranked above yourself.
    ensure(authorize_access(principal, None, body.role), principal, created_role=body.role.value)

    try:
        user = await directory.add_user(
            email=body.email,
            name=body.name,
            role=body.role,
            password=body.password,
            tenant_id=body.tenant_id,
            is_active=body.is_active,
        )
    except DuplicateUserError as e:
        raise HTTPException(
            status_code=HTTP_409_CONFLICT, detail="User with this email already exists"
        ) from e

    _audit(
        background,
        trail,
        request,
        principal,
        AuditAction.create,
        "USER",
        user.id,
        status_code=HTTP_201_CREATED,
        extra={"role": user.role.value},
    )
    return {"message": "User created successfully", "user": user.public_dict()}


@router.get("/users/{user_id}")
async def get_user(
    user_id: str,
    request: Request,
    background: BackgroundTasks,
    principal: Principal = Depends(get_principal),
    directory: UserDirectory = Depends(directory_dep),
    trail: AuditTrail = Depends(audit_trail_dep),
) -> dict[str, Any]:
    if user_id != principal.user_id:
        # Reading someone else's profile needs an admin role on top of the hierarchy check.
        ensure(authorize_any_role(principal, USER_VIEWERS), principal, target_user_id=user_id)

    user = await directory.find_by_identity(user_id)
    if user is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="User not found")
    ensure(authorize_access(principal, user.id, user.role), principal, target_user_id=user.id)

    _audit(background, trail, request, principal, AuditAction.view, "USER", user.id)
    return user.public_dict()


@router.put("/users/{user_id}/permissions")
async def update_user_permissions(
    user_id: str,
    request: Request,
    body: UpdatePermissionsRequest,
    background: BackgroundTasks,
    principal: Principal = Depends(require_roles(*USER_MANAGERS)),
    directory: UserDirectory = Depends(directory_dep),
    trail: AuditTrail = Depends(audit_trail_dep),
) -> dict[str, Any]:
    if user_id == principal.user_id:
        # Self-access covers reading, not granting yourself capabilities.
        ensure(Decision.deny, principal, target_user_id=user_id)

    target = await directory.find_by_identity(user_id)
    if target is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="User not found")
    ensure(authorize_access(principal, target.id, target.role), principal, target_user_id=target.id)

    # Requesters only grant what they hold themselves, wildcard included.
    requester = await directory.find_by_identity(principal.user_id)
    held = permissions_of(principal.role) | (requester.permissions if requester else frozenset())
    beyond = sorted(p.value for p in body.permissions if not grants(held, p))
    if beyond:
        ensure(Decision.deny, principal, target_user_id=target.id, ungrantable=beyond)

    updated = await directory.set_permissions(target.id, frozenset(body.permissions))
    if updated is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="User not found")

    granted = sorted(p.value for p in updated.permissions)
    _audit(
        background,
        trail,
        request,
        principal,
        AuditAction.update,
        "PERMISSIONS",
        updated.id,
        extra={"permissions": granted},
    )
    return {"message": "Permissions updated", "permissions": granted}


@router.get("/roles")
async def get_roles(principal: Principal = Depends(get_principal)) -> dict[str, Any]:
    return {
        "roles": [
            {
                "role": info.role.value,
                "rank": info.rank,
                "permissions": sorted(p.value for p in info.permissions),
            }
            for info in list_roles()
        ]
    }


@router.get("/me/permissions")
async def my_permissions(
    request: Request,
    background: BackgroundTasks,
    principal: Principal = Depends(get_principal),
    directory: UserDirectory = Depends(directory_dep),
    trail: AuditTrail = Depends(audit_trail_dep),
) -> dict[str, Any]:
    user = await directory.find_by_identity(principal.user_id)
    role_permissions = permissions_of(principal.role)
    user_permissions = user.permissions if user is not None else frozenset()

    _audit(background, trail, request, principal, AuditAction.view, "PERMISSIONS", principal.user_id)
    return {
        "user_id": principal.user_id,
        "role": str(principal.role),
        "role_permissions": sorted(p.value for p in role_permissions),
        "user_permissions": sorted(p.value for p in user_permissions),
    }


@router.post("/check-permission")
async def check_permission(
    body: CheckPermissionRequest,
    principal: Principal = Depends(get_principal),
    directory: UserDirectory = Depends(directory_dep),
) -> dict[str, bool]:
    if authorize(principal, body.permission).allowed:
        return {"has_access": True}
    user = await directory.find_by_identity(principal.user_id)
    return {"has_access": user is not None and user.has_permission(body.permission)}


@router.get("/audit-logs")
async def get_audit_logs(
    request: Request,
    background: BackgroundTasks,
    flt: AuditFilter = Depends(audit_filter_dep),
    principal: Principal = Depends(require_roles(*USER_MANAGERS)),
    trail: AuditTrail = Depends(audit_trail_dep),
) -> dict[str, Any]:
    records = await trail.query(flt)
    _audit(
        background,
        trail,
        request,
        principal,
        AuditAction.view,
        "AUDIT_LOG",
        extra={"filters": flt.model_dump(mode="json", exclude_none=True)},
    )
    return {"logs": [r.model_dump(mode="json") for r in records]}


@router.get("/audit-logs/verify")
async def verify_audit_chain(
    request: Request,
    background: BackgroundTasks,
    principal: Principal = Depends(require_roles(*USER_MANAGERS)),
    trail: AuditTrail = Depends(audit_trail_dep),
) -> dict[str, Any]:
    result = await trail.verify_chain()
    _audit(background, trail, request, principal, AuditAction.view, "AUDIT_LOG")
    return {"valid": result.valid, "checked": result.checked, "broken_at": result.broken_at}


@router.get("/audit-logs/export")
async def export_audit_logs(
    request: Request,
    background: BackgroundTasks,
    flt: AuditFilter = Depends(audit_filter_dep),
    principal: Principal = Depends(require_roles(*USER_MANAGERS)),
    trail: AuditTrail = Depends(audit_trail_dep),
) -> dict[str, Any]:
    bundle = await trail.export(flt)
    _audit(
        background,
        trail,
        request,
        principal,
        AuditAction.export,
        "AUDIT_LOG",
        extra={"entry_count": bundle["export_metadata"]["entry_count"]},
    )
    return bundle


# --- Module Notes -----------------------------------------------------------
# Every handler audits only after its work is done; every denial raises before
# `_audit` is reached, so denied requests leave no audit record.
