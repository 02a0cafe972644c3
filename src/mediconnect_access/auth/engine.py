"""
mediconnect_access.auth.engine

Authorization decisions.

Responsibilities:
- Permission check: can this role ever do X?
- Role membership check: coarse endpoint gating by role.
- Ownership/escalation check: can this principal act on another principal's data?

Every function is pure over the role registry and its arguments. Callers compose
them (an operation may need a permission and, for targeted resources, an
ownership check). Denials carry no reason; see `require`.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable

from mediconnect_access.auth.errors import AuthorizationDenied
from mediconnect_access.auth.models import Principal
from mediconnect_access.auth.roles import Permission, Role, coerce_role, has_permission, rank_of


class Decision(enum.StrEnum):
    allow = "ALLOW"
    deny = "DENY"

    @property
    def allowed(self) -> bool:
        return self is Decision.allow


def _decide(ok: bool) -> Decision:
    return Decision.allow if ok else Decision.deny


def authorize(principal: Principal | None, permission: Permission | str) -> Decision:
    if principal is None:
        return Decision.deny
    return _decide(has_permission(principal.role, permission))


def authorize_any_role(
    principal: Principal | None, allowed_roles: Iterable[Role | str]
) -> Decision:
    if principal is None:
        return Decision.deny
    role = coerce_role(principal.role)
    if role is None:
        return Decision.deny
    return _decide(role in {coerce_role(r) for r in allowed_roles})


def authorize_access(
    requester: Principal | None,
    target_owner_id: str | None,
    target_owner_role: Role | str | None,
    *,
    override_permission: Permission | str | None = None,
) -> Decision:
    """
    Evaluated in order:
    1. Self-access is always allowed.
    2. Higher-or-equal rank, or the same role, may access the target.
       With `override_permission` set, this branch also needs that permission.
    3. Otherwise deny.
    """

    if requester is None:
        return Decision.deny

    if target_owner_id is not None and requester.user_id == target_owner_id:
        return Decision.allow

    same_role = (
        coerce_role(requester.role) is not None
        and coerce_role(requester.role) == coerce_role(target_owner_role)
    )
    outranks = rank_of(requester.role) >= rank_of(target_owner_role)
    if not (outranks or same_role):
        return Decision.deny

    if override_permission is not None and not has_permission(requester.role, override_permission):
        return Decision.deny
    return Decision.allow


def require(decision: Decision) -> None:
    # One generic failure for every kind of denial.
    if not decision.allowed:
        raise AuthorizationDenied("not permitted")


# --- Module Notes -----------------------------------------------------------
# Hierarchy-based access is a coarse administrative override. Routes guarding
# sensitive resources pass `override_permission` (or an extra role gate) so that
# seniority alone is not enough.
