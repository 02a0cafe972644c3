"""
mediconnect_access.auth.roles

Static role registry.

Responsibilities:
- Define the closed set of roles and permissions.
- Define the role hierarchy (rank per role) and the role -> permission grants.
- Answer registry questions as total functions: unknown roles never raise.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class Role(enum.StrEnum):
    patient = "patient"
    doctor = "doctor"
    clinic_staff = "clinic_staff"
    clinic_admin = "clinic_admin"
    account_manager = "account_manager"
    customer_success = "customer_success"


class Permission(enum.StrEnum):
    # Enum values appear in tokens, API payloads and audit details; treat as stable.
    wildcard = "*"

    # Patient
    view_own_profile = "view_own_profile"
    edit_own_profile = "edit_own_profile"
    view_own_medical_records = "view_own_medical_records"
    book_appointment = "book_appointment"
    view_own_appointments = "view_own_appointments"

    # Doctor / staff
    view_all_patients = "view_all_patients"
    view_patient_records = "view_patient_records"
    edit_patient_records = "edit_patient_records"
    manage_appointments = "manage_appointments"
    write_prescriptions = "write_prescriptions"
    view_schedule = "view_schedule"

    # Clinic admin
    manage_staff = "manage_staff"
    manage_users = "manage_users"
    view_analytics = "view_analytics"
    manage_settings = "manage_settings"
    view_billing = "view_billing"
    manage_claims = "manage_claims"

    # Account manager / customer success
    view_all_clinics = "view_all_clinics"
    manage_clinic_accounts = "manage_clinic_accounts"
    view_system_analytics = "view_system_analytics"
    manage_subscriptions = "manage_subscriptions"

    # Platform administration
    manage_roles = "manage_roles"
    manage_permissions = "manage_permissions"
    view_audit_logs = "view_audit_logs"
    manage_system_settings = "manage_system_settings"


# Strictly increasing; no two roles share a rank.
ROLE_HIERARCHY: dict[Role, int] = {
    Role.patient: 1,
    Role.doctor: 2,
    Role.clinic_staff: 3,
    Role.clinic_admin: 4,
    Role.account_manager: 5,
    Role.customer_success: 6,
}

ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.patient: frozenset(
        {
            Permission.view_own_profile,
            Permission.edit_own_profile,
            Permission.view_own_medical_records,
            Permission.book_appointment,
            Permission.view_own_appointments,
        }
    ),
    Role.doctor: frozenset(
        {
            Permission.view_own_profile,
            Permission.edit_own_profile,
            Permission.view_patient_records,
            Permission.edit_patient_records,
            Permission.manage_appointments,
            Permission.write_prescriptions,
            Permission.view_schedule,
        }
    ),
    Role.clinic_staff: frozenset(
        {
            Permission.view_own_profile,
            Permission.view_patient_records,
            Permission.manage_appointments,
            Permission.view_schedule,
            Permission.view_billing,
        }
    ),
    Role.clinic_admin: frozenset(
        {
            Permission.view_own_profile,
            Permission.edit_own_profile,
            Permission.view_all_patients,
            Permission.view_patient_records,
            Permission.edit_patient_records,
            Permission.manage_appointments,
            Permission.manage_staff,
            Permission.manage_users,
            Permission.view_analytics,
            Permission.manage_settings,
            Permission.view_billing,
            Permission.manage_claims,
        }
    ),
    Role.account_manager: frozenset(
        {
            Permission.view_all_clinics,
            Permission.manage_clinic_accounts,
            Permission.view_system_analytics,
            Permission.manage_subscriptions,
        }
    ),
    Role.customer_success: frozenset(
        {
            Permission.view_all_clinics,
            Permission.manage_clinic_accounts,
            Permission.view_system_analytics,
        }
    ),
}


@dataclass(frozen=True, slots=True)
class RoleInfo:
    role: Role
    rank: int
    permissions: frozenset[Permission]


def coerce_role(role: Role | str | None) -> Role | None:
    """Map a raw role value to `Role`, or None when it is not a known role."""
    if isinstance(role, Role):
        return role
    if role is None:
        return None
    try:
        return Role(str(role))
    except ValueError:
        return None


def permissions_of(role: Role | str | None) -> frozenset[Permission]:
    known = coerce_role(role)
    if known is None:
        return frozenset()
    return ROLE_PERMISSIONS.get(known, frozenset())


def rank_of(role: Role | str | None) -> int:
    # Unknown roles rank below every real role.
    known = coerce_role(role)
    if known is None:
        return 0
    return ROLE_HIERARCHY.get(known, 0)


def grants(granted: frozenset[Permission] | set[Permission], permission: Permission | str) -> bool:
    """Membership test over a grant set that honours the wildcard."""
    if Permission.wildcard in granted:
        return True
    return permission in granted


def has_permission(role: Role | str | None, permission: Permission | str) -> bool:
    return grants(permissions_of(role), permission)


def list_roles() -> list[RoleInfo]:
    # Lowest rank first, matching the documented hierarchy.
    return [
        RoleInfo(role=role, rank=rank, permissions=permissions_of(role))
        for role, rank in sorted(ROLE_HIERARCHY.items(), key=lambda item: item[1])
    ]


# --- Module Notes -----------------------------------------------------------
# Roles and grants are fixed at import time. Any change here is a policy change
# and should be reviewed together with `auth.engine`.
