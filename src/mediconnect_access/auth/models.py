"""
mediconnect_access.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated identity type (`Principal`) injected into endpoints.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from mediconnect_access.auth.roles import Role


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated caller identity, built from a verified credential.
    Lives for one request and is never persisted.
    """

    user_id: str
    role: Role | str
    email: str = ""
    name: str = ""
    tenant_id: str | None = None
    issued_at: datetime | None = None
    expires_at: datetime | None = None
    token_id: str | None = None


# --- Module Notes -----------------------------------------------------------
# `role` keeps the raw claim when it is not a known Role; the registry treats such
# values as the lowest rank with no permissions.
