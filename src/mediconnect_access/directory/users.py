"""
mediconnect_access.directory.users

User directory: identity lookups for login, ownership checks and admin listings.

Responsibilities:
- Define the `User` record and the `UserDirectory` interface.
- Provide an in-memory directory (optionally seeded with demo accounts).
- Argon2id password hashing for login credential checks.
"""

from __future__ import annotations

import dataclasses
import threading
from dataclasses import dataclass, field
from typing import Any, Protocol

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from mediconnect_access.auth.roles import Permission, Role, grants

# Argon2id; parameters and salt are embedded in each encoded hash.
_hasher = PasswordHasher(time_cost=3, memory_cost=65536, parallelism=4, hash_len=32, salt_len=16)


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(password: str, stored_hash: str) -> bool:
    if not password or not stored_hash:
        return False
    try:
        return _hasher.verify(stored_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


class DuplicateUserError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class User:
    id: str
    email: str
    name: str
    role: Role
    password_hash: str = field(default="", repr=False)
    tenant_id: str | None = None
    # Per-user grants on top of the role's; may contain the wildcard.
    permissions: frozenset[Permission] = frozenset()
    is_active: bool = True

    def has_permission(self, permission: Permission | str) -> bool:
        return grants(self.permissions, permission)

    def public_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role.value,
            "tenant_id": self.tenant_id,
            "permissions": sorted(p.value for p in self.permissions),
            "is_active": self.is_active,
        }


class UserDirectory(Protocol):
    async def find_by_identity(self, user_id: str) -> User | None: ...

    async def find_by_email(self, email: str) -> User | None: ...

    async def list_users(self) -> list[User]: ...

    async def add_user(
        self,
        *,
        email: str,
        name: str,
        role: Role,
        password: str,
        tenant_id: str | None = None,
        is_active: bool = True,
    ) -> User: ...

    async def set_permissions(
        self, user_id: str, permissions: frozenset[Permission]
    ) -> User | None: ...


class InMemoryUserDirectory:
    def __init__(self, users: list[User] | None = None) -> None:
        self._lock = threading.Lock()
        self._users: dict[str, User] = {u.id: u for u in users or []}

    async def find_by_identity(self, user_id: str) -> User | None:
        with self._lock:
            return self._users.get(user_id)

    async def find_by_email(self, email: str) -> User | None:
        needle = email.strip().lower()
        with self._lock:
            return next((u for u in self._users.values() if u.email.lower() == needle), None)

    async def list_users(self) -> list[User]:
        with self._lock:
            return list(self._users.values())

    async def add_user(
        self,
        *,
        email: str,
        name: str,
        role: Role,
        password: str,
        tenant_id: str | None = None,
        is_active: bool = True,
    ) -> User:
        password_hash = hash_password(password)
        with self._lock:
            if any(u.email.lower() == email.strip().lower() for u in self._users.values()):
                raise DuplicateUserError(email)
            next_id = max((int(uid) for uid in self._users if uid.isdigit()), default=0) + 1
            user = User(
                id=str(next_id),
                email=email.strip(),
                name=name,
                role=role,
                password_hash=password_hash,
                tenant_id=tenant_id,
                is_active=is_active,
            )
            self._users[user.id] = user
            return user

    async def set_permissions(
        self, user_id: str, permissions: frozenset[Permission]
    ) -> User | None:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            updated = dataclasses.replace(user, permissions=frozenset(permissions))
            self._users[user_id] = updated
            return updated


DEMO_PASSWORD = "password123"

_DEMO_ACCOUNTS: list[tuple[str, str, str, Role, str | None]] = [
    ("1", "patient@example.com", "John Patient", Role.patient, None),
    ("2", "doctor@example.com", "Dr. Jane Smith", Role.doctor, "clinic1"),
    ("3", "admin@example.com", "Sarah Administrator", Role.clinic_admin, "clinic1"),
    ("4", "staff@example.com", "Mike Clinic Staff", Role.clinic_staff, "clinic1"),
    ("5", "account@example.com", "Lisa Account Manager", Role.account_manager, None),
    ("6", "cs@example.com", "Tom Customer Success", Role.customer_success, None),
]


def demo_users() -> list[User]:
    password_hash = hash_password(DEMO_PASSWORD)
    return [
        User(
            id=uid,
            email=email,
            name=name,
            role=role,
            password_hash=password_hash,
            tenant_id=tenant,
        )
        for uid, email, name, role, tenant in _DEMO_ACCOUNTS
    ]


# --- Module Notes -----------------------------------------------------------
# A relational directory only needs to implement `UserDirectory`; routes and the
# authorization engine never touch the dict above.
