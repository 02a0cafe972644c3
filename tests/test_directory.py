"""
tests.test_directory

User directory and password hashing.
"""

from __future__ import annotations

import pytest

from mediconnect_access.auth.roles import Permission, Role
from mediconnect_access.directory.users import (
    DEMO_PASSWORD,
    DuplicateUserError,
    InMemoryUserDirectory,
    demo_users,
    hash_password,
    verify_password,
)


def test_password_hash_is_argon2id_and_salted() -> None:
    first = hash_password("correct-horse")
    second = hash_password("correct-horse")
    assert first.startswith("$argon2id$")
    assert first != second
    assert verify_password("correct-horse", first)
    assert verify_password("correct-horse", second)


@pytest.mark.parametrize(
    "password,stored",
    [
        ("wrong-horse", None),
        ("", None),
        ("correct-horse", ""),
        ("correct-horse", "not-a-hash"),
        ("correct-horse", "scrypt:00:00"),
    ],
)
def test_verify_password_rejects(password: str, stored: str | None) -> None:
    stored_hash = hash_password("correct-horse") if stored is None else stored
    assert verify_password(password, stored_hash) is False


@pytest.mark.asyncio
async def test_add_user_assigns_next_id_and_rejects_duplicate_email() -> None:
    directory = InMemoryUserDirectory(demo_users())
    user = await directory.add_user(
        email=" New@Example.com ", name="New", role=Role.doctor, password="pw-12345678"
    )
    assert user.id == "7"
    assert user.email == "New@Example.com"
    assert verify_password("pw-12345678", user.password_hash)
    assert await directory.find_by_email("new@example.com") == user

    with pytest.raises(DuplicateUserError):
        await directory.add_user(email="new@example.com", name="Dup", role=Role.patient, password="x" * 8)


@pytest.mark.asyncio
async def test_demo_accounts_and_permission_grants() -> None:
    directory = InMemoryUserDirectory(demo_users())
    admin = await directory.find_by_email("admin@example.com")
    assert admin is not None and admin.role is Role.clinic_admin
    assert verify_password(DEMO_PASSWORD, admin.password_hash)

    updated = await directory.set_permissions("4", frozenset({Permission.manage_claims}))
    assert updated is not None and updated.has_permission("manage_claims")
    assert not updated.has_permission(Permission.manage_users)
    assert await directory.set_permissions("999", frozenset()) is None
