"""
tests.conftest

Shared fixtures and helpers.

Responsibilities:
- Build an in-memory app (memory audit store + seeded demo directory) per test.
- Mint tokens for arbitrary principals.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import timedelta

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from mediconnect_access.api.app import create_app
from mediconnect_access.api.deps import jwt_config
from mediconnect_access.audit.store import InMemoryAuditStore
from mediconnect_access.auth.jwt import issue_token
from mediconnect_access.settings import Settings

TEST_SECRET = "test-secret-with-enough-entropy-0123456789"


@pytest.fixture
def settings() -> Settings:
    return Settings(env="test", audit_backend="memory", jwt_secret=TEST_SECRET)


@pytest.fixture
def audit_store() -> InMemoryAuditStore:
    return InMemoryAuditStore()


@pytest.fixture
def app(settings: Settings, audit_store: InMemoryAuditStore) -> FastAPI:
    return create_app(settings=settings, audit_store=audit_store)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


def make_token(
    settings: Settings,
    *,
    user_id: str,
    role: str,
    email: str = "",
    tenant_id: str | None = None,
    ttl: timedelta = timedelta(minutes=5),
) -> str:
    return issue_token(
        cfg=jwt_config(settings),
        subject=user_id,
        role=role,
        email=email,
        tenant_id=tenant_id,
        ttl=ttl,
    )


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
