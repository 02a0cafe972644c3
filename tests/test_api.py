"""
tests.test_api

End-to-end request pipeline: credential check -> authorization -> handler -> audit.
"""

from __future__ import annotations

from datetime import timedelta

import httpx
import pytest
from conftest import bearer, make_token
from fastapi import FastAPI

from mediconnect_access.api.app import create_app
from mediconnect_access.audit.models import AuditAction, AuditEvent, AuditFilter
from mediconnect_access.audit.store import InMemoryAuditStore
from mediconnect_access.settings import Settings


async def _login(client: httpx.AsyncClient, email: str, password: str = "password123") -> str:
    r = await client.post("/v1/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()["access_token"]


@pytest.mark.asyncio
async def test_login_is_audited(client: httpx.AsyncClient, audit_store: InMemoryAuditStore) -> None:
    r = await client.post(
        "/v1/auth/login",
        json={"email": "doctor@example.com", "password": "password123"},
        headers={"user-agent": "pytest-client"},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["user"]["role"] == "doctor"
    assert "password_hash" not in body["user"]

    records = await audit_store.query(AuditFilter(action=AuditAction.login, user_id="2"))
    assert len(records) == 1
    assert records[0].user_email == "doctor@example.com"
    assert records[0].resource_type == "AUTH"
    assert records[0].user_agent == "pytest-client"
    assert records[0].details["path"] == "/v1/auth/login"


@pytest.mark.asyncio
async def test_failed_login_is_not_audited(
    client: httpx.AsyncClient, audit_store: InMemoryAuditStore
) -> None:
    r = await client.post(
        "/v1/auth/login", json={"email": "doctor@example.com", "password": "wrong"}
    )
    assert r.status_code == 401
    assert len(audit_store) == 0


@pytest.mark.asyncio
async def test_missing_and_expired_tokens_get_the_same_401(
    client: httpx.AsyncClient, settings: Settings
) -> None:
    expired = make_token(settings, user_id="3", role="clinic_admin", ttl=timedelta(seconds=-1))

    missing = await client.get("/v1/access-control/users")
    stale = await client.get("/v1/access-control/users", headers=bearer(expired))
    garbage = await client.get("/v1/access-control/users", headers=bearer("abc.def.ghi"))

    for r in (missing, stale, garbage):
        assert r.status_code == 401
        assert r.json() == {"detail": "Invalid or missing credential"}
        assert r.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_patient_is_denied_user_listing_without_audit(
    client: httpx.AsyncClient, settings: Settings, audit_store: InMemoryAuditStore
) -> None:
    token = make_token(settings, user_id="1", role="patient")
    r = await client.get("/v1/access-control/users", headers=bearer(token))
    assert r.status_code == 403
    assert r.json() == {"detail": "Not permitted"}
    assert len(audit_store) == 0


@pytest.mark.asyncio
async def test_admin_lists_users_and_is_audited(
    client: httpx.AsyncClient, settings: Settings, audit_store: InMemoryAuditStore
) -> None:
    token = make_token(settings, user_id="3", role="clinic_admin", email="admin@example.com")
    r = await client.get("/v1/access-control/users", headers=bearer(token))
    assert r.status_code == 200
    assert {u["email"] for u in r.json()["users"]} >= {"patient@example.com", "cs@example.com"}

    (record,) = await audit_store.query(AuditFilter(user_id="3"))
    assert record.action is AuditAction.view
    assert record.resource_type == "USER"
    assert record.details["status_code"] == 200


@pytest.mark.asyncio
async def test_user_can_read_own_profile(client: httpx.AsyncClient, settings: Settings) -> None:
    token = make_token(settings, user_id="1", role="patient")
    r = await client.get("/v1/access-control/users/1", headers=bearer(token))
    assert r.status_code == 200
    assert r.json()["email"] == "patient@example.com"


@pytest.mark.asyncio
async def test_cross_user_read_rules(client: httpx.AsyncClient, settings: Settings) -> None:
    patient = make_token(settings, user_id="1", role="patient")
    doctor = make_token(settings, user_id="2", role="doctor")
    admin = make_token(settings, user_id="3", role="clinic_admin")

    # Non-admin roles never read other profiles, existing or not.
    assert (await client.get("/v1/access-control/users/2", headers=bearer(patient))).status_code == 403
    assert (await client.get("/v1/access-control/users/1", headers=bearer(doctor))).status_code == 403
    assert (await client.get("/v1/access-control/users/999", headers=bearer(doctor))).status_code == 403

    # Clinic admin reads lower-ranked users but not higher-ranked ones.
    assert (await client.get("/v1/access-control/users/1", headers=bearer(admin))).status_code == 200
    assert (await client.get("/v1/access-control/users/5", headers=bearer(admin))).status_code == 403
    assert (await client.get("/v1/access-control/users/999", headers=bearer(admin))).status_code == 404


@pytest.mark.asyncio
async def test_create_user_respects_rank(
    client: httpx.AsyncClient, settings: Settings, audit_store: InMemoryAuditStore
) -> None:
    admin = make_token(settings, user_id="3", role="clinic_admin")
    new_user = {
        "name": "New Doctor",
        "email": "newdoc@example.com",
        "password": "correct-horse",
        "role": "doctor",
        "tenant_id": "clinic1",
    }
    r = await client.post("/v1/access-control/users", json=new_user, headers=bearer(admin))
    assert r.status_code == 201
    created = r.json()["user"]
    assert created["role"] == "doctor"

    dup = await client.post("/v1/access-control/users", json=new_user, headers=bearer(admin))
    assert dup.status_code == 409

    above = {**new_user, "email": "boss@example.com", "role": "customer_success"}
    r = await client.post("/v1/access-control/users", json=above, headers=bearer(admin))
    assert r.status_code == 403

    creates = await audit_store.query(AuditFilter(action=AuditAction.create))
    assert [rec.resource_id for rec in creates] == [created["id"]]

    # The new account can log in.
    assert await _login(client, "newdoc@example.com", "correct-horse")


@pytest.mark.asyncio
async def test_permission_grants(
    client: httpx.AsyncClient, settings: Settings, audit_store: InMemoryAuditStore
) -> None:
    admin = make_token(settings, user_id="3", role="clinic_admin")
    staff = make_token(settings, user_id="4", role="clinic_staff")

    before = await client.post(
        "/v1/access-control/check-permission",
        json={"permission": "MANAGE_CLAIMS"},
        headers=bearer(staff),
    )
    assert before.json() == {"has_access": False}

    r = await client.put(
        "/v1/access-control/users/4/permissions",
        json={"permissions": ["manage_claims"]},
        headers=bearer(admin),
    )
    assert r.status_code == 200
    assert r.json()["permissions"] == ["manage_claims"]

    after = await client.post(
        "/v1/access-control/check-permission",
        json={"permission": "manage_claims"},
        headers=bearer(staff),
    )
    assert after.json() == {"has_access": True}

    # No granting yourself permissions, and no touching higher-ranked users.
    own = await client.put(
        "/v1/access-control/users/3/permissions", json={"permissions": ["*"]}, headers=bearer(admin)
    )
    assert own.status_code == 403
    higher = await client.put(
        "/v1/access-control/users/5/permissions", json={"permissions": []}, headers=bearer(admin)
    )
    assert higher.status_code == 403

    updates = await audit_store.query(AuditFilter(action=AuditAction.update))
    assert len(updates) == 1
    assert updates[0].resource_type == "PERMISSIONS"
    assert updates[0].details["permissions"] == ["manage_claims"]


@pytest.mark.asyncio
async def test_grants_are_capped_at_the_requesters_own_permissions(
    client: httpx.AsyncClient, settings: Settings, audit_store: InMemoryAuditStore
) -> None:
    admin = make_token(settings, user_id="3", role="clinic_admin")
    doctor = make_token(settings, user_id="2", role="doctor")

    for permissions in (["*"], ["manage_system_settings"], ["view_billing", "manage_subscriptions"]):
        r = await client.put(
            "/v1/access-control/users/2/permissions",
            json={"permissions": permissions},
            headers=bearer(admin),
        )
        assert r.status_code == 403
        assert r.json() == {"detail": "Not permitted"}

    check = await client.post(
        "/v1/access-control/check-permission",
        json={"permission": "manage_system_settings"},
        headers=bearer(doctor),
    )
    assert check.json() == {"has_access": False}
    assert await audit_store.query(AuditFilter(action=AuditAction.update)) == []


@pytest.mark.asyncio
async def test_me_permissions_and_roles(client: httpx.AsyncClient, settings: Settings) -> None:
    token = make_token(settings, user_id="1", role="patient")
    r = await client.get("/v1/access-control/me/permissions", headers=bearer(token))
    assert r.status_code == 200
    assert "book_appointment" in r.json()["role_permissions"]
    assert r.json()["user_permissions"] == []

    roles = (await client.get("/v1/access-control/roles", headers=bearer(token))).json()["roles"]
    assert [row["role"] for row in roles][0] == "patient"
    assert [row["rank"] for row in roles] == [1, 2, 3, 4, 5, 6]


@pytest.mark.asyncio
async def test_audit_log_query_endpoint(client: httpx.AsyncClient, settings: Settings) -> None:
    await _login(client, "patient@example.com")
    admin_token = await _login(client, "admin@example.com")

    r = await client.get(
        "/v1/access-control/audit-logs",
        params={"action": "LOGIN", "user_id": "1"},
        headers=bearer(admin_token),
    )
    assert r.status_code == 200
    logs = r.json()["logs"]
    assert len(logs) == 1
    entry = logs[0]
    assert entry["user_id"] == "1"
    assert entry["action"] == "LOGIN"
    assert set(entry) >= {
        "id",
        "user_id",
        "user_email",
        "action",
        "resource_type",
        "resource_id",
        "ip_address",
        "user_agent",
        "details",
        "timestamp",
    }

    staff = make_token(settings, user_id="4", role="clinic_staff")
    denied = await client.get("/v1/access-control/audit-logs", headers=bearer(staff))
    assert denied.status_code == 403


@pytest.mark.asyncio
async def test_audit_verify_and_export(client: httpx.AsyncClient, settings: Settings) -> None:
    admin = make_token(settings, user_id="5", role="account_manager", email="account@example.com")
    await client.get("/v1/access-control/users", headers=bearer(admin))

    verify = await client.get("/v1/access-control/audit-logs/verify", headers=bearer(admin))
    assert verify.json()["valid"] is True

    export = await client.get("/v1/access-control/audit-logs/export", headers=bearer(admin))
    assert export.status_code == 200
    assert export.json()["export_metadata"]["chain_integrity"] == "VALID"

    exports = await client.get(
        "/v1/access-control/audit-logs", params={"action": "EXPORT"}, headers=bearer(admin)
    )
    assert len(exports.json()["logs"]) == 1


@pytest.mark.asyncio
async def test_logout_revokes_token_and_is_audited(
    client: httpx.AsyncClient, audit_store: InMemoryAuditStore
) -> None:
    token = await _login(client, "staff@example.com")
    assert (await client.get("/v1/auth/me", headers=bearer(token))).json()["email"] == "staff@example.com"

    r = await client.post("/v1/auth/logout", headers=bearer(token))
    assert r.status_code == 200

    assert (await client.get("/v1/auth/me", headers=bearer(token))).status_code == 401
    logouts = await audit_store.query(AuditFilter(action=AuditAction.logout))
    assert [rec.user_id for rec in logouts] == ["4"]


class _BrokenStore(InMemoryAuditStore):
    async def append(self, event: AuditEvent):
        raise RuntimeError("audit database unavailable")


@pytest.mark.asyncio
async def test_audit_failure_does_not_fail_the_request(settings: Settings) -> None:
    app: FastAPI = create_app(settings=settings, audit_store=_BrokenStore())
    token = make_token(settings, user_id="3", role="clinic_admin")
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        r = await client.get("/v1/access-control/users", headers=bearer(token))
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_dev_token_endpoint(client: httpx.AsyncClient) -> None:
    r = await client.post("/v1/dev/token", json={"subject": "u77", "role": "doctor"})
    assert r.status_code == 200
    token = r.json()["access_token"]
    me = await client.get("/v1/access-control/me/permissions", headers=bearer(token))
    assert me.json()["user_id"] == "u77"
    assert "write_prescriptions" in me.json()["role_permissions"]


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: httpx.AsyncClient) -> None:
    r = await client.get("/healthz", headers={"x-request-id": "req-123"})
    assert r.headers["x-request-id"] == "req-123"
    generated = await client.get("/healthz")
    assert len(generated.headers["x-request-id"]) == 32


# --- Module Notes -----------------------------------------------------------
# httpx.ASGITransport awaits the whole ASGI call, so audit background tasks have
# finished by the time each response is returned to the test.
