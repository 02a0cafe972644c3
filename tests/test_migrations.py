"""
tests.test_migrations

The Alembic revision produces a schema the SQL audit store and readiness probe accept.
"""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest
from alembic import command
from alembic.config import Config
from conftest import TEST_SECRET, bearer, make_token

from mediconnect_access.api.app import create_app
from mediconnect_access.settings import Settings

REPO_ROOT = Path(__file__).resolve().parents[1]


def _upgrade(database_url: str, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MEDICONNECT_DATABASE_URL", database_url)
    # No ini file: keeps alembic from reconfiguring the test process's logging.
    cfg = Config()
    cfg.set_main_option("script_location", str(REPO_ROOT / "alembic"))
    command.upgrade(cfg, "head")


@pytest.mark.asyncio
async def test_migrated_database_serves_prod(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    database_url = f"sqlite+aiosqlite:///{tmp_path / 'migrated.db'}"
    _upgrade(database_url, monkeypatch)

    settings = Settings(
        env="prod",
        audit_backend="sql",
        jwt_secret=TEST_SECRET,
        database_url=database_url,
        seed_demo_users=False,
    )
    app = create_app(settings=settings)

    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            assert (await client.get("/readyz")).status_code == 200

            trail = app.state.audit_trail
            token = make_token(settings, user_id="5", role="account_manager")
            r = await client.get("/v1/access-control/audit-logs/verify", headers=bearer(token))
            assert r.json() == {"valid": True, "checked": 0, "broken_at": None}

            # The verify call above was audited into the migrated table.
            records = await trail.query()
            assert [(rec.id, rec.user_id) for rec in records] == [(1, "5")]
            assert (await trail.verify_chain()).valid
