"""
alembic.env

Migration environment for the audit trail schema (`alembic upgrade head`).

The service runs on async drivers (aiosqlite, asyncpg); migrations run through
their sync counterparts against the same `MEDICONNECT_DATABASE_URL`.
"""

from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool
from sqlalchemy.engine import URL, make_url

from mediconnect_access.db import models  # noqa: F401  # registers audit_logs on Base.metadata
from mediconnect_access.db.base import Base
from mediconnect_access.settings import Settings

_SYNC_DRIVERS = {"aiosqlite": "pysqlite", "asyncpg": "psycopg2"}

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def sync_url(raw: str) -> URL:
    url = make_url(raw)
    backend, _, driver = url.drivername.partition("+")
    if driver in _SYNC_DRIVERS:
        url = url.set(drivername=f"{backend}+{_SYNC_DRIVERS[driver]}")
    return url


def _configure_kwargs(url: URL) -> dict[str, object]:
    # SQLite cannot ALTER most constraints in place.
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "render_as_batch": url.get_backend_name() == "sqlite",
    }


def run_migrations_offline() -> None:
    url = sync_url(Settings().database_url)
    context.configure(
        url=url.render_as_string(hide_password=False),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_kwargs(url),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = sync_url(Settings().database_url)
    engine = create_engine(url, poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, **_configure_kwargs(url))
        with context.begin_transaction():
            context.run_migrations()
    engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
