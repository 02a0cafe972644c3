"""
mediconnect_access.db.init_db

Create the audit tables for local development and tests. Deployed databases are
migrated with Alembic (`alembic upgrade head`) instead.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from mediconnect_access.db import models  # noqa: F401  # registers tables on Base.metadata
from mediconnect_access.db.base import Base
from mediconnect_access.observability.logging import get_logger

log = get_logger(__name__)


async def init_db(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info("db_initialized", tables=sorted(Base.metadata.tables), url=engine.url.render_as_string())
