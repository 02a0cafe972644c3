"""
mediconnect_access.audit.store

Audit store backends.

Responsibilities:
- Define the `AuditStore` interface the trail depends on.
- In-memory backend (process lifetime) and SQL backend (async SQLAlchemy).
- Serialize appends so record ids are unique, strictly increasing and gap-free,
  and each record is chained to its predecessor's hash.
"""

from __future__ import annotations

import asyncio
import threading
from datetime import UTC, datetime
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mediconnect_access.audit.models import AuditEvent, AuditFilter, AuditRecord, build_record
from mediconnect_access.auth.errors import AuditWriteFailure
from mediconnect_access.db.models import AuditLogEntry
from mediconnect_access.db.repositories.audit import AuditRepo, to_record


class AuditStore(Protocol):
    async def append(self, event: AuditEvent) -> AuditRecord: ...

    async def query(self, flt: AuditFilter) -> list[AuditRecord]: ...

    async def all(self) -> list[AuditRecord]: ...

    async def ping(self) -> None: ...


class InMemoryAuditStore:
    def __init__(self) -> None:
        # A thread lock (not asyncio) so sync callers in worker threads are covered too.
        self._lock = threading.Lock()
        self._records: list[AuditRecord] = []

    async def append(self, event: AuditEvent) -> AuditRecord:
        with self._lock:
            previous = self._records[-1] if self._records else None
            record = build_record(
                event,
                record_id=previous.id + 1 if previous else 1,
                timestamp=datetime.now(tz=UTC),
                previous_hash=previous.record_hash if previous else "",
            )
            self._records.append(record)
            return record

    async def query(self, flt: AuditFilter) -> list[AuditRecord]:
        with self._lock:
            snapshot = tuple(self._records)
        return [r.model_copy(deep=True) for r in snapshot if flt.matches(r)]

    async def all(self) -> list[AuditRecord]:
        return await self.query(AuditFilter())

    async def ping(self) -> None:
        return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class SqlAuditStore:
    """
    One short-lived session per call, separate from any request session.
    Appends are single-writer within this process; the primary key rejects
    a colliding id from another writer.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._write_lock = asyncio.Lock()

    async def append(self, event: AuditEvent) -> AuditRecord:
        async with self._write_lock:
            try:
                async with self._session_factory() as session:
                    repo = AuditRepo(session)
                    tail = await repo.tail()
                    record = build_record(
                        event,
                        record_id=tail[0] + 1 if tail else 1,
                        timestamp=datetime.now(tz=UTC),
                        previous_hash=tail[1] if tail else "",
                    )
                    await repo.add(record)
                    await session.commit()
                    return record
            except SQLAlchemyError as e:
                raise AuditWriteFailure(str(e)) from e

    async def query(self, flt: AuditFilter) -> list[AuditRecord]:
        async with self._session_factory() as session:
            rows = await AuditRepo(session).query(flt)
            return [to_record(row) for row in rows]

    async def all(self) -> list[AuditRecord]:
        return await self.query(AuditFilter())

    async def ping(self) -> None:
        # Reads the audit table itself: a reachable database without the schema
        # cannot take appends either.
        try:
            async with self._session_factory() as session:
                await session.execute(select(AuditLogEntry.id).limit(1))
        except SQLAlchemyError as e:
            raise AuditWriteFailure(f"audit store unavailable: {e}") from e


# --- Module Notes -----------------------------------------------------------
# Both backends assign the timestamp inside the writer critical section, so
# timestamps never decrease as ids increase.
