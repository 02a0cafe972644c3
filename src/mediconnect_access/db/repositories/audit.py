"""
mediconnect_access.db.repositories.audit

Repository for `AuditLogEntry` rows.

Responsibilities:
- Insert audit rows.
- Read the chain tail (last id + hash) for the next append.
- Filtered scans in append order.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from mediconnect_access.audit.models import AuditFilter, AuditRecord, as_utc
from mediconnect_access.db.models import AuditLogEntry


def _naive_utc(value: datetime) -> datetime:
    return as_utc(value).replace(tzinfo=None)


def to_record(row: AuditLogEntry) -> AuditRecord:
    return AuditRecord(
        id=row.id,
        user_id=row.user_id,
        user_email=row.user_email,
        action=row.action,
        resource_type=row.resource_type,
        resource_id=row.resource_id,
        ip_address=row.ip_address,
        user_agent=row.user_agent,
        details=row.details or {},
        timestamp=row.timestamp.replace(tzinfo=UTC),
        previous_hash=row.previous_hash,
        record_hash=row.record_hash,
    )


class AuditRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, record: AuditRecord) -> AuditLogEntry:
        row = AuditLogEntry(
            id=record.id,
            user_id=record.user_id,
            user_email=record.user_email,
            action=record.action,
            resource_type=record.resource_type,
            resource_id=record.resource_id,
            ip_address=record.ip_address,
            user_agent=record.user_agent,
            details=record.details,
            timestamp=_naive_utc(record.timestamp),
            previous_hash=record.previous_hash,
            record_hash=record.record_hash,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def tail(self) -> tuple[int, str] | None:
        stmt = (
            select(AuditLogEntry.id, AuditLogEntry.record_hash)
            .order_by(desc(AuditLogEntry.id))
            .limit(1)
        )
        row = (await self._session.execute(stmt)).first()
        if row is None:
            return None
        return int(row[0]), str(row[1])

    async def query(self, flt: AuditFilter) -> list[AuditLogEntry]:
        stmt = select(AuditLogEntry)
        if flt.user_id is not None:
            stmt = stmt.where(AuditLogEntry.user_id == flt.user_id)
        if flt.action is not None:
            stmt = stmt.where(AuditLogEntry.action == flt.action)
        if flt.resource_type is not None:
            stmt = stmt.where(AuditLogEntry.resource_type == flt.resource_type)
        if flt.start is not None:
            stmt = stmt.where(AuditLogEntry.timestamp >= _naive_utc(flt.start))
        if flt.end is not None:
            stmt = stmt.where(AuditLogEntry.timestamp <= _naive_utc(flt.end))
        # Append order.
        stmt = stmt.order_by(AuditLogEntry.id)
        return list((await self._session.execute(stmt)).scalars().all())


# --- Module Notes -----------------------------------------------------------
# Indexes on user_id/action/resource_type/timestamp back the filters above.
