"""
mediconnect_access.db.models

Persistence schema for the audit trail.

Responsibilities:
- Define the `AuditLogEntry` table: one row per appended audit record.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Enum, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from mediconnect_access.audit.models import AuditAction
from mediconnect_access.db.base import Base


class AuditLogEntry(Base):
    __tablename__ = "audit_logs"

    # Assigned by the store (max + 1 under its writer lock), not by the database.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)

    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    user_email: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    action: Mapped[AuditAction] = mapped_column(Enum(AuditAction), nullable=False, index=True)
    resource_type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    resource_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    # Naive UTC; converted back to aware UTC when read.
    timestamp: Mapped[datetime] = mapped_column(nullable=False, index=True)

    previous_hash: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    record_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    __table_args__ = (Index("ix_audit_logs_user_timestamp", "user_id", "timestamp"),)


# --- Module Notes -----------------------------------------------------------
# Rows are insert-only; no repository method updates or deletes them.
