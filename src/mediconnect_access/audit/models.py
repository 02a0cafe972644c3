"""
mediconnect_access.audit.models

Audit trail domain models.

Responsibilities:
- Define audit actions, the caller-supplied event and the immutable stored record.
- Define the query filter and its matching rules.
- Compute the SHA-256 hash chain link for each record.
"""

from __future__ import annotations

import enum
import hashlib
import json
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AuditAction(enum.StrEnum):
    view = "VIEW"
    create = "CREATE"
    update = "UPDATE"
    delete = "DELETE"
    login = "LOGIN"
    logout = "LOGOUT"
    export = "EXPORT"
    share = "SHARE"


def as_utc(value: datetime) -> datetime:
    # Naive datetimes are treated as UTC throughout the audit trail.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class AuditEvent(BaseModel):
    """
    What a caller asks the trail to record. Ids and timestamps are assigned by
    the trail; any such fields supplied here are dropped.
    """

    model_config = ConfigDict(extra="ignore")

    user_id: str
    user_email: str = ""
    action: AuditAction
    resource_type: str = Field(default="UNKNOWN", min_length=1, max_length=64)
    resource_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class AuditRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    user_id: str
    user_email: str
    action: AuditAction
    resource_type: str
    resource_id: str | None
    ip_address: str | None
    user_agent: str | None
    details: dict[str, Any]
    timestamp: datetime
    previous_hash: str = ""
    record_hash: str = ""

    def canonical_bytes(self) -> bytes:
        data = self.model_dump(mode="json", exclude={"record_hash"})
        data["timestamp"] = as_utc(self.timestamp).isoformat()
        return json.dumps(data, sort_keys=True, separators=(",", ":"), default=str).encode("utf-8")

    def compute_hash(self) -> str:
        return hashlib.sha256(self.canonical_bytes()).hexdigest()


def build_record(
    event: AuditEvent, *, record_id: int, timestamp: datetime, previous_hash: str
) -> AuditRecord:
    unsealed = AuditRecord(
        id=record_id,
        timestamp=as_utc(timestamp),
        previous_hash=previous_hash,
        # JSON mode so the hashed form matches what a JSON column stores.
        **event.model_dump(mode="json"),
    )
    return unsealed.model_copy(update={"record_hash": unsealed.compute_hash()})


class AuditFilter(BaseModel):
    """All fields optional and ANDed; an empty filter matches every record."""

    user_id: str | None = None
    action: AuditAction | None = None
    resource_type: str | None = None
    start: datetime | None = None
    end: datetime | None = None

    @field_validator("start", "end")
    @classmethod
    def _normalize_bounds(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None

    def matches(self, record: AuditRecord) -> bool:
        if self.user_id is not None and record.user_id != self.user_id:
            return False
        if self.action is not None and record.action != self.action:
            return False
        if self.resource_type is not None and record.resource_type != self.resource_type:
            return False
        ts = as_utc(record.timestamp)
        if self.start is not None and ts < self.start:
            return False
        if self.end is not None and ts > self.end:
            return False
        return True


@dataclass(frozen=True, slots=True)
class ChainVerification:
    valid: bool
    checked: int
    broken_at: int | None = None


def verify_chain(records: list[AuditRecord]) -> ChainVerification:
    """Walk records in append order and report the first broken link (by record id)."""
    previous = ""
    for record in records:
        if record.previous_hash != previous or record.record_hash != record.compute_hash():
            return ChainVerification(valid=False, checked=len(records), broken_at=record.id)
        previous = record.record_hash
    return ChainVerification(valid=True, checked=len(records))


# --- Module Notes -----------------------------------------------------------
# Field names here are the serialized names at every boundary (API, exports).
