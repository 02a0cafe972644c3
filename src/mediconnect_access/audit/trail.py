"""
mediconnect_access.audit.trail

The audit trail facade used by request handlers and reporting endpoints.

Responsibilities:
- Append events without ever failing the caller's (already committed) operation.
- Filtered, append-ordered queries.
- Hash chain verification and redacted compliance exports.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from mediconnect_access.audit.models import (
    AuditEvent,
    AuditFilter,
    AuditRecord,
    ChainVerification,
    verify_chain,
)
from mediconnect_access.audit.store import AuditStore
from mediconnect_access.observability.logging import get_logger

log = get_logger(__name__)

# Returned by `append` when the record could not be written.
AUDIT_WRITE_FAILED = -1

_PHI_KEYS = {
    "name",
    "full_name",
    "first_name",
    "last_name",
    "email",
    "phone",
    "address",
    "dob",
    "date_of_birth",
    "ssn",
    "password",
}

_PHI_PATTERNS: dict[str, re.Pattern[str]] = {
    "ssn": re.compile(r"\b\d{3}-\d{2}-\d{4}\b"),
    "email": re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
    "phone": re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b"),
}


def redact_details(details: Mapping[str, Any]) -> dict[str, Any]:
    """Replace likely PHI in an audit details payload with markers."""
    return {
        key: "[REDACTED]" if key.lower() in _PHI_KEYS else _redact_value(value)
        for key, value in details.items()
    }


def _redact_value(value: Any) -> Any:
    if isinstance(value, str):
        for label, pattern in _PHI_PATTERNS.items():
            value = pattern.sub(f"[REDACTED-{label.upper()}]", value)
        return value
    if isinstance(value, Mapping):
        return redact_details(value)
    if isinstance(value, list | tuple):
        return [_redact_value(item) for item in value]
    return value


class AuditTrail:
    def __init__(self, store: AuditStore) -> None:
        self._store = store

    @property
    def store(self) -> AuditStore:
        return self._store

    async def append(self, event: AuditEvent | Mapping[str, Any]) -> int:
        try:
            parsed = event if isinstance(event, AuditEvent) else AuditEvent.model_validate(event)
            record = await self._store.append(parsed)
        except Exception:
            # Operational channel only; the protected operation has already taken effect.
            log.exception("audit_write_failed")
            return AUDIT_WRITE_FAILED
        log.debug("audit_appended", record_id=record.id, action=record.action.value)
        return record.id

    async def query(self, flt: AuditFilter | None = None) -> list[AuditRecord]:
        return await self._store.query(flt or AuditFilter())

    async def verify_chain(self) -> ChainVerification:
        return verify_chain(await self._store.all())

    async def export(self, flt: AuditFilter | None = None) -> dict[str, Any]:
        records = await self.query(flt)
        chain = await self.verify_chain()
        entries = []
        for record in records:
            entry = record.model_dump(mode="json")
            entry["details"] = redact_details(record.details)
            entries.append(entry)
        return {
            "export_metadata": {
                "exported_at": datetime.now(tz=UTC).isoformat(),
                "entry_count": len(entries),
                "chain_integrity": "VALID" if chain.valid else f"BROKEN_AT_ID_{chain.broken_at}",
            },
            "entries": entries,
        }


# --- Module Notes -----------------------------------------------------------
# Callers must only append after the action they describe has taken effect, and
# never for denied requests (those go to the operational logger).
