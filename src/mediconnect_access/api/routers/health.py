"""
mediconnect_access.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Provide liveness probe (`/healthz`).
- Provide readiness probe (`/readyz`) validating the audit store can take appends.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from starlette.status import HTTP_503_SERVICE_UNAVAILABLE

from mediconnect_access.api.deps import audit_trail_dep
from mediconnect_access.audit.trail import AuditTrail
from mediconnect_access.auth.errors import AuditWriteFailure
from mediconnect_access.observability.logging import get_logger

log = get_logger(__name__)

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(trail: AuditTrail = Depends(audit_trail_dep)) -> dict[str, str]:
    # The service must not serve protected data if it cannot audit.
    try:
        await trail.store.ping()
    except AuditWriteFailure as e:
        log.error("readiness_failed", reason=str(e))
        raise HTTPException(status_code=HTTP_503_SERVICE_UNAVAILABLE, detail="Audit store unavailable") from e
    return {"status": "ready"}
