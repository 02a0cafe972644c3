"""
mediconnect_access.api.auditing

Post-commit audit hook for request handlers.

Responsibilities:
- Build an `AuditEvent` from the request and the acting identity.
- Schedule the append as a background task that runs after the response is sent.

Handlers call `schedule_audit` only once their effect has happened, and only on
success paths; denied requests never reach it.
"""

from __future__ import annotations

from typing import Any

from fastapi import BackgroundTasks, Request

from mediconnect_access.audit.models import AuditAction, AuditEvent
from mediconnect_access.audit.trail import AuditTrail


def request_event(
    request: Request,
    *,
    user_id: str,
    user_email: str,
    action: AuditAction,
    resource_type: str,
    resource_id: str | None = None,
    status_code: int = 200,
    extra: dict[str, Any] | None = None,
) -> AuditEvent:
    details: dict[str, Any] = {
        "method": request.method,
        "path": request.url.path,
        "query": dict(request.query_params),
        "status_code": status_code,
    }
    if extra:
        details.update(extra)
    return AuditEvent(
        user_id=user_id,
        user_email=user_email,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        details=details,
    )


def schedule_audit(background: BackgroundTasks, trail: AuditTrail, event: AuditEvent) -> None:
    # AuditTrail.append never raises, so the task cannot break the response.
    background.add_task(trail.append, event)


# --- Module Notes -----------------------------------------------------------
# Replaces response-writer interception: the audit step is an ordinary call made
# by the handler after its work succeeded.
