"""
mediconnect_access.audit

Audit trail package.

Responsibilities:
- Immutable audit record model and hash chain.
- Swappable stores (memory, SQL) and the `AuditTrail` facade.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The trail is append/read only: no update or delete operation exists anywhere.
