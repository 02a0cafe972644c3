"""
mediconnect_access.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Provide ORM models, engine/session setup, and repositories for the audit trail.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Decision logic never imports this package; only `audit.store.SqlAuditStore` does.
