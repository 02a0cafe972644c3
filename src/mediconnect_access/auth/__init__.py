"""
mediconnect_access.auth

Authentication/authorization package.

Responsibilities:
- Static role/permission registry and hierarchy.
- JWT issuing, verification and revocation.
- Pure authorization decisions (permission, role membership, ownership).
- FastAPI auth dependencies (Principal + RBAC).
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Only `auth.deps` imports FastAPI; the rest of this package is framework-free.
