"""
mediconnect_access.api

API package for the MediConnect access control service.

Responsibilities:
- FastAPI app factory and router modules.
- API-layer dependency wiring and the post-commit audit hook.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The API layer should remain thin: request validation + auth + delegation to the core.
