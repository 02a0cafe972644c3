"""
mediconnect_access.auth.errors

Error taxonomy for authentication, authorization and auditing.

Responsibilities:
- Give every failure kind its own type so callers can map them at the boundary.
- Keep client-facing messages generic (no hint of which check failed).
"""

from __future__ import annotations


class AccessControlError(Exception):
    # Client-safe message; the exception text itself may carry detail for logs.
    public_message = "Not permitted"


class CredentialError(AccessControlError):
    public_message = "Invalid or missing credential"


class MissingCredential(CredentialError):
    pass


class InvalidCredential(CredentialError):
    pass


class ExpiredCredential(CredentialError):
    pass


class AuthorizationDenied(AccessControlError):
    pass


class AuditWriteFailure(AccessControlError):
    """Raised by audit stores; absorbed by `AuditTrail.append`."""


# --- Module Notes -----------------------------------------------------------
# `AuditWriteFailure` never reaches an HTTP client: the trail logs it and returns
# a sentinel id instead.
