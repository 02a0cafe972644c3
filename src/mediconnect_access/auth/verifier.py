"""
mediconnect_access.auth.verifier

Credential verification.

Responsibilities:
- Turn a bearer token into a typed `Principal`.
- Classify failures as missing, invalid or expired credentials.
- Consult the optional revocation list.

The token is the only source of truth for the request's claims; no directory
lookup happens here.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from mediconnect_access.auth.errors import ExpiredCredential, InvalidCredential, MissingCredential
from mediconnect_access.auth.jwt import JwtConfig, JwtExpiredError, JwtValidationError, decode_and_validate
from mediconnect_access.auth.models import Principal
from mediconnect_access.auth.revocation import RevocationList
from mediconnect_access.auth.roles import coerce_role


class CredentialVerifier:
    def __init__(self, cfg: JwtConfig, *, revocations: RevocationList | None = None) -> None:
        self._cfg = cfg
        self._revocations = revocations

    def verify_header(self, authorization: str | None) -> Principal:
        # Expected form: "Bearer <token>".
        if not authorization or not authorization.strip():
            raise MissingCredential("no authorization header")
        scheme, _, token = authorization.strip().partition(" ")
        if scheme.lower() != "bearer":
            raise InvalidCredential("unsupported authorization scheme")
        return self.verify(token.strip())

    def verify(self, token: str | None) -> Principal:
        if not token:
            raise MissingCredential("empty bearer token")

        try:
            payload = decode_and_validate(cfg=self._cfg, token=token)
        except JwtExpiredError as e:
            raise ExpiredCredential(str(e)) from e
        except JwtValidationError as e:
            raise InvalidCredential(str(e)) from e

        principal = _principal_from_claims(payload)
        if self._revocations is not None and self._revocations.is_revoked(principal.token_id):
            raise InvalidCredential("token revoked")
        return principal


def _principal_from_claims(payload: dict[str, Any]) -> Principal:
    subject = str(payload.get("sub") or "")
    role_raw = payload.get("role")
    if not subject:
        raise InvalidCredential("invalid token subject")
    if not isinstance(role_raw, str) or not role_raw:
        raise InvalidCredential("invalid token role")

    tenant = payload.get("tenant_id")
    return Principal(
        user_id=subject,
        role=coerce_role(role_raw) or role_raw,
        email=str(payload.get("email") or ""),
        name=str(payload.get("name") or ""),
        tenant_id=str(tenant) if tenant is not None else None,
        issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=UTC),
        expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=UTC),
        token_id=str(payload["jti"]),
    )


# --- Module Notes -----------------------------------------------------------
# Verification has no side effects; revocation is written by the logout route.
