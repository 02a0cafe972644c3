"""
mediconnect_access.auth.jwt

JWT issuing and validation helpers.

Responsibilities:
- Issue time-bounded JWTs carrying a principal's claims (login, dev tokens).
- Decode and validate JWTs with strict claim requirements (iss/aud/exp/iat/sub/jti).

Note:
- A single shared HS256 secret signs and verifies every token.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt import ExpiredSignatureError, InvalidTokenError


@dataclass(frozen=True, slots=True)
class JwtConfig:
    # Algorithm/issuer/audience are enforced during decoding.
    alg: str
    issuer: str
    audience: str
    secret: str


class JwtValidationError(Exception):
    pass


class JwtExpiredError(JwtValidationError):
    pass


def issue_token(
    *,
    cfg: JwtConfig,
    subject: str,
    role: str,
    email: str = "",
    name: str = "",
    tenant_id: str | None = None,
    ttl: timedelta = timedelta(hours=24),
) -> str:
    now = datetime.now(tz=UTC)
    payload: dict[str, Any] = {
        "iss": cfg.issuer,
        "aud": cfg.audience,
        "sub": subject,
        "role": role,
        "email": email,
        "name": name,
        "tenant_id": tenant_id,
        "jti": uuid.uuid4().hex,
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
    }
    return jwt.encode(payload, cfg.secret, algorithm=cfg.alg)


def decode_and_validate(*, cfg: JwtConfig, token: str) -> dict[str, Any]:
    try:
        # Signature is checked before expiry, so an expired token was still validly signed.
        return jwt.decode(
            token,
            cfg.secret,
            algorithms=[cfg.alg],
            issuer=cfg.issuer,
            audience=cfg.audience,
            options={
                "require": ["exp", "iat", "iss", "aud", "sub", "jti"],
            },
        )
    except ExpiredSignatureError as e:
        raise JwtExpiredError(str(e)) from e
    except InvalidTokenError as e:
        raise JwtValidationError(str(e)) from e


# --- Module Notes -----------------------------------------------------------
# Token issuing is used by:
# - `api/routers/auth.py` (login)
# - `api/routers/dev_auth.py` (dev convenience)
