"""
mediconnect_access.auth.revocation

In-memory token denylist.

Responsibilities:
- Remember revoked token ids (`jti`) until the token would have expired anyway.
- Answer "is this token revoked?" for the credential verifier.
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime


class RevocationList:
    """
    Entries are kept only until the token's own expiry; after that the token
    fails verification as expired and the entry is dropped.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._revoked: dict[str, datetime] = {}

    def revoke(self, token_id: str, expires_at: datetime) -> None:
        with self._lock:
            self._revoked[token_id] = expires_at
            self._purge_locked(datetime.now(tz=UTC))

    def is_revoked(self, token_id: str | None) -> bool:
        if not token_id:
            return False
        with self._lock:
            expires_at = self._revoked.get(token_id)
            if expires_at is None:
                return False
            if expires_at <= datetime.now(tz=UTC):
                del self._revoked[token_id]
                return False
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._revoked)

    def _purge_locked(self, now: datetime) -> None:
        expired = [jti for jti, exp in self._revoked.items() if exp <= now]
        for jti in expired:
            del self._revoked[jti]


# --- Module Notes -----------------------------------------------------------
# Process-local: a multi-instance deployment needs a shared backend (e.g. Redis
# keys with TTL = remaining token lifetime) behind the same two methods.
