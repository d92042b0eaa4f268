"""Bearer tokens that stand in for the transport's caller identity.

Tokens are kept in the ``sessions`` collection, hashed, with an expiry.
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from modcert.auth.models import AuthInfo
from modcert.store.documents import DocumentStore

SESSIONS_COLLECTION = "sessions"


class TokenStore:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    @staticmethod
    def _hash_token(raw_token: str) -> str:
        return hashlib.sha256(raw_token.encode()).hexdigest()

    def issue(
        self,
        uid: str,
        email: str,
        role: Optional[str] = None,
        ttl_hours: int = 24,
    ) -> str:
        """Create a token for *uid*. Returns the raw token string."""
        raw_token = f"mc_{secrets.token_urlsafe(32)}"
        now = datetime.now(timezone.utc)
        self._store.set(SESSIONS_COLLECTION, self._hash_token(raw_token), {
            "uid": uid,
            "email": email,
            "role": role,
            "createdAt": now.isoformat(),
            "expiresAt": (now + timedelta(hours=ttl_hours)).isoformat(),
        })
        return raw_token

    def resolve(self, raw_token: str) -> Optional[AuthInfo]:
        """Return the identity behind *raw_token*, or None if unknown or expired."""
        key = self._hash_token(raw_token)
        snapshot = self._store.get(SESSIONS_COLLECTION, key)
        if not snapshot.exists:
            return None
        d = snapshot.data() or {}
        if d.get("expiresAt") and d["expiresAt"] < datetime.now(timezone.utc).isoformat():
            # Expired -- clean it up
            self._store.delete(SESSIONS_COLLECTION, key)
            return None
        return AuthInfo(uid=d["uid"], email=d.get("email", ""), role=d.get("role"))

    def revoke(self, raw_token: str) -> bool:
        return self._store.delete(SESSIONS_COLLECTION, self._hash_token(raw_token))
