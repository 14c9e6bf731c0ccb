"""
Anti-forgery tokens bound to sessions
"""

import hmac
import logging
import math
import secrets
from datetime import timedelta
from typing import Optional

from ledtech.config import Config
from ledtech.security.clock import Clock, utcnow
from ledtech.security.stores import MemoryStore, SecurityStore

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


class CSRFGuard:
    """
    Issues and checks CSRF tokens.

    At most one live token exists per session: generating a new one
    replaces the previous token.
    """

    def __init__(
        self,
        store: Optional[SecurityStore] = None,
        ttl: Optional[timedelta] = None,
        clock: Clock = utcnow,
    ):
        self.store = store if store is not None else MemoryStore()
        self.ttl = ttl or timedelta(minutes=Config.CSRF_TOKEN_TTL_MINUTES)
        self.clock = clock

    def generate_token(self, session_id: str) -> str:
        """Issue a fresh token for a session (64 hex characters)"""
        token = secrets.token_hex(TOKEN_BYTES)
        expires = self.clock() + self.ttl

        self.store.set(
            session_id,
            {"token": token, "expires": expires.timestamp()},
            ttl=max(1, math.ceil(self.ttl.total_seconds())),
        )
        return token

    def validate_token(self, session_id: str, candidate: str) -> bool:
        """True only for the session's current, unexpired token"""
        if not session_id or not isinstance(candidate, str) or not candidate:
            return False

        stored = self.store.get(session_id)
        if stored is None:
            return False

        if self.clock().timestamp() >= stored["expires"]:
            return False

        return hmac.compare_digest(stored["token"].encode(), candidate.encode())

    def revoke(self, session_id: str) -> None:
        self.store.delete(session_id)

    def cleanup(self) -> int:
        """Remove expired tokens"""
        now = self.clock().timestamp()
        removed = self.store.sweep(lambda _, entry: entry["expires"] < now)
        if removed:
            logger.info(f"Cleaned up {removed} expired CSRF token(s)")
        return removed
