"""
Server-side session lifecycle management
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from ledtech.config import Config
from ledtech.security.clock import Clock, utcnow
from ledtech.security.stores import MemoryStore, SecurityStore
from ledtech.security.tokens import TokenService

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """Activity window of one login; lives only in the session store"""
    session_id: str
    user_id: str
    created_at: datetime
    last_access_at: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "created_at": self.created_at.timestamp(),
            "last_access_at": self.last_access_at.timestamp(),
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
        }

    @classmethod
    def from_record(cls, session_id: str, record: Dict[str, Any]) -> "Session":
        return cls(
            session_id=session_id,
            user_id=record["user_id"],
            created_at=datetime.fromtimestamp(record["created_at"], tz=timezone.utc),
            last_access_at=datetime.fromtimestamp(record["last_access_at"], tz=timezone.utc),
            ip_address=record.get("ip_address"),
            user_agent=record.get("user_agent"),
        )


class SessionManager:
    """
    Manages active sessions keyed by signed session identifiers

    Sessions move CREATED -> ACTIVE (touched on every validation) and end
    either DESTROYED (logout, password change) or EXPIRED (idle past the TTL).

    With ``strict_expiry`` enabled an idle session is rejected the moment it
    is validated. Disabled, expiry is only enforced by
    cleanup_expired_sessions(), so a session can outlive its TTL by up to one
    sweep interval.
    """

    def __init__(
        self,
        tokens: TokenService,
        store: Optional[SecurityStore] = None,
        ttl: Optional[timedelta] = None,
        strict_expiry: Optional[bool] = None,
        clock: Clock = utcnow,
    ):
        self.tokens = tokens
        self.store = store if store is not None else MemoryStore()
        self.ttl = ttl or timedelta(hours=Config.SESSION_TTL_HOURS)
        self.strict_expiry = (
            Config.SESSION_STRICT_EXPIRY if strict_expiry is None else strict_expiry
        )
        self.clock = clock

    def _is_expired(self, record: Dict[str, Any], now: datetime) -> bool:
        return now.timestamp() - record["last_access_at"] > self.ttl.total_seconds()

    def create_session(
        self,
        user_id: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> str:
        """Create a session for a user and return its identifier"""
        session_id = self.tokens.mint_session_id(user_id)
        now = self.clock()

        session = Session(
            session_id=session_id,
            user_id=user_id,
            created_at=now,
            last_access_at=now,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.store.set(session_id, session.to_record())

        logger.info(f"Session created for user {user_id}")
        return session_id

    def validate_session(self, session_id: str) -> bool:
        """Check a session is live and record the access"""
        if self.tokens.verify_session_id(session_id) is None:
            return False

        record = self.store.get(session_id)
        if record is None:
            return False

        now = self.clock()
        if self.strict_expiry and self._is_expired(record, now):
            self.store.delete(session_id)
            logger.info(f"Session for user {record.get('user_id')} expired")
            return False

        # lastAccessAt never moves backwards, even if the clock does
        record["last_access_at"] = max(record["last_access_at"], now.timestamp())
        # A session destroyed since the read must not be written back
        return self.store.touch(session_id, record)

    def get_session(self, session_id: str) -> Optional[Session]:
        """Look up a session without touching it"""
        record = self.store.get(session_id)
        if record is None:
            return None
        return Session.from_record(session_id, record)

    def destroy_session(self, session_id: str) -> None:
        """Remove a session (idempotent)"""
        if self.store.delete(session_id):
            logger.info("Session destroyed")

    def destroy_user_sessions(self, user_id: str) -> int:
        """Remove every session belonging to a user"""
        removed = self.store.sweep(lambda _, record: record.get("user_id") == user_id)
        if removed:
            logger.info(f"Destroyed {removed} session(s) for user {user_id}")
        return removed

    def cleanup_expired_sessions(self) -> int:
        """Remove every session idle for longer than the TTL"""
        now = self.clock()
        removed = self.store.sweep(lambda _, record: self._is_expired(record, now))
        if removed:
            logger.info(f"Cleaned up {removed} expired session(s)")
        return removed

    def get_active_session_count(self) -> int:
        return len(self.store)
