"""
User directory boundary.

User storage lives outside the trust core; the core only needs to look
users up and record password changes. InMemoryUserDirectory is the
reference implementation used by the app factory and the tests.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Optional, Protocol

from ledtech.security.clock import utcnow
from ledtech.security.permissions import Role

logger = logging.getLogger(__name__)


@dataclass
class UserRecord:
    id: str
    email: str
    name: str
    role: Role
    is_active: bool = True
    password_hash: Optional[str] = field(default=None, repr=False)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    last_login_at: Optional[datetime] = None

    def public_dict(self) -> Dict[str, object]:
        """Profile fields safe to send to a client"""
        return {
            "email": self.email,
            "name": self.name,
            "role": self.role.value,
            "is_active": self.is_active,
            "last_login_at": self.last_login_at.isoformat() if self.last_login_at else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


class UserDirectory(Protocol):
    async def lookup_user(self, user_id: str) -> Optional[UserRecord]: ...

    async def find_by_email(self, email: str) -> Optional[UserRecord]: ...

    async def update_password(self, user_id: str, password_hash: str) -> bool: ...

    async def record_login(self, user_id: str, when: datetime) -> None: ...


class InMemoryUserDirectory:
    """Dictionary-backed directory"""

    def __init__(self):
        self._users: Dict[str, UserRecord] = {}

    def add_user(self, user: UserRecord) -> UserRecord:
        if any(u.email.lower() == user.email.lower() for u in self._users.values()):
            raise ValueError("Email already exists")
        self._users[user.id] = user
        logger.info(f"Registered user {user.id} ({user.role.value})")
        return user

    async def lookup_user(self, user_id: str) -> Optional[UserRecord]:
        user = self._users.get(user_id)
        return replace(user) if user else None

    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        wanted = email.lower()
        for user in self._users.values():
            if user.email.lower() == wanted:
                return replace(user)
        return None

    async def update_password(self, user_id: str, password_hash: str) -> bool:
        user = self._users.get(user_id)
        if user is None:
            return False
        user.password_hash = password_hash
        user.updated_at = utcnow()
        return True

    async def record_login(self, user_id: str, when: datetime) -> None:
        user = self._users.get(user_id)
        if user is not None:
            user.last_login_at = when

    def set_active(self, user_id: str, is_active: bool) -> None:
        self._users[user_id].is_active = is_active
