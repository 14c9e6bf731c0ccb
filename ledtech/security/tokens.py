"""
Signed identity tokens and session identifiers
"""

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from ledtech.config import Config
from ledtech.security.permissions import Role

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
SESSION_TOKEN_TYPE = "session"


def _default_secret() -> str:
    if Config.JWT_SECRET_KEY:
        return Config.JWT_SECRET_KEY
    logger.warning(
        "LEDTECH_JWT_SECRET_KEY not set - generated a per-process signing key, "
        "tokens will not survive a restart"
    )
    return secrets.token_urlsafe(32)


@dataclass(frozen=True)
class Identity:
    """
    Decoded token payload.

    Attributes:
        user_id: User identifier
        email: User email
        role: Role carried by the token
        issued_at: Issue time, filled in on verification
        expires_at: Expiry time, filled in on verification
    """
    user_id: str
    email: str
    role: Role
    issued_at: Optional[datetime] = field(default=None, compare=False)
    expires_at: Optional[datetime] = field(default=None, compare=False)


class TokenService:
    """
    Issues and verifies stateless signed tokens.

    Verification failures are returned as None and never raised, since they
    happen on every stale or forged request.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        expires_in: Optional[timedelta] = None,
    ):
        self.secret_key = secret_key or _default_secret()
        self.algorithm = algorithm or Config.JWT_ALGORITHM
        self.expires_in = expires_in or timedelta(days=Config.TOKEN_EXPIRE_DAYS)

    def generate_token(self, identity: Identity) -> str:
        """Create a signed access token for an identity"""
        now = datetime.now(timezone.utc)
        payload = {
            "user_id": identity.user_id,
            "email": identity.email,
            "role": Role(identity.role).value,
            "iat": now,
            "exp": now + self.expires_in,
            "type": ACCESS_TOKEN_TYPE,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def _decode(self, token: str) -> Optional[Dict[str, Any]]:
        if not isinstance(token, str) or not token:
            return None
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            logger.warning("Token expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid token: {e}")
            return None

    def verify_token(self, token: str) -> Optional[Identity]:
        """Verify and decode an access token; None on any failure"""
        payload = self._decode(token)
        if payload is None:
            return None

        if payload.get("type") != ACCESS_TOKEN_TYPE:
            logger.warning("Token is not an access token")
            return None

        try:
            return Identity(
                user_id=str(payload["user_id"]),
                email=str(payload["email"]),
                role=Role(payload["role"]),
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Token payload rejected: {e}")
            return None

    def mint_session_id(self, user_id: str) -> str:
        """Create an opaque signed session identifier bound to a user"""
        payload = {
            "user_id": user_id,
            "type": SESSION_TOKEN_TYPE,
            "jti": secrets.token_urlsafe(16),
            "iat": datetime.now(timezone.utc),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_session_id(self, session_id: str) -> Optional[str]:
        """Return the user id bound to a session identifier, None if forged"""
        payload = self._decode(session_id)
        if payload is None or payload.get("type") != SESSION_TOKEN_TYPE:
            return None
        user_id = payload.get("user_id")
        return str(user_id) if user_id is not None else None
