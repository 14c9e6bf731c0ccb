"""
FastAPI dependencies for authentication and authorization
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status

from ledtech.config import Config
from ledtech.security.audit import AuditLogger
from ledtech.security.csrf import CSRFGuard
from ledtech.security.directory import InMemoryUserDirectory, UserDirectory, UserRecord
from ledtech.security.errors import SecurityError
from ledtech.security.guard import Guard, GuardContext, RequestGuard, require_csrf
from ledtech.security.permissions import Permission, Role
from ledtech.security.sessions import SessionManager
from ledtech.security.stores import MemoryStore, RedisStore, SecurityStore
from ledtech.security.tokens import TokenService

logger = logging.getLogger(__name__)


@dataclass
class SecurityServices:
    """Everything the HTTP layer needs from the trust core"""
    tokens: TokenService
    sessions: SessionManager
    csrf: CSRFGuard
    audit: AuditLogger
    directory: UserDirectory
    guard: RequestGuard
    password_rounds: int = Config.BCRYPT_ROUNDS
    cookie_secure: bool = Config.COOKIE_SECURE


def _make_store(redis_url: Optional[str], namespace: str) -> SecurityStore:
    if redis_url:
        return RedisStore.from_url(redis_url, namespace)
    return MemoryStore()


def build_security_services(
    directory: Optional[UserDirectory] = None,
    secret_key: Optional[str] = None,
    redis_url: Optional[str] = None,
    password_rounds: Optional[int] = None,
    token_expires_in: Optional[timedelta] = None,
    session_ttl: Optional[timedelta] = None,
    csrf_ttl: Optional[timedelta] = None,
    strict_session_expiry: Optional[bool] = None,
    cookie_secure: Optional[bool] = None,
) -> SecurityServices:
    """Wire the trust core; stores go to Redis when a URL is configured"""
    redis_url = redis_url if redis_url is not None else Config.REDIS_URL

    tokens = TokenService(secret_key=secret_key, expires_in=token_expires_in)
    audit = AuditLogger()
    directory = directory if directory is not None else InMemoryUserDirectory()

    sessions = SessionManager(
        tokens,
        store=_make_store(redis_url, "ledtech:sessions"),
        ttl=session_ttl,
        strict_expiry=strict_session_expiry,
    )
    csrf = CSRFGuard(store=_make_store(redis_url, "ledtech:csrf"), ttl=csrf_ttl)

    logger.info(f"🔐 Trust core initialized ({'redis' if redis_url else 'in-memory'} stores)")

    return SecurityServices(
        tokens=tokens,
        sessions=sessions,
        csrf=csrf,
        audit=audit,
        directory=directory,
        guard=RequestGuard(tokens, directory, audit),
        password_rounds=password_rounds or Config.BCRYPT_ROUNDS,
        cookie_secure=Config.COOKIE_SECURE if cookie_secure is None else cookie_secure,
    )


def init_security(app: FastAPI, services: SecurityServices) -> None:
    app.state.security = services


def get_security(request: Request) -> SecurityServices:
    services = getattr(request.app.state, "security", None)
    if services is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication system not initialized",
        )
    return services


async def get_auth_context(
    request: Request, security: SecurityServices = Depends(get_security)
) -> GuardContext:
    """Authenticated request context (identity from the token plus user record)"""
    return await security.guard.auth_chain().run(request)


async def get_current_user(
    context: GuardContext = Depends(get_auth_context),
) -> UserRecord:
    return context.user


async def get_current_user_optional(
    request: Request, security: SecurityServices = Depends(get_security)
) -> Optional[UserRecord]:
    """Current user if the request carries valid credentials, else None"""
    if security.guard.extract_token(request) is None:
        return None
    try:
        context = await security.guard.auth_chain().run(request)
    except SecurityError:
        return None
    return context.user


class _GuardDependency:
    def build(self, security: SecurityServices) -> Guard:
        raise NotImplementedError

    async def __call__(
        self, request: Request, security: SecurityServices = Depends(get_security)
    ) -> UserRecord:
        context = await self.build(security).run(request)
        return context.user


class RequirePermission(_GuardDependency):
    """Dependency to check if user has required permission"""

    def __init__(self, permission: Permission):
        self.permission = permission

    def build(self, security: SecurityServices) -> Guard:
        return security.guard.with_permission(self.permission)


class RequireAnyPermission(_GuardDependency):
    """Dependency to check if user has any of the required permissions"""

    def __init__(self, permissions: List[Permission]):
        self.permissions = permissions

    def build(self, security: SecurityServices) -> Guard:
        return security.guard.with_any_permission(self.permissions)


class RequireRole(_GuardDependency):
    """Dependency to check if user holds one of the allowed roles"""

    def __init__(self, roles: List[Role]):
        self.roles = roles

    def build(self, security: SecurityServices) -> Guard:
        return security.guard.with_role(self.roles)


async def verify_csrf(
    request: Request,
    context: GuardContext = Depends(get_auth_context),
    security: SecurityServices = Depends(get_security),
) -> GuardContext:
    """
    Authenticated context of a state-changing request with a valid CSRF header

    Authentication runs first, so anonymous callers get 401 rather than a
    CSRF failure.
    """
    await Guard([require_csrf(security.csrf, security.sessions)], security.audit).run(request)
    return context


# Convenience dependencies
require_system_logs = RequirePermission(Permission.SYSTEM_LOGS)
require_system_config = RequirePermission(Permission.SYSTEM_CONFIG)
