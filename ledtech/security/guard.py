"""
Request guard: gates handlers behind an ordered chain of checks.

A step takes a GuardContext and returns it (possibly enriched), or raises a
SecurityError to stop the chain. Guards are immutable; ``then`` returns an
extended copy, so chains compose without nesting wrappers:

    guard = request_guard.auth_chain().then(request_guard.require_permission(p))

Every denial is written to the audit log before the error propagates.
"""

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Awaitable, Callable, Iterable, Optional, Sequence

from starlette.requests import Request

from ledtech.config import Config
from ledtech.security.audit import AuditLogger
from ledtech.security.csrf import CSRFGuard
from ledtech.security.directory import UserDirectory, UserRecord
from ledtech.security.errors import (
    AuthenticationError,
    AuthorizationError,
    InternalError,
    SecurityError,
)
from ledtech.security.network import get_client_ip, is_ip_blacklisted, is_ip_whitelisted
from ledtech.security.permissions import (
    Permission,
    Role,
    has_all_permissions,
    has_any_permission,
    has_permission,
)
from ledtech.security.sessions import SessionManager
from ledtech.security.tokens import Identity, TokenService

logger = logging.getLogger(__name__)

STATE_CHANGING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


@dataclass
class GuardContext:
    request: Request
    ip: str
    user_agent: Optional[str] = None
    token: Optional[str] = None
    identity: Optional[Identity] = None
    user: Optional[UserRecord] = None

    @classmethod
    def from_request(cls, request: Request) -> "GuardContext":
        return cls(
            request=request,
            ip=get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )


GuardStep = Callable[[GuardContext], Awaitable[GuardContext]]
Handler = Callable[..., Awaitable[object]]


def _step_name(step: GuardStep) -> str:
    return getattr(step, "__name__", repr(step))


class Guard:
    """Immutable ordered chain of guard steps"""

    def __init__(self, steps: Sequence[GuardStep], audit: AuditLogger):
        self.steps = tuple(steps)
        self.audit = audit

    def then(self, *steps: GuardStep) -> "Guard":
        return Guard(self.steps + tuple(steps), self.audit)

    async def run(self, request: Request) -> GuardContext:
        """Run every step in order; raise the first SecurityError"""
        ctx = GuardContext.from_request(request)

        for step in self.steps:
            try:
                ctx = await step(ctx)
            except SecurityError as e:
                self._record_denial(ctx, step, e)
                raise
            except Exception as e:
                logger.exception(f"Guard step {_step_name(step)} failed")
                error = InternalError(f"{type(e).__name__} in {_step_name(step)}")
                self._record_denial(ctx, step, error)
                raise error from e

        return ctx

    def _record_denial(self, ctx: GuardContext, step: GuardStep, error: SecurityError) -> None:
        if error.action:
            action = error.action
        elif error.status_code == 401:
            action = "AUTHENTICATION_FAILED"
        elif error.status_code == 403:
            action = "ACCESS_DENIED"
        else:
            action = "GUARD_ERROR"

        self.audit.log(
            action=action,
            resource=ctx.request.url.path,
            ip=ctx.ip,
            success=False,
            user_id=ctx.identity.user_id if ctx.identity else None,
            user_agent=ctx.user_agent,
            details={
                "reason": error.message,
                "status": error.status_code,
                "step": _step_name(step),
            },
        )

    def __call__(self, handler: Handler) -> Handler:
        """Wrap ``handler(request, user, ...)`` so it only runs if the chain passes"""

        @wraps(handler)
        async def guarded(request: Request, *args, **kwargs):
            ctx = await self.run(request)
            return await handler(request, ctx.user, *args, **kwargs)

        return guarded


class RequestGuard:
    """
    Builds guard steps and chains from the token service and user directory.

    This is the only component that reads credentials off a request and the
    only one that talks to the user directory.
    """

    def __init__(
        self,
        tokens: TokenService,
        directory: UserDirectory,
        audit: AuditLogger,
        auth_cookie: Optional[str] = None,
    ):
        self.tokens = tokens
        self.directory = directory
        self.audit = audit
        self.auth_cookie = auth_cookie or Config.AUTH_COOKIE_NAME

    def extract_token(self, request: Request) -> Optional[str]:
        """Bearer token from the Authorization header, else the auth cookie"""
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header[len("Bearer "):].strip()
            if token:
                return token

        return request.cookies.get(self.auth_cookie) or None

    # Steps

    async def authenticate(self, ctx: GuardContext) -> GuardContext:
        token = self.extract_token(ctx.request)
        if not token:
            raise AuthenticationError("Authentication required")

        identity = self.tokens.verify_token(token)
        if identity is None:
            raise AuthenticationError("Invalid or expired token")

        ctx.token = token
        ctx.identity = identity
        return ctx

    async def load_user(self, ctx: GuardContext) -> GuardContext:
        if ctx.identity is None:
            raise AuthenticationError("Authentication required")

        user = await self.directory.lookup_user(ctx.identity.user_id)
        if user is None:
            raise AuthenticationError("User no longer exists")
        if not user.is_active:
            raise AuthorizationError("Account is deactivated")

        ctx.user = user
        return ctx

    @staticmethod
    def _role(ctx: GuardContext) -> Role:
        if ctx.identity is None:
            raise AuthenticationError("Authentication required")
        return ctx.identity.role

    def require_permission(self, permission: Permission) -> GuardStep:
        async def require_permission(ctx: GuardContext) -> GuardContext:
            if not has_permission(self._role(ctx), permission):
                raise AuthorizationError("Insufficient permissions")
            return ctx

        return require_permission

    def require_any_permission(self, permissions: Iterable[Permission]) -> GuardStep:
        required = tuple(permissions)

        async def require_any_permission(ctx: GuardContext) -> GuardContext:
            if not has_any_permission(self._role(ctx), required):
                raise AuthorizationError("Insufficient permissions")
            return ctx

        return require_any_permission

    def require_all_permissions(self, permissions: Iterable[Permission]) -> GuardStep:
        required = tuple(permissions)

        async def require_all_permissions(ctx: GuardContext) -> GuardContext:
            if not has_all_permissions(self._role(ctx), required):
                raise AuthorizationError("Insufficient permissions")
            return ctx

        return require_all_permissions

    def require_role(self, roles: Iterable[Role]) -> GuardStep:
        allowed = frozenset(Role(r) for r in roles)

        async def require_role(ctx: GuardContext) -> GuardContext:
            if self._role(ctx) not in allowed:
                raise AuthorizationError("Insufficient role permissions")
            return ctx

        return require_role

    # Chains

    def auth_chain(self) -> Guard:
        return Guard([self.authenticate, self.load_user], self.audit)

    def with_auth(self, handler: Handler) -> Handler:
        return self.auth_chain()(handler)

    def with_permission(self, permission: Permission) -> Guard:
        return self.auth_chain().then(self.require_permission(permission))

    def with_any_permission(self, permissions: Iterable[Permission]) -> Guard:
        return self.auth_chain().then(self.require_any_permission(permissions))

    def with_all_permissions(self, permissions: Iterable[Permission]) -> Guard:
        return self.auth_chain().then(self.require_all_permissions(permissions))

    def with_role(self, roles: Iterable[Role]) -> Guard:
        return self.auth_chain().then(self.require_role(roles))


# Request policy steps

def block_ips(blacklist: Iterable[str]) -> GuardStep:
    blocked = frozenset(blacklist)

    async def block_ips(ctx: GuardContext) -> GuardContext:
        if is_ip_blacklisted(ctx.ip, blocked):
            raise AuthorizationError("Access denied", action="BLOCKED_IP")
        return ctx

    return block_ips


def allow_ips(whitelist: Iterable[str]) -> GuardStep:
    allowed = frozenset(whitelist)

    async def allow_ips(ctx: GuardContext) -> GuardContext:
        if not is_ip_whitelisted(ctx.ip, allowed):
            raise AuthorizationError("Access denied", action="BLOCKED_IP")
        return ctx

    return allow_ips


def require_csrf(
    csrf: CSRFGuard,
    sessions: Optional[SessionManager] = None,
    session_cookie: Optional[str] = None,
    header: Optional[str] = None,
) -> GuardStep:
    """
    Check the CSRF header against the session's token on state-changing methods

    When a SessionManager is given the session must also still be live, so a
    token left behind by a destroyed session is refused.
    """
    session_cookie = session_cookie or Config.SESSION_COOKIE_NAME
    header = header or Config.CSRF_HEADER_NAME

    async def require_csrf(ctx: GuardContext) -> GuardContext:
        if ctx.request.method.upper() not in STATE_CHANGING_METHODS:
            return ctx

        session_id = ctx.request.cookies.get(session_cookie)
        candidate = ctx.request.headers.get(header)
        if not session_id or not candidate or not csrf.validate_token(session_id, candidate):
            raise AuthorizationError("CSRF token validation failed", action="CSRF_VIOLATION")
        if sessions is not None and not sessions.validate_session(session_id):
            raise AuthorizationError("CSRF token validation failed", action="CSRF_VIOLATION")
        return ctx

    return require_csrf
