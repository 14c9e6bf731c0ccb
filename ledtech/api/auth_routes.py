"""
Authentication API routes
"""

import logging
import secrets
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, EmailStr

from ledtech.api.dependencies import (
    SecurityServices,
    get_auth_context,
    get_security,
    verify_csrf,
)
from ledtech.api.metrics import track_login, update_active_sessions
from ledtech.config import Config
from ledtech.security.crypto import hash_password, verify_password
from ledtech.security.errors import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from ledtech.security.clock import utcnow
from ledtech.security.guard import GuardContext
from ledtech.security.network import get_client_ip
from ledtech.security.passwords import ensure_password_strength
from ledtech.security.permissions import get_role_permissions
from ledtech.security.tokens import Identity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["authentication"])

REMEMBER_ME_MAX_AGE = 7 * 24 * 60 * 60


@lru_cache(maxsize=None)
def _dummy_hash(rounds: int) -> str:
    return hash_password(secrets.token_urlsafe(16), rounds)


# Request/Response models
class LoginRequest(BaseModel):
    email: EmailStr
    password: str
    remember_me: bool = False


class LoginResponse(BaseModel):
    success: bool = True
    token: str
    user: Dict[str, Any]
    message: str = "Login successful"


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str
    confirm_password: str


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class UserInfoResponse(BaseModel):
    success: bool = True
    user: Dict[str, Any]
    permissions: List[str]


class CSRFTokenResponse(BaseModel):
    csrf_token: str
    header: str


def _set_auth_cookies(
    response: Response, token: str, session_id: str, remember_me: bool, secure: bool
) -> None:
    max_age: Optional[int] = REMEMBER_ME_MAX_AGE if remember_me else None
    for name, value in (
        (Config.AUTH_COOKIE_NAME, token),
        (Config.SESSION_COOKIE_NAME, session_id),
    ):
        response.set_cookie(
            name,
            value,
            max_age=max_age,
            httponly=True,
            secure=secure,
            samesite="strict",
            path="/",
        )


def _clear_auth_cookies(response: Response, secure: bool) -> None:
    for name in (Config.AUTH_COOKIE_NAME, Config.SESSION_COOKIE_NAME):
        response.delete_cookie(name, path="/", httponly=True, secure=secure, samesite="strict")


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    security: SecurityServices = Depends(get_security),
):
    """Login and get access token"""
    ip = get_client_ip(request)
    user_agent = request.headers.get("User-Agent")

    user = await security.directory.find_by_email(payload.email)
    known = bool(user and user.password_hash)
    # Unknown accounts still pay for a bcrypt check
    stored_hash = user.password_hash if known else _dummy_hash(security.password_rounds)
    password_ok = await run_in_threadpool(verify_password, payload.password, stored_hash)

    if not known or not password_ok:
        track_login("invalid_credentials")
        security.audit.log(
            action="LOGIN",
            resource=request.url.path,
            ip=ip,
            success=False,
            user_id=user.id if user else None,
            user_agent=user_agent,
            details={"reason": "invalid_credentials"},
        )
        raise AuthenticationError("Invalid email or password")

    if not user.is_active:
        track_login("inactive")
        security.audit.log(
            action="LOGIN",
            resource=request.url.path,
            ip=ip,
            success=False,
            user_id=user.id,
            user_agent=user_agent,
            details={"reason": "account_deactivated"},
        )
        raise AuthorizationError("Account is deactivated")

    token = security.tokens.generate_token(
        Identity(user_id=user.id, email=user.email, role=user.role)
    )
    session_id = security.sessions.create_session(user.id, ip, user_agent)
    _set_auth_cookies(response, token, session_id, payload.remember_me, security.cookie_secure)

    now = utcnow()
    await security.directory.record_login(user.id, now)
    user.last_login_at = now

    logger.info(f"User {user.id} logged in")
    track_login("success")
    update_active_sessions(security.sessions.get_active_session_count())
    security.audit.log(
        action="LOGIN",
        resource=request.url.path,
        ip=ip,
        success=True,
        user_id=user.id,
        user_agent=user_agent,
        details={"method": "email", "remember_me": payload.remember_me},
    )

    return LoginResponse(token=token, user=user.public_dict())


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    context: GuardContext = Depends(verify_csrf),
    security: SecurityServices = Depends(get_security),
):
    """Logout current user"""
    session_id = request.cookies.get(Config.SESSION_COOKIE_NAME)
    if session_id:
        security.sessions.destroy_session(session_id)
        security.csrf.revoke(session_id)

    _clear_auth_cookies(response, security.cookie_secure)

    security.audit.log(
        action="LOGOUT",
        resource=request.url.path,
        ip=context.ip,
        success=True,
        user_id=context.user.id,
        user_agent=context.user_agent,
    )
    return MessageResponse(message="Logout successful")


@router.get("/me", response_model=UserInfoResponse)
async def get_current_user_info(context: GuardContext = Depends(get_auth_context)):
    """Get current user information"""
    permissions = sorted(p.value for p in get_role_permissions(context.identity.role))
    return UserInfoResponse(user=context.user.public_dict(), permissions=permissions)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    payload: ChangePasswordRequest,
    request: Request,
    context: GuardContext = Depends(verify_csrf),
    security: SecurityServices = Depends(get_security),
):
    """Change the current user's password and end all of their sessions"""
    if payload.new_password != payload.confirm_password:
        raise ValidationError("New password and confirmation do not match")

    ensure_password_strength(payload.new_password)

    user = await security.directory.lookup_user(context.user.id)
    if user is None or not user.password_hash:
        raise NotFoundError("User not found")

    if not await run_in_threadpool(verify_password, payload.current_password, user.password_hash):
        security.audit.log(
            action="CHANGE_PASSWORD",
            resource=request.url.path,
            ip=context.ip,
            success=False,
            user_id=user.id,
            user_agent=context.user_agent,
            details={"reason": "wrong_current_password"},
        )
        raise AuthenticationError("Current password is incorrect")

    if await run_in_threadpool(verify_password, payload.new_password, user.password_hash):
        raise ValidationError("New password must be different from current password")

    new_hash = await run_in_threadpool(
        hash_password, payload.new_password, security.password_rounds
    )
    await security.directory.update_password(user.id, new_hash)

    removed = security.sessions.destroy_user_sessions(user.id)
    session_id = request.cookies.get(Config.SESSION_COOKIE_NAME)
    if session_id:
        security.csrf.revoke(session_id)
    logger.info(f"Password changed for user {user.id}, {removed} session(s) ended")

    security.audit.log(
        action="CHANGE_PASSWORD",
        resource=request.url.path,
        ip=context.ip,
        success=True,
        user_id=user.id,
        user_agent=context.user_agent,
        details={"sessions_destroyed": removed},
    )
    return MessageResponse(message="Password changed successfully")


@router.get("/csrf-token", response_model=CSRFTokenResponse)
async def get_csrf_token(
    request: Request, security: SecurityServices = Depends(get_security)
):
    """Issue a CSRF token for the caller's session"""
    session_id = request.cookies.get(Config.SESSION_COOKIE_NAME)
    if not session_id or not security.sessions.validate_session(session_id):
        raise AuthenticationError("Valid session required")

    token = security.csrf.generate_token(session_id)
    return CSRFTokenResponse(csrf_token=token, header=Config.CSRF_HEADER_NAME)
