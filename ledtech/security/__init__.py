"""
Trust core - authentication, authorization and data protection
"""

from .audit import AuditEntry, AuditLogger
from .csrf import CSRFGuard
from .directory import InMemoryUserDirectory, UserDirectory, UserRecord
from .errors import (
    AuthenticationError,
    AuthorizationError,
    InternalError,
    NotFoundError,
    SecurityError,
    ValidationError,
)
from .guard import Guard, GuardContext, RequestGuard, allow_ips, block_ips, require_csrf
from .permissions import (
    ROLE_PERMISSIONS,
    Permission,
    Role,
    has_all_permissions,
    has_any_permission,
    has_permission,
)
from .sessions import Session, SessionManager
from .stores import MemoryStore, RedisStore, SecurityStore
from .tokens import Identity, TokenService

__all__ = [
    'AuditEntry',
    'AuditLogger',
    'CSRFGuard',
    'InMemoryUserDirectory',
    'UserDirectory',
    'UserRecord',
    'AuthenticationError',
    'AuthorizationError',
    'InternalError',
    'NotFoundError',
    'SecurityError',
    'ValidationError',
    'Guard',
    'GuardContext',
    'RequestGuard',
    'allow_ips',
    'block_ips',
    'require_csrf',
    'ROLE_PERMISSIONS',
    'Permission',
    'Role',
    'has_all_permissions',
    'has_any_permission',
    'has_permission',
    'Session',
    'SessionManager',
    'MemoryStore',
    'RedisStore',
    'SecurityStore',
    'Identity',
    'TokenService',
]
