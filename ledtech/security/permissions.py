"""
Permission model for role-based access control
"""

from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Iterable, Mapping, Optional, Union


class Permission(str, Enum):
    """Available permissions in the system"""
    # Product management
    PRODUCT_CREATE = "product:create"
    PRODUCT_READ = "product:read"
    PRODUCT_UPDATE = "product:update"
    PRODUCT_DELETE = "product:delete"

    # Inquiry management
    INQUIRY_CREATE = "inquiry:create"
    INQUIRY_READ = "inquiry:read"
    INQUIRY_UPDATE = "inquiry:update"
    INQUIRY_DELETE = "inquiry:delete"

    # User management
    USER_CREATE = "user:create"
    USER_READ = "user:read"
    USER_UPDATE = "user:update"
    USER_DELETE = "user:delete"

    # System
    SYSTEM_CONFIG = "system:config"
    SYSTEM_LOGS = "system:logs"


class Role(str, Enum):
    """Predefined roles, most capable first"""
    ADMIN = "admin"
    MANAGER = "manager"
    EDITOR = "editor"
    VIEWER = "viewer"

    @property
    def rank(self) -> int:
        """Higher rank means more capability"""
        return _ROLE_RANK[self]


_ROLE_RANK = {
    Role.ADMIN: 3,
    Role.MANAGER: 2,
    Role.EDITOR: 1,
    Role.VIEWER: 0,
}


# Role to permissions mapping
ROLE_PERMISSIONS: Mapping[Role, FrozenSet[Permission]] = MappingProxyType({
    Role.ADMIN: frozenset(Permission),  # All permissions

    Role.MANAGER: frozenset({
        Permission.PRODUCT_CREATE,
        Permission.PRODUCT_READ,
        Permission.PRODUCT_UPDATE,
        Permission.PRODUCT_DELETE,
        Permission.INQUIRY_READ,
        Permission.INQUIRY_UPDATE,
        Permission.INQUIRY_DELETE,
        Permission.USER_READ,
        Permission.SYSTEM_LOGS,
    }),

    Role.EDITOR: frozenset({
        Permission.PRODUCT_CREATE,
        Permission.PRODUCT_READ,
        Permission.PRODUCT_UPDATE,
        Permission.INQUIRY_READ,
        Permission.INQUIRY_UPDATE,
    }),

    Role.VIEWER: frozenset({
        Permission.PRODUCT_READ,
        Permission.INQUIRY_READ,
    }),
})


def _as_role(role: Union[Role, str]) -> Optional[Role]:
    try:
        return Role(role)
    except ValueError:
        return None


def _as_permission(permission: Union[Permission, str]) -> Optional[Permission]:
    try:
        return Permission(permission)
    except ValueError:
        return None


def get_role_permissions(role: Union[Role, str]) -> FrozenSet[Permission]:
    """Get the permission set of a role (empty for unknown roles)"""
    resolved = _as_role(role)
    if resolved is None:
        return frozenset()
    return ROLE_PERMISSIONS[resolved]


def has_permission(role: Union[Role, str], permission: Union[Permission, str]) -> bool:
    """Check if a role grants a specific permission"""
    perm = _as_permission(permission)
    if perm is None:
        return False
    return perm in get_role_permissions(role)


def has_any_permission(
    role: Union[Role, str], permissions: Iterable[Union[Permission, str]]
) -> bool:
    """Check if a role grants any of the specified permissions"""
    return any(has_permission(role, p) for p in permissions)


def has_all_permissions(
    role: Union[Role, str], permissions: Iterable[Union[Permission, str]]
) -> bool:
    """Check if a role grants all of the specified permissions"""
    return all(has_permission(role, p) for p in permissions)


def role_at_least(role: Union[Role, str], minimum: Union[Role, str]) -> bool:
    """Check if role ranks at or above minimum"""
    resolved, floor = _as_role(role), _as_role(minimum)
    if resolved is None or floor is None:
        return False
    return resolved.rank >= floor.rank
