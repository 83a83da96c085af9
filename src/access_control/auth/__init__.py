"""Role hierarchy and permission checks.

RoleResolver lives in src.access_control.auth.roles and is imported from
there directly.
"""

from src.access_control.auth.enums import ROLE_HIERARCHY, VALID_ROLES, Role
from src.access_control.auth.permissions import (
    coerce_role,
    has_permission,
    is_admin_user,
    is_premium_user,
    require_role,
)

__all__ = [
    "ROLE_HIERARCHY",
    "VALID_ROLES",
    "Role",
    "coerce_role",
    "has_permission",
    "is_admin_user",
    "is_premium_user",
    "require_role",
]
