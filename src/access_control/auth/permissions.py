"""Role hierarchy checks and the @require_role guard.

has_permission() is the single source of truth for role sufficiency.
is_admin_user() and is_premium_user() are derived from it so the flags
can never disagree with the hierarchy.

Usage:
    from src.access_control.auth import has_permission, require_role

    if has_permission(role, Role.PREMIUM):
        ...

    @require_role("premium")
    async def export_history(user_id: str, *, role: Role) -> dict:
        ...
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from typing import Any, TypeVar

from src.access_control.auth.enums import ROLE_HIERARCHY, VALID_ROLES, Role
from src.access_control.errors import InsufficientRoleError, InvalidRoleError

logger = logging.getLogger(__name__)

# Type variable for preserving function signatures
F = TypeVar("F", bound=Callable[..., Any])


def coerce_role(value: Role | str) -> Role:
    """Convert a role string to Role.

    Raises:
        InvalidRoleError: If value is not one of the known roles.
    """
    if isinstance(value, Role):
        return value
    if value not in VALID_ROLES:
        raise InvalidRoleError(str(value), VALID_ROLES)
    return Role(value)


def has_permission(user_role: Role | str, required_role: Role | str) -> bool:
    """Check if a user's role meets or exceeds the required role.

    Examples:
        >>> has_permission("premium", "premium")
        True
        >>> has_permission("admin", "premium")
        True
        >>> has_permission("user", "premium")
        False
    """
    return (
        ROLE_HIERARCHY[coerce_role(user_role)]
        >= ROLE_HIERARCHY[coerce_role(required_role)]
    )


def is_admin_user(role: Role | str) -> bool:
    """Check if the role can access admin features."""
    return has_permission(role, Role.ADMIN)


def is_premium_user(role: Role | str) -> bool:
    """Check if the role has premium access (admins always do)."""
    return has_permission(role, Role.PREMIUM)


def require_role(required_role: Role | str) -> Callable[[F], F]:
    """Decorator factory guarding an async callable by role.

    The wrapped callable must receive the caller's role as the ``role``
    keyword argument.

    Args:
        required_role: Minimum role. Must be one of: 'user', 'premium', 'admin'

    Raises:
        InvalidRoleError: At decoration time if role is not valid.
        InsufficientRoleError: At call time if the caller's role is too low.
    """
    # Validate role at decoration time (startup)
    required = coerce_role(required_role)

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            role = kwargs.get("role")
            if role is None:
                logger.debug(f"require_role({required}): No role supplied, denying")
                raise InsufficientRoleError(required.value)

            try:
                role = coerce_role(role)
            except InvalidRoleError:
                # SECURITY: Unknown roles get the same generic denial
                logger.debug(f"require_role({required}): unknown role, denying")
                raise InsufficientRoleError(required.value) from None

            if not has_permission(role, required):
                # SECURITY: Generic message prevents role enumeration
                logger.debug(
                    f"require_role({required}): role {role} insufficient, denying"
                )
                raise InsufficientRoleError(required.value)

            return await func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator
