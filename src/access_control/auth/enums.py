"""Canonical role definitions for access control.

Roles form a closed, totally ordered set. A higher role has every
capability of the roles below it:

- user: default for every principal, including anonymous callers
- premium: paid subscribers (has user + premium)
- admin: administrative access (has user + premium + admin)

The string values are the storage/wire values. Ordering comes from
ROLE_HIERARCHY, never from string comparison.
"""

from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    """Canonical user roles for role-based access control."""

    USER = "user"
    PREMIUM = "premium"
    ADMIN = "admin"

    @property
    def ordinal(self) -> int:
        """Position of this role in the hierarchy (user=0 ... admin=2)."""
        return ROLE_HIERARCHY[self]


ROLE_HIERARCHY: dict[Role, int] = {
    Role.USER: 0,
    Role.PREMIUM: 1,
    Role.ADMIN: 2,
}

# Immutable set for O(1) validation
VALID_ROLES: frozenset[str] = frozenset(role.value for role in Role)
