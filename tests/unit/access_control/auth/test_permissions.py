"""Unit tests for the role hierarchy and @require_role guard."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from src.access_control.auth import (
    ROLE_HIERARCHY,
    VALID_ROLES,
    Role,
    coerce_role,
    has_permission,
    is_admin_user,
    is_premium_user,
    require_role,
)
from src.access_control.errors import InsufficientRoleError, InvalidRoleError

roles = st.sampled_from(list(Role))


class TestRoleEnum:
    """Tests for the Role enum and hierarchy table."""

    def test_values_are_storage_strings(self):
        """Role values match the stored role strings."""
        assert VALID_ROLES == {"user", "premium", "admin"}

    def test_ordinals(self):
        """user < premium < admin."""
        assert Role.USER.ordinal == 0
        assert Role.PREMIUM.ordinal == 1
        assert Role.ADMIN.ordinal == 2

    def test_hierarchy_covers_every_role(self):
        """Every role has a position in the hierarchy."""
        assert set(ROLE_HIERARCHY) == set(Role)

    def test_coerce_role_from_string(self):
        """Role strings convert to Role members."""
        assert coerce_role("premium") is Role.PREMIUM
        assert coerce_role(Role.ADMIN) is Role.ADMIN

    def test_coerce_role_rejects_unknown(self):
        """Unknown role strings raise InvalidRoleError."""
        with pytest.raises(InvalidRoleError) as exc_info:
            coerce_role("superuser")
        assert "superuser" in str(exc_info.value)


class TestHasPermission:
    """Tests for has_permission."""

    def test_admin_has_premium(self):
        assert has_permission("admin", "premium") is True

    def test_user_lacks_premium(self):
        assert has_permission("user", "premium") is False

    def test_premium_lacks_admin(self):
        assert has_permission(Role.PREMIUM, Role.ADMIN) is False

    @given(role=roles)
    def test_reflexive(self, role):
        """Every role satisfies itself."""
        assert has_permission(role, role) is True

    @given(user_role=roles, required_role=roles)
    def test_matches_ordinal_comparison(self, user_role, required_role):
        """has_permission is exactly ordinal(user) >= ordinal(required)."""
        assert has_permission(user_role, required_role) == (
            user_role.ordinal >= required_role.ordinal
        )

    @given(a=roles, b=roles, c=roles)
    def test_transitive(self, a, b, c):
        """a >= b and b >= c implies a >= c."""
        if has_permission(a, b) and has_permission(b, c):
            assert has_permission(a, c)

    @given(a=roles, b=roles)
    def test_total(self, a, b):
        """Any two roles are comparable."""
        assert has_permission(a, b) or has_permission(b, a)


class TestDerivedFlags:
    """Tests for is_admin_user / is_premium_user."""

    def test_admin_is_premium(self):
        assert is_premium_user("admin") is True

    def test_user_is_not_premium(self):
        assert is_premium_user("user") is False

    def test_premium_is_premium(self):
        assert is_premium_user("premium") is True

    def test_premium_is_not_admin(self):
        assert is_admin_user("premium") is False

    def test_admin_is_admin(self):
        assert is_admin_user(Role.ADMIN) is True

    @given(role=roles)
    def test_flags_follow_hierarchy(self, role):
        """Flags never diverge from has_permission."""
        assert is_admin_user(role) == has_permission(role, Role.ADMIN)
        assert is_premium_user(role) == has_permission(role, Role.PREMIUM)


class TestRequireRole:
    """Tests for the @require_role decorator."""

    def test_invalid_role_fails_at_decoration(self):
        """Typos in the required role fail at decoration time."""
        with pytest.raises(InvalidRoleError):

            @require_role("premuim")
            async def handler(*, role):
                return "ok"

    @pytest.mark.asyncio
    async def test_allows_sufficient_role(self):
        """Higher roles pass a lower requirement."""

        @require_role("premium")
        async def export_history(user_id, *, role):
            return f"export:{user_id}"

        assert await export_history("u1", role=Role.ADMIN) == "export:u1"
        assert await export_history("u1", role="premium") == "export:u1"

    @pytest.mark.asyncio
    async def test_denies_insufficient_role(self):
        """Lower roles are denied with a generic message."""

        @require_role(Role.ADMIN)
        async def revoke_sessions(*, role):
            return "revoked"

        with pytest.raises(InsufficientRoleError) as exc_info:
            await revoke_sessions(role=Role.PREMIUM)

        assert str(exc_info.value) == "Access denied"
        assert exc_info.value.required_role == "admin"

    @pytest.mark.asyncio
    async def test_denies_missing_role(self):
        """A call without a role keyword is denied."""

        @require_role("user")
        async def handler(**kwargs):
            return "ok"

        with pytest.raises(InsufficientRoleError):
            await handler()

    @pytest.mark.asyncio
    async def test_unknown_role_gets_generic_denial(self):
        """An unrecognised role value does not reveal the valid roles."""

        @require_role("user")
        async def handler(*, role):
            return "ok"

        with pytest.raises(InsufficientRoleError) as exc_info:
            await handler(role="superuser")

        assert str(exc_info.value) == "Access denied"
        assert exc_info.value.__cause__ is None

    def test_preserves_function_metadata(self):
        """functools.wraps keeps the wrapped name."""

        @require_role("user")
        async def save_event(*, role):
            """Save a lawn event."""

        assert save_event.__name__ == "save_event"
        assert save_event.__doc__ == "Save a lawn event."
