"""Role resolution for the current caller.

RoleResolver looks up the caller's role through the identity collaborator
and keeps it current across session changes.

Failure semantics:
- No identity: anonymous caller, resolves to 'user' with no error.
- No stored role: resolves to 'user' with no error.
- Lookup error, timeout or unknown role value: resolves to 'user' and the
  RoleLookupFailed message is attached as ``error``. Privilege is never
  escalated on failure.

Usage:
    async with RoleResolver(provider) as resolver:
        resolution = await resolver.current()
        if resolution.is_premium:
            ...
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from pydantic import BaseModel, ConfigDict, computed_field

from src.access_control.auth.enums import Role
from src.access_control.auth.permissions import (
    coerce_role,
    is_admin_user,
    is_premium_user,
)
from src.access_control.config import DEFAULT_REQUEST_TIMEOUT_SECONDS
from src.access_control.errors import InvalidRoleError, RoleLookupFailed
from src.access_control.identity import IdentityCollaborator, Subscription
from src.access_control.logging_utils import get_safe_error_info, sanitize_for_log

logger = logging.getLogger(__name__)


class RoleResolution(BaseModel):
    """Resolved role plus an optional lookup error."""

    model_config = ConfigDict(frozen=True)

    role: Role = Role.USER
    error: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_admin(self) -> bool:
        return is_admin_user(self.role)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_premium(self) -> bool:
        return is_premium_user(self.role)


def _lookup_failed(reason: str) -> RoleResolution:
    return RoleResolution(role=Role.USER, error=str(RoleLookupFailed(reason)))


class RoleResolver:
    """Resolves and caches the current caller's role.

    The cached resolution belongs to this instance only. A session change
    invalidates it and schedules a re-resolve; a resolve that was in flight
    when the session changed is returned to its caller but never cached.
    """

    def __init__(
        self,
        identity: IdentityCollaborator,
        timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        self._identity = identity
        self._timeout = timeout_seconds
        self._cached: RoleResolution | None = None
        self._generation = 0
        self._subscription: Subscription | None = None
        self._refresh_task: asyncio.Task[RoleResolution] | None = None
        self._inflight = 0

    @property
    def loading(self) -> bool:
        """True while a resolve is in flight."""
        return self._inflight > 0

    @property
    def cached(self) -> RoleResolution | None:
        return self._cached

    async def resolve_role(self, identity: str | None) -> RoleResolution:
        """Resolve the role for an identity without touching the cache."""
        if identity is None:
            return RoleResolution()

        self._inflight += 1
        try:
            role_value = await asyncio.wait_for(
                self._identity.fetch_role(identity), timeout=self._timeout
            )
        except TimeoutError:
            logger.warning(
                "Role lookup timed out, defaulting to user",
                extra={"timeout_seconds": self._timeout},
            )
            return _lookup_failed("timeout")
        except Exception as e:
            logger.warning(
                "Role lookup failed, defaulting to user",
                extra=get_safe_error_info(e),
            )
            return _lookup_failed(type(e).__name__)
        finally:
            self._inflight -= 1

        if role_value is None:
            return RoleResolution()

        try:
            role = coerce_role(role_value)
        except InvalidRoleError:
            logger.warning(
                "Stored role is not recognised, defaulting to user",
                extra={"role": sanitize_for_log(role_value, max_length=32)},
            )
            return _lookup_failed("unknown role")

        return RoleResolution(role=role)

    async def current(self) -> RoleResolution:
        """Resolution for the collaborator's current identity (cached)."""
        if self._cached is not None:
            return self._cached

        generation = self._generation
        resolution = await self.resolve_role(self._identity.get_current_identity())
        if generation == self._generation:
            self._cached = resolution
        return resolution

    def start(self) -> None:
        """Subscribe to session changes. Idempotent."""
        if self._subscription is None:
            self._subscription = self._identity.on_session_change(
                self._on_session_change
            )

    def _on_session_change(self, identity: str | None) -> None:
        self._generation += 1
        self._cached = None

        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
        self._refresh_task = None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: the next current() call resolves lazily
            return
        self._refresh_task = loop.create_task(self.current())

    async def close(self) -> None:
        """Cancel the session subscription and any pending refresh."""
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

        task = self._refresh_task
        self._refresh_task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def __aenter__(self) -> RoleResolver:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
