"""Identity collaborator contract and an in-process session provider.

The access-control core never authenticates anyone. It consumes an
identity collaborator that knows the current principal, notifies on
session changes and looks up stored roles.

Role storage layout (DynamoDB users table):
    PK = USER#<user_id>, SK = ROLE, role = "user" | "premium" | "admin"
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol

from src.access_control.logging_utils import get_safe_error_info, sanitize_for_log
from src.access_control.retry import dynamodb_retry

logger = logging.getLogger(__name__)

SessionCallback = Callable[[str | None], None]


class Subscription(Protocol):
    """Handle returned by on_session_change()."""

    def cancel(self) -> None: ...


class IdentityCollaborator(Protocol):
    """What RoleResolver needs from the identity layer."""

    def get_current_identity(self) -> str | None: ...

    def on_session_change(self, callback: SessionCallback) -> Subscription: ...

    async def fetch_role(self, identity: str) -> str | None:
        """Return the stored role string, or None when no role is stored."""
        ...


class RoleTable(Protocol):
    async def get_role(self, identity: str) -> str | None: ...


class InMemoryRoleTable:
    """Role lookup backed by a dict. Used for local runs and tests."""

    def __init__(self, roles: dict[str, str] | None = None) -> None:
        self._roles = dict(roles or {})

    def set_role(self, identity: str, role: str) -> None:
        self._roles[identity] = role

    async def get_role(self, identity: str) -> str | None:
        return self._roles.get(identity)


class DynamoDBRoleTable:
    """Role lookup against the users table."""

    def __init__(self, table: Any) -> None:
        """Initialize with a boto3 DynamoDB Table resource."""
        self._table = table

    @staticmethod
    def key_for(identity: str) -> dict[str, str]:
        return {"PK": f"USER#{identity}", "SK": "ROLE"}

    @dynamodb_retry
    def _get_item(self, identity: str) -> dict[str, Any]:
        return self._table.get_item(
            Key=self.key_for(identity),
            ProjectionExpression="#r",
            ExpressionAttributeNames={"#r": "role"},
        )

    async def get_role(self, identity: str) -> str | None:
        response = await asyncio.to_thread(self._get_item, identity)
        item = response.get("Item")
        if not item:
            return None
        return item.get("role")


class _CallbackSubscription:
    def __init__(self, provider: SessionIdentityProvider, callback: SessionCallback):
        self._provider = provider
        self._callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        if not self.cancelled:
            self._provider._remove_listener(self._callback)
            self.cancelled = True


class SessionIdentityProvider:
    """In-process session holder implementing IdentityCollaborator.

    The surrounding application calls sign_in()/sign_out() as the
    authentication flow completes; listeners are notified synchronously
    in registration order.
    """

    def __init__(self, role_table: RoleTable, identity: str | None = None) -> None:
        self._role_table = role_table
        self._identity = identity
        self._listeners: list[SessionCallback] = []

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def get_current_identity(self) -> str | None:
        return self._identity

    def on_session_change(self, callback: SessionCallback) -> Subscription:
        self._listeners.append(callback)
        return _CallbackSubscription(self, callback)

    def _remove_listener(self, callback: SessionCallback) -> None:
        try:
            self._listeners.remove(callback)
        except ValueError:
            pass

    def sign_in(self, identity: str) -> None:
        self._set_identity(identity)

    def sign_out(self) -> None:
        self._set_identity(None)

    def _set_identity(self, identity: str | None) -> None:
        self._identity = identity
        for listener in list(self._listeners):
            try:
                listener(identity)
            except Exception as e:
                logger.error(
                    "Session change listener failed",
                    extra=get_safe_error_info(e),
                )

    async def fetch_role(self, identity: str) -> str | None:
        logger.debug(
            "Fetching role",
            extra={"user_id_prefix": sanitize_for_log(identity[:8])},
        )
        return await self._role_table.get_role(identity)
