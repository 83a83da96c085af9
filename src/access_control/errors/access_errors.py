"""Access-control error types.

Taxonomy:
- StoreUnavailable: transport/timeout failure of a collaborator store.
  Recovered locally (fail-open for rate limiting, lowest privilege for roles).
- RateLimitExceeded: terminal, user-facing. The only error in this package
  intended to block the end user.
- RoleLookupFailed: non-fatal. Surfaced next to the default role so callers
  can tell "anonymous" apart from "lookup broke".
- InvalidRoleError / InsufficientRoleError: role guard errors.

A missing identity is not an error. It is represented by None.
"""

from __future__ import annotations


class AccessControlError(Exception):
    """Base class for access-control errors."""

    pass


class StoreUnavailable(AccessControlError):
    """A collaborator store failed or timed out.

    Raised internally by store adapters and caught by the component that
    owns the failure policy. Never surfaced to the end user.
    """

    def __init__(self, store: str, cause: BaseException | None = None) -> None:
        self.store = store
        self.cause = cause
        message = f"{store} unavailable"
        if cause is not None:
            message += f" ({type(cause).__name__})"
        super().__init__(message)


class RateLimitExceeded(AccessControlError):
    """Raised when a caller has used up the hourly quota for an endpoint."""

    def __init__(self, endpoint: str, limit: int, retry_after: int = 3600) -> None:
        self.endpoint = endpoint
        self.limit = limit
        self.retry_after = retry_after
        self.message = (
            f"Rate limit exceeded for {endpoint}. Max {limit} requests/hour."
        )
        super().__init__(self.message)


class RoleLookupFailed(AccessControlError):
    """The identity collaborator could not return a role.

    The resolver defaults to the lowest role and attaches this error to
    the resolution instead of raising it.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Role lookup failed: {reason}")


class InvalidRoleError(ValueError):
    """Raised for role values outside the closed role set.

    At decoration time this indicates a programming mistake (typo in a
    role name) and should cause the application to fail to start.
    """

    def __init__(self, role: str, valid_roles: frozenset[str]) -> None:
        self.role = role
        self.valid_roles = valid_roles
        super().__init__(f"Invalid role '{role}'. Valid roles: {sorted(valid_roles)}")


class InsufficientRoleError(AccessControlError):
    """Raised when the caller's role is below the required role.

    The message is generic to prevent role enumeration.
    """

    def __init__(self, required_role: str) -> None:
        self.required_role = required_role
        super().__init__("Access denied")
