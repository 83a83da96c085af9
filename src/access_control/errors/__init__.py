"""Shared error types for the access-control core."""

from src.access_control.errors.access_errors import (
    AccessControlError,
    InsufficientRoleError,
    InvalidRoleError,
    RateLimitExceeded,
    RoleLookupFailed,
    StoreUnavailable,
)

__all__ = [
    "AccessControlError",
    "InsufficientRoleError",
    "InvalidRoleError",
    "RateLimitExceeded",
    "RoleLookupFailed",
    "StoreUnavailable",
]
