"""Lazy-init singleton dependency getters.

Each getter builds its component from load_config() on first call and
caches it for the process lifetime. When a DynamoDB table is not
configured the in-process implementation is used instead.

Usage:
    from src.access_control.dependencies import get_rate_limiter

    limiter = get_rate_limiter()
    await limiter.enforce_limit(user_id, "weather_api", role)
"""

import logging
import threading

from src.access_control.auth.roles import RoleResolver
from src.access_control.config import AccessControlConfig, load_config
from src.access_control.dynamodb import get_table
from src.access_control.identity import (
    DynamoDBRoleTable,
    InMemoryRoleTable,
    SessionIdentityProvider,
)
from src.access_control.rate_limit import (
    DynamoDBCounterStore,
    InMemoryCounterStore,
    RateLimiter,
)
from src.access_control.security import (
    DynamoDBTelemetrySink,
    LoggingTelemetrySink,
    SecurityMonitor,
)

logger = logging.getLogger(__name__)

_init_lock = threading.Lock()

# Singleton instances
_config: AccessControlConfig | None = None
_rate_limiter: RateLimiter | None = None
_security_monitor: SecurityMonitor | None = None
_identity_provider: SessionIdentityProvider | None = None
_role_resolver: RoleResolver | None = None


def get_config() -> AccessControlConfig:
    global _config
    with _init_lock:
        if _config is None:
            _config = load_config()
        return _config


def get_rate_limiter() -> RateLimiter:
    """Get the RateLimiter (lazy singleton).

    Uses DynamoDBCounterStore when RATE_LIMIT_TABLE is set.
    """
    global _rate_limiter
    config = get_config()
    with _init_lock:
        if _rate_limiter is None:
            if config.rate_limit_table:
                store = DynamoDBCounterStore(get_table(config.rate_limit_table))
            else:
                logger.warning(
                    "RATE_LIMIT_TABLE not configured, using process-local counters"
                )
                store = InMemoryCounterStore()
            _rate_limiter = RateLimiter(store, config)
        return _rate_limiter


def get_security_monitor() -> SecurityMonitor:
    """Get the SecurityMonitor (lazy singleton).

    Uses DynamoDBTelemetrySink when SECURITY_EVENTS_TABLE is set,
    otherwise security events go to the application log.
    """
    global _security_monitor
    config = get_config()
    with _init_lock:
        if _security_monitor is None:
            if config.security_events_table:
                sink = DynamoDBTelemetrySink(get_table(config.security_events_table))
            else:
                sink = LoggingTelemetrySink()
            _security_monitor = SecurityMonitor(telemetry=sink, config=config)
        return _security_monitor


def get_identity_provider() -> SessionIdentityProvider:
    """Get the session identity provider (lazy singleton).

    Role lookups go to USERS_TABLE when set, otherwise to an empty
    in-memory table (every caller resolves to 'user').
    """
    global _identity_provider
    config = get_config()
    with _init_lock:
        if _identity_provider is None:
            if config.users_table:
                role_table = DynamoDBRoleTable(get_table(config.users_table))
            else:
                role_table = InMemoryRoleTable()
            _identity_provider = SessionIdentityProvider(role_table)
        return _identity_provider


def get_role_resolver() -> RoleResolver:
    """Get the RoleResolver bound to the identity provider (lazy singleton)."""
    global _role_resolver
    provider = get_identity_provider()
    config = get_config()
    with _init_lock:
        if _role_resolver is None:
            _role_resolver = RoleResolver(provider, config.request_timeout_seconds)
        return _role_resolver


def reset_singletons() -> None:
    """Reset all singleton instances (for testing only)."""
    global _config, _rate_limiter, _security_monitor, _identity_provider, _role_resolver
    with _init_lock:
        _config = None
        _rate_limiter = None
        _security_monitor = None
        _identity_provider = None
        _role_resolver = None
