"""Brute-force detection and security telemetry."""

from src.access_control.security.models import FailedLoginTracker, SecurityEvent
from src.access_control.security.monitor import (
    SecurityMonitor,
    hash_identifier,
    normalize_identifier,
)
from src.access_control.security.store import (
    FailedLoginStore,
    InMemoryFailedLoginStore,
)
from src.access_control.security.telemetry import (
    DynamoDBTelemetrySink,
    InMemoryTelemetrySink,
    LoggingTelemetrySink,
    TelemetrySink,
)

__all__ = [
    "DynamoDBTelemetrySink",
    "FailedLoginStore",
    "FailedLoginTracker",
    "InMemoryFailedLoginStore",
    "InMemoryTelemetrySink",
    "LoggingTelemetrySink",
    "SecurityEvent",
    "SecurityMonitor",
    "TelemetrySink",
    "hash_identifier",
    "normalize_identifier",
]
