"""
Secure logging utilities to prevent log injection and PII leakage.

This module provides functions to sanitize data before it reaches logs or
telemetry, preventing:
- Log injection attacks (CWE-117, CWE-93)
- Emails and IP addresses leaking into security telemetry
- Secrets in free-form metadata

Security References:
- OWASP Logging Cheat Sheet: https://cheatsheetseries.owasp.org/cheatsheets/Logging_Cheat_Sheet.html
"""

import re
from typing import Any

# Maximum length for logged user input to prevent log flooding
MAX_LOG_INPUT_LENGTH = 200

# Maximum length of an error message attached to a telemetry event
MAX_EVENT_ERROR_LENGTH = 100

EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
IPV4_PATTERN = re.compile(r"\b\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}\b")
CONTROL_CHARS_PATTERN = re.compile(r"[\x00-\x1f\x7f-\x9f]")

# Sensitive field names that should never be logged
SENSITIVE_FIELDS = {
    "password",
    "secret",
    "token",
    "api_key",
    "apikey",
    "authorization",
    "credential",
    "credentials",
    "email",
}


def sanitize_for_log(value: Any, max_length: int = MAX_LOG_INPUT_LENGTH) -> str:
    """
    Sanitize a value for safe logging by removing CRLF and limiting length.

    Args:
        value: Value to sanitize (will be converted to string)
        max_length: Maximum length of output (default: 200)

    Returns:
        Sanitized string safe for logging

    Example:
        >>> sanitize_for_log("error\\n[FAKE] Admin logged in")
        'error [FAKE] Admin logged in'
    """
    text = str(value)

    # Remove CRLF characters to prevent log injection
    text = text.replace("\r", " ").replace("\n", " ").replace("\t", " ")

    # Remove other control characters
    text = CONTROL_CHARS_PATTERN.sub(" ", text)

    # Limit length to prevent log flooding
    if len(text) > max_length:
        text = text[:max_length] + "..."

    return text


def get_safe_error_info(exception: BaseException) -> dict[str, str]:
    """
    Extract safe information from an exception for logging.

    Returns only the exception type, NOT the message, since messages from
    stores and identity providers may carry user input.

    Example:
        >>> get_safe_error_info(ValueError("user@example.com not found"))
        {'error_type': 'ValueError'}
    """
    return {"error_type": type(exception).__name__}


def redact_pii(message: str, max_length: int = MAX_EVENT_ERROR_LENGTH) -> str:
    """
    Normalize an error message before it is attached to telemetry.

    Emails become ``[email]``, IPv4 addresses become ``[ip]``, control
    characters are removed and the result is capped at max_length.

    Example:
        >>> redact_pii("Invalid login for bob@example.com from 10.0.0.1")
        'Invalid login for [email] from [ip]'
    """
    text = EMAIL_PATTERN.sub("[email]", message)
    text = IPV4_PATTERN.sub("[ip]", text)
    text = CONTROL_CHARS_PATTERN.sub(" ", text)
    return text[:max_length]


def _redact_value(value: Any) -> Any:
    if isinstance(value, dict):
        return redact_sensitive_fields(value)
    if isinstance(value, (list, tuple)):
        return [_redact_value(item) for item in value]
    if isinstance(value, str):
        return redact_pii(value, max_length=MAX_LOG_INPUT_LENGTH)
    return value


def redact_sensitive_fields(data: dict[str, Any]) -> dict[str, Any]:
    """
    Redact sensitive fields from a dictionary before logging or storage.

    Field names are matched case-insensitively. String values of the
    remaining fields, including strings nested in dicts and lists, are
    passed through redact_pii(). Tuples come back as lists. Returns a copy.

    Example:
        >>> redact_sensitive_fields({"user": "john", "api_key": "secret123"})  # pragma: allowlist secret
        {'user': 'john', 'api_key': '***REDACTED***'}
    """
    result: dict[str, Any] = {}
    for key, value in data.items():
        if any(sensitive in key.lower() for sensitive in SENSITIVE_FIELDS):
            result[key] = "***REDACTED***"
        else:
            result[key] = _redact_value(value)
    return result
