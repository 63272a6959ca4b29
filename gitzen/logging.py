"""
gitzen logging utilities.

Provides configurable logging for remote-host HTTP traffic and audit events.
Ensures no credentials (API tokens, upstream access tokens, encrypted blobs)
are logged.
"""

import logging
import re
from typing import Any

# Create package loggers
_root_logger = logging.getLogger("gitzen")
_http_logger = logging.getLogger("gitzen.http")
_audit_logger = logging.getLogger("gitzen.audit")

# Patterns for sensitive data that should be masked
_SENSITIVE_PATTERNS = [
    # Application API tokens
    (re.compile(r"cms_[0-9a-fA-F]{8,}\.[0-9a-fA-F]{8,}"), "cms_[TOKEN_REDACTED]"),
    # Upstream access tokens (classic, OAuth, user-to-server, fine-grained)
    (re.compile(r"\b(gh[opusr]_[A-Za-z0-9]{8,}|github_pat_[A-Za-z0-9_]{8,})"), "[GITHUB_TOKEN_REDACTED]"),
    # Authorization headers
    (re.compile(r"(Bearer|token)\s+[A-Za-z0-9_.\-]{8,}", re.IGNORECASE), r"\1 [REDACTED]"),
    # Secret/token patterns
    (re.compile(r"(secret|token|password|api_key)['\"]?\s*[:=]\s*['\"][^'\"]+['\"]", re.IGNORECASE), r"\1: [REDACTED]"),
]

_SENSITIVE_KEYS = {
    "authorization",
    "token",
    "secret",
    "password",
    "cookie",
    "encrypted",
    "github_token",
    "access_token",
    "refresh_token",
}


def configure_logging(
    level: int = logging.INFO,
    http_level: int | None = None,
    audit_level: int | None = None,
    handler: logging.Handler | None = None,
    format_string: str | None = None,
) -> None:
    """
    Configure gitzen logging.

    Args:
        level: Default log level for all gitzen loggers (default: INFO)
        http_level: Log level for remote-host request/response logging (default: same as level)
        audit_level: Log level for audit events (default: same as level)
        handler: Custom handler to use (default: StreamHandler to stderr)
        format_string: Custom format string (default: includes timestamp, level, logger name)

    Example:
        ```python
        import logging
        from gitzen.logging import configure_logging

        # Trace every call made to the remote host
        configure_logging(level=logging.INFO, http_level=logging.DEBUG)
        ```
    """
    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    formatter = logging.Formatter(format_string)

    if handler is None:
        handler = logging.StreamHandler()

    handler.setFormatter(formatter)

    _root_logger.setLevel(level)
    _root_logger.addHandler(handler)

    _http_logger.setLevel(http_level if http_level is not None else level)
    _audit_logger.setLevel(audit_level if audit_level is not None else level)


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Get a gitzen logger.

    Args:
        name: Logger name suffix (e.g., "http", "auth"). If None, returns the package logger.

    Returns:
        Logger instance
    """
    if name is None:
        return _root_logger
    return logging.getLogger(f"gitzen.{name}")


def mask_sensitive_data(text: str) -> str:
    """
    Mask credentials in a string.

    Args:
        text: Text that may contain tokens or secrets

    Returns:
        Text with sensitive data masked
    """
    result = text
    for pattern, replacement in _SENSITIVE_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


def safe_log_dict(data: dict[str, Any], sensitive_keys: set[str] | None = None) -> dict[str, Any]:
    """
    Create a copy of a dictionary with sensitive values masked.

    Args:
        data: Dictionary that may contain sensitive values
        sensitive_keys: Key fragments to mask (default: token, secret, password, cookie, ...)

    Returns:
        Dictionary with sensitive values replaced with "[REDACTED]"
    """
    if sensitive_keys is None:
        sensitive_keys = _SENSITIVE_KEYS

    result: dict[str, Any] = {}
    for key, value in data.items():
        key_lower = key.lower()
        if any(sk in key_lower for sk in sensitive_keys):
            result[key] = "[REDACTED]"
        elif isinstance(value, dict):
            result[key] = safe_log_dict(value, sensitive_keys)
        elif isinstance(value, list):
            result[key] = [
                safe_log_dict(item, sensitive_keys) if isinstance(item, dict) else item
                for item in value
            ]
        elif isinstance(value, str):
            result[key] = mask_sensitive_data(value)
        else:
            result[key] = value

    return result


def log_http_request(
    method: str,
    url: str,
    body: dict[str, Any] | None = None,
) -> None:
    """
    Log a remote-host request at DEBUG level with sensitive data masked.

    Headers are never logged: they carry the caller's access token.
    """
    if not _http_logger.isEnabledFor(logging.DEBUG):
        return

    log_parts = [f"{method} {url}"]

    if body:
        # File payloads are base64 and can be large
        safe_body = safe_log_dict({k: v for k, v in body.items() if k != "content"})
        log_parts.append(f"body={safe_body}")

    _http_logger.debug(" | ".join(log_parts))


def log_http_response(
    status_code: int,
    url: str,
    elapsed_ms: float | None = None,
) -> None:
    """Log a remote-host response at DEBUG level."""
    if not _http_logger.isEnabledFor(logging.DEBUG):
        return

    log_parts = [f"Response {status_code} from {url}"]

    if elapsed_ms is not None:
        log_parts.append(f"elapsed={elapsed_ms:.2f}ms")

    _http_logger.debug(" | ".join(log_parts))


def log_remote_error(status: int, path: str, body: str) -> None:
    """Log the internal detail of a failed remote call at WARNING level."""
    _http_logger.warning(
        "Remote host error %s on %s: %s", status, path, mask_sensitive_data(body[:500])
    )


def log_audit(event: str, **fields: Any) -> None:
    """
    Log an audit event (login, token creation, content save, merge, ...).

    Args:
        event: Dotted event name, e.g. "content.saved"
        **fields: Event attributes; sensitive keys are masked
    """
    if not _audit_logger.isEnabledFor(logging.INFO):
        return

    safe_fields = safe_log_dict(fields)
    details = ", ".join(f"{k}={v}" for k, v in safe_fields.items())
    _audit_logger.info(f"{event}: {details}" if details else event)


__all__ = [
    "configure_logging",
    "get_logger",
    "mask_sensitive_data",
    "safe_log_dict",
    "log_http_request",
    "log_http_response",
    "log_remote_error",
    "log_audit",
]
