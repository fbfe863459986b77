"""Redaction helpers applied to everything the integration logs.

The same rules are used for debug-auth output from the session manager and
the HTTP client, for error reports, and for the diagnostics download.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlsplit, urlunsplit

REDACTED = "[REDACTED]"

# Strings longer than this are cut before logging
MAX_LOG_STRING_LENGTH = 512

SENSITIVE_KEY = re.compile(
    r"(authorization|token|password|passwd|secret|cookie|hardware[_-]?id"
    r"|device[_-]?identifier|device[_-]?id|2fa|_code$|^pin$|email|phone"
    r"|client[_-]?name|serial|username)",
    re.IGNORECASE,
)


def is_sensitive_key(key: object) -> bool:
    """Return True if values stored under this key must never be logged."""
    return isinstance(key, str) and SENSITIVE_KEY.search(key) is not None


def truncate(value: str, limit: int = MAX_LOG_STRING_LENGTH) -> str:
    """Cut an oversized string and note how much was dropped."""
    if len(value) <= limit:
        return value
    return f"{value[:limit]}...({len(value) - limit} more chars)"


def sanitize_for_log(value: Any) -> Any:
    """Return a copy of a nested structure that is safe to log.

    Values under sensitive keys are replaced with REDACTED whatever their
    type, other strings are truncated, and everything else is copied
    through. The input is never modified.

    Args:
        value: Any JSON-like value (mappings, sequences, primitives).

    Returns:
        The sanitized copy.
    """
    if isinstance(value, Mapping):
        return {
            key: (
                REDACTED
                if is_sensitive_key(key) and entry is not None
                else sanitize_for_log(entry)
            )
            for key, entry in value.items()
        }
    if isinstance(value, (list, tuple, set, frozenset)):
        return [sanitize_for_log(entry) for entry in value]
    if isinstance(value, str):
        return truncate(value)
    return value


def sanitize_url_for_log(url: str) -> str:
    """Strip userinfo, query string and fragment from a URL."""
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return url.split("?", 1)[0].split("#", 1)[0]
    host = parts.hostname or ""
    if parts.port is not None:
        host = f"{host}:{parts.port}"
    return urlunsplit((parts.scheme, host, parts.path, "", ""))


def debug_log(
    logger: logging.Logger,
    enabled: bool,
    prefix: str,
    message: str,
    *args: Any,
) -> None:
    """Log an auth diagnostic message when debug-auth is turned on.

    Messages are emitted at INFO so they show up without changing the
    logger configuration. Callers must sanitize structured arguments.
    """
    if enabled:
        logger.info("[%s Debug] " + message, prefix, *args)
