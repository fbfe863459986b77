"""Wire-level helpers shared by the session manager and the HTTP client."""

from __future__ import annotations

import math
from email.utils import parsedate_to_datetime
from typing import Any

from homeassistant.util import dt as dt_util
from homeassistant.util.json import json_loads

from .const import APP_BUILD_HEADER, DEFAULT_LOCALE, USER_AGENT
from .log_sanitizer import truncate


def build_default_headers() -> dict[str, str]:
    """Return the headers the mobile app adds to OAuth and REST calls."""
    return {
        "APP-BUILD": APP_BUILD_HEADER,
        "User-Agent": USER_AGENT,
        "LOCALE": DEFAULT_LOCALE,
        "X-Blink-Time-Zone": str(dt_util.get_default_time_zone()),
    }


def auth_headers(access_token: str, token_auth: str | None = None) -> dict[str, str]:
    """Return the bearer headers for an authenticated request."""
    headers = {"Authorization": f"Bearer {access_token}"}
    if token_auth:
        headers["TOKEN-AUTH"] = token_auth
    return headers


def decode_body(text: str) -> Any:
    """Decode a response body.

    Empty bodies decode to an empty dict. Bodies that are not JSON are
    returned as text so error reports can still show them.
    """
    if not text or not text.strip():
        return {}
    try:
        return json_loads(text)
    except ValueError:
        return text


def error_detail(body: Any) -> str | None:
    """Extract the server's error message from a decoded body."""
    if isinstance(body, dict):
        for key in ("message", "error_description", "error", "msg"):
            value = body.get(key)
            if value:
                return str(value)
        return None
    if isinstance(body, str) and body:
        return truncate(body, 200)
    return None


def parse_retry_after(value: str | None) -> float | None:
    """Parse a Retry-After header into a delay in seconds.

    Accepts delta-seconds or an HTTP date. Returns None for missing or
    invalid values.
    """
    if not value:
        return None
    value = value.strip()
    try:
        seconds = float(value)
        if not math.isfinite(seconds):
            return None
    except ValueError:
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
        if when.tzinfo is None:
            when = when.replace(tzinfo=dt_util.UTC)
        seconds = (when - dt_util.utcnow()).total_seconds()
    return max(seconds, 0.0)
