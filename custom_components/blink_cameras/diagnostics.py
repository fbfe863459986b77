"""Diagnostics support for the Blink Cameras integration."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from homeassistant.components.diagnostics import async_redact_data
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from .log_sanitizer import sanitize_for_log

if TYPE_CHECKING:
    from .coordinator import BlinkCoordinator

# Config entry keys that identify the account
TO_REDACT: set[str] = {
    "password",
    "username",
    "device_id",
    "title",
    "unique_id",
}


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant,
    entry: ConfigEntry[BlinkCoordinator],
) -> dict[str, Any]:
    """Return diagnostics for a config entry.

    Polled account data goes through the same redaction rules as the logs,
    so the output is safe to attach to bug reports.

    Args:
        hass: The Home Assistant instance.
        entry: The config entry to get diagnostics for.

    Returns:
        Dictionary of redacted diagnostics data.
    """
    coordinator: BlinkCoordinator = entry.runtime_data
    auth = coordinator.auth
    token = auth.token

    data: dict[str, Any] | None = None
    if coordinator.data is not None:
        data = sanitize_for_log(
            {
                "account": coordinator.data.account,
                "networks": coordinator.data.networks,
                "sync_modules": coordinator.data.sync_modules,
                "cameras": coordinator.data.cameras,
                "owls": coordinator.data.owls,
                "doorbells": coordinator.data.doorbells,
            }
        )

    return {
        "config_entry": async_redact_data(entry.as_dict(), TO_REDACT),
        "auth": {
            "status": str(auth.status),
            "tier": coordinator.router.tier,
            "shared_tier": coordinator.router.shared_tier,
            "token_expires_at": token.expires_at.isoformat() if token else None,
            "persistence_enabled": auth.persistence_enabled,
        },
        "coordinator": {
            "last_update_success": coordinator.last_update_success,
            "consecutive_failures": coordinator.consecutive_failures,
        },
        "data": data,
    }
