"""The Blink Cameras integration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import CONF_PASSWORD, CONF_USERNAME
from homeassistant.exceptions import (
    ConfigEntryAuthFailed,
    ConfigEntryError,
    ConfigEntryNotReady,
)
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .api import BlinkApi
from .const import (
    CONF_DEBUG_AUTH,
    CONF_DEVICE_ID,
    CONF_PERSIST_AUTH,
    CONF_SHARED_TIER,
    CONF_TIER,
    CONF_TRUST_DEVICE,
    DEFAULT_DEBUG_AUTH,
    DEFAULT_PERSIST_AUTH,
    DEFAULT_TRUST_DEVICE,
    DOMAIN,
)
from .coordinator import BlinkCoordinator
from .exceptions import (
    BlinkApiError,
    BlinkAuthError,
    BlinkConfigurationError,
    BlinkNetworkError,
)
from .http_client import BlinkHttpClient
from .models import AuthStatus, Credentials
from .session import BlinkSessionManager
from .tiers import TierRouter
from .token_store import TokenStore, async_remove_persisted_auth

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

_LOGGER = logging.getLogger(__name__)

type BlinkConfigEntry = ConfigEntry[BlinkCoordinator]


async def async_setup_entry(
    hass: HomeAssistant,
    entry: BlinkConfigEntry,
) -> bool:
    """Set up a Blink account from a config entry.

    Builds the components leaf first (tier router, token store, session
    manager, HTTP client, API, coordinator), resumes the persisted session
    or logs in, and performs the first poll.

    Args:
        hass: The Home Assistant instance.
        entry: The config entry for this account.

    Returns:
        True if setup was successful.

    Raises:
        ConfigEntryAuthFailed: If the user has to log in again or enter a code.
        ConfigEntryNotReady: If Blink is unreachable or failing.
        ConfigEntryError: If the configuration cannot work.
    """
    debug = entry.options.get(CONF_DEBUG_AUTH, DEFAULT_DEBUG_AUTH)
    persist = entry.options.get(CONF_PERSIST_AUTH, DEFAULT_PERSIST_AUTH)

    try:
        router = TierRouter(
            entry.data.get(CONF_TIER),
            entry.data.get(CONF_SHARED_TIER),
            logger=_LOGGER.getChild("tiers"),
        )
    except BlinkConfigurationError as err:
        raise ConfigEntryError(str(err)) from err

    store: TokenStore | None = None
    if persist:
        try:
            store = await TokenStore.async_create(
                hass,
                entry.data[CONF_USERNAME],
                entry.data[CONF_DEVICE_ID],
                _LOGGER.getChild("storage"),
            )
        except BlinkConfigurationError as err:
            _LOGGER.warning("Blink auth persistence disabled: %s", err)

    credentials = Credentials(
        username=entry.data[CONF_USERNAME],
        password=entry.data[CONF_PASSWORD],
        device_id=entry.data[CONF_DEVICE_ID],
        trust_device=entry.options.get(CONF_TRUST_DEVICE, DEFAULT_TRUST_DEVICE),
    )
    session = async_get_clientsession(hass)
    auth = BlinkSessionManager(
        session,
        router,
        store,
        credentials,
        debug=debug,
        logger=_LOGGER.getChild("session"),
    )
    http = BlinkHttpClient(
        session,
        auth,
        router,
        debug=debug,
        logger=_LOGGER.getChild("http"),
    )
    api = BlinkApi(http, auth, router)

    await _async_start_session(auth, credentials)

    coordinator = BlinkCoordinator(hass, entry, api, auth, router)
    await coordinator.async_config_entry_first_refresh()

    entry.runtime_data = coordinator
    entry.async_on_unload(entry.add_update_listener(_async_update_listener))

    return True


async def _async_start_session(
    auth: BlinkSessionManager,
    credentials: Credentials,
) -> None:
    """Resume the persisted session or log in with the stored credentials."""
    state = await auth.async_resume()
    if state.status is AuthStatus.AUTHENTICATED:
        return

    try:
        state = await auth.async_login(credentials)
    except BlinkAuthError as err:
        raise ConfigEntryAuthFailed(f"Blink login failed: {err}") from err
    except (BlinkNetworkError, BlinkApiError) as err:
        raise ConfigEntryNotReady(f"Unable to reach Blink: {err}") from err

    if state.status is not AuthStatus.AUTHENTICATED:
        raise ConfigEntryAuthFailed(f"Blink login needs attention ({state.status})")


async def _async_update_listener(hass: HomeAssistant, entry: BlinkConfigEntry) -> None:
    """Reload the entry when options change."""
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(
    hass: HomeAssistant,
    entry: BlinkConfigEntry,
) -> bool:
    """Unload a config entry.

    The persisted session is kept so the next setup can resume it.
    """
    return True


async def async_remove_entry(
    hass: HomeAssistant,
    entry: BlinkConfigEntry,
) -> None:
    """Delete persisted auth state when the account is removed.

    Shared leftovers are only swept once no other Blink account remains.
    """
    others = [
        other
        for other in hass.config_entries.async_entries(DOMAIN)
        if other.entry_id != entry.entry_id
    ]
    await async_remove_persisted_auth(
        hass,
        entry.data[CONF_USERNAME],
        entry.data[CONF_DEVICE_ID],
        include_shared=not others,
    )
