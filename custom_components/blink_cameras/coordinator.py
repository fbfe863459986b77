"""Data update coordinator for the Blink Cameras integration."""

from __future__ import annotations

import logging
import time
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.exceptions import ConfigEntryAuthFailed
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from .const import CONF_SCAN_INTERVAL, DEFAULT_SCAN_INTERVAL, DOMAIN
from .exceptions import (
    BlinkAuthRequiredError,
    BlinkError,
    BlinkInvalidCredentialsError,
    BlinkNetworkError,
)
from .models import BlinkData

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from .api import BlinkApi
    from .session import BlinkSessionManager
    from .tiers import TierRouter

_LOGGER = logging.getLogger(__name__)


class BlinkCoordinator(DataUpdateCoordinator[BlinkData]):
    """Poll the Blink homescreen and share it with all entities.

    Failure handling:
    - A session that needs the user (new password or verification code)
      triggers the reauthentication flow
    - Network and API failures mark entities unavailable until the next
      successful poll
    - Consecutive failures are tracked for diagnostics
    """

    config_entry: ConfigEntry[Any]

    def __init__(
        self,
        hass: HomeAssistant,
        entry: ConfigEntry[Any],
        api: BlinkApi,
        auth: BlinkSessionManager,
        router: TierRouter,
    ) -> None:
        """Initialize the coordinator.

        Args:
            hass: The Home Assistant instance.
            entry: The config entry for this account.
            api: The high-level Blink API.
            auth: The session manager owning the account's tokens.
            router: The tier router in use for the account.
        """
        scan_interval = entry.options.get(CONF_SCAN_INTERVAL, DEFAULT_SCAN_INTERVAL)

        super().__init__(
            hass,
            _LOGGER,
            config_entry=entry,
            name=DOMAIN,
            update_interval=timedelta(seconds=scan_interval),
        )
        self.api = api
        self.auth = auth
        self.router = router
        self._consecutive_failures: int = 0

    @property
    def consecutive_failures(self) -> int:
        """Return the number of consecutive update failures.

        Reset to zero on the next successful update.
        """
        return self._consecutive_failures

    async def _async_update_data(self) -> BlinkData:
        """Fetch the homescreen.

        Raises:
            ConfigEntryAuthFailed: If the session needs the user to log in again.
            UpdateFailed: For any other Blink error.
        """
        start = time.monotonic()
        try:
            homescreen = await self.api.async_get_homescreen()
        except (BlinkAuthRequiredError, BlinkInvalidCredentialsError) as err:
            self._consecutive_failures += 1
            raise ConfigEntryAuthFailed(
                f"Blink authentication required for {self.config_entry.title}: {err}"
            ) from err
        except BlinkNetworkError as err:
            self._consecutive_failures += 1
            self._log_failure("Connection to Blink failed", err)
            raise UpdateFailed(f"Unable to connect to Blink: {err}") from err
        except BlinkError as err:
            self._consecutive_failures += 1
            self._log_failure("Error communicating with Blink", err)
            raise UpdateFailed(f"Error communicating with Blink: {err}") from err

        if self._consecutive_failures > 0:
            _LOGGER.info(
                "Connection to Blink restored after %d failed attempts",
                self._consecutive_failures,
            )
            self._consecutive_failures = 0
        else:
            _LOGGER.debug(
                "Finished fetching Blink data in %.3f seconds", time.monotonic() - start
            )

        return BlinkData(
            account=dict(homescreen.get("account") or {}),
            networks=list(homescreen.get("networks") or []),
            sync_modules=list(homescreen.get("sync_modules") or []),
            cameras=list(homescreen.get("cameras") or []),
            owls=list(homescreen.get("owls") or []),
            doorbells=list(homescreen.get("doorbells") or []),
        )

    def _log_failure(self, message: str, err: BlinkError) -> None:
        if self._consecutive_failures == 1:
            _LOGGER.warning(
                "%s: %s. Entities will be unavailable until the connection is restored",
                message,
                err,
            )
        else:
            _LOGGER.debug(
                "%s (failure %d): %s", message, self._consecutive_failures, err
            )
