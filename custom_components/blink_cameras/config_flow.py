"""Config flow for the Blink Cameras integration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import uuid4

import voluptuous as vol
from homeassistant.config_entries import (
    ConfigEntry,
    ConfigFlow,
    ConfigFlowResult,
    OptionsFlow,
)
from homeassistant.const import CONF_PASSWORD, CONF_USERNAME
from homeassistant.core import callback
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .const import (
    CONF_CODE,
    CONF_DEBUG_AUTH,
    CONF_DEVICE_ID,
    CONF_PERSIST_AUTH,
    CONF_SCAN_INTERVAL,
    CONF_SHARED_TIER,
    CONF_TIER,
    CONF_TRUST_DEVICE,
    DEFAULT_DEBUG_AUTH,
    DEFAULT_PERSIST_AUTH,
    DEFAULT_SCAN_INTERVAL,
    DEFAULT_TIER,
    DEFAULT_TRUST_DEVICE,
    DOMAIN,
    MAX_SCAN_INTERVAL,
    MIN_SCAN_INTERVAL,
)
from .exceptions import (
    BlinkApiError,
    BlinkAuthError,
    BlinkConfigurationError,
    BlinkError,
    BlinkInvalidCodeError,
    BlinkInvalidCredentialsError,
    BlinkNetworkError,
)
from .models import (
    Authenticated,
    AuthState,
    AuthStatus,
    Credentials,
    PendingAccountVerification,
    PendingClientVerification,
    PendingTwoFactor,
)
from .session import BlinkSessionManager
from .tiers import TierRouter
from .token_store import TokenStore

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any

_LOGGER = logging.getLogger(__name__)

STEP_USER_DATA_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_USERNAME): str,
        vol.Required(CONF_PASSWORD): str,
        vol.Optional(CONF_TIER, default=DEFAULT_TIER): str,
        vol.Optional(CONF_SHARED_TIER): str,
    }
)

STEP_REAUTH_DATA_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_PASSWORD): str,
    }
)

STEP_CODE_DATA_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_CODE): str,
    }
)

# Form step shown for each pending verification stage
STEP_FOR_STATUS: dict[AuthStatus, str] = {
    AuthStatus.PENDING_TWO_FACTOR: "two_factor",
    AuthStatus.PENDING_CLIENT_VERIFICATION: "client_verification",
    AuthStatus.PENDING_ACCOUNT_VERIFICATION: "account_verification",
}


class BlinkConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Blink Cameras.

    The login is driven by a session manager that lives for the duration of
    the flow, so each verification step continues the same login attempt.
    """

    VERSION = 1

    def __init__(self) -> None:
        """Initialize the config flow."""
        self._manager: BlinkSessionManager | None = None
        self._data: dict[str, Any] = {}
        self._reauth_entry: ConfigEntry[Any] | None = None

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: ConfigEntry[Any],
    ) -> BlinkOptionsFlow:
        """Get the options flow for this handler."""
        return BlinkOptionsFlow(config_entry)

    async def async_step_user(
        self,
        user_input: dict[str, Any] | None = None,
    ) -> ConfigFlowResult:
        """Handle the initial step.

        Collects the account email, password and tier, then starts the login.
        """
        errors: dict[str, str] = {}

        if user_input is not None:
            username = user_input[CONF_USERNAME].strip()
            await self.async_set_unique_id(username.lower())
            self._abort_if_unique_id_configured()

            self._data = {
                CONF_USERNAME: username,
                CONF_PASSWORD: user_input[CONF_PASSWORD],
                CONF_DEVICE_ID: str(uuid4()),
                CONF_TIER: (user_input.get(CONF_TIER) or DEFAULT_TIER).strip().lower(),
            }
            if shared_tier := (user_input.get(CONF_SHARED_TIER) or "").strip():
                self._data[CONF_SHARED_TIER] = shared_tier.lower()

            state = await self._async_start_login(errors)
            if state is not None:
                return await self._async_next_step(state)

        return self.async_show_form(
            step_id="user",
            data_schema=STEP_USER_DATA_SCHEMA,
            errors=errors,
        )

    async def async_step_two_factor(
        self,
        user_input: dict[str, Any] | None = None,
    ) -> ConfigFlowResult:
        """Ask for the two-factor code Blink sent by email or SMS."""
        return await self._async_step_code("two_factor", user_input)

    async def async_step_client_verification(
        self,
        user_input: dict[str, Any] | None = None,
    ) -> ConfigFlowResult:
        """Ask for the PIN that verifies this client."""
        return await self._async_step_code("client_verification", user_input)

    async def async_step_account_verification(
        self,
        user_input: dict[str, Any] | None = None,
    ) -> ConfigFlowResult:
        """Ask for the PIN that verifies the account or phone number."""
        return await self._async_step_code("account_verification", user_input)

    async def _async_step_code(
        self,
        step_id: str,
        user_input: dict[str, Any] | None,
    ) -> ConfigFlowResult:
        """Submit a verification code and move to the next step.

        A rejected code shows the form again until the attempts run out.
        """
        errors: dict[str, str] = {}

        if user_input is not None and self._manager is not None:
            try:
                state = await self._manager.async_submit_code(user_input[CONF_CODE].strip())
            except BlinkInvalidCodeError:
                if self._manager.status is AuthStatus.FAILED:
                    return self.async_abort(reason="verification_failed")
                errors["base"] = "invalid_code"
            except BlinkNetworkError:
                errors["base"] = "cannot_connect"
            except BlinkApiError as err:
                _LOGGER.debug("Blink API error during verification: %s", err)
                errors["base"] = "cannot_connect"
            except BlinkAuthError as err:
                _LOGGER.debug("Blink verification failed: %s", err)
                return self.async_abort(reason="verification_failed")
            except Exception:
                _LOGGER.exception("Unexpected error during Blink verification")
                errors["base"] = "unknown"
            else:
                return await self._async_next_step(state)

        return self.async_show_form(
            step_id=step_id,
            data_schema=STEP_CODE_DATA_SCHEMA,
            errors=errors,
        )

    async def _async_start_login(self, errors: dict[str, str]) -> AuthState | None:
        """Build a session manager for the collected data and log in.

        Returns:
            The resulting auth state, or None with `errors` populated.
        """
        try:
            router = TierRouter(self._data[CONF_TIER], self._data.get(CONF_SHARED_TIER))
        except BlinkConfigurationError:
            errors["base"] = "invalid_tier"
            return None

        options: Mapping[str, Any] = {}
        if self._reauth_entry is not None:
            options = self._reauth_entry.options

        store: TokenStore | None = None
        if options.get(CONF_PERSIST_AUTH, DEFAULT_PERSIST_AUTH):
            try:
                store = await TokenStore.async_create(
                    self.hass, self._data[CONF_USERNAME], self._data[CONF_DEVICE_ID]
                )
            except BlinkConfigurationError as err:
                _LOGGER.warning("Blink auth persistence unavailable: %s", err)

        trust_device = options.get(CONF_TRUST_DEVICE, DEFAULT_TRUST_DEVICE)
        credentials = Credentials(
            username=self._data[CONF_USERNAME],
            password=self._data[CONF_PASSWORD],
            device_id=self._data[CONF_DEVICE_ID],
            trust_device=trust_device,
        )
        self._manager = BlinkSessionManager(
            async_get_clientsession(self.hass),
            router,
            store,
            credentials,
            debug=options.get(CONF_DEBUG_AUTH, DEFAULT_DEBUG_AUTH),
        )

        try:
            return await self._manager.async_login(credentials)
        except BlinkInvalidCredentialsError:
            _LOGGER.debug("Blink rejected the credentials for %s", self._data[CONF_USERNAME])
            errors["base"] = "invalid_auth"
        except BlinkNetworkError:
            _LOGGER.debug("Cannot connect to Blink")
            errors["base"] = "cannot_connect"
        except BlinkError as err:
            _LOGGER.debug("Blink login failed: %s", err)
            errors["base"] = "cannot_connect"
        except Exception:
            _LOGGER.exception("Unexpected error logging in to Blink")
            errors["base"] = "unknown"
        return None

    async def _async_next_step(self, state: AuthState) -> ConfigFlowResult:
        """Route to the form for a pending stage or finish the flow."""
        match state:
            case PendingTwoFactor() | PendingClientVerification() | PendingAccountVerification():
                return self.async_show_form(
                    step_id=STEP_FOR_STATUS[state.status],
                    data_schema=STEP_CODE_DATA_SCHEMA,
                    errors={},
                )
            case Authenticated():
                return self._async_finish()
            case _:
                return self.async_abort(reason="verification_failed")

    def _async_finish(self) -> ConfigFlowResult:
        if self._reauth_entry is not None:
            return self.async_update_reload_and_abort(
                self._reauth_entry,
                data_updates={CONF_PASSWORD: self._data[CONF_PASSWORD]},
            )
        return self.async_create_entry(
            title=self._data[CONF_USERNAME],
            data=self._data,
        )

    async def async_step_reauth(
        self,
        entry_data: Mapping[str, Any],
    ) -> ConfigFlowResult:
        """Handle reauthentication.

        Called when setup or the coordinator raises ConfigEntryAuthFailed.
        """
        self._reauth_entry = self.hass.config_entries.async_get_entry(self.context["entry_id"])
        return await self.async_step_reauth_confirm()

    async def async_step_reauth_confirm(
        self,
        user_input: dict[str, Any] | None = None,
    ) -> ConfigFlowResult:
        """Ask for the password again and repeat the login.

        The username and device id are kept from the original entry.
        """
        errors: dict[str, str] = {}

        if user_input is not None and self._reauth_entry is not None:
            self._data = {
                **self._reauth_entry.data,
                CONF_PASSWORD: user_input[CONF_PASSWORD],
            }
            self._data.setdefault(CONF_TIER, DEFAULT_TIER)
            state = await self._async_start_login(errors)
            if state is not None:
                return await self._async_next_step(state)

        return self.async_show_form(
            step_id="reauth_confirm",
            data_schema=STEP_REAUTH_DATA_SCHEMA,
            errors=errors,
            description_placeholders={
                "username": self._reauth_entry.data[CONF_USERNAME]
                if self._reauth_entry is not None
                else ""
            },
        )


class BlinkOptionsFlow(OptionsFlow):
    """Handle Blink Cameras options.

    Options take effect after the entry reloads.
    """

    def __init__(self, config_entry: ConfigEntry[Any]) -> None:
        """Initialize the options flow."""
        self._config_entry = config_entry

    async def async_step_init(
        self,
        user_input: dict[str, Any] | None = None,
    ) -> ConfigFlowResult:
        """Manage the options."""
        if user_input is not None:
            return self.async_create_entry(title="", data=user_input)

        options = self._config_entry.options
        return self.async_show_form(
            step_id="init",
            data_schema=vol.Schema(
                {
                    vol.Required(
                        CONF_SCAN_INTERVAL,
                        default=options.get(CONF_SCAN_INTERVAL, DEFAULT_SCAN_INTERVAL),
                    ): vol.All(
                        vol.Coerce(int),
                        vol.Range(min=MIN_SCAN_INTERVAL, max=MAX_SCAN_INTERVAL),
                    ),
                    vol.Required(
                        CONF_PERSIST_AUTH,
                        default=options.get(CONF_PERSIST_AUTH, DEFAULT_PERSIST_AUTH),
                    ): bool,
                    vol.Required(
                        CONF_TRUST_DEVICE,
                        default=options.get(CONF_TRUST_DEVICE, DEFAULT_TRUST_DEVICE),
                    ): bool,
                    vol.Required(
                        CONF_DEBUG_AUTH,
                        default=options.get(CONF_DEBUG_AUTH, DEFAULT_DEBUG_AUTH),
                    ): bool,
                }
            ),
        )
