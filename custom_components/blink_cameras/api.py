"""High-level Blink API for the Blink Cameras integration."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, cast

from .exceptions import BlinkApiError, BlinkAuthRequiredError
from .models import (
    ApiGroup,
    BlinkAccountInfo,
    BlinkCommandResponse,
    BlinkHomescreen,
    BlinkMediaResponse,
    RequestSpec,
)

if TYPE_CHECKING:
    from .http_client import BlinkHttpClient
    from .session import BlinkSessionManager
    from .tiers import TierRouter

_LOGGER = logging.getLogger(__name__)

# Device families with their own motion endpoints
DEVICE_CAMERA = "camera"
DEVICE_OWL = "owl"
DEVICE_DOORBELL = "doorbell"

DEFAULT_COMMAND_POLL_INTERVAL = 5  # seconds
DEFAULT_COMMAND_POLL_ATTEMPTS = 10


_DEVICE_PATHS: dict[str, str] = {
    DEVICE_CAMERA: "accounts/{account_id}/networks/{network_id}/cameras/{device_id}",
    DEVICE_OWL: "v1/accounts/{account_id}/networks/{network_id}/owls/{device_id}",
    DEVICE_DOORBELL: "v1/accounts/{account_id}/networks/{network_id}/doorbells/{device_id}",
}


def _device_path(
    account_id: int,
    network_id: int,
    device_type: str,
    device_id: int,
) -> str:
    try:
        template = _DEVICE_PATHS[device_type]
    except KeyError:
        raise ValueError(f"Unknown Blink device type: {device_type}") from None
    return template.format(
        account_id=account_id, network_id=network_id, device_id=device_id
    )


class BlinkApi:
    """Account-level operations on top of the resilient HTTP client.

    Account-scoped calls go to the shared API group. The account id comes
    from the session token, and is learned from the homescreen when the
    token does not carry one.

    Example:
        api = BlinkApi(http, manager, router)
        homescreen = await api.async_get_homescreen()
        await api.async_arm_network(homescreen["networks"][0]["id"])
    """

    __slots__ = ("_account_id", "_auth", "_http", "_router")

    def __init__(
        self,
        http: BlinkHttpClient,
        auth: BlinkSessionManager,
        router: TierRouter,
    ) -> None:
        """Initialize BlinkApi.

        Args:
            http: The resilient HTTP client.
            auth: The session manager, used to look up account identifiers.
            router: The tier router, used to build media URLs.
        """
        self._http = http
        self._auth = auth
        self._router = router
        self._account_id: int | None = None

    @property
    def account_id(self) -> int | None:
        """Return the account id, if known."""
        token = self._auth.token
        if token is not None and token.account_id is not None:
            return token.account_id
        return self._account_id

    async def _async_account_id(self) -> int:
        """Return the account id, fetching account info if needed.

        Raises:
            BlinkAuthRequiredError: If the account id cannot be determined.
        """
        account_id = self.account_id
        if account_id is not None:
            return account_id
        await self.async_get_account_info()
        account_id = self._account_id
        if account_id is None:
            raise BlinkAuthRequiredError("Blink account id is not known")
        return account_id

    async def async_get_account_info(self) -> BlinkAccountInfo:
        """Get account info, including the verification flags."""
        info = cast("BlinkAccountInfo", await self._http.async_get("v2/users/info"))
        if info.get("account_id") is not None:
            self._account_id = info["account_id"]
        return info

    async def async_get_homescreen(self) -> BlinkHomescreen:
        """Get the homescreen listing every network and device."""
        account_id = await self._async_account_id()
        homescreen = cast(
            "BlinkHomescreen",
            await self._http.async_get(
                f"v4/accounts/{account_id}/homescreen", api_group=ApiGroup.SHARED
            ),
        )
        account = homescreen.get("account") or {}
        if account.get("account_id") is not None:
            self._account_id = account["account_id"]
        return homescreen

    async def async_arm_network(self, network_id: int) -> BlinkCommandResponse:
        """Arm a network (enable motion detection for its devices)."""
        account_id = await self._async_account_id()
        return cast(
            "BlinkCommandResponse",
            await self._http.async_post(
                f"v1/accounts/{account_id}/networks/{network_id}/state/arm",
                api_group=ApiGroup.SHARED,
            ),
        )

    async def async_disarm_network(self, network_id: int) -> BlinkCommandResponse:
        """Disarm a network."""
        account_id = await self._async_account_id()
        return cast(
            "BlinkCommandResponse",
            await self._http.async_post(
                f"v1/accounts/{account_id}/networks/{network_id}/state/disarm",
                api_group=ApiGroup.SHARED,
            ),
        )

    async def async_enable_motion(
        self,
        network_id: int,
        device_id: int,
        device_type: str = DEVICE_CAMERA,
    ) -> None:
        """Enable motion detection for a camera, owl or doorbell.

        Raises:
            ValueError: If the device type is unknown.
        """
        account_id = await self._async_account_id()
        path = _device_path(account_id, network_id, device_type, device_id)
        await self._http.async_post(f"{path}/enable", api_group=ApiGroup.SHARED)

    async def async_disable_motion(
        self,
        network_id: int,
        device_id: int,
        device_type: str = DEVICE_CAMERA,
    ) -> None:
        """Disable motion detection for a camera, owl or doorbell.

        Raises:
            ValueError: If the device type is unknown.
        """
        account_id = await self._async_account_id()
        path = _device_path(account_id, network_id, device_type, device_id)
        await self._http.async_post(f"{path}/disable", api_group=ApiGroup.SHARED)

    async def async_get_media(
        self,
        since: str | None = None,
        page: int | None = None,
        until: str | None = None,
    ) -> BlinkMediaResponse:
        """List recorded clips.

        Args:
            since: ISO timestamp of the oldest clip to include.
            page: Pagination key returned by the previous page.
            until: ISO timestamp of the newest clip to include.
        """
        account_id = await self._async_account_id()
        params: dict[str, str] = {}
        if since:
            params["start_time"] = since
        if until:
            params["end_time"] = until
        if page is not None:
            params["pagination_key"] = str(page)
        return cast(
            "BlinkMediaResponse",
            await self._http.async_request(
                RequestSpec(
                    "POST",
                    f"v4/accounts/{account_id}/media",
                    api_group=ApiGroup.SHARED,
                    params=params or None,
                    json={},
                )
            ),
        )

    async def async_get_unwatched_media(self) -> BlinkMediaResponse:
        """List clips that have not been watched yet."""
        account_id = await self._async_account_id()
        return cast(
            "BlinkMediaResponse",
            await self._http.async_get(
                f"v4/accounts/{account_id}/unwatched_media", api_group=ApiGroup.SHARED
            ),
        )

    async def async_request_thumbnail(
        self,
        network_id: int,
        device_id: int,
        device_type: str = DEVICE_CAMERA,
    ) -> BlinkCommandResponse:
        """Ask a device to capture a new thumbnail.

        Raises:
            ValueError: If the device type is unknown.
        """
        account_id = await self._async_account_id()
        path = _device_path(account_id, network_id, device_type, device_id)
        return cast(
            "BlinkCommandResponse",
            await self._http.async_post(f"{path}/thumbnail", api_group=ApiGroup.SHARED),
        )

    async def async_get_command_status(
        self,
        network_id: int,
        command_id: int,
    ) -> dict[str, Any]:
        """Get the status of an asynchronous command."""
        account_id = await self._async_account_id()
        return cast(
            "dict[str, Any]",
            await self._http.async_get(
                f"accounts/{account_id}/networks/{network_id}/commands/{command_id}",
                api_group=ApiGroup.SHARED,
            ),
        )

    async def async_wait_for_command(
        self,
        network_id: int,
        command_id: int,
        max_attempts: int = DEFAULT_COMMAND_POLL_ATTEMPTS,
    ) -> dict[str, Any]:
        """Poll a command until it completes.

        Raises:
            BlinkApiError: If the command failed or did not complete in time.
        """
        for attempt in range(1, max_attempts + 1):
            status = await self.async_get_command_status(network_id, command_id)
            _LOGGER.debug(
                "Blink command %s poll %d/%d: %s",
                command_id,
                attempt,
                max_attempts,
                status.get("status"),
            )
            if status.get("complete") or status.get("status") == "complete":
                return status
            if status.get("status") == "failed":
                raise BlinkApiError(f"Blink command {command_id} failed")
            await asyncio.sleep(
                status.get("polling_interval") or DEFAULT_COMMAND_POLL_INTERVAL
            )
        raise BlinkApiError(
            f"Blink command {command_id} did not complete after {max_attempts} polls"
        )

    def media_url(self, path: str) -> str:
        """Return the absolute URL for a media or thumbnail path."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self._router.root_url(ApiGroup.SHARED)}{path.lstrip('/')}"
