"""Fixtures for Blink Cameras integration tests."""

from __future__ import annotations

import json
from collections.abc import Generator
from datetime import timedelta
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest
from homeassistant.const import CONF_PASSWORD, CONF_USERNAME
from homeassistant.util import dt as dt_util
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.blink_cameras.const import CONF_DEVICE_ID, CONF_TIER, DOMAIN
from custom_components.blink_cameras.models import Credentials, TokenSet

# Auto-use fixture to enable custom component loading for all tests
pytest_plugins = "pytest_homeassistant_custom_component"

TEST_USERNAME = "user@example.com"
TEST_PASSWORD = "hunter2"
TEST_DEVICE_ID = "3b5e8c0a-6f1d-4a8e-9d0b-2f6a7c1e4d90"

OAUTH_URL = "https://api.oauth.blink.com/oauth/token"


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(
    enable_custom_integrations: None,
) -> Generator[None]:
    """Enable custom integrations in Home Assistant."""
    yield


@pytest.fixture
def mock_config_entry() -> MockConfigEntry:
    """Create a mock config entry."""
    return MockConfigEntry(
        domain=DOMAIN,
        title=TEST_USERNAME,
        data={
            CONF_USERNAME: TEST_USERNAME,
            CONF_PASSWORD: TEST_PASSWORD,
            CONF_DEVICE_ID: TEST_DEVICE_ID,
            CONF_TIER: "prod",
        },
        unique_id=TEST_USERNAME,
        version=1,
    )


@pytest.fixture
def credentials() -> Credentials:
    """Return login credentials without verification codes."""
    return Credentials(
        username=TEST_USERNAME,
        password=TEST_PASSWORD,
        device_id=TEST_DEVICE_ID,
    )


def make_token(
    access_token: str = "access-1",
    refresh_token: str | None = "refresh-1",
    expires_in: int = 3600,
    tier: str = "prod",
    account_id: int | None = 1001,
    client_id: int | None = 2002,
) -> TokenSet:
    """Build a token set expiring `expires_in` seconds from now."""
    return TokenSet(
        access_token=access_token,
        expires_at=dt_util.utcnow() + timedelta(seconds=expires_in),
        tier=tier,
        refresh_token=refresh_token,
        account_id=account_id,
        client_id=client_id,
    )


def oauth_body(
    access_token: str = "access-1",
    refresh_token: str = "refresh-1",
    expires_in: int = 3600,
    **extra: Any,
) -> dict[str, Any]:
    """Return a token endpoint success body."""
    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "expires_in": expires_in,
        "token_type": "Bearer",
        **extra,
    }


def create_mock_response(
    body: Any = None,
    status: int = 200,
    headers: dict[str, str] | None = None,
) -> MagicMock:
    """Create a mock aiohttp response.

    Args:
        body: Decoded body (serialised to JSON) or raw text.
        status: HTTP status code.
        headers: Response headers.

    Returns:
        Mock response object.
    """
    if body is None:
        text = ""
    elif isinstance(body, str):
        text = body
    else:
        text = json.dumps(body)
    mock_response = MagicMock()
    mock_response.status = status
    mock_response.headers = headers or {}
    mock_response.text = AsyncMock(return_value=text)
    return mock_response


class MockBlinkSession:
    """A fake aiohttp session that answers requests by URL fragment.

    Each route holds a queue of responses (or exceptions); the last one is
    repeated once the queue is down to it. Every request is recorded.
    """

    def __init__(self) -> None:
        """Initialize the fake session."""
        self._routes: list[tuple[str, str, list[MagicMock | Exception]]] = []
        self.calls: list[dict[str, Any]] = []
        self.session = MagicMock(spec=aiohttp.ClientSession)
        self.session.request = MagicMock(side_effect=self._request)

    def add(
        self,
        method: str,
        fragment: str,
        *responses: MagicMock | Exception,
    ) -> None:
        """Queue responses for requests whose URL contains `fragment`."""
        self._routes.append((method, fragment, list(responses)))

    def calls_to(self, fragment: str) -> list[dict[str, Any]]:
        """Return the recorded requests whose URL contains `fragment`."""
        return [call for call in self.calls if fragment in call["url"]]

    def _request(self, method: str, url: str, **kwargs: Any) -> MagicMock:
        self.calls.append({"method": method, "url": url, **kwargs})
        for route_method, fragment, responses in self._routes:
            if route_method == method and fragment in url:
                response = responses.pop(0) if len(responses) > 1 else responses[0]
                if isinstance(response, Exception):
                    raise response
                context_manager = MagicMock()
                context_manager.__aenter__ = AsyncMock(return_value=response)
                context_manager.__aexit__ = AsyncMock(return_value=None)
                return context_manager
        raise AssertionError(f"Unexpected request {method} {url}")


@pytest.fixture
def blink_session() -> MockBlinkSession:
    """Return a fake Blink session with no routes."""
    return MockBlinkSession()


@pytest.fixture
def mock_store() -> MagicMock:
    """Return a token store that keeps nothing."""
    store = MagicMock()
    store.async_load = AsyncMock(return_value=None)
    store.async_save = AsyncMock()
    store.async_delete = AsyncMock()
    return store


@pytest.fixture
def mock_homescreen() -> dict[str, Any]:
    """Return a homescreen response with one of each device family."""
    return {
        "account": {"id": 1001, "account_id": 1001, "email": TEST_USERNAME},
        "networks": [{"id": 300, "name": "Home", "armed": False}],
        "sync_modules": [{"id": 400, "network_id": 300, "serial": "G8T1-0000-0001"}],
        "cameras": [{"id": 500, "network_id": 300, "name": "Porch", "enabled": True}],
        "owls": [{"id": 600, "network_id": 300, "name": "Hall", "enabled": False}],
        "doorbells": [{"id": 700, "network_id": 300, "name": "Front door"}],
    }
