"""Tests for the Blink exception hierarchy."""

from __future__ import annotations

import pytest

from custom_components.blink_cameras.exceptions import (
    BlinkAccountVerificationRequiredError,
    BlinkApiError,
    BlinkAuthError,
    BlinkAuthRequiredError,
    BlinkClientVerificationRequiredError,
    BlinkConfigurationError,
    BlinkError,
    BlinkInvalidCodeError,
    BlinkInvalidCredentialsError,
    BlinkNetworkError,
    BlinkRateLimitedError,
    BlinkRefreshFailedError,
    BlinkRequestError,
    BlinkServerError,
    BlinkStorageError,
    BlinkTimeoutError,
    BlinkTokenExpiredError,
    BlinkTwoFactorRequiredError,
    BlinkVerificationRequiredError,
)


class TestBlinkError:
    """Tests for the base BlinkError exception."""

    def test_message_preserved(self) -> None:
        """Test that the error message is preserved."""
        message = "Something went wrong"
        with pytest.raises(BlinkError) as exc_info:
            raise BlinkError(message)
        assert str(exc_info.value) == message

    def test_inherits_from_exception(self) -> None:
        """Test that BlinkError inherits from Exception."""
        assert issubclass(BlinkError, Exception)


class TestHierarchy:
    """Tests for the parent of each exception."""

    @pytest.mark.parametrize(
        ("child", "parent"),
        [
            (BlinkNetworkError, BlinkError),
            (BlinkTimeoutError, BlinkNetworkError),
            (BlinkAuthError, BlinkError),
            (BlinkInvalidCredentialsError, BlinkAuthError),
            (BlinkInvalidCodeError, BlinkAuthError),
            (BlinkTokenExpiredError, BlinkAuthError),
            (BlinkRefreshFailedError, BlinkAuthError),
            (BlinkAuthRequiredError, BlinkAuthError),
            (BlinkVerificationRequiredError, BlinkAuthRequiredError),
            (BlinkTwoFactorRequiredError, BlinkVerificationRequiredError),
            (BlinkClientVerificationRequiredError, BlinkVerificationRequiredError),
            (BlinkAccountVerificationRequiredError, BlinkVerificationRequiredError),
            (BlinkApiError, BlinkError),
            (BlinkRequestError, BlinkApiError),
            (BlinkRateLimitedError, BlinkApiError),
            (BlinkServerError, BlinkApiError),
            (BlinkConfigurationError, BlinkError),
            (BlinkStorageError, BlinkError),
        ],
    )
    def test_parent(self, child: type[Exception], parent: type[Exception]) -> None:
        """Test that each exception derives from its parent."""
        assert issubclass(child, parent)

    def test_network_errors_are_not_auth_errors(self) -> None:
        """Test that a timeout is never mistaken for an auth failure."""
        assert not issubclass(BlinkTimeoutError, BlinkAuthError)


class TestBlinkApiError:
    """Tests for BlinkApiError and its subclasses."""

    def test_status_and_detail(self) -> None:
        """Test that status and detail are stored."""
        err = BlinkRequestError("Bad request", status=400, detail="missing pin")
        assert err.status == 400
        assert err.detail == "missing pin"
        assert str(err) == "Bad request"

    def test_defaults(self) -> None:
        """Test that status and detail default to None."""
        err = BlinkApiError("Invalid JSON")
        assert err.status is None
        assert err.detail is None

    def test_rate_limited_defaults_to_429(self) -> None:
        """Test that BlinkRateLimitedError carries status 429 and retry_after."""
        err = BlinkRateLimitedError("Slow down", retry_after=2.0)
        assert err.status == 429
        assert err.retry_after == 2.0
