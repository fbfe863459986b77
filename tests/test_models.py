"""Tests for Blink data models."""

from __future__ import annotations

from datetime import timedelta

import pytest
from homeassistant.util import dt as dt_util

from custom_components.blink_cameras.const import DEFAULT_TOKEN_LIFETIME
from custom_components.blink_cameras.models import (
    Authenticated,
    AuthStatus,
    Credentials,
    Expired,
    Failed,
    PendingAccountVerification,
    PendingClientVerification,
    PendingTwoFactor,
    PersistedAuthRecord,
    TokenSet,
    Unauthenticated,
)

from .conftest import TEST_DEVICE_ID, TEST_PASSWORD, TEST_USERNAME, make_token


class TestCredentials:
    """Tests for Credentials."""

    def test_secrets_not_in_repr(self) -> None:
        """Test that the password and codes stay out of repr."""
        creds = Credentials(
            username=TEST_USERNAME,
            password=TEST_PASSWORD,
            device_id=TEST_DEVICE_ID,
            two_factor_code="123456",
        )
        assert TEST_PASSWORD not in repr(creds)
        assert "123456" not in repr(creds)

    def test_with_codes_cleared(self) -> None:
        """Test that one-shot codes are dropped."""
        creds = Credentials(
            username=TEST_USERNAME,
            password=TEST_PASSWORD,
            device_id=TEST_DEVICE_ID,
            two_factor_code="1",
            client_verification_code="2",
            account_verification_code="3",
        )

        cleared = creds.with_codes_cleared()

        assert cleared.two_factor_code is None
        assert cleared.client_verification_code is None
        assert cleared.account_verification_code is None
        assert cleared.password == TEST_PASSWORD


class TestTokenSet:
    """Tests for TokenSet."""

    def test_from_oauth(self) -> None:
        """Test building a token set from a token response."""
        token = TokenSet.from_oauth(
            {"access_token": "a", "refresh_token": "r", "expires_in": 3600, "account_id": 7},
            tier="prod",
            token_auth="ta",
        )
        assert token.access_token == "a"
        assert token.refresh_token == "r"
        assert token.account_id == 7
        assert token.token_auth == "ta"
        assert not token.expires_within(timedelta(minutes=59))

    def test_from_oauth_without_lifetime(self) -> None:
        """Test that a response without expires_in gets the default lifetime."""
        token = TokenSet.from_oauth({"access_token": "a"}, tier="prod")

        assert not token.expires_within(timedelta(seconds=DEFAULT_TOKEN_LIFETIME - 60))
        assert token.expires_within(timedelta(seconds=DEFAULT_TOKEN_LIFETIME + 60))

    def test_from_oauth_without_access_token(self) -> None:
        """Test that a response without an access token is rejected."""
        with pytest.raises(KeyError):
            TokenSet.from_oauth({"expires_in": 10}, tier="prod")  # type: ignore[typeddict-item]

    def test_expiry_never_moves_backwards(self) -> None:
        """Test that a shorter-lived refresh keeps the previous expiry."""
        previous = make_token(expires_in=7200)

        token = TokenSet.from_oauth(
            {"access_token": "b", "expires_in": 60}, tier="prod", previous=previous
        )

        assert token.expires_at == previous.expires_at

    def test_carries_over_missing_fields(self) -> None:
        """Test that omitted identifiers and refresh token are kept."""
        previous = make_token(account_id=5, client_id=6, refresh_token="keep")

        token = TokenSet.from_oauth(
            {"access_token": "b", "expires_in": 3600}, tier="prod", previous=previous
        )

        assert token.account_id == 5
        assert token.client_id == 6
        assert token.refresh_token == "keep"

    def test_is_expired(self) -> None:
        """Test expiry checks."""
        assert make_token(expires_in=-5).is_expired()
        assert not make_token(expires_in=300).is_expired()
        assert make_token(expires_in=30).expires_within(timedelta(seconds=60))


class TestPersistedAuthRecord:
    """Tests for PersistedAuthRecord."""

    def test_dict_round_trip(self) -> None:
        """Test that a record survives its on-disk form."""
        record = PersistedAuthRecord.from_token_set(
            make_token(), device_id=TEST_DEVICE_ID, username=TEST_USERNAME
        )

        assert PersistedAuthRecord.from_dict(record.as_dict()) == record

    def test_to_token_set(self) -> None:
        """Test that the token set is rebuilt from the record."""
        token = make_token()
        record = PersistedAuthRecord.from_token_set(token, TEST_DEVICE_ID, TEST_USERNAME)
        assert record.to_token_set() == token

    def test_missing_field(self) -> None:
        """Test that a missing required field raises KeyError."""
        data = PersistedAuthRecord.from_token_set(
            make_token(), TEST_DEVICE_ID, TEST_USERNAME
        ).as_dict()
        del data["device_id"]
        with pytest.raises(KeyError):
            PersistedAuthRecord.from_dict(data)

    def test_bad_timestamp(self) -> None:
        """Test that an unparseable timestamp raises ValueError."""
        data = PersistedAuthRecord.from_token_set(
            make_token(), TEST_DEVICE_ID, TEST_USERNAME
        ).as_dict()
        data["expires_at"] = "yesterday"
        with pytest.raises(ValueError):
            PersistedAuthRecord.from_dict(data)

    def test_timestamps_are_utc(self) -> None:
        """Test that parsed timestamps are timezone aware."""
        record = PersistedAuthRecord.from_token_set(make_token(), TEST_DEVICE_ID, TEST_USERNAME)
        parsed = PersistedAuthRecord.from_dict(record.as_dict())
        assert parsed.expires_at.tzinfo is not None
        assert parsed.updated_at <= dt_util.utcnow()


class TestAuthState:
    """Tests for the auth state variants."""

    @pytest.mark.parametrize(
        ("state", "status"),
        [
            (Unauthenticated(), AuthStatus.UNAUTHENTICATED),
            (PendingTwoFactor(), AuthStatus.PENDING_TWO_FACTOR),
            (PendingClientVerification(make_token()), AuthStatus.PENDING_CLIENT_VERIFICATION),
            (PendingAccountVerification(make_token()), AuthStatus.PENDING_ACCOUNT_VERIFICATION),
            (Authenticated(make_token()), AuthStatus.AUTHENTICATED),
            (Expired("refresh failed"), AuthStatus.EXPIRED),
            (Failed("bad password"), AuthStatus.FAILED),
        ],
    )
    def test_status(self, state: object, status: AuthStatus) -> None:
        """Test that each variant reports its status."""
        assert state.status is status  # type: ignore[attr-defined]

    def test_token_not_in_repr(self) -> None:
        """Test that the access token stays out of repr."""
        assert "access-1" not in repr(Authenticated(make_token()))
