"""Data models for the Blink Cameras integration.

This module holds the typed shapes of the Blink REST payloads, the session
value objects (credentials, token sets, the persisted record) and the
authentication state variants.

Note: This module intentionally does NOT use `from __future__ import annotations`
because TypedDict requires evaluated type hints at runtime to properly distinguish
required vs optional keys (NotRequired). The PEP 563 deferred evaluation makes
all annotations ForwardRef strings, which breaks TypedDict's introspection.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Any, NotRequired, TypedDict

from homeassistant.util import dt as dt_util

from .const import DEFAULT_CLIENT_NAME, DEFAULT_TOKEN_LIFETIME

# =============================================================================
# Upstream payloads
# =============================================================================


class BlinkOAuthResponse(TypedDict):
    """Token endpoint response for the password and refresh grants."""

    access_token: str
    expires_in: int
    refresh_token: NotRequired[str]
    token_type: NotRequired[str]
    scope: NotRequired[str]
    account_id: NotRequired[int]
    client_id: NotRequired[int]
    region: NotRequired[str]
    tier: NotRequired[str]


class BlinkAccountInfo(TypedDict):
    """Account info from v2/users/info, including first-login verification flags."""

    account_id: int
    client_id: NotRequired[int]
    email: NotRequired[str]
    region: NotRequired[str]
    tier: NotRequired[str]
    account_verification_required: NotRequired[bool]
    phone_verification_required: NotRequired[bool]
    client_verification_required: NotRequired[bool]
    trust_device_enabled: NotRequired[bool]
    allow_pin_resend_seconds: NotRequired[int]
    verification_channel: NotRequired[str]
    phone_verification_channel: NotRequired[str]


class BlinkPinResponse(TypedDict):
    """Response from the PIN resend endpoints."""

    message: NotRequired[str]
    code: NotRequired[int]
    allow_pin_resend_seconds: NotRequired[int]
    verification_channel: NotRequired[str]
    phone_verification_channel: NotRequired[str]


class BlinkVerifyPinResponse(TypedDict):
    """Response from the PIN verify endpoints."""

    valid: NotRequired[bool]
    require_new_pin: NotRequired[bool]
    code: NotRequired[int]
    message: NotRequired[str]


class BlinkCommandResponse(TypedDict):
    """Response from arm/disarm and other asynchronous commands."""

    id: NotRequired[int]
    command_id: NotRequired[int]
    network_id: NotRequired[int]
    state: NotRequired[str]
    complete: NotRequired[bool]


class BlinkHomescreen(TypedDict):
    """Homescreen response listing every device on the account."""

    account: NotRequired[dict[str, Any]]
    networks: NotRequired[list[dict[str, Any]]]
    sync_modules: NotRequired[list[dict[str, Any]]]
    cameras: NotRequired[list[dict[str, Any]]]
    owls: NotRequired[list[dict[str, Any]]]
    doorbells: NotRequired[list[dict[str, Any]]]


class BlinkMediaResponse(TypedDict):
    """Media listing response."""

    limit: NotRequired[int]
    purge_id: NotRequired[int]
    refresh_count: NotRequired[int]
    media: list[dict[str, Any]]


@dataclass
class BlinkData:
    """Container for the account snapshot polled by the coordinator."""

    account: dict[str, Any]
    networks: list[dict[str, Any]]
    sync_modules: list[dict[str, Any]]
    cameras: list[dict[str, Any]]
    owls: list[dict[str, Any]]
    doorbells: list[dict[str, Any]]


# =============================================================================
# Request shapes
# =============================================================================


class ApiGroup(StrEnum):
    """Logical API groups, each routed to its own tier."""

    PRIMARY = "primary"
    SHARED = "shared"


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Backoff configuration for retryable failures (429, 5xx, network)."""

    max_attempts: int = 4
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter: float = 0.5


@dataclass(slots=True)
class RequestSpec:
    """One logical API call, owned by the HTTP client for its lifetime."""

    method: str
    path: str
    api_group: ApiGroup = ApiGroup.PRIMARY
    tier: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] | None = None
    json: Any = None
    attempt: int = 0


# =============================================================================
# Session value objects
# =============================================================================


@dataclass(frozen=True, slots=True)
class Credentials:
    """Login input for one login attempt. Never persisted."""

    username: str
    password: str = field(repr=False)
    device_id: str
    client_name: str = DEFAULT_CLIENT_NAME
    two_factor_code: str | None = field(default=None, repr=False)
    client_verification_code: str | None = field(default=None, repr=False)
    account_verification_code: str | None = field(default=None, repr=False)
    trust_device: bool = True

    def with_codes_cleared(self) -> "Credentials":
        """Return a copy without any one-shot verification codes."""
        return replace(
            self,
            two_factor_code=None,
            client_verification_code=None,
            account_verification_code=None,
        )


@dataclass(frozen=True, slots=True)
class TokenSet:
    """Bearer credentials issued by the OAuth endpoint."""

    access_token: str = field(repr=False)
    expires_at: datetime
    tier: str
    refresh_token: str | None = field(default=None, repr=False)
    account_id: int | None = None
    client_id: int | None = None
    token_auth: str | None = field(default=None, repr=False)

    @classmethod
    def from_oauth(
        cls,
        body: BlinkOAuthResponse,
        tier: str,
        token_auth: str | None = None,
        previous: "TokenSet | None" = None,
    ) -> "TokenSet":
        """Build a token set from a token endpoint response.

        When replacing a previous token set the expiry never moves backwards,
        and identifiers or a refresh token the response omits are carried
        over. A response without a lifetime is given the default one.

        Raises:
            KeyError: If the response has no access token.
        """
        expires_in = int(body.get("expires_in") or DEFAULT_TOKEN_LIFETIME)
        expires_at = dt_util.utcnow() + timedelta(seconds=expires_in)
        refresh_token = body.get("refresh_token")
        account_id = body.get("account_id")
        client_id = body.get("client_id")
        if previous is not None:
            expires_at = max(expires_at, previous.expires_at)
            refresh_token = refresh_token or previous.refresh_token
            account_id = account_id if account_id is not None else previous.account_id
            client_id = client_id if client_id is not None else previous.client_id
            token_auth = token_auth or previous.token_auth
        return cls(
            access_token=body["access_token"],
            expires_at=expires_at,
            tier=tier,
            refresh_token=refresh_token,
            account_id=account_id,
            client_id=client_id,
            token_auth=token_auth,
        )

    def expires_within(self, margin: timedelta) -> bool:
        """Return True if the token expires within the given margin."""
        return self.expires_at - dt_util.utcnow() <= margin

    def is_expired(self) -> bool:
        """Return True if the token has already expired."""
        return self.expires_within(timedelta(0))


@dataclass(frozen=True, slots=True)
class PersistedAuthRecord:
    """On-disk form of an authenticated session."""

    access_token: str = field(repr=False)
    expires_at: datetime
    tier: str
    device_id: str
    username: str
    updated_at: datetime
    refresh_token: str | None = field(default=None, repr=False)
    token_auth: str | None = field(default=None, repr=False)
    account_id: int | None = None
    client_id: int | None = None

    @classmethod
    def from_token_set(
        cls,
        token: TokenSet,
        device_id: str,
        username: str,
    ) -> "PersistedAuthRecord":
        """Build a record from the live token set."""
        return cls(
            access_token=token.access_token,
            expires_at=token.expires_at,
            tier=token.tier,
            device_id=device_id,
            username=username,
            updated_at=dt_util.utcnow(),
            refresh_token=token.refresh_token,
            token_auth=token.token_auth,
            account_id=token.account_id,
            client_id=token.client_id,
        )

    def to_token_set(self) -> TokenSet:
        """Return the token set this record was written from."""
        return TokenSet(
            access_token=self.access_token,
            expires_at=self.expires_at,
            tier=self.tier,
            refresh_token=self.refresh_token,
            account_id=self.account_id,
            client_id=self.client_id,
            token_auth=self.token_auth,
        )

    def as_dict(self) -> dict[str, Any]:
        """Return the JSON-serialisable form of the record."""
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_auth": self.token_auth,
            "expires_at": self.expires_at.isoformat(),
            "account_id": self.account_id,
            "client_id": self.client_id,
            "tier": self.tier,
            "device_id": self.device_id,
            "username": self.username,
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PersistedAuthRecord":
        """Parse a record read from disk.

        Raises:
            KeyError: If a required field is missing.
            ValueError: If a field has the wrong shape.
        """
        expires_at = dt_util.parse_datetime(str(data["expires_at"]))
        updated_at = dt_util.parse_datetime(str(data["updated_at"]))
        if expires_at is None or updated_at is None:
            raise ValueError("Invalid timestamp in persisted auth record")
        access_token = data["access_token"]
        if not isinstance(access_token, str) or not access_token:
            raise ValueError("Persisted auth record has no access token")
        return cls(
            access_token=access_token,
            expires_at=dt_util.as_utc(expires_at),
            tier=str(data["tier"]),
            device_id=str(data["device_id"]),
            username=str(data["username"]),
            updated_at=dt_util.as_utc(updated_at),
            refresh_token=data.get("refresh_token"),
            token_auth=data.get("token_auth"),
            account_id=data.get("account_id"),
            client_id=data.get("client_id"),
        )


# =============================================================================
# Authentication state
# =============================================================================


class AuthStatus(StrEnum):
    """Public view of the session state."""

    UNAUTHENTICATED = "unauthenticated"
    PENDING_TWO_FACTOR = "pending_two_factor"
    PENDING_CLIENT_VERIFICATION = "pending_client_verification"
    PENDING_ACCOUNT_VERIFICATION = "pending_account_verification"
    AUTHENTICATED = "authenticated"
    EXPIRED = "expired"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class Unauthenticated:
    """No session and no login in progress."""

    status = AuthStatus.UNAUTHENTICATED


@dataclass(frozen=True, slots=True)
class PendingTwoFactor:
    """The password grant is waiting for a two-factor code."""

    attempts: int = 0
    status = AuthStatus.PENDING_TWO_FACTOR


@dataclass(frozen=True, slots=True)
class PendingClientVerification:
    """Tokens were issued but this client must be verified with a PIN.

    The provisional token is needed to call the verification endpoints.
    """

    token: TokenSet
    attempts: int = 0
    account_verification_pending: bool = False
    trust_device_enabled: bool = True
    status = AuthStatus.PENDING_CLIENT_VERIFICATION


@dataclass(frozen=True, slots=True)
class PendingAccountVerification:
    """Tokens were issued but the account or phone must be verified."""

    token: TokenSet
    attempts: int = 0
    status = AuthStatus.PENDING_ACCOUNT_VERIFICATION


@dataclass(frozen=True, slots=True)
class Authenticated:
    """A usable session."""

    token: TokenSet
    status = AuthStatus.AUTHENTICATED


@dataclass(frozen=True, slots=True)
class Expired:
    """The last refresh failed; a new login is needed."""

    reason: str = ""
    status = AuthStatus.EXPIRED


@dataclass(frozen=True, slots=True)
class Failed:
    """The login attempt ended for good; new credentials are needed."""

    reason: str = ""
    status = AuthStatus.FAILED


type PendingState = PendingTwoFactor | PendingClientVerification | PendingAccountVerification

type AuthState = (
    Unauthenticated
    | PendingTwoFactor
    | PendingClientVerification
    | PendingAccountVerification
    | Authenticated
    | Expired
    | Failed
)
