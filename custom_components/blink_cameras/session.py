"""Blink session and authentication management.

The session manager drives the server-dictated login flow (password grant,
two-factor code, client verification, account verification), keeps the
bearer tokens fresh, and persists them through the token store.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Coroutine
from dataclasses import replace
from datetime import timedelta
from typing import TYPE_CHECKING, Any, NamedTuple
from uuid import uuid4

import aiohttp
from multidict import CIMultiDict

from .const import (
    DEFAULT_TIMEOUT,
    MAX_CHALLENGE_ATTEMPTS,
    OAUTH_CLIENT_ID,
    OAUTH_SCOPE,
    TOKEN_SAFETY_MARGIN,
)
from .exceptions import (
    BlinkAccountVerificationRequiredError,
    BlinkAuthError,
    BlinkAuthRequiredError,
    BlinkClientVerificationRequiredError,
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
    BlinkTwoFactorRequiredError,
)
from .log_sanitizer import debug_log, sanitize_for_log, sanitize_url_for_log
from .models import (
    ApiGroup,
    Authenticated,
    AuthState,
    AuthStatus,
    BlinkPinResponse,
    BlinkVerifyPinResponse,
    Credentials,
    Expired,
    Failed,
    PendingAccountVerification,
    PendingClientVerification,
    PendingState,
    PendingTwoFactor,
    PersistedAuthRecord,
    TokenSet,
    Unauthenticated,
)
from .transport import (
    auth_headers,
    build_default_headers,
    decode_body,
    error_detail,
    parse_retry_after,
)

if TYPE_CHECKING:
    from .tiers import TierRouter
    from .token_store import TokenStore

_LOGGER = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

# Statuses the token endpoint uses to reject a username/password
CREDENTIAL_REJECTION_STATUSES = (400, 401, 403, 426)

_TWO_FACTOR_HINTS = ("verification", "2fa", "two factor", "two-factor")


class AuthResponse(NamedTuple):
    """A decoded response from an auth-related endpoint."""

    status: int
    body: Any
    headers: CIMultiDict[str]

    @property
    def ok(self) -> bool:
        """Return True for 2xx responses."""
        return 200 <= self.status < 300


class BlinkSessionManager:
    """Own the Blink authentication state and the live token set.

    Only this class changes the auth state. The HTTP client asks it for a
    token before every request and never keeps one longer than a request.

    Token refresh is single-flight: concurrent callers that find the token
    near expiry all await the same refresh task, so at most one refresh
    request is in flight and every caller sees the latest completed result.

    Example:
        manager = BlinkSessionManager(session, TierRouter(), store, credentials)
        state = await manager.async_resume()
        if state.status is not AuthStatus.AUTHENTICATED:
            state = await manager.async_login(credentials)
        token = await manager.async_get_valid_token()
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        router: TierRouter,
        store: TokenStore | None = None,
        credentials: Credentials | None = None,
        *,
        max_challenge_attempts: int = MAX_CHALLENGE_ATTEMPTS,
        safety_margin: timedelta = timedelta(seconds=TOKEN_SAFETY_MARGIN),
        timeout: int = DEFAULT_TIMEOUT,
        debug: bool = False,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize BlinkSessionManager.

        Args:
            session: The aiohttp ClientSession used for auth requests.
            router: Tier router for OAuth and REST base URLs.
            store: Token store, or None to keep the session in memory only.
            credentials: Credentials used for automatic re-login.
            max_challenge_attempts: Verification rounds allowed per stage
                before the login attempt fails.
            safety_margin: Tokens expiring within this margin are refreshed.
            timeout: Per-request timeout in seconds.
            debug: Log sanitized request and response details.
            logger: Logger for session events.
        """
        self._session = session
        self._router = router
        self._store = store
        self._credentials = credentials
        self._max_challenge_attempts = max_challenge_attempts
        self._safety_margin = safety_margin
        self._timeout = timeout
        self._debug = debug
        self._logger = logger or _LOGGER
        self._state: AuthState = Unauthenticated()
        self._generation = 0
        self._login_lock = asyncio.Lock()
        self._inflight: asyncio.Task[TokenSet] | None = None

    @property
    def state(self) -> AuthState:
        """Return the current auth state."""
        return self._state

    @property
    def status(self) -> AuthStatus:
        """Return the current auth status."""
        return self._state.status

    @property
    def token(self) -> TokenSet | None:
        """Return the live token set, if authenticated."""
        if isinstance(self._state, Authenticated):
            return self._state.token
        return None

    @property
    def credentials(self) -> Credentials | None:
        """Return the credentials kept for re-login."""
        return self._credentials

    @property
    def persistence_enabled(self) -> bool:
        """Return True if tokens are written to disk."""
        return self._store is not None

    # =========================================================================
    # Public operations
    # =========================================================================

    async def async_login(self, credentials: Credentials) -> AuthState:
        """Log in with a password grant and work through any challenges.

        Verification challenges are not errors: the returned state tells the
        caller which code to ask the user for.

        Args:
            credentials: Username, password, device id and any codes the user
                has already supplied.

        Returns:
            The resulting auth state.

        Raises:
            BlinkInvalidCredentialsError: If the password grant was rejected.
            BlinkInvalidCodeError: If a supplied code was rejected.
            BlinkNetworkError: If the service could not be reached.
            BlinkRateLimitedError: If the service is rate limiting logins.
            BlinkServerError: If the service returned a server error.
        """
        async with self._login_lock:
            return await self._async_login_locked(credentials)

    async def async_submit_code(self, code: str) -> AuthState:
        """Supply the verification code for the pending stage.

        Args:
            code: The one-time code the user received.

        Returns:
            The resulting auth state.

        Raises:
            BlinkAuthError: If no verification is pending.
            BlinkInvalidCodeError: If the code was rejected.
        """
        async with self._login_lock:
            credentials = self._credentials
            state = self._state
            match state:
                case PendingTwoFactor():
                    if credentials is None:
                        raise BlinkAuthRequiredError("Blink login must be restarted")
                    return await self._async_password_grant(
                        replace(credentials, two_factor_code=code)
                    )
                case PendingClientVerification(
                    token=token,
                    account_verification_pending=account_pending,
                    trust_device_enabled=trust_enabled,
                ):
                    return await self._async_client_verification(
                        token,
                        self._code_credentials(client_verification_code=code),
                        account_pending,
                        trust_enabled,
                    )
                case PendingAccountVerification(token=token):
                    return await self._async_account_verification(
                        token,
                        self._code_credentials(account_verification_code=code),
                    )
                case _:
                    raise BlinkAuthError(
                        f"No Blink verification is pending (state: {state.status})"
                    )

    async def async_request_new_code(self) -> None:
        """Ask the service to send a fresh code for the pending stage.

        Raises:
            BlinkAuthError: If no verification is pending.
        """
        async with self._login_lock:
            match self._state:
                case PendingTwoFactor() as pending:
                    if self._credentials is None:
                        raise BlinkAuthRequiredError("Blink login must be restarted")
                    state = await self._async_password_grant(
                        self._credentials.with_codes_cleared()
                    )
                    # A resend is not a verification attempt
                    if isinstance(state, PendingTwoFactor):
                        self._set_state(pending)
                case PendingClientVerification(token=token):
                    await self._async_request_client_pin(token)
                case PendingAccountVerification(token=token):
                    await self._async_request_account_pin(token)
                case state:
                    raise BlinkAuthError(
                        f"No Blink verification is pending (state: {state.status})"
                    )

    async def async_resume(self) -> AuthState:
        """Adopt the persisted session without contacting the service.

        An expired persisted token is still adopted; the next request
        refreshes it.

        Returns:
            The resulting auth state.
        """
        if self._store is None:
            return self._state
        async with self._login_lock:
            record = await self._store.async_load()
            if record is None:
                self._logger.debug("No persisted Blink session to resume")
                return self._state
            credentials = self._credentials
            if credentials is not None and (
                record.device_id != credentials.device_id
                or record.username.casefold() != credentials.username.casefold()
            ):
                self._logger.warning(
                    "Persisted Blink session belongs to a different account or device; ignoring it"
                )
                return self._state
            token = record.to_token_set()
            self._router.adopt_asserted_tier(token.tier)
            self._generation += 1
            self._set_state(Authenticated(token))
            self._logger.debug(
                "Resumed Blink session (tier %s, expires %s)",
                token.tier,
                token.expires_at.isoformat(),
            )
            return self._state

    async def async_get_valid_token(self) -> TokenSet:
        """Return a token that is not about to expire.

        Refreshes near expiry, and logs in again after a failed refresh when
        credentials are known.

        Raises:
            BlinkAuthRequiredError: If the user has to act (new credentials or
                a verification code). Pending stages raise the matching
                verification-required subclass.
            BlinkRefreshFailedError: If the refresh failed.
        """
        if self._inflight is not None:
            return await self._async_join(self._inflight)
        state = self._state
        match state:
            case Authenticated(token=token) if not token.expires_within(self._safety_margin):
                return token
            case Authenticated():
                self._logger.debug("Blink access token expiring soon, refreshing")
                return await self._async_single_flight(self._async_refresh)
            case Unauthenticated() | Expired() if self._credentials is not None:
                return await self._async_single_flight(self._async_relogin)
            case _:
                raise self._auth_required_error(state)

    async def async_force_refresh(self, stale: TokenSet) -> TokenSet:
        """Refresh after the service rejected a token.

        If the token was already replaced since the caller obtained it, the
        current one is returned without another refresh.

        Args:
            stale: The token the service rejected.

        Raises:
            BlinkRefreshFailedError: If the refresh failed.
            BlinkAuthRequiredError: If no session exists.
        """
        if self._inflight is not None:
            return await self._async_join(self._inflight)
        state = self._state
        if isinstance(state, Authenticated):
            if state.token.access_token != stale.access_token:
                return state.token
            self._logger.debug("Blink rejected the access token, forcing a refresh")
            return await self._async_single_flight(self._async_refresh)
        return await self.async_get_valid_token()

    async def async_logout(self) -> None:
        """Forget the session and delete the persisted record."""
        inflight = self._inflight
        if inflight is not None and not inflight.done():
            await asyncio.wait([inflight])
        async with self._login_lock:
            self._generation += 1
            self._credentials = None
            self._set_state(Unauthenticated())
            if self._store is None:
                return
            try:
                await self._store.async_delete()
            except BlinkStorageError as err:
                self._logger.warning("Could not delete persisted Blink session: %s", err)

    # =========================================================================
    # Login flow
    # =========================================================================

    async def _async_login_locked(self, credentials: Credentials) -> AuthState:
        self._generation += 1
        self._credentials = credentials
        return await self._async_password_grant(credentials)

    async def _async_password_grant(self, credentials: Credentials) -> AuthState:
        code = credentials.two_factor_code
        headers = {
            **build_default_headers(),
            "Content-Type": FORM_CONTENT_TYPE,
            "hardware_id": credentials.device_id,
        }
        if code:
            headers["2fa-code"] = code
        form = {
            "username": credentials.username,
            "password": credentials.password,
            "grant_type": "password",
            "client_id": OAUTH_CLIENT_ID,
            "scope": OAUTH_SCOPE,
        }
        self._credentials = credentials
        response = await self._async_send(
            "POST", self._router.oauth_token_url(), headers=headers, data=form
        )

        if self._is_two_factor_challenge(response):
            attempts = self._stage_attempts(PendingTwoFactor, rejected=bool(code))
            if not code:
                self._logger.warning(
                    "Blink requires a two-factor code; check your email or phone"
                )
            return self._enter_pending(PendingTwoFactor(attempts), rejected=bool(code))

        if response.status in CREDENTIAL_REJECTION_STATUSES:
            detail = error_detail(response.body)
            if response.status == 426:
                reason = "Blink rejected this client version; an update is required"
            else:
                reason = f"Blink rejected the username or password ({response.status})"
            if detail:
                reason = f"{reason}: {detail}"
            self._set_state(Failed(reason))
            self._logger.error("Blink login failed: %s", reason)
            raise BlinkInvalidCredentialsError(reason)

        self._raise_for_status(response, "login")
        token = self._token_from_response(response)
        return await self._async_complete_login(token, credentials)

    async def _async_complete_login(
        self,
        token: TokenSet,
        credentials: Credentials,
    ) -> AuthState:
        info = await self._async_fetch_account_info(token)
        if info is None:
            return await self._async_authenticate(token, credentials)

        account_id = info.get("account_id")
        client_id = info.get("client_id")
        token = replace(
            token,
            account_id=account_id if account_id is not None else token.account_id,
            client_id=client_id if client_id is not None else token.client_id,
        )
        if self._router.adopt_asserted_tier(info.get("tier")):
            token = replace(token, tier=self._router.tier)

        account_pending = bool(
            info.get("account_verification_required")
            or info.get("phone_verification_required")
        )
        if info.get("client_verification_required"):
            return await self._async_client_verification(
                token,
                credentials,
                account_pending,
                bool(info.get("trust_device_enabled", True)),
            )
        if account_pending:
            return await self._async_account_verification(token, credentials)
        return await self._async_authenticate(token, credentials)

    async def _async_client_verification(
        self,
        token: TokenSet,
        credentials: Credentials,
        account_pending: bool,
        trust_enabled: bool,
    ) -> AuthState:
        code = credentials.client_verification_code
        if not code:
            attempts = self._stage_attempts(PendingClientVerification, rejected=False)
            await self._async_request_client_pin(token)
            self._logger.warning(
                "Blink client verification required; a verification code has been sent"
            )
            return self._enter_pending(
                PendingClientVerification(token, attempts, account_pending, trust_enabled),
                rejected=False,
            )

        if not await self._async_verify_client_pin(token, code, trust_enabled, credentials):
            attempts = self._stage_attempts(PendingClientVerification, rejected=True)
            return self._enter_pending(
                PendingClientVerification(token, attempts, account_pending, trust_enabled),
                rejected=True,
            )

        self._logger.info("Blink client verification successful")
        if account_pending:
            return await self._async_account_verification(token, credentials)
        return await self._async_authenticate(token, credentials)

    async def _async_account_verification(
        self,
        token: TokenSet,
        credentials: Credentials,
    ) -> AuthState:
        code = credentials.account_verification_code
        if not code:
            attempts = self._stage_attempts(PendingAccountVerification, rejected=False)
            await self._async_request_account_pin(token)
            return self._enter_pending(
                PendingAccountVerification(token, attempts), rejected=False
            )

        if not await self._async_verify_account_pin(token, code, credentials):
            attempts = self._stage_attempts(PendingAccountVerification, rejected=True)
            return self._enter_pending(
                PendingAccountVerification(token, attempts), rejected=True
            )

        self._logger.info("Blink account verification successful")
        return await self._async_authenticate(token, credentials)

    async def _async_authenticate(
        self,
        token: TokenSet,
        credentials: Credentials,
    ) -> AuthState:
        self._credentials = credentials.with_codes_cleared()
        await self._async_persist(token)
        self._set_state(Authenticated(token))
        self._logger.info("Blink login successful (tier %s)", token.tier)
        return self._state

    def _stage_attempts(self, stage: type[PendingState], *, rejected: bool) -> int:
        """Return the attempt count for another round of a pending stage."""
        state = self._state
        attempts = state.attempts + 1 if isinstance(state, stage) else 0
        if rejected:
            attempts = max(attempts, 1)
        return attempts

    def _enter_pending(self, state: PendingState, *, rejected: bool) -> AuthState:
        """Move to a pending stage, or to Failed once attempts run out.

        Raises:
            BlinkInvalidCodeError: If the round was caused by a rejected code.
        """
        if state.attempts >= self._max_challenge_attempts:
            reason = f"Too many verification attempts ({state.status})"
            self._set_state(Failed(reason))
            self._logger.error("Blink login failed: %s", reason)
            if rejected:
                raise BlinkInvalidCodeError(reason)
            return self._state

        self._set_state(state)
        if rejected:
            raise BlinkInvalidCodeError(
                f"Blink rejected the verification code ({state.status}); "
                f"{self._max_challenge_attempts - state.attempts} attempt(s) left"
            )
        return state

    @staticmethod
    def _is_two_factor_challenge(response: AuthResponse) -> bool:
        body = response.body
        if isinstance(body, dict) and body.get("two_factor_required"):
            return True
        if response.status != 401:
            return False
        hints = " ".join(
            str(body.get(key, "")) for key in ("message", "error", "error_description")
        ) if isinstance(body, dict) else str(body)
        hints = hints.lower()
        return any(hint in hints for hint in _TWO_FACTOR_HINTS)

    def _code_credentials(self, **codes: str) -> Credentials:
        if self._credentials is None:
            raise BlinkAuthRequiredError("Blink login must be restarted")
        return replace(self._credentials, **codes)

    # =========================================================================
    # Verification endpoints
    # =========================================================================

    async def _async_fetch_account_info(self, token: TokenSet) -> dict[str, Any] | None:
        """Fetch account info; failures are logged and skipped."""
        try:
            response = await self._async_rest("GET", "v2/users/info", token)
            self._raise_for_status(response, "account info")
        except BlinkError as err:
            self._logger.warning(
                "Failed to fetch Blink account info: %s. Continuing with issued tokens", err
            )
            return None
        if not isinstance(response.body, dict):
            self._logger.warning("Blink account info unavailable. Continuing with issued tokens")
            return None
        return response.body

    async def _async_request_client_pin(self, token: TokenSet) -> None:
        client_id = self._require_client_id(token)
        response = await self._async_rest(
            "POST", f"v5/clients/{client_id}/client_verification/pin/resend", token
        )
        self._raise_for_status(response, "client verification PIN request")

    async def _async_verify_client_pin(
        self,
        token: TokenSet,
        code: str,
        trust_enabled: bool,
        credentials: Credentials,
    ) -> bool:
        client_id = self._require_client_id(token)
        if trust_enabled:
            path = f"v5/clients/{client_id}/client_verification/pin/verify"
            payload: dict[str, Any] = {"pin": code, "trusted": credentials.trust_device}
        else:
            path = f"v4/clients/{client_id}/pin/verify"
            payload = {
                "pin": code,
                "email": credentials.username,
                "device_identifier": credentials.device_id,
                "client_name": credentials.client_name,
            }
        response = await self._async_rest("POST", path, token, json=payload)
        if self._is_code_rejection(response):
            return False
        self._raise_for_status(response, "client verification")
        body: BlinkVerifyPinResponse = response.body if isinstance(response.body, dict) else {}
        return body.get("valid", True) is not False

    async def _async_request_account_pin(self, token: TokenSet) -> None:
        response = await self._async_rest("POST", "v4/users/pin/resend", token)
        self._raise_for_status(response, "account verification PIN request")
        body: BlinkPinResponse = response.body if isinstance(response.body, dict) else {}
        channel = body.get("phone_verification_channel") or body.get("verification_channel")
        if channel:
            self._logger.warning("Blink verification code sent via %s", channel)
        self._logger.warning(
            "Blink requires account verification; enter the code sent to your phone or email"
        )

    async def _async_verify_account_pin(
        self,
        token: TokenSet,
        code: str,
        credentials: Credentials,
    ) -> bool:
        response = await self._async_rest(
            "POST",
            "v4/users/pin/verify",
            token,
            json={
                "pin": code,
                "email": credentials.username,
                "device_identifier": credentials.device_id,
                "client_name": credentials.client_name,
            },
        )
        if self._is_code_rejection(response):
            return False
        self._raise_for_status(response, "account verification")
        body: BlinkVerifyPinResponse = response.body if isinstance(response.body, dict) else {}
        if body.get("require_new_pin"):
            self._logger.warning("Blink requires a new verification PIN; requesting another")
            await self._async_request_account_pin(token)
            return False
        return body.get("valid", True) is not False

    @staticmethod
    def _is_code_rejection(response: AuthResponse) -> bool:
        return 400 <= response.status < 500 and response.status != 429

    @staticmethod
    def _require_client_id(token: TokenSet) -> int:
        if token.client_id is None:
            raise BlinkAuthError("Blink requested client verification without a client id")
        return token.client_id

    # =========================================================================
    # Token refresh
    # =========================================================================

    async def _async_single_flight(
        self,
        factory: Callable[[], Coroutine[Any, Any, TokenSet]],
    ) -> TokenSet:
        """Run the factory once for all concurrent callers."""
        task = self._inflight
        if task is None:
            task = asyncio.get_running_loop().create_task(factory())
            self._inflight = task
            task.add_done_callback(self._async_inflight_done)
        return await self._async_join(task)

    @staticmethod
    async def _async_join(task: asyncio.Task[TokenSet]) -> TokenSet:
        # A cancelled caller must not cancel the shared task
        return await asyncio.shield(task)

    def _async_inflight_done(self, task: asyncio.Task[TokenSet]) -> None:
        if self._inflight is task:
            self._inflight = None
        if not task.cancelled():
            # Mark the exception as retrieved when every caller went away
            task.exception()

    async def _async_relogin(self) -> TokenSet:
        async with self._login_lock:
            credentials = self._credentials
            if credentials is None:
                raise self._auth_required_error(self._state)
            self._logger.info("Logging in to Blink again")
            state = await self._async_login_locked(credentials)
        if isinstance(state, Authenticated):
            return state.token
        raise self._auth_required_error(state)

    async def _async_refresh(self) -> TokenSet:
        state = self._state
        if not isinstance(state, Authenticated):
            raise self._auth_required_error(state)
        current = state.token
        generation = self._generation

        try:
            if not current.refresh_token:
                raise BlinkAuthError("no refresh token available")
            headers = {
                **build_default_headers(),
                "Content-Type": FORM_CONTENT_TYPE,
            }
            if self._credentials is not None:
                headers["hardware_id"] = self._credentials.device_id
            response = await self._async_send(
                "POST",
                self._router.oauth_token_url(),
                headers=headers,
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": current.refresh_token,
                    "client_id": OAUTH_CLIENT_ID,
                    "scope": OAUTH_SCOPE,
                },
            )
            if not response.ok:
                detail = error_detail(response.body)
                raise BlinkAuthError(
                    f"refresh rejected ({response.status})" + (f": {detail}" if detail else "")
                )
            token = self._token_from_response(response, previous=current)
        except BlinkError as err:
            if generation == self._generation:
                self._set_state(Expired(str(err)))
            self._logger.warning("Blink token refresh failed: %s", err)
            raise BlinkRefreshFailedError(f"Blink token refresh failed: {err}") from err

        if generation != self._generation:
            return self._current_token_or_raise()
        await self._async_persist(token)
        if generation != self._generation:
            return self._current_token_or_raise()
        self._set_state(Authenticated(token))
        self._logger.debug("Blink token refreshed, expires %s", token.expires_at.isoformat())
        return token

    def _current_token_or_raise(self) -> TokenSet:
        """Return the token installed by a newer login, if any."""
        state = self._state
        if isinstance(state, Authenticated):
            return state.token
        raise self._auth_required_error(state)

    def _token_from_response(
        self,
        response: AuthResponse,
        previous: TokenSet | None = None,
    ) -> TokenSet:
        body = response.body
        if not isinstance(body, dict) or not body.get("access_token"):
            raise BlinkAuthError("Blink token response did not include an access token")
        self._router.adopt_asserted_tier(body.get("tier"))
        return TokenSet.from_oauth(
            body,  # type: ignore[arg-type]
            tier=self._router.tier,
            token_auth=response.headers.get("TOKEN-AUTH"),
            previous=previous,
        )

    async def _async_persist(self, token: TokenSet) -> None:
        """Write the token set to disk; failures only warn."""
        if self._store is None or self._credentials is None:
            return
        record = PersistedAuthRecord.from_token_set(
            token,
            device_id=self._credentials.device_id,
            username=self._credentials.username,
        )
        try:
            await self._store.async_save(record)
        except BlinkStorageError as err:
            self._logger.warning(
                "Could not persist Blink session, re-authentication will be needed after restart: %s",
                err,
            )

    # =========================================================================
    # Transport
    # =========================================================================

    async def _async_rest(
        self,
        method: str,
        path: str,
        token: TokenSet,
        json: Any = None,
    ) -> AuthResponse:
        """Call a REST endpoint with a provisional token (no retries)."""
        url = f"{self._router.base_url(ApiGroup.PRIMARY, token.tier)}{path.lstrip('/')}"
        headers = {
            **build_default_headers(),
            "Content-Type": "application/json",
            **auth_headers(token.access_token, token.token_auth),
        }
        return await self._async_send(method, url, headers=headers, json=json)

    async def _async_send(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str],
        data: dict[str, str] | None = None,
        json: Any = None,
    ) -> AuthResponse:
        """Send one auth request and decode the response.

        Raises:
            BlinkTimeoutError: If the request timed out.
            BlinkNetworkError: If no response was received.
        """
        request_id = uuid4().hex[:8]
        safe_url = sanitize_url_for_log(url)
        debug_log(self._logger, self._debug, "Auth", "[%s] %s %s", request_id, method, safe_url)
        debug_log(
            self._logger,
            self._debug,
            "Auth",
            "[%s] Request headers: %s",
            request_id,
            sanitize_for_log(headers),
        )
        if data is not None or json is not None:
            debug_log(
                self._logger,
                self._debug,
                "Auth",
                "[%s] Request body: %s",
                request_id,
                sanitize_for_log(data if data is not None else json),
            )

        start = time.monotonic()
        try:
            timeout = aiohttp.ClientTimeout(total=self._timeout)
            async with self._session.request(
                method,
                url,
                headers=headers,
                data=data,
                json=json,
                timeout=timeout,
            ) as response:
                status = response.status
                response_headers = CIMultiDict(response.headers)
                text = await response.text()
        except TimeoutError as err:
            raise BlinkTimeoutError(
                f"Request to {safe_url} timed out after {self._timeout} seconds"
            ) from err
        except aiohttp.ClientError as err:
            raise BlinkNetworkError(f"Unable to connect to {safe_url}: {err}") from err

        body = decode_body(text)
        debug_log(
            self._logger,
            self._debug,
            "Auth",
            "[%s] Response: %s (%dms)",
            request_id,
            status,
            int((time.monotonic() - start) * 1000),
        )
        debug_log(
            self._logger,
            self._debug,
            "Auth",
            "[%s] Response body: %s",
            request_id,
            sanitize_for_log(body),
        )
        return AuthResponse(status, body, response_headers)

    @staticmethod
    def _raise_for_status(response: AuthResponse, operation: str) -> None:
        """Raise the matching error for a non-2xx response."""
        if response.ok:
            return
        detail = error_detail(response.body)
        message = f"Blink {operation} failed: {response.status}" + (
            f" - {detail}" if detail else ""
        )
        if response.status == 429:
            raise BlinkRateLimitedError(
                message,
                detail=detail,
                retry_after=parse_retry_after(response.headers.get("Retry-After")),
            )
        if response.status >= 500:
            raise BlinkServerError(message, status=response.status, detail=detail)
        raise BlinkRequestError(message, status=response.status, detail=detail)

    # =========================================================================
    # State
    # =========================================================================

    def _set_state(self, state: AuthState) -> None:
        if state.status is not self._state.status:
            self._logger.debug(
                "Blink auth state %s -> %s", self._state.status, state.status
            )
        self._state = state

    @staticmethod
    def _auth_required_error(state: AuthState) -> BlinkAuthRequiredError:
        match state:
            case PendingTwoFactor():
                return BlinkTwoFactorRequiredError("Blink two-factor code required")
            case PendingClientVerification():
                return BlinkClientVerificationRequiredError(
                    "Blink client verification code required"
                )
            case PendingAccountVerification():
                return BlinkAccountVerificationRequiredError(
                    "Blink account verification code required"
                )
            case Failed(reason=reason):
                return BlinkAuthRequiredError(f"Blink login failed: {reason}")
            case Expired(reason=reason):
                return BlinkAuthRequiredError(f"Blink session expired: {reason}")
            case _:
                return BlinkAuthRequiredError("Blink login required")
