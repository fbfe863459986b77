"""Resilient HTTP client for the Blink REST API."""

from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import aiohttp
from multidict import CIMultiDict

from .const import DEFAULT_TIMEOUT
from .exceptions import (
    BlinkApiError,
    BlinkNetworkError,
    BlinkRateLimitedError,
    BlinkRequestError,
    BlinkServerError,
    BlinkTimeoutError,
    BlinkTokenExpiredError,
)
from .log_sanitizer import debug_log, sanitize_for_log, sanitize_url_for_log
from .models import ApiGroup, RequestSpec, RetryPolicy, TokenSet
from .transport import (
    auth_headers,
    build_default_headers,
    decode_body,
    error_detail,
    parse_retry_after,
)

if TYPE_CHECKING:
    from .session import BlinkSessionManager
    from .tiers import TierRouter

_LOGGER = logging.getLogger(__name__)


def compute_backoff(
    policy: RetryPolicy,
    attempt: int,
    retry_after: float | None = None,
) -> float:
    """Return the delay before the next attempt.

    The delay grows exponentially from base_delay, is capped at max_delay,
    gets up to `jitter` seconds of random spread, and is never shorter than
    a server-provided Retry-After.

    Args:
        policy: The retry policy in effect.
        attempt: Zero-based index of the attempt that just failed.
        retry_after: Delay requested by the server, in seconds.
    """
    delay = min(policy.max_delay, policy.base_delay * 2**attempt)
    delay += random.uniform(0, policy.jitter)
    if retry_after is not None:
        delay = max(delay, retry_after)
    return delay


class BlinkHttpClient:
    """Send authenticated requests with retries and token recovery.

    - 429, 5xx and network failures are retried with exponential backoff
      until the retry policy runs out.
    - A 401 triggers exactly one forced token refresh and one replay.
    - Other 4xx responses fail at once.

    Example:
        client = BlinkHttpClient(session, manager, router)
        homescreen = await client.async_get("v4/accounts/1/homescreen")
    """

    __slots__ = (
        "_auth",
        "_debug",
        "_logger",
        "_retry_policy",
        "_router",
        "_session",
        "_timeout",
    )

    def __init__(
        self,
        session: aiohttp.ClientSession,
        auth: BlinkSessionManager,
        router: TierRouter,
        retry_policy: RetryPolicy | None = None,
        timeout: int = DEFAULT_TIMEOUT,
        debug: bool = False,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize BlinkHttpClient.

        Args:
            session: The aiohttp ClientSession to send requests with.
            auth: Session manager that supplies and refreshes tokens.
            router: Tier router for base URLs.
            retry_policy: Backoff configuration. Defaults to RetryPolicy().
            timeout: Per-attempt timeout in seconds.
            debug: Log sanitized request and response details.
            logger: Logger for request events.
        """
        self._session = session
        self._auth = auth
        self._router = router
        self._retry_policy = retry_policy or RetryPolicy()
        self._timeout = timeout
        self._debug = debug
        self._logger = logger or _LOGGER

    async def async_get(
        self,
        path: str,
        *,
        api_group: ApiGroup = ApiGroup.PRIMARY,
        params: dict[str, str] | None = None,
    ) -> Any:
        """Send a GET request and return the decoded body."""
        return await self.async_request(
            RequestSpec("GET", path, api_group=api_group, params=params)
        )

    async def async_post(
        self,
        path: str,
        json: Any = None,
        *,
        api_group: ApiGroup = ApiGroup.PRIMARY,
    ) -> Any:
        """Send a POST request and return the decoded body."""
        return await self.async_request(
            RequestSpec("POST", path, api_group=api_group, json=json)
        )

    async def async_delete(
        self,
        path: str,
        *,
        api_group: ApiGroup = ApiGroup.PRIMARY,
    ) -> Any:
        """Send a DELETE request and return the decoded body."""
        return await self.async_request(RequestSpec("DELETE", path, api_group=api_group))

    async def async_request(self, spec: RequestSpec) -> Any:
        """Send a request, retrying and refreshing as needed.

        Args:
            spec: The request to send. Its attempt counter is advanced in place.

        Returns:
            The decoded JSON body; an empty body decodes to {}.

        Raises:
            BlinkAuthRequiredError: If no usable session exists.
            BlinkRefreshFailedError: If the forced refresh after a 401 failed.
            BlinkTokenExpiredError: If the refreshed token was rejected too.
            BlinkRateLimitedError: If 429s outlasted the retry budget.
            BlinkServerError: If 5xx responses outlasted the retry budget.
            BlinkNetworkError: If network failures outlasted the retry budget.
            BlinkRequestError: For other 4xx responses.
            BlinkApiError: If a 2xx body was not valid JSON.
        """
        token = await self._auth.async_get_valid_token()
        refreshed = False
        policy = self._retry_policy
        path = sanitize_url_for_log(spec.path)

        while True:
            try:
                status, body, headers = await self._async_send(spec, token)
            except BlinkNetworkError as err:
                if spec.attempt + 1 >= policy.max_attempts:
                    self._log_failure(spec, f"network error: {err}")
                    raise
                await self._async_backoff(spec, None, str(err))
                continue

            if 200 <= status < 300:
                if isinstance(body, str):
                    self._log_failure(spec, "response body is not valid JSON")
                    raise BlinkApiError(
                        f"Invalid JSON response from {path}", status=status
                    )
                return body

            detail = error_detail(body)

            if status == 401:
                if refreshed:
                    self._log_failure(spec, "token rejected after refresh")
                    raise BlinkTokenExpiredError(
                        f"Blink rejected the refreshed token for {path}"
                    )
                refreshed = True
                token = await self._auth.async_force_refresh(token)
                continue

            if status == 429 or status >= 500:
                retry_after = parse_retry_after(headers.get("Retry-After"))
                if spec.attempt + 1 >= policy.max_attempts:
                    message = f"{spec.method} {path} failed: {status}" + (
                        f" - {detail}" if detail else ""
                    )
                    self._log_failure(spec, message)
                    if status == 429:
                        raise BlinkRateLimitedError(
                            message, detail=detail, retry_after=retry_after
                        )
                    raise BlinkServerError(message, status=status, detail=detail)
                await self._async_backoff(spec, retry_after, f"HTTP {status}")
                continue

            message = f"{spec.method} {path} failed: {status}" + (
                f" - {detail}" if detail else ""
            )
            self._log_failure(spec, message)
            raise BlinkRequestError(message, status=status, detail=detail)

    async def _async_backoff(
        self,
        spec: RequestSpec,
        retry_after: float | None,
        reason: str,
    ) -> None:
        delay = compute_backoff(self._retry_policy, spec.attempt, retry_after)
        spec.attempt += 1
        self._logger.debug(
            "Retrying %s %s in %.1fs (attempt %d/%d): %s",
            spec.method,
            sanitize_url_for_log(spec.path),
            delay,
            spec.attempt + 1,
            self._retry_policy.max_attempts,
            reason,
        )
        await asyncio.sleep(delay)

    def _build_url(self, spec: RequestSpec, token: TokenSet) -> str:
        if spec.path.startswith(("http://", "https://")):
            return spec.path
        base = self._router.base_url(spec.api_group, spec.tier or token.tier)
        return f"{base}{spec.path.lstrip('/')}"

    async def _async_send(
        self,
        spec: RequestSpec,
        token: TokenSet,
    ) -> tuple[int, Any, CIMultiDict[str]]:
        """Send one attempt.

        Raises:
            BlinkTimeoutError: If the attempt timed out.
            BlinkNetworkError: If no response was received.
        """
        url = self._build_url(spec, token)
        headers = {
            **build_default_headers(),
            "Content-Type": "application/json",
            **spec.headers,
            **auth_headers(token.access_token, token.token_auth),
        }
        request_id = uuid4().hex[:8]
        safe_url = sanitize_url_for_log(url)
        self._logger.debug(
            "[%s] %s %s (attempt %d)", request_id, spec.method, safe_url, spec.attempt + 1
        )
        debug_log(
            self._logger,
            self._debug,
            "HTTP",
            "[%s] Request headers: %s",
            request_id,
            sanitize_for_log(headers),
        )
        if spec.json is not None:
            debug_log(
                self._logger,
                self._debug,
                "HTTP",
                "[%s] Request body: %s",
                request_id,
                sanitize_for_log(spec.json),
            )

        start = time.monotonic()
        try:
            timeout = aiohttp.ClientTimeout(total=self._timeout)
            async with self._session.request(
                spec.method,
                url,
                headers=headers,
                params=spec.params,
                json=spec.json,
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
        self._logger.debug(
            "[%s] Response %s (%dms)",
            request_id,
            status,
            int((time.monotonic() - start) * 1000),
        )
        debug_log(
            self._logger,
            self._debug,
            "HTTP",
            "[%s] Response body: %s",
            request_id,
            sanitize_for_log(body),
        )
        return status, body, response_headers

    def _log_failure(self, spec: RequestSpec, message: str) -> None:
        self._logger.error(
            "Blink request %s %s failed after %d attempt(s): %s",
            spec.method,
            sanitize_url_for_log(spec.path),
            spec.attempt + 1,
            sanitize_for_log(message),
        )
