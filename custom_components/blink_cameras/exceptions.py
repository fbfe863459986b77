"""Exception hierarchy for the Blink Cameras integration."""

from __future__ import annotations


class BlinkError(Exception):
    """Base exception for Blink Cameras integration.

    All Blink-specific exceptions inherit from this class, allowing
    consumers to catch all integration errors with a single except clause.
    """

    __slots__ = ()


class BlinkNetworkError(BlinkError):
    """No response was received from the Blink service.

    Raised when a network connection cannot be established, including DNS
    resolution failures, connection resets and similar errors.
    """

    __slots__ = ()


class BlinkTimeoutError(BlinkNetworkError):
    """A request to the Blink service timed out.

    Inherits from BlinkNetworkError as timeouts are a type of network
    failure and are retried the same way.
    """

    __slots__ = ()


class BlinkAuthError(BlinkError):
    """Authentication with the Blink service failed."""

    __slots__ = ()


class BlinkInvalidCredentialsError(BlinkAuthError):
    """The username or password was rejected by the OAuth endpoint."""

    __slots__ = ()


class BlinkInvalidCodeError(BlinkAuthError):
    """A verification code was rejected.

    Not fatal: the session stays in its pending state and the caller may
    retry with a new code until the attempt budget runs out.
    """

    __slots__ = ()


class BlinkTokenExpiredError(BlinkAuthError):
    """The service kept rejecting the bearer token after a forced refresh."""

    __slots__ = ()


class BlinkRefreshFailedError(BlinkAuthError):
    """The refresh-token grant failed."""

    __slots__ = ()


class BlinkAuthRequiredError(BlinkAuthError):
    """No usable session exists and one cannot be obtained automatically.

    The caller must relay this to the user (reauthentication) rather than
    retrying.
    """

    __slots__ = ()


class BlinkVerificationRequiredError(BlinkAuthRequiredError):
    """Login is waiting for a one-time verification code."""

    __slots__ = ()


class BlinkTwoFactorRequiredError(BlinkVerificationRequiredError):
    """A two-factor code is required to finish the password grant."""

    __slots__ = ()


class BlinkClientVerificationRequiredError(BlinkVerificationRequiredError):
    """This client (device id) must be verified with an emailed PIN."""

    __slots__ = ()


class BlinkAccountVerificationRequiredError(BlinkVerificationRequiredError):
    """The account or phone number must be verified with a PIN."""

    __slots__ = ()


class BlinkApiError(BlinkError):
    """The Blink API returned an error response.

    Attributes:
        status: The HTTP status code, if a response was received.
        detail: The server-provided error detail, if any.
    """

    __slots__ = ("detail", "status")

    def __init__(
        self,
        message: str,
        status: int | None = None,
        detail: str | None = None,
    ) -> None:
        """Initialize BlinkApiError.

        Args:
            message: Human-readable error description.
            status: Optional HTTP status code (e.g., 404).
            detail: Optional error detail taken from the response body.
        """
        super().__init__(message)
        self.status = status
        self.detail = detail


class BlinkRequestError(BlinkApiError):
    """A 4xx response that is not retried."""

    __slots__ = ()


class BlinkRateLimitedError(BlinkApiError):
    """The service kept answering 429 until the retry budget ran out.

    Attributes:
        retry_after: The last Retry-After delay in seconds, if one was sent.
    """

    __slots__ = ("retry_after",)

    def __init__(
        self,
        message: str,
        status: int | None = 429,
        detail: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        """Initialize BlinkRateLimitedError."""
        super().__init__(message, status=status, detail=detail)
        self.retry_after = retry_after


class BlinkServerError(BlinkApiError):
    """The service kept answering 5xx until the retry budget ran out."""

    __slots__ = ()


class BlinkConfigurationError(BlinkError):
    """The configuration cannot work (unknown tier, unwritable storage)."""

    __slots__ = ()


class BlinkStorageError(BlinkError):
    """The persisted auth record could not be written or removed."""

    __slots__ = ()
