"""Client-side failures and their retry classification."""
from __future__ import annotations


class RetryableError(Exception):
    """Error with an optional HTTP status and an explicit retry decision.

    ``is_retryable=False`` wins over a retryable status: a quota 429 is never
    worth repeating inside the same day.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        is_retryable: bool = True,
        *,
        code: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.is_retryable = is_retryable
        self.code = code


class RequestTimeout(RetryableError):
    def __init__(self, message: str = "Request timed out"):
        super().__init__(message, None, True)


class NetworkError(RetryableError):
    def __init__(self, message: str = "Network request failed"):
        super().__init__(message, None, True)


class QuotaExceededError(RetryableError):
    def __init__(self, message: str, remaining: int = 0):
        super().__init__(message, 429, False, code="QUOTA_EXCEEDED")
        self.remaining = remaining


class NotSignedInError(RetryableError):
    def __init__(self, message: str = "You must be signed in to analyze workouts"):
        super().__init__(message, 401, False, code="UNAUTHENTICATED")


class MalformedResponseError(RetryableError):
    def __init__(self, message: str = "Response did not match the expected shape"):
        super().__init__(message, None, False, code="MALFORMED_MODEL_OUTPUT")


class RequestCancelled(Exception):
    """The caller aborted the operation; never retried."""

    def __init__(self, message: str = "Request cancelled"):
        super().__init__(message)


__all__ = [
    "RetryableError",
    "RequestTimeout",
    "NetworkError",
    "QuotaExceededError",
    "NotSignedInError",
    "MalformedResponseError",
    "RequestCancelled",
]
