"""Resilient callers for the AI proxy (timeouts, backoff retries, cancellation)."""

from .cancel import CancelSignal, RequestCanceller
from .direct import DirectModelClient
from .errors import (
    MalformedResponseError,
    NetworkError,
    NotSignedInError,
    QuotaExceededError,
    RequestCancelled,
    RequestTimeout,
    RetryableError,
)
from .gateway_client import GatewayClient
from .retry import (
    AI_RETRY_OPTIONS,
    AI_TIMEOUT,
    DEFAULT_TIMEOUT,
    RetryOptions,
    calculate_delay,
    fetch_with_retry,
    fetch_with_timeout,
    with_retry,
    with_timeout,
)

__all__ = [
    "CancelSignal",
    "RequestCanceller",
    "DirectModelClient",
    "GatewayClient",
    "MalformedResponseError",
    "NetworkError",
    "NotSignedInError",
    "QuotaExceededError",
    "RequestCancelled",
    "RequestTimeout",
    "RetryableError",
    "AI_RETRY_OPTIONS",
    "AI_TIMEOUT",
    "DEFAULT_TIMEOUT",
    "RetryOptions",
    "calculate_delay",
    "fetch_with_retry",
    "fetch_with_timeout",
    "with_retry",
    "with_timeout",
]
