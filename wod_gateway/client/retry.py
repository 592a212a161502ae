"""Timeout and exponential-backoff retry for outbound calls."""
from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from .cancel import CancelSignal, run_cancellable
from .errors import NetworkError, RequestCancelled, RequestTimeout, RetryableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})

# General calls vs. model-backed calls, which need room for model latency
DEFAULT_TIMEOUT = 30.0
AI_TIMEOUT = 60.0

JITTER_RATIO = 0.3


@dataclass(frozen=True)
class RetryOptions:
    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    backoff_multiplier: float = 2.0
    retryable_statuses: frozenset[int] = RETRYABLE_STATUSES
    on_retry: Callable[[int, Exception], None] | None = None


DEFAULT_RETRY_OPTIONS = RetryOptions()
# Each retried AI call pays the full model latency again
AI_RETRY_OPTIONS = RetryOptions(max_retries=2)


def calculate_delay(
    attempt: int,
    options: RetryOptions = DEFAULT_RETRY_OPTIONS,
    rand: Callable[[], float] = random.random,
) -> float:
    """Seconds to wait after failed attempt ``attempt`` (0-indexed)."""
    delay = options.initial_delay * options.backoff_multiplier ** attempt
    jitter = rand() * JITTER_RATIO * delay
    return min(delay + jitter, options.max_delay)


def is_retryable(error: BaseException, options: RetryOptions = DEFAULT_RETRY_OPTIONS) -> bool:
    if isinstance(error, RequestCancelled):
        return False
    if not isinstance(error, RetryableError):
        return True
    if not error.is_retryable:
        return False
    return error.status_code is None or error.status_code in options.retryable_statuses


async def _sleep(delay: float, signal: CancelSignal | None) -> None:
    if signal is None:
        await asyncio.sleep(delay)
        return
    try:
        await asyncio.wait_for(signal.wait(), timeout=delay)
    except TimeoutError:
        return
    raise RequestCancelled()


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    options: RetryOptions | None = None,
    *,
    signal: CancelSignal | None = None,
) -> T:
    """Call ``fn`` until it succeeds, fails for good or retries run out.

    ``fn`` is invoked at most ``options.max_retries + 1`` times. The last
    error is re-raised unchanged.
    """
    opts = options or DEFAULT_RETRY_OPTIONS

    async def _attempt() -> T:
        if signal is not None:
            signal.raise_if_cancelled()
        return await run_cancellable(fn(), signal)

    async def _backoff(delay: float) -> None:
        await _sleep(delay, signal)

    def _before_sleep(state: RetryCallState) -> None:
        exc = state.outcome.exception()
        logger.info(
            "Attempt %d failed (%s), retrying in %.2fs",
            state.attempt_number,
            exc,
            state.next_action.sleep,
        )
        if opts.on_retry is not None:
            opts.on_retry(state.attempt_number, exc)

    retrying = AsyncRetrying(
        stop=stop_after_attempt(opts.max_retries + 1),
        wait=lambda state: calculate_delay(state.attempt_number - 1, opts),
        retry=retry_if_exception(
            lambda exc: isinstance(exc, Exception) and is_retryable(exc, opts)
        ),
        sleep=_backoff,
        before_sleep=_before_sleep,
        reraise=True,
    )
    return await retrying(_attempt)


async def with_timeout(
    fn: Callable[[], Awaitable[T]],
    timeout: float = DEFAULT_TIMEOUT,
    *,
    signal: CancelSignal | None = None,
    description: str = "Request",
) -> T:
    """Run ``fn`` with a deadline; expiry cancels it and raises RequestTimeout."""
    try:
        async with asyncio.timeout(timeout):
            return await run_cancellable(fn(), signal)
    except TimeoutError as exc:
        raise RequestTimeout(f"{description} timed out after {timeout}s") from exc


async def fetch_with_timeout(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    signal: CancelSignal | None = None,
    **kwargs: Any,
) -> httpx.Response:
    """Send one HTTP request bounded by ``timeout`` seconds."""

    async def _send() -> httpx.Response:
        # httpx deadline matches the asyncio one
        return await client.request(method, url, timeout=timeout, **kwargs)

    try:
        return await with_timeout(
            _send, timeout, signal=signal, description=f"Request to {url}"
        )
    except httpx.TimeoutException as exc:
        raise RequestTimeout(f"Request to {url} timed out after {timeout}s") from exc
    except httpx.TransportError as exc:
        raise NetworkError(f"Request to {url} failed: {exc}") from exc


async def fetch_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    retry_options: RetryOptions | None = None,
    signal: CancelSignal | None = None,
    **kwargs: Any,
) -> httpx.Response:
    """Timeout-bounded request retried on transient statuses."""
    opts = retry_options or DEFAULT_RETRY_OPTIONS

    async def _attempt() -> httpx.Response:
        response = await fetch_with_timeout(
            client, method, url, timeout=timeout, signal=signal, **kwargs
        )
        if response.is_error:
            raise RetryableError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                response.status_code,
                response.status_code in opts.retryable_statuses,
            )
        return response

    return await with_retry(_attempt, opts, signal=signal)


__all__ = [
    "RETRYABLE_STATUSES",
    "DEFAULT_TIMEOUT",
    "AI_TIMEOUT",
    "RetryOptions",
    "DEFAULT_RETRY_OPTIONS",
    "AI_RETRY_OPTIONS",
    "calculate_delay",
    "is_retryable",
    "with_retry",
    "with_timeout",
    "fetch_with_timeout",
    "fetch_with_retry",
]
