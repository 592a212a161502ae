import asyncio

import httpx
import pytest

from wod_gateway.client.cancel import CancelSignal, RequestCanceller, run_cancellable
from wod_gateway.client.errors import (
    NetworkError,
    QuotaExceededError,
    RequestCancelled,
    RequestTimeout,
    RetryableError,
)
from wod_gateway.client.retry import (
    RetryOptions,
    calculate_delay,
    fetch_with_retry,
    fetch_with_timeout,
    is_retryable,
    with_retry,
    with_timeout,
)


class Flaky:
    """Raises the queued errors in order, then returns ``result``."""

    def __init__(self, *errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


def test_calculate_delay_bounds():
    opts = RetryOptions(initial_delay=1.0, max_delay=10.0, backoff_multiplier=2.0)
    assert calculate_delay(0, opts, rand=lambda: 0.0) == 1.0
    assert calculate_delay(0, opts, rand=lambda: 1.0) == pytest.approx(1.3)
    assert calculate_delay(2, opts, rand=lambda: 0.0) == 4.0
    assert calculate_delay(2, opts, rand=lambda: 0.999) == pytest.approx(4.0 * 1.2997)
    assert calculate_delay(5, opts, rand=lambda: 0.5) == 10.0


def test_calculate_delay_random_within_range():
    opts = RetryOptions()
    for attempt in range(6):
        base = min(opts.initial_delay * opts.backoff_multiplier ** attempt, opts.max_delay)
        delay = calculate_delay(attempt, opts)
        assert base <= delay <= min(base * 1.3, opts.max_delay)


def test_is_retryable():
    assert is_retryable(RetryableError("x", 503))
    assert is_retryable(RetryableError("x", 429))
    assert is_retryable(RequestTimeout())
    assert is_retryable(NetworkError())
    assert is_retryable(ValueError("unknown"))
    assert not is_retryable(RetryableError("x", 400))
    assert not is_retryable(RetryableError("x", 503, False))
    assert not is_retryable(QuotaExceededError("limit"))
    assert not is_retryable(RequestCancelled())


@pytest.mark.asyncio
async def test_retries_transient_status_until_exhausted(sleeps):
    fn = Flaky(*(RetryableError("unavailable", 503) for _ in range(5)))
    opts = RetryOptions(max_retries=3)

    with pytest.raises(RetryableError) as exc:
        await with_retry(fn, opts)

    assert fn.calls == 4
    assert exc.value.status_code == 503
    assert len(sleeps) == 3
    assert sleeps == sorted(sleeps)


@pytest.mark.asyncio
async def test_recovers_after_transient_failures(sleeps):
    fn = Flaky(RetryableError("busy", 503), NetworkError(), result={"data": 1})

    assert await with_retry(fn, RetryOptions(max_retries=3)) == {"data": 1}
    assert fn.calls == 3


@pytest.mark.asyncio
async def test_quota_error_is_not_retried(sleeps):
    fn = Flaky(QuotaExceededError("Daily limit reached"))

    with pytest.raises(QuotaExceededError):
        await with_retry(fn, RetryOptions(max_retries=3))

    assert fn.calls == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_zero_retries_calls_once(sleeps):
    fn = Flaky(RetryableError("busy", 503))
    with pytest.raises(RetryableError):
        await with_retry(fn, RetryOptions(max_retries=0))
    assert fn.calls == 1


@pytest.mark.asyncio
async def test_on_retry_callback(sleeps):
    seen = []
    opts = RetryOptions(max_retries=2, on_retry=lambda attempt, err: seen.append((attempt, str(err))))
    fn = Flaky(RetryableError("first", 500), RetryableError("second", 502))

    assert await with_retry(fn, opts) == "ok"
    assert seen == [(1, "first"), (2, "second")]


@pytest.mark.asyncio
async def test_with_timeout_raises_request_timeout():
    async def _slow():
        await asyncio.sleep(5)

    loop = asyncio.get_running_loop()
    started = loop.time()
    with pytest.raises(RequestTimeout):
        await with_timeout(_slow, 0.05)
    assert loop.time() - started < 1.0


@pytest.mark.asyncio
async def test_with_timeout_returns_result():
    async def _fast():
        return 42

    assert await with_timeout(_fast, 1.0) == 42


@pytest.mark.asyncio
async def test_cancel_in_flight_attempt():
    signal = CancelSignal()
    started = asyncio.Event()
    finished = []

    async def _slow():
        started.set()
        try:
            await asyncio.sleep(5)
        finally:
            finished.append(True)

    call = asyncio.create_task(with_retry(_slow, RetryOptions(max_retries=3), signal=signal))
    await started.wait()
    signal.cancel()

    with pytest.raises(RequestCancelled):
        await call
    assert finished == [True]


@pytest.mark.asyncio
async def test_cancel_during_backoff_stops_retrying():
    signal = CancelSignal()
    fn = Flaky(*(RetryableError("busy", 503) for _ in range(5)))
    opts = RetryOptions(max_retries=5, initial_delay=5.0, max_delay=5.0)

    call = asyncio.create_task(with_retry(fn, opts, signal=signal))
    while fn.calls == 0:
        await asyncio.sleep(0)
    await asyncio.sleep(0.01)
    signal.cancel()

    with pytest.raises(RequestCancelled):
        await asyncio.wait_for(call, 1.0)
    assert fn.calls == 1


@pytest.mark.asyncio
async def test_already_cancelled_signal_never_calls():
    signal = CancelSignal()
    signal.cancel()
    fn = Flaky()

    with pytest.raises(RequestCancelled):
        await with_retry(fn, signal=signal)
    assert fn.calls == 0


@pytest.mark.asyncio
async def test_run_cancellable_passes_result_through():
    async def _value():
        return "done"

    assert await run_cancellable(_value(), CancelSignal()) == "done"
    assert await run_cancellable(_value(), None) == "done"


@pytest.mark.asyncio
async def test_request_canceller_cancels_all_on_exit():
    async with RequestCanceller() as canceller:
        first = canceller.create_signal()
        second = canceller.create_signal()
        assert not first.cancelled
    assert first.cancelled
    assert second.cancelled


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://gw.test")


@pytest.mark.asyncio
async def test_fetch_with_retry_recovers(sleeps):
    statuses = [503, 502, 200]

    def handler(request):
        return httpx.Response(statuses.pop(0), json={"ok": True})

    async with _client(handler) as client:
        response = await fetch_with_retry(client, "GET", "/v1/limits")

    assert response.status_code == 200
    assert statuses == []
    assert len(sleeps) == 2


@pytest.mark.asyncio
async def test_fetch_with_retry_does_not_retry_client_errors(sleeps):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(400, json={"error": "bad"})

    async with _client(handler) as client:
        with pytest.raises(RetryableError) as exc:
            await fetch_with_retry(client, "POST", "/v1/ai/proxy", json={})

    assert exc.value.status_code == 400
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_fetch_with_timeout_maps_transport_errors():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    def slow(request):
        raise httpx.ReadTimeout("read timed out", request=request)

    async with _client(refuse) as client:
        with pytest.raises(NetworkError):
            await fetch_with_timeout(client, "GET", "/v1/limits")

    async with _client(slow) as client:
        with pytest.raises(RequestTimeout):
            await fetch_with_timeout(client, "GET", "/v1/limits")


@pytest.mark.asyncio
async def test_timeout_with_signal_waits_for_attempt_to_stop():
    signal = CancelSignal()
    finished = []

    async def _slow():
        try:
            await asyncio.sleep(5)
        finally:
            await asyncio.sleep(0)
            finished.append(True)

    with pytest.raises(RequestTimeout):
        await with_timeout(_slow, 0.05, signal=signal)

    assert finished == [True]


@pytest.mark.asyncio
async def test_outer_task_cancellation_is_not_retried(sleeps):
    started = asyncio.Event()
    calls = []

    async def _slow():
        calls.append(1)
        started.set()
        await asyncio.sleep(5)

    call = asyncio.create_task(with_retry(_slow, RetryOptions(max_retries=3)))
    await started.wait()
    call.cancel()

    with pytest.raises(asyncio.CancelledError):
        await call
    assert calls == [1]
    assert sleeps == []
