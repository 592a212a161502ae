"""Cooperative cancellation for outbound calls."""
from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from .errors import RequestCancelled

T = TypeVar("T")


class CancelSignal:
    """Set-once flag observed by every attempt and backoff sleep of a call."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RequestCancelled()


class RequestCanceller:
    """Hands out signals and aborts all of them at once.

    Use it for the lifetime of a screen or task group; leaving the
    ``async with`` block cancels whatever is still running.
    """

    def __init__(self) -> None:
        self._signals: list[CancelSignal] = []

    def create_signal(self) -> CancelSignal:
        signal = CancelSignal()
        self._signals.append(signal)
        return signal

    def cancel_all(self) -> None:
        for signal in self._signals:
            signal.cancel()
        self._signals = []

    async def __aenter__(self) -> "RequestCanceller":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.cancel_all()


async def run_cancellable(awaitable: Awaitable[T], signal: CancelSignal | None) -> T:
    """Await ``awaitable`` unless ``signal`` fires first.

    On cancellation the in-flight task is cancelled and awaited before
    :class:`RequestCancelled` is raised, so nothing keeps running.
    """
    if signal is None:
        return await awaitable
    task = asyncio.ensure_future(awaitable)
    if signal.cancelled:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise RequestCancelled()

    waiter = asyncio.ensure_future(signal.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        waiter.cancel()
        await asyncio.gather(task, waiter, return_exceptions=True)
        raise

    if task.done():
        waiter.cancel()
        return task.result()

    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
    raise RequestCancelled()


__all__ = ["CancelSignal", "RequestCanceller", "run_cancellable"]
