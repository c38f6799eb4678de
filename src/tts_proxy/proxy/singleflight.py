"""
Single-Flight De-duplication of Upstream Fetches.

When several requests miss the cache for the same text at the same time,
only the first one calls upstream. The others wait for that call and get
the same result (or the same exception). The registry entry is removed as
soon as the call finishes, so a failed fetch is never reused by a later
request.

Cancellation:
    The shared fetch runs as its own task. A cancelled waiter does not
    cancel it while other waiters remain; when the last waiter goes away
    the fetch is cancelled too.

Usage:
    flights = SingleFlight()
    response, shared = await flights.do(text, lambda: fetch(text))
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional, Tuple, TypeVar

from tts_proxy.core.logging import get_logger, verbose

_LOG = get_logger("tts-proxy.singleflight")

T = TypeVar("T")


@dataclass
class _Call:
    loop: asyncio.AbstractEventLoop
    task: Optional["asyncio.Task"] = None
    waiters: int = 0


class SingleFlight:
    """
    Per-key registry of in-flight coroutine calls.

    Calls are only shared between callers on the same event loop; a
    caller on a different loop (e.g. a later asyncio.run() in a
    serverless invocation) always starts its own call.
    """

    def __init__(self):
        self._calls: Dict[str, _Call] = {}

    @property
    def in_flight(self) -> int:
        """Number of keys with a fetch currently running."""
        return len(self._calls)

    def _forget(self, key: str, call: _Call) -> None:
        if self._calls.get(key) is call:
            del self._calls[key]

    async def do(self, key: str, fn: Callable[[], Awaitable[T]]) -> Tuple[T, bool]:
        """
        Run fn() once per key among concurrent callers.

        Args:
            key: De-duplication key (the exact request text).
            fn: Zero-argument coroutine factory that performs the fetch.

        Returns:
            Tuple of (result, shared). shared is True when this caller
            joined a call started by someone else.

        Raises:
            Whatever fn() raised, in every caller that shared the call.
        """
        loop = asyncio.get_running_loop()
        call = self._calls.get(key)
        shared = call is not None and call.loop is loop and call.task is not None

        if shared:
            verbose(_LOG, "singleflight_join", key=key[:16], waiters=call.waiters + 1)
        else:
            call = _Call(loop=loop)

            async def run() -> T:
                try:
                    return await fn()
                finally:
                    self._forget(key, call)

            self._calls[key] = call
            call.task = loop.create_task(run())

        call.waiters += 1
        try:
            return await asyncio.shield(call.task), shared
        except asyncio.CancelledError:
            if call.waiters == 1 and not call.task.done():
                call.task.cancel()
                self._forget(key, call)
            raise
        finally:
            call.waiters -= 1
