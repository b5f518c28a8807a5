"""Coalesce concurrent identical coroutines into one execution."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Hashable


class SingleFlight:
    """Share one in-flight task per key between concurrent callers.

    The task is forgotten once it finishes, so a failed call is retried by
    the next caller rather than cached.
    """

    def __init__(self) -> None:
        self._inflight: dict[Hashable, asyncio.Future[Any]] = {}

    def in_flight(self, key: Hashable) -> bool:
        return key in self._inflight

    async def do(self, key: Hashable, factory: Callable[[], Awaitable[Any]]) -> Any:
        future = self._inflight.get(key)
        if future is None:
            future = asyncio.ensure_future(factory())
            self._inflight[key] = future
            future.add_done_callback(lambda _done: self._inflight.pop(key, None))
        # Shield so one cancelled waiter does not cancel the shared work.
        return await asyncio.shield(future)
