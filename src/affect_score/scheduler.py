"""Tick scheduling for the processing loop.

``IntervalTicker`` yields on a fixed cadence measured from its start time,
so a slow cycle shortens the following sleep instead of drifting the
schedule.  Stopping is cooperative: the ticker finishes its current
iteration and yields nothing further.
"""

from __future__ import annotations

import asyncio
import time
from typing import AsyncIterator


class IntervalTicker:
    """Async iterator of tick numbers spaced ``interval`` seconds apart.

    Integration::

        ticker = IntervalTicker(1.0)
        async for n in ticker:
            await do_cycle()
        ...
        ticker.stop()  # from elsewhere
    """

    def __init__(self, interval: float, *, immediate: bool = True) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._interval = interval
        self._immediate = immediate
        self._stop = asyncio.Event()
        self._count = 0
        self._origin: float | None = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def count(self) -> int:
        return self._count

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        self._stop.set()

    def __aiter__(self) -> AsyncIterator[int]:
        return self

    async def __anext__(self) -> int:
        if self._stop.is_set():
            raise StopAsyncIteration

        now = time.monotonic()
        if self._origin is None:
            self._origin = now if self._immediate else now + self._interval
        due = self._origin + self._count * self._interval
        delay = due - now
        if delay > 0:
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
            if self._stop.is_set():
                raise StopAsyncIteration
        elif delay < -self._interval:
            # fell more than one period behind; skip missed ticks
            self._origin = now - self._count * self._interval

        self._count += 1
        return self._count
