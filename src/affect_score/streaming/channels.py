"""Broadcast channels for emitted results.

Semantics
~~~~~~~~~
* **No replay** — a subscriber only sees items published after it joined.
* **Drop if no subscriber** — publishing to an empty channel discards the
  item.
* **Bounded** — each subscriber owns an :class:`asyncio.Queue` of
  ``maxsize`` items.  When a slow subscriber's queue is full, its oldest
  item is dropped so the producer never blocks.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Generic, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_CLOSED = object()


class Subscription(Generic[T]):
    """A single subscriber's view of a :class:`BroadcastChannel`."""

    def __init__(self, channel: BroadcastChannel[T], maxsize: int) -> None:
        self._channel = channel
        self._maxsize = maxsize
        # one spare slot so the close marker never displaces a result
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize + 1)
        self._closed = False
        self._detached = False
        self.dropped = 0

    # ── Delivery (called by the channel) ──────────────────────

    def _offer(self, item: object) -> None:
        if self._queue.qsize() >= self._maxsize:
            self._queue.get_nowait()
            self.dropped += 1
        self._queue.put_nowait(item)

    # ── Consumer API ──────────────────────────────────────────

    async def get(self) -> T:
        """Wait for the next item.

        Raises :class:`StopAsyncIteration` once the subscription is closed
        and drained.
        """
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            self._closed = True
            raise StopAsyncIteration
        return item  # type: ignore[return-value]

    def get_nowait(self) -> T | None:
        """Return the next queued item, or ``None`` if nothing is waiting."""
        try:
            item = self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None
        if item is _CLOSED:
            self._closed = True
            return None
        return item  # type: ignore[return-value]

    def drain(self) -> list[T]:
        """Return every item currently queued."""
        items: list[T] = []
        while (item := self.get_nowait()) is not None:
            items.append(item)
        return items

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Detach from the channel and wake any waiting consumer."""
        if self._detached:
            return
        self._detached = True
        self._channel._remove(self)
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> AsyncIterator[T]:
        return self

    async def __anext__(self) -> T:
        return await self.get()

    async def __aenter__(self) -> Subscription[T]:
        return self

    async def __aexit__(self, *exc: object) -> None:
        self.close()


class BroadcastChannel(Generic[T]):
    """Fan-out channel with per-subscriber bounded queues.

    Usage::

        scores: BroadcastChannel[ScoreResult] = BroadcastChannel("scores")
        sub = scores.subscribe()
        ...
        async for result in sub:
            ...
    """

    def __init__(self, name: str, maxsize: int = 100) -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")
        self.name = name
        self._maxsize = maxsize
        self._subscribers: list[Subscription[T]] = []
        self.published = 0
        self.dropped_no_subscriber = 0

    def subscribe(self, maxsize: int | None = None) -> Subscription[T]:
        sub: Subscription[T] = Subscription(self, maxsize or self._maxsize)
        self._subscribers.append(sub)
        logger.debug("channel.subscribed", channel=self.name, subscribers=len(self._subscribers))
        return sub

    def _remove(self, sub: Subscription[T]) -> None:
        if sub in self._subscribers:
            self._subscribers.remove(sub)
            logger.debug(
                "channel.unsubscribed", channel=self.name, subscribers=len(self._subscribers)
            )

    def publish(self, item: T) -> int:
        """Deliver ``item`` to every current subscriber without blocking.

        Returns the number of subscribers that received it.
        """
        self.published += 1
        if not self._subscribers:
            self.dropped_no_subscriber += 1
            return 0
        for sub in list(self._subscribers):
            sub._offer(item)
        return len(self._subscribers)

    def close(self) -> None:
        """Close every subscription; consumers finish after draining."""
        for sub in list(self._subscribers):
            sub.close()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def stats(self) -> dict[str, int]:
        return {
            "subscribers": len(self._subscribers),
            "published": self.published,
            "dropped_no_subscriber": self.dropped_no_subscriber,
        }
