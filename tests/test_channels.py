"""Tests for the broadcast channels and the interval ticker."""

from __future__ import annotations

import asyncio

import pytest

from affect_score.scheduler import IntervalTicker
from affect_score.streaming import BroadcastChannel


class TestBroadcastChannel:
    @pytest.mark.asyncio
    async def test_delivers_to_every_subscriber(self):
        ch: BroadcastChannel[int] = BroadcastChannel("test")
        a, b = ch.subscribe(), ch.subscribe()
        assert ch.publish(1) == 2
        assert await a.get() == 1
        assert await b.get() == 1

    def test_no_replay_for_late_subscriber(self):
        ch: BroadcastChannel[int] = BroadcastChannel("test")
        early = ch.subscribe()
        ch.publish(1)
        late = ch.subscribe()
        ch.publish(2)
        assert early.drain() == [1, 2]
        assert late.drain() == [2]

    def test_dropped_without_subscribers(self):
        ch: BroadcastChannel[int] = BroadcastChannel("test")
        assert ch.publish(1) == 0
        sub = ch.subscribe()
        assert sub.pending == 0
        assert ch.stats() == {"subscribers": 1, "published": 1, "dropped_no_subscriber": 1}

    def test_full_queue_drops_oldest(self):
        ch: BroadcastChannel[int] = BroadcastChannel("test", maxsize=2)
        sub = ch.subscribe()
        for i in range(5):
            ch.publish(i)
        assert sub.drain() == [3, 4]
        assert sub.dropped == 3

    @pytest.mark.asyncio
    async def test_close_on_full_queue_keeps_every_item(self):
        ch: BroadcastChannel[int] = BroadcastChannel("test", maxsize=2)
        sub = ch.subscribe()
        ch.publish(1)
        ch.publish(2)
        sub.close()
        assert sub.drain() == [1, 2]
        assert sub.dropped == 0
        assert sub.closed

        full = ch.subscribe()
        ch.publish(3)
        ch.publish(4)
        ch.close()
        assert [item async for item in full] == [3, 4]

    def test_slow_subscriber_does_not_affect_others(self):
        ch: BroadcastChannel[int] = BroadcastChannel("test", maxsize=10)
        slow = ch.subscribe(maxsize=1)
        fast = ch.subscribe()
        for i in range(3):
            ch.publish(i)
        assert slow.drain() == [2]
        assert fast.drain() == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_close_ends_iteration_after_draining(self):
        ch: BroadcastChannel[int] = BroadcastChannel("test")
        sub = ch.subscribe()
        ch.publish(1)
        ch.publish(2)
        ch.close()
        assert [item async for item in sub] == [1, 2]
        assert sub.closed
        assert ch.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_close_wakes_waiting_consumer(self):
        ch: BroadcastChannel[int] = BroadcastChannel("test")
        sub = ch.subscribe()
        received: list[int] = []

        async def consume():
            async for item in sub:
                received.append(item)

        task = asyncio.create_task(consume())
        await asyncio.sleep(0)
        ch.publish(7)
        sub.close()
        await asyncio.wait_for(task, timeout=1.0)
        assert received == [7]

    @pytest.mark.asyncio
    async def test_context_manager_unsubscribes(self):
        ch: BroadcastChannel[int] = BroadcastChannel("test")
        async with ch.subscribe() as sub:
            ch.publish(1)
            assert sub.get_nowait() == 1
        assert ch.subscriber_count == 0
        sub.close()  # idempotent

    def test_invalid_maxsize(self):
        with pytest.raises(ValueError):
            BroadcastChannel("test", maxsize=0)


class TestIntervalTicker:
    @pytest.mark.asyncio
    async def test_ticks_until_stopped(self):
        ticker = IntervalTicker(0.01)
        seen: list[int] = []
        async for n in ticker:
            seen.append(n)
            if n == 3:
                ticker.stop()
        assert seen == [1, 2, 3]
        assert ticker.stopped

    @pytest.mark.asyncio
    async def test_stop_interrupts_wait(self):
        ticker = IntervalTicker(60.0, immediate=False)

        async def first_tick():
            async for _ in ticker:
                return True
            return False

        task = asyncio.create_task(first_tick())
        await asyncio.sleep(0.01)
        ticker.stop()
        assert await asyncio.wait_for(task, timeout=1.0) is False
        assert ticker.count == 0

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            IntervalTicker(0)
