"""Tests for the bounded sample buffer."""

from __future__ import annotations

import threading

import pytest

from affect_score.buffer import SampleBuffer
from affect_score.models import Sample


def _sample(i: int) -> Sample:
    return Sample(hr=60.0 + i, hrv=40.0)


class TestSampleBuffer:
    def test_push_and_size(self):
        buf = SampleBuffer(5)
        for i in range(3):
            buf.push(_sample(i))
        assert buf.size() == 3
        assert len(buf) == 3

    def test_evicts_oldest_when_full(self):
        buf = SampleBuffer(5)
        for i in range(12):
            buf.push(_sample(i))
        assert buf.size() == 5
        assert [s.hr for s in buf.window(5)] == [67.0, 68.0, 69.0, 70.0, 71.0]
        assert buf.pushed_total == 12

    def test_size_never_exceeds_capacity(self):
        buf = SampleBuffer(7)
        for i in range(100):
            buf.push(_sample(i))
            assert buf.size() <= buf.max_capacity

    def test_window_returns_newest_oldest_first(self):
        buf = SampleBuffer(10)
        buf.extend(_sample(i) for i in range(6))
        assert [s.hr for s in buf.window(3)] == [63.0, 64.0, 65.0]

    def test_window_larger_than_contents(self):
        buf = SampleBuffer(10)
        buf.extend(_sample(i) for i in range(2))
        assert len(buf.window(50)) == 2
        assert buf.window(0) == ()

    def test_window_is_a_snapshot(self):
        buf = SampleBuffer(10)
        buf.extend(_sample(i) for i in range(3))
        snap = buf.window(3)
        buf.push(_sample(99))
        assert len(snap) == 3
        assert snap[-1].hr == 62.0

    def test_latest_and_clear(self):
        buf = SampleBuffer(3)
        assert buf.latest() is None
        buf.push(_sample(1))
        assert buf.latest().hr == 61.0
        buf.clear()
        assert buf.size() == 0

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            SampleBuffer(0)

    def test_concurrent_pushes(self):
        buf = SampleBuffer(50)

        def producer():
            for i in range(200):
                buf.push(_sample(i))

        threads = [threading.Thread(target=producer) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert buf.pushed_total == 800
        assert buf.size() == 50
