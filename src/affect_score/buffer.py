"""Capacity-bounded, thread-safe sample buffer."""

from __future__ import annotations

import threading
from collections import deque
from itertools import islice
from typing import Iterable

from affect_score.models import Sample


class SampleBuffer:
    """Ordered ring of the most recent samples.

    The collector appends from its own thread while the processing loop
    snapshots windows, so every access goes through one lock.  Once
    ``max_capacity`` is exceeded the oldest samples are dropped silently.
    """

    def __init__(self, max_capacity: int = 300) -> None:
        if max_capacity < 1:
            raise ValueError("max_capacity must be >= 1")
        self._max_capacity = max_capacity
        self._samples: deque[Sample] = deque(maxlen=max_capacity)
        self._lock = threading.Lock()
        self._pushed_total = 0

    # ── Producer side ─────────────────────────────────────────

    def push(self, sample: Sample) -> None:
        """Append a sample, evicting the oldest one when full."""
        with self._lock:
            self._samples.append(sample)
            self._pushed_total += 1

    def extend(self, samples: Iterable[Sample]) -> None:
        with self._lock:
            for s in samples:
                self._samples.append(s)
                self._pushed_total += 1

    # ── Consumer side ─────────────────────────────────────────

    def window(self, size: int) -> tuple[Sample, ...]:
        """Return the newest ``min(size, len)`` samples, oldest first."""
        if size <= 0:
            return ()
        with self._lock:
            n = len(self._samples)
            if size >= n:
                return tuple(self._samples)
            return tuple(islice(self._samples, n - size, None))

    def latest(self) -> Sample | None:
        with self._lock:
            return self._samples[-1] if self._samples else None

    def size(self) -> int:
        with self._lock:
            return len(self._samples)

    def clear(self) -> None:
        with self._lock:
            self._samples.clear()

    # ── Introspection ─────────────────────────────────────────

    @property
    def max_capacity(self) -> int:
        return self._max_capacity

    @property
    def pushed_total(self) -> int:
        """Samples accepted since creation, including evicted ones."""
        return self._pushed_total

    def __len__(self) -> int:
        return self.size()
