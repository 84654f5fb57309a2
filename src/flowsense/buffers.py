"""Bounded FIFO sample buffers owned by a single engine instance."""

from __future__ import annotations

import collections
import itertools
from dataclasses import dataclass, field
from typing import Deque, Generic, Iterator, TypeVar

T = TypeVar("T")

# ── Capacities (1 Hz producers) ───────────────────────────────

MAGNITUDE_CAPACITY = 600  # ~10 minutes
INACTIVE_EPOCH_CAPACITY = 3600  # ~60 minutes
EDITOR_ACTIVITY_CAPACITY = 300  # ~5 minutes
HEART_RATE_CAPACITY = 300
FLOW_SCORE_CAPACITY = 10


class RingBuffer(Generic[T]):
    """FIFO buffer that drops its oldest entry on overflow.

    Not thread-safe by itself; the owning engine serialises access.
    """

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._items: Deque[T] = collections.deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._items.maxlen or 0

    def append(self, item: T) -> None:
        self._items.append(item)

    def tail(self, count: int) -> list[T]:
        """Return the newest *count* entries, oldest first."""
        if count <= 0:
            return []
        start = max(0, len(self._items) - count)
        return list(itertools.islice(self._items, start, None))

    def last(self) -> T | None:
        return self._items[-1] if self._items else None

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items))


@dataclass
class SampleBuffers:
    """All raw-signal history the detectors read from.

    ``magnitudes`` and ``inactive_epochs`` are appended together for every
    accepted motion sample, so their tails line up entry for entry.
    """

    magnitudes: RingBuffer[float] = field(default_factory=lambda: RingBuffer(MAGNITUDE_CAPACITY))
    inactive_epochs: RingBuffer[bool] = field(
        default_factory=lambda: RingBuffer(INACTIVE_EPOCH_CAPACITY)
    )
    editor_rates: RingBuffer[float] = field(
        default_factory=lambda: RingBuffer(EDITOR_ACTIVITY_CAPACITY)
    )
    heart_rates: RingBuffer[float] = field(default_factory=lambda: RingBuffer(HEART_RATE_CAPACITY))

    def clear(self) -> None:
        self.magnitudes.clear()
        self.inactive_epochs.clear()
        self.editor_rates.clear()
        self.heart_rates.clear()
