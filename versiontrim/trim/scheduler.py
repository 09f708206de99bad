"""Count- and time-bounded batching of the work list.

A batch ends when its item quota is used up or when its elapsed time reaches
the configured limit, whichever happens first. The time check runs before
each item, so a slow item can carry a batch past the limit; the next item
then starts the following batch.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_BATCH_PERCENT = 25
DEFAULT_MAX_BATCH_MINUTES = 5


@dataclass(frozen=True)
class BatchWindow:
    """Half-open index range [start, end) of the work list."""

    number: int
    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start


def normalize_percent(batch_percent: int) -> int:
    """Percent outside (0, 100] falls back to the default."""
    if batch_percent <= 0 or batch_percent > 100:
        logger.warning(f"Batch percent {batch_percent} out of range; using {DEFAULT_BATCH_PERCENT}%")
        return DEFAULT_BATCH_PERCENT
    return batch_percent


class BatchClock:
    """Live timer for one batch.

    Attributes:
        limit_seconds: Time budget of the batch (None = unbounded)
    """

    def __init__(self, max_batch_minutes: Optional[float], clock: Callable[[], float] = time.monotonic) -> None:
        self.limit_seconds = None if max_batch_minutes is None else max_batch_minutes * 60
        self._clock = clock
        self._started = clock()

    @property
    def elapsed(self) -> float:
        return self._clock() - self._started

    def should_stop(self, elapsed: Optional[float] = None) -> bool:
        """Whether the batch has used up its time budget."""
        if self.limit_seconds is None:
            return False
        if elapsed is None:
            elapsed = self.elapsed
        return elapsed >= self.limit_seconds


class BatchScheduler:
    """Splits a work list into batches.

    Attributes:
        batch_percent: Share of the total items per batch
        max_batch_minutes: Time budget per batch
        bypass: One unbounded batch covering everything
    """

    def __init__(
        self,
        batch_percent: int = DEFAULT_BATCH_PERCENT,
        max_batch_minutes: int = DEFAULT_MAX_BATCH_MINUTES,
        bypass: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.batch_percent = normalize_percent(batch_percent)
        self.max_batch_minutes = max_batch_minutes
        self.bypass = bypass
        self._clock = clock

    def batch_size(self, total: int) -> int:
        if total <= 0:
            return 0
        if self.bypass:
            return total
        return max(1, math.ceil(total * self.batch_percent / 100))

    def partition(self, total: int) -> list[BatchWindow]:
        """Plan batches assuming no batch closes early on time.

        The windows cover [0, total) exactly, without gaps or overlap.
        """
        size = self.batch_size(total)
        windows = []
        start = 0
        while start < total:
            end = min(start + size, total)
            windows.append(BatchWindow(number=len(windows) + 1, start=start, end=end))
            start = end
        return windows

    def window_at(self, number: int, start: int, total: int) -> BatchWindow:
        """Window for the batch beginning at ``start``.

        Used when an earlier batch closed on time, so later batches shift.
        """
        return BatchWindow(number=number, start=start, end=min(start + self.batch_size(total), total))

    def start_clock(self) -> BatchClock:
        limit = None if self.bypass else self.max_batch_minutes
        return BatchClock(limit, clock=self._clock)


def partition(total: int, batch_percent: int, bypass: bool = False) -> list[BatchWindow]:
    """Plan the batches for ``total`` items."""
    return BatchScheduler(batch_percent=batch_percent, bypass=bypass).partition(total)
