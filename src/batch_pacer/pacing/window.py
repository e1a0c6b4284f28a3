"""Sliding-window attempt tracking.

Records when calls were attempted and answers whether another call fits
inside the rolling window, or how long to wait until one does.

Algorithm:
    keep timestamps newer than (now - window)
    can_proceed   = len(timestamps) < limit
    wait_seconds  = (oldest + window) - now + safety_buffer   (when full)
"""

from __future__ import annotations

from collections import deque

DEFAULT_WINDOW_SECONDS = 60.0
DEFAULT_SAFETY_BUFFER_SECONDS = 1.0


class RateWindowTracker:
    """Tracks call attempts over a rolling time window.

    Timestamps are plain floats in seconds from whatever clock the caller
    uses (the scheduler passes ``time.monotonic`` by default). Entries are
    appended in non-decreasing order, so the oldest entry is always at the
    left of the deque.

    Usage:
        tracker = RateWindowTracker()

        if tracker.can_proceed(now, limit=15):
            tracker.record_attempt(now)
            ...
        else:
            await asyncio.sleep(tracker.time_until_capacity(now, limit=15))
    """

    def __init__(
        self,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        safety_buffer_seconds: float = DEFAULT_SAFETY_BUFFER_SECONDS,
    ) -> None:
        """Initialize the tracker.

        Args:
            window_seconds: Length of the rolling window (default 60s)
            safety_buffer_seconds: Added to computed waits (default 1s)
        """
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self._window = window_seconds
        self._buffer = safety_buffer_seconds
        self._timestamps: deque[float] = deque()

    @property
    def window_seconds(self) -> float:
        """Length of the rolling window in seconds."""
        return self._window

    def record_attempt(self, now: float) -> None:
        """Record a call attempt at ``now``."""
        self._timestamps.append(now)

    def can_proceed(self, now: float, limit: int) -> bool:
        """Whether another attempt fits in the window ending at ``now``."""
        self._prune(now)
        return len(self._timestamps) < limit

    def time_until_capacity(self, now: float, limit: int) -> float:
        """Seconds to wait before the window has room for another attempt.

        Returns 0.0 when capacity is already available. Otherwise the wait
        runs until the oldest surviving attempt leaves the window, plus the
        safety buffer, so a single re-check after sleeping finds room.
        """
        self._prune(now)
        if len(self._timestamps) < limit:
            return 0.0
        oldest = self._timestamps[0]
        return max(0.0, (oldest + self._window) - now + self._buffer)

    def count(self, now: float) -> int:
        """Number of attempts still inside the window."""
        self._prune(now)
        return len(self._timestamps)

    def snapshot(self) -> list[float]:
        """Copy of the recorded timestamps (oldest first)."""
        return list(self._timestamps)

    def clear(self) -> None:
        """Forget all recorded attempts."""
        self._timestamps.clear()

    def _prune(self, now: float) -> None:
        cutoff = now - self._window
        while self._timestamps and self._timestamps[0] <= cutoff:
            self._timestamps.popleft()

    def __len__(self) -> int:
        return len(self._timestamps)
