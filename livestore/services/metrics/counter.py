"""
Event Counter

Thread-safe category -> count mapping shared by request handlers, driver
monitoring listeners (which run on driver threads) and the metrics
publisher. The publisher drains it atomically each cycle.
"""

import threading
from collections import Counter

from .classifier import classify_error

# Well-known categories besides the error classes
CONFIG_REFRESH_FAILED = "config refresh failed"
METRICS_PUBLISH_FAILED = "metrics publish failed"


class EventCounter:
    """
    Counts events by category.

    increment() and snapshot_and_reset() share one lock, so every increment
    is attributed to exactly one drain. Only in-memory work happens while
    the lock is held.
    """

    def __init__(self):
        self._counts: Counter[str] = Counter()
        self._lock = threading.Lock()

    def increment(self, category: str, amount: int = 1) -> None:
        """Add amount to category (created on first use)"""
        if amount < 0:
            raise ValueError(f"Counts only go up, got {amount} for {category!r}")
        with self._lock:
            self._counts[category] += amount

    def record_error(self, error: BaseException | str) -> str:
        """Classify an error, count it and return its category"""
        category = classify_error(error)
        self.increment(category)
        return category

    def snapshot_and_reset(self) -> dict[str, int]:
        """
        Atomically take the current counts and start from zero.

        Returns:
            Detached dict the caller owns
        """
        with self._lock:
            counts, self._counts = self._counts, Counter()
        return dict(counts)

    def peek(self) -> dict[str, int]:
        """Copy of the current counts without draining"""
        with self._lock:
            return dict(self._counts)

    def get(self, category: str) -> int:
        with self._lock:
            return self._counts.get(category, 0)
