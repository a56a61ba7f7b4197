"""Thread-safe completion counter with ETA estimate."""

import threading
import time
from typing import Callable


class ProgressTracker:
    """Counts completed libraries across workers.

    The ETA extrapolates the average time per completed library over the
    remaining ones. It is advisory only.
    """

    def __init__(self, total: int, clock: Callable[[], float] = time.monotonic):
        """Initialize the tracker.

        Args:
            total: Number of libraries queued for this run
            clock: Time source, injectable for tests
        """
        self.total = total
        self._clock = clock
        self._started_at = clock()
        self._completed = 0
        self._lock = threading.Lock()

    @property
    def completed(self) -> int:
        with self._lock:
            return self._completed

    def record_completion(self) -> tuple[int, float]:
        """Count one finished library.

        Returns:
            Tuple of (completed count, estimated seconds remaining)
        """
        with self._lock:
            self._completed += 1
            done = self._completed
        return done, self.eta_seconds(done)

    def eta_seconds(self, done: int) -> float:
        """Estimate remaining seconds after ``done`` completions."""
        if done <= 0:
            return 0.0
        elapsed = self._clock() - self._started_at
        remaining = max(self.total - done, 0)
        return elapsed / done * remaining
