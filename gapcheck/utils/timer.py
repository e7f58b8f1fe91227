"""
Timing Utilities
Millisecond timers for inspection cycles and a windowed frame-rate meter
for the acquisition loop.
"""

import time
from contextlib import contextmanager
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class PerformanceTimer:
    """
    Millisecond stopwatch.

    start() returns the timer so it can be created and started in one
    expression: ``timer = PerformanceTimer("Gap inspection").start()``.
    """

    def __init__(self, name: str = "Operation"):
        self.name = name
        self.start_time: Optional[float] = None
        self.elapsed_ms = 0.0

    def start(self) -> 'PerformanceTimer':
        self.start_time = time.perf_counter()
        self.elapsed_ms = 0.0
        return self

    def stop(self) -> float:
        """Freeze and return the elapsed milliseconds."""
        if self.start_time is None:
            logger.warning(f"Timer '{self.name}' stopped before starting")
            return 0.0

        self.elapsed_ms = (time.perf_counter() - self.start_time) * 1000.0
        return self.elapsed_ms

    def log_elapsed(self, level: int = logging.DEBUG):
        if self.elapsed_ms > 0:
            logger.log(level, f"{self.name}: {self.elapsed_ms:.2f} ms")


@contextmanager
def timed_operation(name: str = "Operation", log_level: int = logging.DEBUG):
    """
    Time a block; the yielded timer holds elapsed_ms once the block exits.

    Usage:
        with timed_operation("Camera FPS probe") as timer:
            read_frames()
        fps = frames * 1000.0 / timer.elapsed_ms
    """
    timer = PerformanceTimer(name).start()
    try:
        yield timer
    finally:
        timer.stop()
        timer.log_elapsed(log_level)


class FrameRateMeter:
    """
    Counts events and reports their rate once per window.

    Args:
        window_s: Length of the averaging window in seconds
    """

    def __init__(self, window_s: float = 1.0):
        self.window_s = window_s
        self.rate = 0.0
        self._count = 0
        self._window_start = time.perf_counter()

    def reset(self):
        self.rate = 0.0
        self._count = 0
        self._window_start = time.perf_counter()

    def tick(self) -> Optional[float]:
        """Count one event; returns the new rate when a window closes, else None."""
        self._count += 1
        now = time.perf_counter()
        elapsed = now - self._window_start
        if elapsed < self.window_s:
            return None

        self.rate = self._count / elapsed
        self._count = 0
        self._window_start = now
        return self.rate
