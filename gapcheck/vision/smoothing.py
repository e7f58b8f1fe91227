"""
Temporal Smoothing
Per-line exponential moving average of gap width across frames.
"""

from typing import List
import logging

from ..config.defaults import EngineDefaults

logger = logging.getLogger(__name__)


class SmoothingState:
    """
    One EMA accumulator per measurement line, keyed by line index.

    Accumulators are reallocated whenever the number of lines changes and
    are only updated by non-zero readings.
    """

    def __init__(self, weight: float = EngineDefaults.EMA_WEIGHT):
        self.weight = weight
        self._values: List[float] = []

    def __len__(self):
        return len(self._values)

    @property
    def values(self) -> List[float]:
        return list(self._values)

    def ensure_size(self, line_count: int):
        """Reallocate accumulators if the line count changed."""
        if len(self._values) != line_count:
            logger.debug(f"Smoothing state reallocated for {line_count} lines")
            self._values = [0.0] * line_count

    def reset(self):
        """Clear all accumulators (e.g. after switching model)."""
        self._values = [0.0] * len(self._values)
        logger.info("Smoothing state reset")

    def update(self, index: int, raw_gap: float) -> float:
        """
        Fold a raw reading into line `index` and return the reported value.

        A zero reading is reported as-is and leaves the accumulator untouched.
        """
        # Missed edge pair: report 0, not the last smoothed value
        if raw_gap <= 0:
            return raw_gap

        current = self._values[index]
        if current == 0.0:
            smoothed = raw_gap
        else:
            smoothed = self.weight * raw_gap + (1.0 - self.weight) * current
        self._values[index] = smoothed
        return smoothed
