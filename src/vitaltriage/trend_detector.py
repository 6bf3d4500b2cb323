"""
Trend detection over a reading history window.

A lightweight slope estimator: the mean first-difference over the last few
readings. Sample spacing in time is not normalized; irregularly sampled
streams are treated as if evenly spaced.
"""

from typing import Optional, Sequence

import numpy as np

from .models import Reading


class TrendDetector:
    """Flag sustained directional change across consecutive readings."""

    def __init__(self, window: int = 5, threshold: float = 2.0):
        """
        Args:
            window: Number of most recent readings inspected
            threshold: Absolute mean delta above which a trend is reported
        """
        if window < 2:
            raise ValueError(f"window must be >= 2, got {window}")
        if threshold < 0:
            raise ValueError(f"threshold must be non-negative, got {threshold}")

        self.window = int(window)
        self.threshold = float(threshold)

    def mean_delta(self, readings: Sequence[Reading]) -> Optional[float]:
        """Mean first-difference over the last ``window`` readings, or None if too few."""
        if len(readings) < self.window:
            return None

        values = np.fromiter(
            (r.value for r in readings[-self.window:]), dtype=float, count=self.window
        )
        return float(np.mean(np.diff(values)))

    def detect_trend(self, readings: Sequence[Reading]) -> bool:
        """True if the mean delta exceeds the threshold in absolute value."""
        delta = self.mean_delta(readings)
        if delta is None:
            return False
        return abs(delta) > self.threshold

    def __repr__(self) -> str:
        return f"TrendDetector(window={self.window}, threshold={self.threshold})"
