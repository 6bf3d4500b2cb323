"""
Statistical false-alarm suppression.

Decides whether an elevated reading is consistent with the recent noise of
the same (subject, vital) stream.
"""

from typing import Optional, Sequence

import numpy as np

from .models import PriorityLevel, Reading

# Standard deviations this small (relative to the mean) count as zero
STD_TOLERANCE = 1e-12


class FalseAlarmFilter:
    """
    Suppress candidates whose latest reading is statistically unremarkable.

    The latest reading of the window is scored against the baseline formed
    by the readings before it: population mean and standard deviation of the
    baseline, z = |latest - mean| / std. A candidate is suppressed when z is
    below the threshold for its priority. CRITICAL candidates use a higher
    threshold, so more deviation is needed before one is written off as
    noise.

    Degenerate inputs never suppress:
        - fewer than ``min_readings`` readings in the window
        - zero standard deviation in the baseline
    """

    def __init__(
        self,
        min_readings: int = 5,
        critical_threshold: float = 2.5,
        default_threshold: float = 1.5,
    ):
        """
        Args:
            min_readings: Minimum window length (latest reading included)
            critical_threshold: z-score threshold for CRITICAL candidates
            default_threshold: z-score threshold for all other candidates
        """
        if min_readings < 2:
            raise ValueError(f"min_readings must be >= 2, got {min_readings}")
        if critical_threshold <= 0 or default_threshold <= 0:
            raise ValueError("z-score thresholds must be positive")

        self.min_readings = int(min_readings)
        self.critical_threshold = float(critical_threshold)
        self.default_threshold = float(default_threshold)

    def threshold_for(self, priority: PriorityLevel) -> float:
        if priority == PriorityLevel.CRITICAL:
            return self.critical_threshold
        return self.default_threshold

    def z_score(self, recent_readings: Sequence[Reading]) -> Optional[float]:
        """
        z-score of the latest reading against the preceding ones.

        Returns:
            The z-score, or None if there are too few readings or the
            baseline has no variability
        """
        if len(recent_readings) < self.min_readings:
            return None

        values = np.array([r.value for r in recent_readings], dtype=float)
        baseline = values[:-1]
        mean = float(np.mean(baseline))
        std = float(np.std(baseline))
        if std <= STD_TOLERANCE * max(1.0, abs(mean)):
            return None

        return abs(float(values[-1]) - mean) / std

    def is_likely_false_alarm(
        self, candidate_priority: PriorityLevel, recent_readings: Sequence[Reading]
    ) -> bool:
        """
        Decide whether a candidate alert is probably noise.

        Args:
            candidate_priority: Priority the latest reading was classified at
            recent_readings: Recent readings of the same subject and vital,
                oldest first, ending with the reading that raised the candidate

        Returns:
            True if the candidate should be suppressed
        """
        z = self.z_score(recent_readings)
        if z is None:
            return False
        return z < self.threshold_for(candidate_priority)

    def __repr__(self) -> str:
        return (
            f"FalseAlarmFilter(min_readings={self.min_readings}, "
            f"critical_threshold={self.critical_threshold}, "
            f"default_threshold={self.default_threshold})"
        )
