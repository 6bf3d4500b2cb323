"""
Risk classification logic for vitaltriage.

Maps a single reading to a priority level using vital-specific threshold
bands, falling back to the vital's normal range.
"""

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple

from .models import PriorityLevel, Reading, VitalKind
from .triage_config import NormalRange


@dataclass(frozen=True)
class ThresholdBand:
    """
    A value band that maps to a priority.

    A value matches when it lies strictly below ``below`` or strictly above
    ``above``. Either side may be None (one-sided band).
    """

    priority: PriorityLevel
    below: Optional[float] = None
    above: Optional[float] = None

    def matches(self, value: float) -> bool:
        if self.below is not None and value < self.below:
            return True
        if self.above is not None and value > self.above:
            return True
        return False


# Bands per vital, most urgent first; the first matching band wins
DEFAULT_BANDS: Dict[VitalKind, Tuple[ThresholdBand, ...]] = {
    VitalKind.HEART_RATE: (
        ThresholdBand(PriorityLevel.CRITICAL, below=30, above=180),
        ThresholdBand(PriorityLevel.HIGH, below=50, above=120),
    ),
    VitalKind.OXYGEN_SATURATION: (
        ThresholdBand(PriorityLevel.CRITICAL, below=85),
        ThresholdBand(PriorityLevel.HIGH, below=92),
    ),
    VitalKind.BLOOD_PRESSURE: (
        ThresholdBand(PriorityLevel.CRITICAL, below=60, above=200),
        ThresholdBand(PriorityLevel.HIGH, below=80, above=160),
    ),
    VitalKind.TEMPERATURE: (
        ThresholdBand(PriorityLevel.HIGH, below=35.0, above=39.0),
        ThresholdBand(PriorityLevel.MEDIUM, below=35.5, above=38.5),
    ),
    VitalKind.RESPIRATORY_RATE: (
        ThresholdBand(PriorityLevel.HIGH, below=8, above=30),
        ThresholdBand(PriorityLevel.MEDIUM, below=10, above=25),
    ),
}


class RiskClassifier:
    """
    Classifies readings into priority levels.

    Classification hierarchy:
        1. Vital-specific bands, most urgent first (first match wins)
        2. Outside the normal range -> MEDIUM
        3. Otherwise -> LOW

    Classification is pure: no state is read or written besides the
    arguments, so the classifier may be shared across threads.
    """

    def __init__(self, bands: Optional[Mapping[VitalKind, Tuple[ThresholdBand, ...]]] = None):
        """
        Initialize risk classifier.

        Args:
            bands: Threshold bands per vital (defaults to DEFAULT_BANDS)

        Example:
            >>> classifier = RiskClassifier()
            >>> classifier.classify(Reading("p1", VitalKind.HEART_RATE, 200.0), NormalRange(60, 100))
            <PriorityLevel.CRITICAL: 1>
        """
        self.bands = dict(DEFAULT_BANDS if bands is None else bands)

    def classify(self, reading: Reading, normal_range: NormalRange) -> PriorityLevel:
        """
        Classify a reading.

        Args:
            reading: Reading to classify
            normal_range: Normal range configured for the reading's vital

        Returns:
            PriorityLevel of the reading
        """
        value = reading.value

        for band in self.bands.get(reading.vital_kind, ()):
            if band.matches(value):
                return band.priority

        if not normal_range.contains(value):
            return PriorityLevel.MEDIUM

        return PriorityLevel.LOW

    def describe(self, priority: PriorityLevel) -> str:
        """
        Get human-readable priority name.

        Args:
            priority: Priority level (1-4)

        Returns:
            Priority name string
        """
        try:
            return PriorityLevel(priority).name
        except ValueError:
            return f"UNKNOWN({priority})"

    def __repr__(self) -> str:
        return f"RiskClassifier(vitals={sorted(v.value for v in self.bands)})"
