"""
Configuration for vitaltriage.

Defines the history, trend, false-alarm and SLA parameters of the triage
engine, plus the default normal range of every vital sign.
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from .models import PriorityLevel, VitalKind


@dataclass(frozen=True)
class NormalRange:
    """Inclusive [minimum, maximum] range of unremarkable values."""

    minimum: float
    maximum: float

    def __post_init__(self):
        if self.minimum > self.maximum:
            raise ValueError(
                f"normal range minimum ({self.minimum}) must be <= "
                f"maximum ({self.maximum})"
            )

    def contains(self, value: float) -> bool:
        return self.minimum <= value <= self.maximum

    @classmethod
    def coerce(cls, value, vital: VitalKind) -> "NormalRange":
        """
        Accept a NormalRange or a (minimum, maximum) pair.

        Raises:
            ValueError: If value is neither
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, (tuple, list)) and len(value) == 2:
            try:
                return cls(float(value[0]), float(value[1]))
            except (TypeError, ValueError) as exc:
                raise ValueError(f"normal range for {vital.value}: {exc}") from exc
        raise ValueError(
            f"normal range for {vital.value} must be a NormalRange or "
            f"(min, max) pair, got {value!r}"
        )


def coerce_normal_ranges(ranges: Mapping, source: str) -> Dict[VitalKind, NormalRange]:
    """Validate a vital -> range mapping; every vital must be covered."""
    coerced = {}
    for vital, vital_range in ranges.items():
        vital = VitalKind(vital)
        coerced[vital] = NormalRange.coerce(vital_range, vital)
    for vital in VitalKind:
        if vital not in coerced:
            raise ValueError(f"{source} missing vital {vital.value}")
    return coerced


DEFAULT_NORMAL_RANGES: Dict[VitalKind, NormalRange] = {
    VitalKind.HEART_RATE: NormalRange(60.0, 100.0),
    VitalKind.BLOOD_PRESSURE: NormalRange(90.0, 140.0),  # systolic
    VitalKind.OXYGEN_SATURATION: NormalRange(95.0, 100.0),
    VitalKind.TEMPERATURE: NormalRange(36.1, 37.2),  # Celsius
    VitalKind.RESPIRATORY_RATE: NormalRange(12.0, 20.0),
}

# Response-time budget per priority, in seconds
DEFAULT_SLA_BUDGETS: Dict[PriorityLevel, float] = {
    PriorityLevel.CRITICAL: 2.0,
    PriorityLevel.HIGH: 30.0,
    PriorityLevel.MEDIUM: 300.0,
    PriorityLevel.LOW: 3600.0,
}


@dataclass
class TriageConfig:
    """
    Configuration for the triage engine.

    History:
        Each (subject, vital) pair keeps the most recent ``history_capacity``
        readings, oldest evicted first.

    Trend detection:
        Mean first-difference over the last ``trend_window`` readings must
        exceed ``trend_threshold`` in absolute value.

    False-alarm suppression:
        The last ``false_alarm_window`` readings are inspected once at least
        ``false_alarm_min_readings`` exist. A candidate is suppressed when the
        latest reading's z-score is below ``critical_z_threshold`` (CRITICAL)
        or ``default_z_threshold`` (everything else).

    SLA:
        ``sla_budgets`` maps each priority to its response-time budget.
    """

    # === History ===
    history_capacity: int = 100

    # === Trend Detection ===
    trend_window: int = 5
    trend_threshold: float = 2.0

    # === False-Alarm Suppression ===
    false_alarm_window: int = 10
    false_alarm_min_readings: int = 5
    critical_z_threshold: float = 2.5
    default_z_threshold: float = 1.5

    # === SLA Budgets (seconds) ===
    sla_budgets: Dict[PriorityLevel, float] = field(
        default_factory=lambda: dict(DEFAULT_SLA_BUDGETS)
    )

    # === Normal Ranges ===
    normal_ranges: Dict[VitalKind, NormalRange] = field(
        default_factory=lambda: dict(DEFAULT_NORMAL_RANGES)
    )

    def __post_init__(self):
        """Validate configuration parameters."""
        if self.history_capacity <= 0:
            raise ValueError(
                f"history_capacity must be positive, got {self.history_capacity}"
            )

        if self.trend_window < 2:
            raise ValueError(f"trend_window must be >= 2, got {self.trend_window}")
        if self.trend_window > self.history_capacity:
            raise ValueError(
                f"trend_window ({self.trend_window}) must be <= "
                f"history_capacity ({self.history_capacity})"
            )
        if self.trend_threshold < 0:
            raise ValueError(
                f"trend_threshold must be non-negative, got {self.trend_threshold}"
            )

        if self.false_alarm_min_readings < 2:
            raise ValueError(
                f"false_alarm_min_readings must be >= 2, "
                f"got {self.false_alarm_min_readings}"
            )
        if self.false_alarm_window < self.false_alarm_min_readings:
            raise ValueError(
                f"false_alarm_window ({self.false_alarm_window}) must be >= "
                f"false_alarm_min_readings ({self.false_alarm_min_readings})"
            )
        if self.false_alarm_window > self.history_capacity:
            raise ValueError(
                f"false_alarm_window ({self.false_alarm_window}) must be <= "
                f"history_capacity ({self.history_capacity})"
            )

        for name, threshold in [
            ("critical_z_threshold", self.critical_z_threshold),
            ("default_z_threshold", self.default_z_threshold),
        ]:
            if threshold <= 0:
                raise ValueError(f"{name} must be positive, got {threshold}")

        self.sla_budgets = {
            PriorityLevel(priority): float(budget)
            for priority, budget in self.sla_budgets.items()
        }
        for priority in PriorityLevel:
            if priority not in self.sla_budgets:
                raise ValueError(f"sla_budgets missing priority {priority.name}")
            if self.sla_budgets[priority] <= 0:
                raise ValueError(
                    f"{priority.name} sla budget must be positive, "
                    f"got {self.sla_budgets[priority]}"
                )

        self.normal_ranges = coerce_normal_ranges(self.normal_ranges, "normal_ranges")

    def z_threshold_for(self, priority: PriorityLevel) -> float:
        """z-score below which a candidate of this priority counts as noise."""
        if priority == PriorityLevel.CRITICAL:
            return self.critical_z_threshold
        return self.default_z_threshold

    def sla_budget_for(self, priority: PriorityLevel) -> float:
        return self.sla_budgets[PriorityLevel(priority)]


# Convenience factory functions


def create_triage_default() -> TriageConfig:
    """
    Create a configuration with the stock clinical defaults.

    Defaults:
        - 100 readings of history per (subject, vital)
        - Trend: mean delta over 5 readings above 2.0
        - False alarms: last 10 readings, z < 2.5 (CRITICAL) / 1.5 (others)
        - SLA: CRITICAL 2s, HIGH 30s, MEDIUM 5min, LOW 1h

    Returns:
        TriageConfig with default parameters
    """
    return TriageConfig()


def create_triage_custom(
    history_capacity: int = 100,
    trend_threshold: float = 2.0,
    critical_z_threshold: float = 2.5,
    default_z_threshold: float = 1.5,
    sla_budgets: Optional[Mapping[PriorityLevel, float]] = None,
    normal_ranges: Optional[Mapping[VitalKind, NormalRange]] = None,
) -> TriageConfig:
    """
    Create a configuration with custom parameters.

    Args:
        history_capacity: Readings kept per (subject, vital)
        trend_threshold: Absolute mean delta that counts as a trend
        critical_z_threshold: Suppression z-score for CRITICAL candidates
        default_z_threshold: Suppression z-score for other candidates
        sla_budgets: Overrides merged over the default SLA budgets
        normal_ranges: Overrides merged over the default normal ranges

    Returns:
        TriageConfig with custom parameters
    """
    budgets = dict(DEFAULT_SLA_BUDGETS)
    budgets.update(sla_budgets or {})
    ranges = dict(DEFAULT_NORMAL_RANGES)
    ranges.update(normal_ranges or {})
    return TriageConfig(
        history_capacity=history_capacity,
        trend_threshold=trend_threshold,
        critical_z_threshold=critical_z_threshold,
        default_z_threshold=default_z_threshold,
        sla_budgets=budgets,
        normal_ranges=ranges,
    )
