"""
Unit tests for the pure triage stages.

Tests:
    1. Risk classification bands and normal-range fallback
    2. Trend detection over the last five readings
    3. False-alarm suppression by z-score
    4. Configuration validation
    5. Reading/alert value types
    6. Logging setup
"""

import math

import pytest
import structlog

from vitaltriage import (
    Alert,
    configure_logging,
    FalseAlarmFilter,
    NormalRange,
    PriorityLevel,
    Reading,
    RiskClassifier,
    TrendDetector,
    TriageConfig,
    VitalKind,
    create_triage_custom,
    create_triage_default,
)
from vitaltriage.triage_config import DEFAULT_NORMAL_RANGES


def reading(value, vital=VitalKind.HEART_RATE, subject="p1", at=0.0):
    return Reading(subject, vital, value, observed_at=at)


def readings(values, vital=VitalKind.HEART_RATE):
    return [reading(v, vital, at=float(i)) for i, v in enumerate(values)]


def classify(value, vital):
    return RiskClassifier().classify(reading(value, vital), DEFAULT_NORMAL_RANGES[vital])


# === Unit Tests: RiskClassifier ===


@pytest.mark.parametrize("value", [0.0, 29.9, 180.1, 250.0])
def test_heart_rate_critical_band(value):
    assert classify(value, VitalKind.HEART_RATE) == PriorityLevel.CRITICAL


@pytest.mark.parametrize("value", [30.0, 49.9, 120.1, 180.0])
def test_heart_rate_high_band(value):
    """Band bounds are exclusive: 30 and 180 fall through to HIGH."""
    assert classify(value, VitalKind.HEART_RATE) == PriorityLevel.HIGH


def test_heart_rate_normal_range_fallback():
    # Outside [60, 100] but inside every band
    assert classify(50.0, VitalKind.HEART_RATE) == PriorityLevel.MEDIUM
    assert classify(120.0, VitalKind.HEART_RATE) == PriorityLevel.MEDIUM
    # Inside normal range
    assert classify(60.0, VitalKind.HEART_RATE) == PriorityLevel.LOW
    assert classify(75.0, VitalKind.HEART_RATE) == PriorityLevel.LOW
    assert classify(100.0, VitalKind.HEART_RATE) == PriorityLevel.LOW


def test_oxygen_saturation_bands():
    assert classify(84.0, VitalKind.OXYGEN_SATURATION) == PriorityLevel.CRITICAL
    assert classify(85.0, VitalKind.OXYGEN_SATURATION) == PriorityLevel.HIGH
    assert classify(91.9, VitalKind.OXYGEN_SATURATION) == PriorityLevel.HIGH
    assert classify(93.0, VitalKind.OXYGEN_SATURATION) == PriorityLevel.MEDIUM
    assert classify(98.0, VitalKind.OXYGEN_SATURATION) == PriorityLevel.LOW


def test_blood_pressure_bands():
    assert classify(59.0, VitalKind.BLOOD_PRESSURE) == PriorityLevel.CRITICAL
    assert classify(201.0, VitalKind.BLOOD_PRESSURE) == PriorityLevel.CRITICAL
    assert classify(79.0, VitalKind.BLOOD_PRESSURE) == PriorityLevel.HIGH
    assert classify(161.0, VitalKind.BLOOD_PRESSURE) == PriorityLevel.HIGH
    assert classify(150.0, VitalKind.BLOOD_PRESSURE) == PriorityLevel.MEDIUM
    assert classify(120.0, VitalKind.BLOOD_PRESSURE) == PriorityLevel.LOW


def test_temperature_bands():
    """Temperature has no CRITICAL band, and a wider MEDIUM band."""
    assert classify(30.0, VitalKind.TEMPERATURE) == PriorityLevel.HIGH
    assert classify(34.9, VitalKind.TEMPERATURE) == PriorityLevel.HIGH
    assert classify(39.1, VitalKind.TEMPERATURE) == PriorityLevel.HIGH
    assert classify(35.2, VitalKind.TEMPERATURE) == PriorityLevel.MEDIUM
    assert classify(38.6, VitalKind.TEMPERATURE) == PriorityLevel.MEDIUM
    assert classify(38.0, VitalKind.TEMPERATURE) == PriorityLevel.MEDIUM
    assert classify(36.8, VitalKind.TEMPERATURE) == PriorityLevel.LOW


def test_respiratory_rate_bands():
    assert classify(7.0, VitalKind.RESPIRATORY_RATE) == PriorityLevel.HIGH
    assert classify(31.0, VitalKind.RESPIRATORY_RATE) == PriorityLevel.HIGH
    assert classify(9.0, VitalKind.RESPIRATORY_RATE) == PriorityLevel.MEDIUM
    assert classify(26.0, VitalKind.RESPIRATORY_RATE) == PriorityLevel.MEDIUM
    assert classify(22.0, VitalKind.RESPIRATORY_RATE) == PriorityLevel.MEDIUM
    assert classify(16.0, VitalKind.RESPIRATORY_RATE) == PriorityLevel.LOW


def test_classifier_uses_given_normal_range():
    """Bands are fixed, the normal range is per call."""
    classifier = RiskClassifier()
    wide = NormalRange(40.0, 110.0)

    assert classifier.classify(reading(105.0), wide) == PriorityLevel.LOW
    assert classifier.classify(reading(115.0), wide) == PriorityLevel.MEDIUM
    # Bands still win over a permissive range
    assert classifier.classify(reading(190.0), NormalRange(0, 300)) == PriorityLevel.CRITICAL


def test_classifier_priority_names():
    classifier = RiskClassifier()
    assert classifier.describe(PriorityLevel.CRITICAL) == "CRITICAL"
    assert classifier.describe(4) == "LOW"
    assert classifier.describe(9) == "UNKNOWN(9)"


# === Unit Tests: TrendDetector ===


def test_trend_requires_five_readings():
    detector = TrendDetector()
    assert not detector.detect_trend([])
    assert not detector.detect_trend(readings([60, 80, 100, 120]))
    assert detector.mean_delta(readings([60, 80, 100, 120])) is None


def test_trend_identical_values():
    detector = TrendDetector()
    assert not detector.detect_trend(readings([75.0] * 5))
    assert detector.mean_delta(readings([75.0] * 5)) == 0.0


def test_trend_rising_and_falling():
    detector = TrendDetector()
    assert detector.detect_trend(readings([70, 73, 76, 79, 82]))
    assert detector.detect_trend(readings([82, 79, 76, 73, 70]))


def test_trend_threshold_is_exclusive():
    """Mean delta of exactly 2.0 is not a trend."""
    detector = TrendDetector()
    assert detector.mean_delta(readings([70, 72, 74, 76, 78])) == pytest.approx(2.0)
    assert not detector.detect_trend(readings([70, 72, 74, 76, 78]))


def test_trend_only_last_five_readings_count():
    detector = TrendDetector()
    # Huge early swing, flat tail
    assert not detector.detect_trend(readings([10, 200, 75, 75, 76, 75, 75]))
    # Flat start, steep tail
    assert detector.detect_trend(readings([75, 75, 75, 75, 80, 90, 100, 110]))


def test_trend_ignores_sample_spacing():
    """Irregular sampling intervals are not normalized."""
    detector = TrendDetector()
    spaced = [
        Reading("p1", VitalKind.HEART_RATE, v, observed_at=t)
        for v, t in zip([70, 73, 76, 79, 82], [0.0, 1.0, 500.0, 501.0, 9000.0])
    ]
    assert detector.detect_trend(spaced)


def test_trend_detector_validation():
    with pytest.raises(ValueError, match="window must be >= 2"):
        TrendDetector(window=1)
    with pytest.raises(ValueError, match="threshold must be non-negative"):
        TrendDetector(threshold=-1.0)


# === Unit Tests: FalseAlarmFilter ===


def test_filter_insufficient_data_never_suppresses():
    f = FalseAlarmFilter()
    assert not f.is_likely_false_alarm(PriorityLevel.MEDIUM, [])
    assert not f.is_likely_false_alarm(PriorityLevel.MEDIUM, readings([75, 76, 75, 76]))


def test_filter_zero_std_never_suppresses():
    f = FalseAlarmFilter()
    assert not f.is_likely_false_alarm(PriorityLevel.MEDIUM, readings([75.0] * 5))
    assert not f.is_likely_false_alarm(PriorityLevel.CRITICAL, readings([36.8] * 10))
    assert f.z_score(readings([75.0] * 5)) is None


def test_filter_large_deviation_passes():
    """A spike far outside a tight cluster is not noise."""
    f = FalseAlarmFilter()
    window = readings([75, 76, 74, 75, 75, 200])
    assert f.z_score(window) > 100
    assert not f.is_likely_false_alarm(PriorityLevel.CRITICAL, window)


def test_filter_small_deviation_suppressed():
    f = FalseAlarmFilter()
    window = readings([104, 112, 106, 110, 105, 111, 107, 109, 108])
    assert f.z_score(window) < 0.5
    assert f.is_likely_false_alarm(PriorityLevel.MEDIUM, window)
    assert f.is_likely_false_alarm(PriorityLevel.CRITICAL, window)


def test_filter_threshold_depends_on_priority():
    """
    Latest reading sits about 1.94 std from the baseline:
    above the 1.5 threshold, below the CRITICAL 2.5 threshold.
    """
    f = FalseAlarmFilter()
    window = readings([75.0 + i for i in range(10)])

    # baseline 75..83: mean 79, population std sqrt(60/9)
    assert f.z_score(window) == pytest.approx(5.0 / math.sqrt(60.0 / 9.0))
    assert not f.is_likely_false_alarm(PriorityLevel.MEDIUM, window)
    assert not f.is_likely_false_alarm(PriorityLevel.HIGH, window)
    assert f.is_likely_false_alarm(PriorityLevel.CRITICAL, window)


def test_filter_validation():
    with pytest.raises(ValueError, match="min_readings must be >= 2"):
        FalseAlarmFilter(min_readings=1)
    with pytest.raises(ValueError, match="thresholds must be positive"):
        FalseAlarmFilter(critical_threshold=0.0)


# === Unit Tests: TriageConfig ===


def test_default_config():
    cfg = create_triage_default()
    assert cfg.history_capacity == 100
    assert cfg.sla_budget_for(PriorityLevel.CRITICAL) == 2.0
    assert cfg.sla_budget_for(PriorityLevel.LOW) == 3600.0
    assert cfg.z_threshold_for(PriorityLevel.CRITICAL) == 2.5
    assert cfg.z_threshold_for(PriorityLevel.MEDIUM) == 1.5
    assert cfg.normal_ranges[VitalKind.TEMPERATURE] == NormalRange(36.1, 37.2)


def test_custom_config_merges_overrides():
    cfg = create_triage_custom(
        sla_budgets={PriorityLevel.CRITICAL: 1.0},
        normal_ranges={VitalKind.HEART_RATE: NormalRange(50.0, 110.0)},
    )
    assert cfg.sla_budget_for(PriorityLevel.CRITICAL) == 1.0
    assert cfg.sla_budget_for(PriorityLevel.HIGH) == 30.0
    assert cfg.normal_ranges[VitalKind.HEART_RATE].maximum == 110.0
    assert cfg.normal_ranges[VitalKind.BLOOD_PRESSURE] == NormalRange(90.0, 140.0)


def test_config_validation():
    with pytest.raises(ValueError, match="history_capacity must be positive"):
        TriageConfig(history_capacity=0)

    with pytest.raises(ValueError, match="false_alarm_window"):
        TriageConfig(false_alarm_window=3)

    with pytest.raises(ValueError, match="critical_z_threshold must be positive"):
        TriageConfig(critical_z_threshold=0.0)

    with pytest.raises(ValueError, match="sla_budgets missing priority HIGH"):
        TriageConfig(sla_budgets={PriorityLevel.CRITICAL: 2.0})

    with pytest.raises(ValueError, match="HIGH sla budget must be positive"):
        create_triage_custom(sla_budgets={PriorityLevel.HIGH: 0.0})


def test_normal_range_validation():
    with pytest.raises(ValueError, match="minimum"):
        NormalRange(100.0, 60.0)
    assert NormalRange(60.0, 100.0).contains(60.0)
    assert not NormalRange(60.0, 100.0).contains(100.1)


def test_config_normal_ranges_accept_pairs():
    cfg = create_triage_custom(normal_ranges={VitalKind.HEART_RATE: (50, 110)})
    assert cfg.normal_ranges[VitalKind.HEART_RATE] == NormalRange(50.0, 110.0)

    ranges = dict(DEFAULT_NORMAL_RANGES)
    ranges["oxygen_saturation"] = [92.0, 100.0]
    cfg = TriageConfig(normal_ranges=ranges)
    assert cfg.normal_ranges[VitalKind.OXYGEN_SATURATION] == NormalRange(92.0, 100.0)


def test_config_rejects_malformed_normal_ranges():
    with pytest.raises(ValueError, match="normal range for heart_rate must be"):
        create_triage_custom(normal_ranges={VitalKind.HEART_RATE: "bad"})

    with pytest.raises(ValueError, match="normal range for heart_rate must be"):
        create_triage_custom(normal_ranges={VitalKind.HEART_RATE: (1.0, 2.0, 3.0)})

    with pytest.raises(ValueError, match="minimum"):
        create_triage_custom(normal_ranges={VitalKind.HEART_RATE: (100.0, 60.0)})

    with pytest.raises(ValueError, match="normal_ranges missing vital temperature"):
        TriageConfig(
            normal_ranges={
                v: r for v, r in DEFAULT_NORMAL_RANGES.items() if v != VitalKind.TEMPERATURE
            }
        )


# === Unit Tests: Models ===


def test_priority_order():
    assert PriorityLevel.CRITICAL < PriorityLevel.HIGH < PriorityLevel.MEDIUM < PriorityLevel.LOW
    assert PriorityLevel.most_urgent(PriorityLevel.MEDIUM, PriorityLevel.HIGH) == PriorityLevel.HIGH
    assert PriorityLevel.most_urgent() == PriorityLevel.LOW


def test_vital_display_names():
    assert VitalKind.HEART_RATE.display_name == "Heart Rate"
    assert VitalKind.OXYGEN_SATURATION.display_name == "Oxygen Saturation"


def test_reading_rejects_non_finite_values():
    with pytest.raises(ValueError, match="must be finite"):
        Reading("p1", VitalKind.HEART_RATE, float("nan"))
    with pytest.raises(ValueError, match="must be finite"):
        Reading("p1", VitalKind.HEART_RATE, float("inf"))


def test_reading_is_immutable():
    r = reading(75.0)
    with pytest.raises(AttributeError):
        r.value = 80.0


def test_records_use_epoch_microseconds():
    r = Reading("p1", VitalKind.TEMPERATURE, 37.5, observed_at=1_700_000_000.123456)
    record = r.to_record()
    assert record["observed_at_us"] == 1_700_000_000_123_456
    assert record["vital_kind"] == "temperature"
    assert Reading.from_record(record) == r

    alert = Alert(7, "p1", PriorityLevel.HIGH, "msg", VitalKind.TEMPERATURE, created_at=2.5)
    record = alert.to_record()
    assert record["priority"] == "HIGH"
    assert record["created_at_us"] == 2_500_000
    restored = Alert.from_record(record)
    assert restored.priority == PriorityLevel.HIGH
    assert restored.created_at == 2.5


def test_alert_rejects_invalid_priority():
    with pytest.raises(ValueError):
        Alert(1, "p1", 7, "msg", VitalKind.HEART_RATE, created_at=0.0)


# === Unit Tests: Logging ===


def test_configure_logging():
    try:
        configure_logging("warning", json_output=False)
        assert structlog.is_configured()
    finally:
        structlog.reset_defaults()

    with pytest.raises(ValueError, match="unknown log level"):
        configure_logging("LOUD")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
