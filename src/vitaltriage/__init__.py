"""
Alert triage and dispatch for vital-sign monitoring (vitaltriage).

Turns streams of vital-sign readings into prioritized alerts, suppresses
statistically unremarkable spikes, and dispatches alerts in priority order
while accounting for per-priority response-time budgets (SLA).

Main components:
    - TriageEngine: Orchestrator, one ingest() call per reading
    - TriageConfig: Configuration dataclass with thresholds and SLA budgets
    - RiskClassifier: Reading-to-priority classification
    - TrendDetector: Mean-delta trend detection over recent readings
    - FalseAlarmFilter: z-score based false-alarm suppression
    - AlertQueue: Thread-safe priority queue with SLA measurement
    - SubjectRegistry: Subjects, normal-range overrides and aggregate risk
    - TriageStatistics: Counters for the reporting layer

Priority levels:
    1. CRITICAL: respond within 2 seconds
    2. HIGH: respond within 30 seconds
    3. MEDIUM: respond within 5 minutes
    4. LOW: respond within 1 hour

Example:
    >>> from vitaltriage import TriageEngine, Reading, VitalKind
    >>> engine = TriageEngine()
    >>> engine.register_subject("bed_12")
    >>> outcome = engine.ingest(Reading("bed_12", VitalKind.HEART_RATE, 200.0))
    >>> outcome.priority.name
    'CRITICAL'
    >>> for dispatched in engine.dispatch_cycle():
    ...     print(dispatched.message, dispatched.within_sla)
"""

from .alert_queue import AlertQueue, check_response_time
from .errors import TriageError, UnknownSubjectError
from .false_alarm_filter import FalseAlarmFilter
from .history_window import HistoryArena, HistoryWindow
from .logging_config import configure_logging
from .models import (
    Alert,
    DispatchedAlert,
    PriorityLevel,
    Reading,
    TriageOutcome,
    VitalKind,
)
from .risk_classifier import DEFAULT_BANDS, RiskClassifier, ThresholdBand
from .statistics import TriageStatistics
from .subject_registry import SubjectRecord, SubjectRegistry
from .trend_detector import TrendDetector
from .triage_config import (
    DEFAULT_NORMAL_RANGES,
    DEFAULT_SLA_BUDGETS,
    NormalRange,
    TriageConfig,
    create_triage_custom,
    create_triage_default,
)
from .triage_engine import RESPONSE_DIRECTIVES, TriageEngine

__all__ = [
    # Main engine
    "TriageEngine",
    "RESPONSE_DIRECTIVES",
    # Configuration
    "TriageConfig",
    "NormalRange",
    "create_triage_default",
    "create_triage_custom",
    "DEFAULT_NORMAL_RANGES",
    "DEFAULT_SLA_BUDGETS",
    # Components
    "RiskClassifier",
    "ThresholdBand",
    "DEFAULT_BANDS",
    "TrendDetector",
    "FalseAlarmFilter",
    "AlertQueue",
    "check_response_time",
    "HistoryWindow",
    "HistoryArena",
    "SubjectRegistry",
    "SubjectRecord",
    "TriageStatistics",
    # Models
    "Reading",
    "Alert",
    "DispatchedAlert",
    "TriageOutcome",
    "PriorityLevel",
    "VitalKind",
    # Errors
    "TriageError",
    "UnknownSubjectError",
    # Logging
    "configure_logging",
]

__version__ = "1.0.0"
