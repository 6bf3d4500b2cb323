"""
Triage engine.

Orchestrates the triage pipeline for each incoming reading:
history append -> risk classification -> false-alarm suppression ->
queue admission, with trend detection running alongside.
"""

import itertools
import threading
import time
from typing import Any, Callable, Dict, List, Mapping, Optional

import structlog

from .alert_queue import AlertQueue
from .false_alarm_filter import FalseAlarmFilter
from .history_window import HistoryArena
from .models import Alert, DispatchedAlert, PriorityLevel, Reading, TriageOutcome, VitalKind
from .risk_classifier import RiskClassifier
from .statistics import TriageStatistics
from .subject_registry import SubjectRecord, SubjectRegistry
from .trend_detector import TrendDetector
from .triage_config import NormalRange, TriageConfig

logger = structlog.get_logger(__name__)

RESPONSE_DIRECTIVES: Dict[PriorityLevel, str] = {
    PriorityLevel.CRITICAL: "Immediate medical attention required",
    PriorityLevel.HIGH: "Nurse response needed within 30 seconds",
    PriorityLevel.MEDIUM: "Check on subject within 5 minutes",
    PriorityLevel.LOW: "Routine check during next rounds",
}


def format_alert_message(reading: Reading, priority: PriorityLevel) -> str:
    """Human-readable message for a threshold alert."""
    return (
        f"{reading.vital_kind.display_name} reading: {round(reading.value)} "
        f"(Priority: {priority.name})"
    )


def format_trend_message(vital_kind: VitalKind) -> str:
    """Human-readable message for a trend alert."""
    return f"Concerning trend detected in {vital_kind.display_name}"


class TriageEngine:
    """
    Triage engine.

    Pipeline (per reading):
        1. Reject readings of unregistered subjects (UnknownSubjectError)
        2. Append to the (subject, vital) history window
        3. Classify against the subject's normal range
        4. Non-LOW: build a candidate alert, suppress it if the recent
           history says it is noise, else enqueue it
        5. Independently: a detected trend enqueues a MEDIUM trend alert,
           which is never suppressed

    Concurrency:
        Ingest may be called from many producer threads. Appends for the same
        (subject, vital) are serialized by that window's lock and each ingest
        works on a snapshot taken under it; classification, trend detection
        and suppression are pure functions of that snapshot. The queue,
        registry and statistics are individually lock-guarded.

    Example:
        >>> engine = TriageEngine()
        >>> engine.register_subject("p1", name="Test Patient")
        >>> outcome = engine.ingest(Reading("p1", VitalKind.HEART_RATE, 200.0))
        >>> outcome.priority
        <PriorityLevel.CRITICAL: 1>
        >>> dispatched = engine.dispatch_cycle()
    """

    def __init__(
        self,
        config: Optional[TriageConfig] = None,
        registry: Optional[SubjectRegistry] = None,
        statistics: Optional[TriageStatistics] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize triage engine.

        Args:
            config: Engine configuration (defaults to TriageConfig())
            registry: Subject registry (a fresh one using the config's normal
                ranges if None)
            statistics: Counter sink shared with the alert queue
            clock: Wall-clock source returning epoch seconds
        """
        self.cfg = config if config is not None else TriageConfig()
        self.clock = clock
        self.statistics = statistics if statistics is not None else TriageStatistics()
        self.registry = (
            registry
            if registry is not None
            else SubjectRegistry(default_ranges=self.cfg.normal_ranges)
        )

        self.classifier = RiskClassifier()
        self.trend_detector = TrendDetector(
            window=self.cfg.trend_window,
            threshold=self.cfg.trend_threshold,
        )
        self.false_alarm_filter = FalseAlarmFilter(
            min_readings=self.cfg.false_alarm_min_readings,
            critical_threshold=self.cfg.critical_z_threshold,
            default_threshold=self.cfg.default_z_threshold,
        )
        self.history = HistoryArena(capacity=self.cfg.history_capacity)
        self.queue = AlertQueue(
            sla_budgets=self.cfg.sla_budgets,
            statistics=self.statistics,
            clock=clock,
        )

        self._alert_ids = itertools.count(1)
        self._alert_id_lock = threading.Lock()
        self.logger = logger.bind(component="triage_engine")

    # === Subjects ===

    def register_subject(
        self,
        subject_id: str,
        name: Optional[str] = None,
        age: Optional[int] = None,
        normal_ranges: Optional[Mapping[VitalKind, NormalRange]] = None,
    ) -> SubjectRecord:
        """Register a subject so its readings can be triaged."""
        return self.registry.register(
            subject_id, name=name, age=age, normal_ranges=normal_ranges
        )

    def subject_risk(self, subject_id: str) -> PriorityLevel:
        """Current aggregate risk level of a subject."""
        return self.registry.risk_level(subject_id)

    def history_for(
        self, subject_id: str, vital_kind: VitalKind, count: Optional[int] = None
    ) -> List[Reading]:
        """Recent readings of a subject's vital, oldest first."""
        if count is None:
            count = self.cfg.history_capacity
        return self.history.recent(subject_id, vital_kind, count)

    # === Ingest ===

    def ingest(self, reading: Reading) -> TriageOutcome:
        """
        Triage one reading.

        Args:
            reading: Observed reading of a registered subject

        Returns:
            TriageOutcome describing classification and queue admissions

        Raises:
            UnknownSubjectError: If the reading's subject is not registered
        """
        # Raises before any state is touched
        normal_range = self.registry.normal_range(reading.subject_id, reading.vital_kind)

        window = self.history.append(reading)
        priority = self.classifier.classify(reading, normal_range)

        alert = None
        suppressed = False
        if priority != PriorityLevel.LOW:
            candidate = self._new_alert(
                reading, priority, format_alert_message(reading, priority)
            )
            recent = window[-self.cfg.false_alarm_window:]
            if self.false_alarm_filter.is_likely_false_alarm(priority, recent):
                suppressed = True
                self.statistics.record_false_alarm()
                self.logger.info(
                    "false_alarm_filtered",
                    subject_id=reading.subject_id,
                    vital=reading.vital_kind.value,
                    priority=priority.name,
                    value=reading.value,
                )
            else:
                alert = candidate
                self._admit(alert)

        trend_alert = None
        if self.trend_detector.detect_trend(window):
            trend_alert = self._new_alert(
                reading,
                PriorityLevel.MEDIUM,
                format_trend_message(reading.vital_kind),
                is_trend=True,
            )
            self._admit(trend_alert)

        return TriageOutcome(
            priority=priority,
            alert_enqueued=alert is not None,
            trend_alert_enqueued=trend_alert is not None,
            suppressed_as_false_alarm=suppressed,
            alert=alert,
            trend_alert=trend_alert,
        )

    def _new_alert(
        self,
        reading: Reading,
        priority: PriorityLevel,
        message: str,
        is_trend: bool = False,
    ) -> Alert:
        with self._alert_id_lock:
            alert_id = next(self._alert_ids)
        return Alert(
            alert_id=alert_id,
            subject_id=reading.subject_id,
            priority=priority,
            message=message,
            vital_kind=reading.vital_kind,
            created_at=self.clock(),
            is_trend=is_trend,
        )

    def _admit(self, alert: Alert) -> None:
        """Enqueue an alert and update its subject's risk state."""
        risk = self.registry.admit_alert(alert)
        self.queue.enqueue(alert)
        self.statistics.record_enqueued(is_trend=alert.is_trend)
        self.logger.info(
            "alert_enqueued",
            alert_id=alert.alert_id,
            subject_id=alert.subject_id,
            priority=alert.priority.name,
            trend=alert.is_trend,
            subject_risk=risk.name,
        )

    # === Dispatch ===

    def dispatch_next(self) -> Optional[DispatchedAlert]:
        """Dequeue and log the most urgent alert, or return None if none are queued."""
        dispatched = self.queue.dequeue_next()
        if dispatched is not None:
            self._log_dispatch(dispatched)
        return dispatched

    def dispatch_cycle(self) -> List[DispatchedAlert]:
        """Dequeue and log every queued alert, most urgent first."""
        dispatched = self.queue.drain_all()
        for item in dispatched:
            self._log_dispatch(item)
        return dispatched

    def _log_dispatch(self, dispatched: DispatchedAlert) -> None:
        alert = dispatched.alert
        self.logger.info(
            "alert_dispatched",
            alert_id=alert.alert_id,
            subject_id=alert.subject_id,
            priority=alert.priority.name,
            message=alert.message,
            response_time_ms=int(dispatched.response_time * 1000),
            within_sla=dispatched.within_sla,
            directive=RESPONSE_DIRECTIVES[alert.priority],
        )

    def acknowledge(self, alert: Alert) -> PriorityLevel:
        """
        Mark an alert as acknowledged by the operator.

        Returns:
            The subject's updated risk level
        """
        alert.acknowledged = True
        risk = self.registry.acknowledge_alert(alert)
        self.logger.info(
            "alert_acknowledged",
            alert_id=alert.alert_id,
            subject_id=alert.subject_id,
            subject_risk=risk.name,
        )
        return risk

    # === Reporting ===

    def report(self) -> Dict[str, Any]:
        """Statistics snapshot plus a per-subject overview."""
        report = self.statistics.snapshot()
        report["queued_alerts"] = self.queue.queue_length()
        report["subjects"] = [
            {
                "subject_id": record.subject_id,
                "name": record.name,
                "age": record.age,
                "risk_level": self.registry.risk_level(record.subject_id).name,
            }
            for record in self.registry.subjects()
        ]
        return report

    def __repr__(self) -> str:
        return (
            f"TriageEngine(subjects={len(self.registry)}, "
            f"queued={self.queue.queue_length()}, "
            f"history_capacity={self.cfg.history_capacity})"
        )
