"""
Registered subjects, their normal ranges and aggregate risk.

A subject must be registered before its readings can be triaged. The
registry keeps per-subject normal-range overrides and derives each
subject's current risk level from its unacknowledged alerts.
"""

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

import structlog

from .errors import UnknownSubjectError
from .models import Alert, PriorityLevel, VitalKind
from .triage_config import DEFAULT_NORMAL_RANGES, NormalRange, coerce_normal_ranges

logger = structlog.get_logger(__name__)


@dataclass
class SubjectRecord:
    """A monitored subject."""

    subject_id: str
    normal_ranges: Dict[VitalKind, NormalRange]
    name: Optional[str] = None
    age: Optional[int] = None
    risk_level: PriorityLevel = PriorityLevel.LOW
    # alert_id -> priority of admitted alerts not yet acknowledged
    open_alerts: Dict[int, PriorityLevel] = field(default_factory=dict)

    def normal_range(self, vital_kind: VitalKind) -> NormalRange:
        return self.normal_ranges[VitalKind(vital_kind)]


class SubjectRegistry:
    """
    Thread-safe store of subject records.

    Risk state:
        A subject's risk level is the most urgent priority among its admitted,
        unacknowledged alerts, or LOW when there are none. It changes only when
        an alert is admitted or acknowledged.
    """

    def __init__(self, default_ranges: Optional[Mapping[VitalKind, NormalRange]] = None):
        """
        Args:
            default_ranges: Normal ranges for subjects without overrides
                (defaults to DEFAULT_NORMAL_RANGES)
        """
        self.default_ranges = coerce_normal_ranges(
            DEFAULT_NORMAL_RANGES if default_ranges is None else default_ranges,
            "default_ranges",
        )
        self._subjects: Dict[str, SubjectRecord] = {}
        self._lock = threading.Lock()
        self.logger = logger.bind(component="subject_registry")

    def register(
        self,
        subject_id: str,
        name: Optional[str] = None,
        age: Optional[int] = None,
        normal_ranges: Optional[Mapping[VitalKind, NormalRange]] = None,
    ) -> SubjectRecord:
        """
        Register a subject, or update the ranges of an existing one.

        Args:
            subject_id: Subject identifier
            name: Display name (optional)
            age: Age in years (optional)
            normal_ranges: Per-vital overrides merged over the defaults

        Returns:
            The subject's record

        Raises:
            ValueError: If age is negative or an override is not a valid range
        """
        if age is not None and age < 0:
            raise ValueError(f"age must be non-negative, got {age}")

        ranges = dict(self.default_ranges)
        for vital, vital_range in (normal_ranges or {}).items():
            vital = VitalKind(vital)
            ranges[vital] = NormalRange.coerce(vital_range, vital)

        with self._lock:
            record = self._subjects.get(subject_id)
            if record is None:
                record = SubjectRecord(
                    subject_id=subject_id, normal_ranges=ranges, name=name, age=age
                )
                self._subjects[subject_id] = record
            else:
                record.normal_ranges = ranges
                if name is not None:
                    record.name = name
                if age is not None:
                    record.age = age

        self.logger.info(
            "subject_registered",
            subject_id=subject_id,
            overrides=sorted(VitalKind(v).value for v in (normal_ranges or {})),
        )
        return record

    def get(self, subject_id: str) -> SubjectRecord:
        """Look up a subject, raising UnknownSubjectError if not registered."""
        with self._lock:
            record = self._subjects.get(subject_id)
        if record is None:
            raise UnknownSubjectError(subject_id)
        return record

    def normal_range(self, subject_id: str, vital_kind: VitalKind) -> NormalRange:
        record = self.get(subject_id)
        with self._lock:
            return record.normal_range(vital_kind)

    def admit_alert(self, alert: Alert) -> PriorityLevel:
        """Count a newly enqueued alert toward its subject's risk level."""
        record = self.get(alert.subject_id)
        with self._lock:
            if not alert.acknowledged:
                record.open_alerts[alert.alert_id] = alert.priority
            record.risk_level = PriorityLevel.most_urgent(*record.open_alerts.values())
            return record.risk_level

    def acknowledge_alert(self, alert: Alert) -> PriorityLevel:
        """Drop an acknowledged alert from its subject's risk level."""
        record = self.get(alert.subject_id)
        with self._lock:
            record.open_alerts.pop(alert.alert_id, None)
            record.risk_level = PriorityLevel.most_urgent(*record.open_alerts.values())
            return record.risk_level

    def risk_level(self, subject_id: str) -> PriorityLevel:
        record = self.get(subject_id)
        with self._lock:
            return record.risk_level

    def subjects(self) -> List[SubjectRecord]:
        """All registered subjects, ordered by id."""
        with self._lock:
            return [self._subjects[k] for k in sorted(self._subjects)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._subjects)

    def __repr__(self) -> str:
        return f"SubjectRegistry(subjects={len(self)})"
