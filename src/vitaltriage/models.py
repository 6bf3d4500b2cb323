"""
Core value types for vitaltriage.

Readings flow in from sensor sources, alerts flow out to operators. Both can
be flattened into plain records for transport; timestamps are carried as
integer epoch microseconds so ordering survives serialization.
"""

import math
import time
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, Optional


class PriorityLevel(IntEnum):
    """Urgency of a reading or alert. Lower value = more urgent."""

    CRITICAL = 1
    HIGH = 2
    MEDIUM = 3
    LOW = 4

    @classmethod
    def most_urgent(cls, *priorities: "PriorityLevel") -> "PriorityLevel":
        """Return the most urgent of the given priorities (LOW if none)."""
        if not priorities:
            return cls.LOW
        return cls(min(priorities))


class VitalKind(str, Enum):
    """Vital signs the classifier knows about."""

    HEART_RATE = "heart_rate"
    BLOOD_PRESSURE = "blood_pressure"  # systolic
    OXYGEN_SATURATION = "oxygen_saturation"
    TEMPERATURE = "temperature"
    RESPIRATORY_RATE = "respiratory_rate"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


def to_epoch_micros(timestamp: float) -> int:
    """Convert epoch seconds to integer epoch microseconds."""
    return int(round(timestamp * 1_000_000))


def from_epoch_micros(micros: int) -> float:
    """Convert integer epoch microseconds back to epoch seconds."""
    return micros / 1_000_000


@dataclass(frozen=True)
class Reading:
    """
    A single timestamped observation of one vital sign for one subject.

    Attributes:
        subject_id: Identifier of the monitored subject
        vital_kind: Which vital sign was observed
        value: Observed value (must be finite)
        observed_at: Observation time in epoch seconds
    """

    subject_id: str
    vital_kind: VitalKind
    value: float
    observed_at: float = field(default_factory=time.time)

    def __post_init__(self):
        object.__setattr__(self, "vital_kind", VitalKind(self.vital_kind))
        object.__setattr__(self, "value", float(self.value))
        if not math.isfinite(self.value):
            raise ValueError(f"reading value must be finite, got {self.value}")

    def to_record(self) -> Dict[str, Any]:
        return {
            "subject_id": self.subject_id,
            "vital_kind": self.vital_kind.value,
            "value": self.value,
            "observed_at_us": to_epoch_micros(self.observed_at),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Reading":
        return cls(
            subject_id=record["subject_id"],
            vital_kind=VitalKind(record["vital_kind"]),
            value=record["value"],
            observed_at=from_epoch_micros(record["observed_at_us"]),
        )


@dataclass(eq=False)
class Alert:
    """
    A prioritized notification about one subject's vital sign.

    Everything except ``acknowledged`` is fixed at creation. Only the
    consumer of dispatch results sets ``acknowledged``.
    """

    alert_id: int
    subject_id: str
    priority: PriorityLevel
    message: str
    vital_kind: VitalKind
    created_at: float
    acknowledged: bool = False
    is_trend: bool = False

    def __post_init__(self):
        self.priority = PriorityLevel(self.priority)
        self.vital_kind = VitalKind(self.vital_kind)

    def to_record(self) -> Dict[str, Any]:
        return {
            "alert_id": self.alert_id,
            "subject_id": self.subject_id,
            "priority": self.priority.name,
            "message": self.message,
            "vital_kind": self.vital_kind.value,
            "created_at_us": to_epoch_micros(self.created_at),
            "acknowledged": self.acknowledged,
            "is_trend": self.is_trend,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Alert":
        return cls(
            alert_id=record["alert_id"],
            subject_id=record["subject_id"],
            priority=PriorityLevel[record["priority"]],
            message=record["message"],
            vital_kind=VitalKind(record["vital_kind"]),
            created_at=from_epoch_micros(record["created_at_us"]),
            acknowledged=record.get("acknowledged", False),
            is_trend=record.get("is_trend", False),
        )

    def __repr__(self) -> str:
        return (
            f"Alert(id={self.alert_id}, subject={self.subject_id}, "
            f"priority={self.priority.name}, vital={self.vital_kind.value}, "
            f"acknowledged={self.acknowledged})"
        )


@dataclass(frozen=True)
class DispatchedAlert:
    """
    An alert removed from the queue, with its SLA verdict.

    Attributes:
        alert: The dequeued alert
        response_time: Seconds between alert creation and dequeue
        sla_budget: Allowed response time for the alert's priority (seconds)
        within_sla: True if response_time <= sla_budget
    """

    alert: Alert
    response_time: float
    sla_budget: float
    within_sla: bool

    @property
    def priority(self) -> PriorityLevel:
        return self.alert.priority

    @property
    def message(self) -> str:
        return self.alert.message

    @property
    def created_at(self) -> float:
        return self.alert.created_at

    def to_record(self) -> Dict[str, Any]:
        record = self.alert.to_record()
        record["response_time_ms"] = int(round(self.response_time * 1000))
        record["within_sla"] = self.within_sla
        return record


@dataclass(frozen=True)
class TriageOutcome:
    """Result of ingesting one reading."""

    priority: PriorityLevel
    alert_enqueued: bool = False
    trend_alert_enqueued: bool = False
    suppressed_as_false_alarm: bool = False
    alert: Optional[Alert] = None
    trend_alert: Optional[Alert] = None
