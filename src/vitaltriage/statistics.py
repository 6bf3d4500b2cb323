"""
Counters and response-time summaries for the reporting layer.

The engine and the alert queue increment these; an external telemetry
layer reads them through :meth:`TriageStatistics.snapshot`.
"""

import threading
from collections import deque
from typing import Any, Deque, Dict

import numpy as np

from .models import PriorityLevel

DEFAULT_RESPONSE_SAMPLE_SIZE = 1000


class TriageStatistics:
    """
    Thread-safe triage counters.

    Counters:
        - alerts_enqueued: alerts admitted to the queue (trend alerts included)
        - trend_alerts: trend alerts admitted to the queue
        - false_alarms_filtered: candidates suppressed as noise
        - alerts_processed: alerts dequeued for dispatch
        - sla_breaches: per-priority count of dispatches over budget

    Response times are summarized per priority. Count, mean and max cover
    every dispatch; p95 is taken over the most recent response_sample_size
    dispatches so memory stays bounded on a long-running engine.
    """

    def __init__(self, response_sample_size: int = DEFAULT_RESPONSE_SAMPLE_SIZE):
        if response_sample_size < 1:
            raise ValueError(
                f"response_sample_size must be >= 1, got {response_sample_size}"
            )
        self.response_sample_size = response_sample_size
        self._lock = threading.Lock()
        self.reset()

    def reset(self) -> None:
        """Zero every counter."""
        with self._lock:
            self.alerts_enqueued = 0
            self.trend_alerts = 0
            self.false_alarms_filtered = 0
            self.alerts_processed = 0
            self.sla_breaches: Dict[PriorityLevel, int] = {p: 0 for p in PriorityLevel}
            self._response_samples: Dict[PriorityLevel, Deque[float]] = {
                p: deque(maxlen=self.response_sample_size) for p in PriorityLevel
            }
            self._response_counts: Dict[PriorityLevel, int] = {p: 0 for p in PriorityLevel}
            self._response_sums: Dict[PriorityLevel, float] = {p: 0.0 for p in PriorityLevel}
            self._response_max: Dict[PriorityLevel, float] = {p: 0.0 for p in PriorityLevel}

    def record_enqueued(self, is_trend: bool = False) -> None:
        with self._lock:
            self.alerts_enqueued += 1
            if is_trend:
                self.trend_alerts += 1

    def record_false_alarm(self) -> None:
        with self._lock:
            self.false_alarms_filtered += 1

    def record_dispatch(
        self, priority: PriorityLevel, response_time: float, within_sla: bool
    ) -> None:
        """Record one dequeued alert and its SLA verdict."""
        priority = PriorityLevel(priority)
        with self._lock:
            self.alerts_processed += 1
            self._response_samples[priority].append(response_time)
            self._response_counts[priority] += 1
            self._response_sums[priority] += response_time
            self._response_max[priority] = max(self._response_max[priority], response_time)
            if not within_sla:
                self.sla_breaches[priority] += 1

    @property
    def total_sla_breaches(self) -> int:
        with self._lock:
            return sum(self.sla_breaches.values())

    def retained_samples(self, priority: PriorityLevel) -> int:
        """Number of response times currently held for the p95 estimate."""
        with self._lock:
            return len(self._response_samples[PriorityLevel(priority)])

    def response_time_summary(self, priority: PriorityLevel) -> Dict[str, float]:
        """
        Summarize response times for one priority.

        Returns:
            Dict with count, mean, p95 and max response time in seconds
            (zeros when nothing of that priority was dispatched)
        """
        priority = PriorityLevel(priority)
        with self._lock:
            count = self._response_counts[priority]
            total = self._response_sums[priority]
            slowest = self._response_max[priority]
            samples = np.array(self._response_samples[priority], dtype=float)

        if count == 0:
            return {"count": 0, "mean": 0.0, "p95": 0.0, "max": 0.0}

        return {
            "count": count,
            "mean": total / count,
            "p95": float(np.percentile(samples, 95)),
            "max": slowest,
        }

    def snapshot(self) -> Dict[str, Any]:
        """Plain-dict view of every counter, suitable for export."""
        response_times = {p.name: self.response_time_summary(p) for p in PriorityLevel}
        with self._lock:
            return {
                "alerts_enqueued": self.alerts_enqueued,
                "trend_alerts": self.trend_alerts,
                "false_alarms_filtered": self.false_alarms_filtered,
                "alerts_processed": self.alerts_processed,
                "sla_breaches": {p.name: n for p, n in self.sla_breaches.items()},
                "response_times": response_times,
            }

    def __repr__(self) -> str:
        return (
            f"TriageStatistics(enqueued={self.alerts_enqueued}, "
            f"processed={self.alerts_processed}, "
            f"false_alarms={self.false_alarms_filtered})"
        )
