"""
Priority-ordered alert queue with SLA accounting.

A mutex-guarded binary heap keyed by (priority, created_at, arrival order).
Producers enqueue from any thread; a dispatch loop dequeues. Dequeue never
waits for new alerts: an empty queue yields None immediately.
"""

import heapq
import itertools
import threading
import time
from typing import Callable, List, Mapping, Optional, Tuple

import structlog

from .models import Alert, DispatchedAlert, PriorityLevel
from .statistics import TriageStatistics
from .triage_config import DEFAULT_SLA_BUDGETS

logger = structlog.get_logger(__name__)

HeapEntry = Tuple[int, float, int, Alert]


def check_response_time(
    priority: PriorityLevel,
    response_time: float,
    sla_budgets: Mapping[PriorityLevel, float] = DEFAULT_SLA_BUDGETS,
) -> bool:
    """True if ``response_time`` (seconds) is within the priority's budget."""
    return response_time <= sla_budgets[PriorityLevel(priority)]


class AlertQueue:
    """
    Thread-safe priority queue of alerts.

    Ordering (total):
        1. priority ascending (CRITICAL first)
        2. created_at ascending (earlier alert first)
        3. arrival order (FIFO for identical priority and timestamp)

    Each dequeue measures the response time (clock() - created_at) and
    checks it against the SLA budget of the alert's priority. A breach is
    logged and counted in the statistics sink; it never fails the dequeue.

    Example:
        >>> queue = AlertQueue()
        >>> queue.enqueue(alert)
        >>> dispatched = queue.dequeue_next()
        >>> dispatched.within_sla
        True
        >>> queue.dequeue_next() is None
        True
    """

    def __init__(
        self,
        sla_budgets: Optional[Mapping[PriorityLevel, float]] = None,
        statistics: Optional[TriageStatistics] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize alert queue.

        Args:
            sla_budgets: Response-time budget per priority in seconds
                (defaults to CRITICAL 2s, HIGH 30s, MEDIUM 300s, LOW 3600s)
            statistics: Counter sink for dispatches and SLA breaches
            clock: Wall-clock source returning epoch seconds
        """
        budgets = dict(DEFAULT_SLA_BUDGETS)
        budgets.update({PriorityLevel(p): float(b) for p, b in (sla_budgets or {}).items()})

        self.sla_budgets = budgets
        self.statistics = statistics if statistics is not None else TriageStatistics()
        self.clock = clock

        self._heap: List[HeapEntry] = []
        self._sequence = itertools.count()
        self._lock = threading.Lock()
        self.logger = logger.bind(component="alert_queue")

    def enqueue(self, alert: Alert) -> None:
        """Add an alert. O(log n), always succeeds."""
        priority = PriorityLevel(alert.priority)
        with self._lock:
            heapq.heappush(
                self._heap,
                (int(priority), alert.created_at, next(self._sequence), alert),
            )

    def dequeue_next(self) -> Optional[DispatchedAlert]:
        """
        Remove and return the most urgent alert.

        Returns:
            DispatchedAlert with the SLA verdict, or None if the queue is empty
        """
        with self._lock:
            if not self._heap:
                return None
            _, _, _, alert = heapq.heappop(self._heap)

        return self._dispatch(alert)

    def drain_all(self) -> List[DispatchedAlert]:
        """Dequeue until empty, in priority order."""
        dispatched = []
        while True:
            item = self.dequeue_next()
            if item is None:
                return dispatched
            dispatched.append(item)

    def peek(self) -> Optional[Alert]:
        """View the most urgent alert without removing it."""
        with self._lock:
            return self._heap[0][3] if self._heap else None

    def is_empty(self) -> bool:
        with self._lock:
            return not self._heap

    def queue_length(self) -> int:
        with self._lock:
            return len(self._heap)

    def __len__(self) -> int:
        return self.queue_length()

    def _dispatch(self, alert: Alert) -> DispatchedAlert:
        """Measure response time, record it and build the dispatch result."""
        response_time = max(0.0, self.clock() - alert.created_at)
        budget = self.sla_budgets[alert.priority]
        within_sla = check_response_time(alert.priority, response_time, self.sla_budgets)

        self.statistics.record_dispatch(alert.priority, response_time, within_sla)
        if not within_sla:
            self.logger.warning(
                "sla_breach",
                alert_id=alert.alert_id,
                subject_id=alert.subject_id,
                priority=alert.priority.name,
                response_time_ms=int(response_time * 1000),
                budget_ms=int(budget * 1000),
            )

        return DispatchedAlert(
            alert=alert,
            response_time=response_time,
            sla_budget=budget,
            within_sla=within_sla,
        )

    def __repr__(self) -> str:
        return f"AlertQueue(queued={self.queue_length()})"
