"""
Per-(subject, vital) reading history.

Each key owns a fixed-capacity ring buffer with its own lock, so ingests
for different keys never contend, while ingests for the same key never
interleave.
"""

import threading
from collections import deque
from typing import Deque, Dict, List, Tuple

from .models import Reading, VitalKind

HistoryKey = Tuple[str, VitalKind]


class HistoryWindow:
    """
    Bounded FIFO of the most recent readings for one (subject, vital) pair.

    Appending beyond capacity evicts the oldest reading. All access goes
    through the window's lock; readers get a list snapshot, never the
    underlying buffer.
    """

    def __init__(self, capacity: int = 100):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")

        self.capacity = capacity
        self._readings: Deque[Reading] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def append(self, reading: Reading) -> List[Reading]:
        """Append a reading and return a snapshot of the updated window."""
        with self._lock:
            self._readings.append(reading)
            return list(self._readings)

    def snapshot(self) -> List[Reading]:
        """All readings in the window, oldest first."""
        with self._lock:
            return list(self._readings)

    def recent(self, count: int) -> List[Reading]:
        """The last ``count`` readings, oldest first."""
        if count <= 0:
            return []
        with self._lock:
            start = max(0, len(self._readings) - count)
            return [self._readings[i] for i in range(start, len(self._readings))]

    def __len__(self) -> int:
        with self._lock:
            return len(self._readings)

    def __repr__(self) -> str:
        return f"HistoryWindow(size={len(self)}, capacity={self.capacity})"


class HistoryArena:
    """
    Lazily created history windows indexed by (subject_id, vital_kind).

    The arena lock only guards window creation; appends lock the individual
    window.
    """

    def __init__(self, capacity: int = 100):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")

        self.capacity = capacity
        self._windows: Dict[HistoryKey, HistoryWindow] = {}
        self._lock = threading.Lock()

    def window(self, subject_id: str, vital_kind: VitalKind) -> HistoryWindow:
        """Get the window for a key, creating it on first use."""
        key = (subject_id, VitalKind(vital_kind))
        window = self._windows.get(key)
        if window is not None:
            return window

        with self._lock:
            window = self._windows.get(key)
            if window is None:
                window = HistoryWindow(self.capacity)
                self._windows[key] = window
            return window

    def append(self, reading: Reading) -> List[Reading]:
        """Append a reading to its window and return the updated snapshot."""
        return self.window(reading.subject_id, reading.vital_kind).append(reading)

    def recent(self, subject_id: str, vital_kind: VitalKind, count: int) -> List[Reading]:
        key = (subject_id, VitalKind(vital_kind))
        window = self._windows.get(key)
        if window is None:
            return []
        return window.recent(count)

    def window_count(self) -> int:
        """Number of (subject, vital) windows created so far."""
        return len(self._windows)

    def __repr__(self) -> str:
        return f"HistoryArena(windows={self.window_count()}, capacity={self.capacity})"
