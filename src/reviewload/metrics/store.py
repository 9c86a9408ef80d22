"""Thread-safe in-memory time-series of interval snapshots."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from reviewload.metrics.models import MetricSnapshot


class MetricStore:
    """Thread-safe storage for the per-tick ``MetricSnapshot`` series of a run.

    The session appends one snapshot per tick from the event loop; the CLI's
    live display and the final ``RunResult`` read from it.
    """

    def __init__(self) -> None:
        self._snapshots: list[MetricSnapshot] = []
        self._lock = threading.Lock()

    def append(self, snapshot: MetricSnapshot) -> None:
        """Append a snapshot to the series."""
        with self._lock:
            self._snapshots.append(snapshot)

    def get_all(self) -> list[MetricSnapshot]:
        """Return a copy of all stored snapshots in chronological order."""
        with self._lock:
            return list(self._snapshots)

    def get_latest(self) -> MetricSnapshot | None:
        """Return the most recent snapshot, or None if the store is empty."""
        with self._lock:
            if not self._snapshots:
                return None
            return self._snapshots[-1]

    def peak_active_users(self) -> int:
        """Return the highest active user count seen in any snapshot."""
        with self._lock:
            return max((s.active_users for s in self._snapshots), default=0)

    def __len__(self) -> int:
        with self._lock:
            return len(self._snapshots)
