"""Tests for MetricStore."""

from __future__ import annotations

import threading
import time

from reviewload.metrics.models import MetricSnapshot
from reviewload.metrics.store import MetricStore


def _make_snapshot(elapsed: float, active_users: int = 10) -> MetricSnapshot:
    return MetricSnapshot(
        timestamp=time.monotonic(),
        elapsed_seconds=elapsed,
        active_users=active_users,
    )


class TestMetricStore:
    def test_empty_store(self):
        store = MetricStore()
        assert len(store) == 0
        assert store.get_all() == []
        assert store.get_latest() is None
        assert store.peak_active_users() == 0

    def test_append_and_get_all(self):
        store = MetricStore()
        s1 = _make_snapshot(1.0)
        s2 = _make_snapshot(2.0)
        store.append(s1)
        store.append(s2)

        all_snapshots = store.get_all()
        assert all_snapshots == [s1, s2]
        assert all_snapshots[0] is s1

    def test_get_all_returns_copy(self):
        store = MetricStore()
        store.append(_make_snapshot(1.0))

        result = store.get_all()
        result.clear()

        assert len(store) == 1

    def test_get_latest_returns_last(self):
        store = MetricStore()
        store.append(_make_snapshot(1.0))
        s2 = _make_snapshot(2.0)
        store.append(s2)

        assert store.get_latest() is s2

    def test_peak_active_users(self):
        store = MetricStore()
        for users in (2, 9, 4):
            store.append(_make_snapshot(float(users), active_users=users))
        assert store.peak_active_users() == 9

    def test_concurrent_appends(self):
        store = MetricStore()

        def _writer() -> None:
            for i in range(200):
                store.append(_make_snapshot(float(i)))

        threads = [threading.Thread(target=_writer) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store) == 800
