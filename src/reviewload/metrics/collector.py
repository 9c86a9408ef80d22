"""In-memory metric collection shared by all virtual users of a run."""

from __future__ import annotations

import threading
import time
from collections import Counter, deque
from typing import TYPE_CHECKING, TypeVar

import numpy as np

from reviewload._internal.logging import get_logger
from reviewload.metrics.histogram import LatencyHistogram
from reviewload.metrics.models import CheckMetrics, EndpointMetrics, MetricSnapshot

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from reviewload.dsl.checks import CheckResult
    from reviewload.dsl.http_client import RequestMetric
    from reviewload.metrics.models import IterationOutcome

logger = get_logger("metrics.collector")

_T = TypeVar("_T")

_OVERALL_PERCENTILES = (50.0, 75.0, 90.0, 95.0, 99.0, 99.9)
_ENDPOINT_PERCENTILES = (50.0, 75.0, 90.0, 95.0, 99.0)

# (min, max, avg, *percentiles)
LatencyStats = tuple[float, ...]


def _compute_latency_stats(latencies: list[float], percentiles: Sequence[float]) -> LatencyStats:
    """Compute min, max, mean and the requested percentiles of *latencies*.

    Args:
        latencies: Latency values in milliseconds.
        percentiles: Percentiles to compute (0-100).

    Returns:
        Tuple of ``(min, max, avg, *percentiles)``; all zeros when empty.
    """
    if not latencies:
        return (0.0,) * (3 + len(percentiles))

    arr = np.array(latencies, dtype=np.float64)
    values = np.percentile(arr, list(percentiles))
    return (
        float(np.min(arr)),
        float(np.max(arr)),
        float(np.mean(arr)),
        *(float(v) for v in values),
    )


def _histogram_latency_stats(
    histogram: LatencyHistogram,
    percentiles: Sequence[float],
) -> LatencyStats:
    """Same shape as :func:`_compute_latency_stats`, read from a histogram."""
    return (
        histogram.minimum(),
        histogram.maximum(),
        histogram.mean(),
        *histogram.percentiles(percentiles),
    )


class _Tally:
    """Counters behind one snapshot: requests, statuses, checks, iterations."""

    def __init__(self) -> None:
        self.requests: Counter[str] = Counter()
        self.request_errors: Counter[str] = Counter()
        self.status_counts: Counter[int] = Counter()
        self.errors_by_type: Counter[str] = Counter()
        # name -> [passes, fails], in first-seen order
        self.checks: dict[str, list[int]] = {}
        self.iterations = 0
        self.iteration_errors = 0

    def add(
        self,
        metrics: Iterable[RequestMetric],
        checks: Iterable[CheckResult],
        iterations: Iterable[IterationOutcome],
    ) -> None:
        for metric in metrics:
            self.requests[metric.name] += 1
            if metric.error is not None:
                self.request_errors[metric.name] += 1
                # "ClientConnectorError: ..." -> "ClientConnectorError"
                self.errors_by_type[metric.error.split(":")[0].strip()] += 1
            else:
                self.status_counts[metric.status_code] += 1

        for result in checks:
            counts = self.checks.setdefault(result.name, [0, 0])
            counts[0 if result.passed else 1] += 1

        for outcome in iterations:
            self.iterations += 1
            if outcome.error is not None:
                self.iteration_errors += 1

    def check_metrics(self) -> dict[str, CheckMetrics]:
        metrics: dict[str, CheckMetrics] = {}
        for name, (passes, fails) in self.checks.items():
            total = passes + fails
            metrics[name] = CheckMetrics(
                name=name,
                passes=passes,
                fails=fails,
                pass_rate=passes / total if total else 0.0,
            )
        return metrics


def _build_snapshot(
    tally: _Tally,
    overall: LatencyStats,
    per_endpoint: dict[str, LatencyStats],
    *,
    elapsed_seconds: float,
    active_users: int,
    interval: float,
) -> MetricSnapshot:
    """Assemble a MetricSnapshot from counters and latency statistics."""
    total_requests = sum(tally.requests.values())
    transport_errors = sum(tally.request_errors.values())
    checks = tally.check_metrics()
    checks_passed = sum(c.passes for c in checks.values())
    checks_failed = sum(c.fails for c in checks.values())
    checks_total = checks_passed + checks_failed

    endpoints: dict[str, EndpointMetrics] = {}
    for name, count in tally.requests.items():
        ep_min, ep_max, ep_avg, ep_p50, ep_p75, ep_p90, ep_p95, ep_p99 = per_endpoint[name]
        errors = tally.request_errors[name]
        endpoints[name] = EndpointMetrics(
            name=name,
            request_count=count,
            error_count=errors,
            error_rate=errors / count if count else 0.0,
            requests_per_second=count / interval,
            latency_min=ep_min,
            latency_max=ep_max,
            latency_avg=ep_avg,
            latency_p50=ep_p50,
            latency_p75=ep_p75,
            latency_p90=ep_p90,
            latency_p95=ep_p95,
            latency_p99=ep_p99,
        )

    lat_min, lat_max, lat_avg, lat_p50, lat_p75, lat_p90, lat_p95, lat_p99, lat_p999 = overall

    return MetricSnapshot(
        timestamp=time.monotonic(),
        elapsed_seconds=elapsed_seconds,
        active_users=active_users,
        total_requests=total_requests,
        requests_per_second=total_requests / interval,
        latency_min=lat_min,
        latency_max=lat_max,
        latency_avg=lat_avg,
        latency_p50=lat_p50,
        latency_p75=lat_p75,
        latency_p90=lat_p90,
        latency_p95=lat_p95,
        latency_p99=lat_p99,
        latency_p999=lat_p999,
        transport_errors=transport_errors,
        transport_error_rate=transport_errors / total_requests if total_requests else 0.0,
        errors_by_type=dict(tally.errors_by_type),
        status_counts=dict(tally.status_counts),
        checks_passed=checks_passed,
        checks_failed=checks_failed,
        check_failure_rate=checks_failed / checks_total if checks_total else 0.0,
        checks=checks,
        iterations=tally.iterations,
        iteration_errors=tally.iteration_errors,
        endpoints=endpoints,
    )


class MetricCollector:
    """Collects request metrics, check results and iteration outcomes.

    ``record``, ``record_check`` and ``record_iteration`` are the callbacks
    handed to every virtual user.  They only append to deques, which is
    atomic, so any number of tasks or threads may call them concurrently.
    ``flush`` drains the deques under a lock, returns a snapshot for the
    interval since the previous flush, and folds the samples into the
    cumulative tallies and HDR histograms used for the final summary.
    """

    def __init__(self) -> None:
        """Initialize an empty collector."""
        self._metrics: deque[RequestMetric] = deque()
        self._checks: deque[CheckResult] = deque()
        self._iterations: deque[IterationOutcome] = deque()
        self._lock = threading.Lock()
        self._cumulative = _Tally()
        self._overall_histogram = LatencyHistogram()
        self._endpoint_histograms: dict[str, LatencyHistogram] = {}
        self._last_flush_time: float = time.monotonic()

    def record(self, metric: RequestMetric) -> None:
        """Append a request metric.  Used as ``HttpClient.metric_callback``."""
        self._metrics.append(metric)

    def record_check(self, result: CheckResult) -> None:
        """Append a check result.  Used as ``HttpClient.check_callback``."""
        self._checks.append(result)

    def record_iteration(self, outcome: IterationOutcome) -> None:
        """Append the outcome of a finished iteration."""
        self._iterations.append(outcome)

    def flush(
        self,
        elapsed_seconds: float,
        active_users: int,
    ) -> MetricSnapshot:
        """Drain pending samples and return a snapshot of the interval.

        Args:
            elapsed_seconds: Seconds elapsed since the run started.
            active_users: Current number of active virtual users.

        Returns:
            A MetricSnapshot covering only the samples drained by this call.
        """
        with self._lock:
            metrics, checks, iterations = self._drain()
            now = time.monotonic()
            interval = max(now - self._last_flush_time, 0.001)
            self._last_flush_time = now

        tally = _Tally()
        tally.add(metrics, checks, iterations)

        by_endpoint: dict[str, list[float]] = {}
        for metric in metrics:
            by_endpoint.setdefault(metric.name, []).append(metric.latency_ms)

        return _build_snapshot(
            tally,
            _compute_latency_stats([m.latency_ms for m in metrics], _OVERALL_PERCENTILES),
            {
                name: _compute_latency_stats(latencies, _ENDPOINT_PERCENTILES)
                for name, latencies in by_endpoint.items()
            },
            elapsed_seconds=elapsed_seconds,
            active_users=active_users,
            interval=interval,
        )

    def get_cumulative_snapshot(
        self,
        elapsed_seconds: float,
        active_users: int,
    ) -> MetricSnapshot:
        """Return a snapshot summarizing every sample recorded so far.

        Pending samples are folded into the cumulative state first, so the
        result is complete even without a preceding ``flush``.

        Args:
            elapsed_seconds: Total elapsed seconds, used for RPS.
            active_users: Current active virtual user count.

        Returns:
            A cumulative MetricSnapshot.
        """
        with self._lock:
            self._drain()
            return _build_snapshot(
                self._cumulative,
                _histogram_latency_stats(self._overall_histogram, _OVERALL_PERCENTILES),
                {
                    name: _histogram_latency_stats(histogram, _ENDPOINT_PERCENTILES)
                    for name, histogram in self._endpoint_histograms.items()
                },
                elapsed_seconds=elapsed_seconds,
                active_users=active_users,
                interval=max(elapsed_seconds, 0.001),
            )

    def _drain(
        self,
    ) -> tuple[list[RequestMetric], list[CheckResult], list[IterationOutcome]]:
        """Pop every pending sample and fold it into the cumulative state.

        Must be called with ``self._lock`` held.
        """
        metrics = _pop_all(self._metrics)
        checks = _pop_all(self._checks)
        iterations = _pop_all(self._iterations)

        self._cumulative.add(metrics, checks, iterations)
        for metric in metrics:
            self._overall_histogram.record(metric.latency_ms)
            histogram = self._endpoint_histograms.get(metric.name)
            if histogram is None:
                histogram = self._endpoint_histograms[metric.name] = LatencyHistogram()
            histogram.record(metric.latency_ms)

        if metrics or iterations:
            logger.debug(
                "Drained %d requests, %d checks, %d iterations",
                len(metrics),
                len(checks),
                len(iterations),
            )
        return metrics, checks, iterations


def _pop_all(buffer: deque[_T]) -> list[_T]:
    """Pop items from the left of *buffer* until it is empty."""
    drained: list[_T] = []
    while buffer:
        drained.append(buffer.popleft())
    return drained
