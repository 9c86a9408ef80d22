"""Metric aggregation dataclasses for reviewload."""

from __future__ import annotations

from dataclasses import dataclass, field

# RequestMetric lives in dsl/http_client.py and CheckResult in dsl/checks.py;
# both are re-exported so consumers can import every metric type from here.
from reviewload.dsl.checks import CheckResult
from reviewload.dsl.http_client import RequestMetric

__all__ = [
    "CheckMetrics",
    "CheckResult",
    "EndpointMetrics",
    "IterationOutcome",
    "MetricSnapshot",
    "RequestMetric",
    "RunResult",
]


@dataclass(frozen=True)
class IterationOutcome:
    """How one virtual-user iteration ended.

    Attributes:
        vu: Virtual user number.
        iteration: Iteration counter within the virtual user.
        duration_ms: Wall-clock time of the iteration in milliseconds.
        error: Error message if the iteration was cut short, None otherwise.
    """

    vu: int
    iteration: int
    duration_ms: float
    error: str | None = None


@dataclass
class CheckMetrics:
    """Pass/fail tally for one named check.

    Attributes:
        name: Check name (e.g., "create_team").
        passes: Number of evaluations that passed.
        fails: Number of evaluations that failed.
        pass_rate: Fraction of evaluations that passed (0.0 to 1.0).
    """

    name: str
    passes: int = 0
    fails: int = 0
    pass_rate: float = 0.0


@dataclass
class EndpointMetrics:
    """Aggregated metrics for a single logical request name.

    Attributes:
        name: Logical request name (e.g., "create_pr").
        request_count: Total number of requests sent.
        error_count: Number of requests that failed at the transport level.
        error_rate: Fraction of requests that failed at the transport level.
        requests_per_second: Requests per second to this endpoint.
        latency_min: Minimum response time in milliseconds.
        latency_max: Maximum response time in milliseconds.
        latency_avg: Mean response time in milliseconds.
        latency_p50: 50th percentile response time in milliseconds.
        latency_p75: 75th percentile response time in milliseconds.
        latency_p90: 90th percentile response time in milliseconds.
        latency_p95: 95th percentile response time in milliseconds.
        latency_p99: 99th percentile response time in milliseconds.
    """

    name: str
    request_count: int = 0
    error_count: int = 0
    error_rate: float = 0.0
    requests_per_second: float = 0.0
    latency_min: float = 0.0
    latency_max: float = 0.0
    latency_avg: float = 0.0
    latency_p50: float = 0.0
    latency_p75: float = 0.0
    latency_p90: float = 0.0
    latency_p95: float = 0.0
    latency_p99: float = 0.0


@dataclass
class MetricSnapshot:
    """Aggregated metrics for one tick interval, or for the whole run.

    Transport errors (no response received) and check failures (response
    with an unexpected status) are tracked separately.

    Attributes:
        timestamp: Monotonic timestamp of the snapshot.
        elapsed_seconds: Seconds since the run started.
        active_users: Number of active virtual users.
        total_requests: Requests sent in this interval.
        requests_per_second: Overall RPS in this interval.
        latency_min: Minimum latency in milliseconds.
        latency_max: Maximum latency in milliseconds.
        latency_avg: Mean latency in milliseconds.
        latency_p50: 50th percentile latency (ms).
        latency_p75: 75th percentile latency (ms).
        latency_p90: 90th percentile latency (ms).
        latency_p95: 95th percentile latency (ms).
        latency_p99: 99th percentile latency (ms).
        latency_p999: 99.9th percentile latency (ms).
        transport_errors: Requests that never received a response.
        transport_error_rate: Fraction of requests that never received a
            response (0.0 to 1.0).
        errors_by_type: Transport error count by exception type name.
        status_counts: Response count by HTTP status code.
        checks_passed: Total passing check evaluations.
        checks_failed: Total failing check evaluations.
        check_failure_rate: Fraction of check evaluations that failed.
        checks: Per-check tallies keyed by check name.
        iterations: Iterations that finished in this interval.
        iteration_errors: Iterations cut short by an error.
        endpoints: Per-request-name metrics keyed by request name.
    """

    timestamp: float
    elapsed_seconds: float
    active_users: int
    total_requests: int = 0
    requests_per_second: float = 0.0
    latency_min: float = 0.0
    latency_max: float = 0.0
    latency_avg: float = 0.0
    latency_p50: float = 0.0
    latency_p75: float = 0.0
    latency_p90: float = 0.0
    latency_p95: float = 0.0
    latency_p99: float = 0.0
    latency_p999: float = 0.0
    transport_errors: int = 0
    transport_error_rate: float = 0.0
    errors_by_type: dict[str, int] = field(default_factory=dict)
    status_counts: dict[int, int] = field(default_factory=dict)
    checks_passed: int = 0
    checks_failed: int = 0
    check_failure_rate: float = 0.0
    checks: dict[str, CheckMetrics] = field(default_factory=dict)
    iterations: int = 0
    iteration_errors: int = 0
    endpoints: dict[str, EndpointMetrics] = field(default_factory=dict)


@dataclass
class RunResult:
    """Complete result of a load test run.

    Attributes:
        script_name: Name of the iteration script that was executed.
        start_time: Monotonic time when the run started.
        end_time: Monotonic time when the run completed.
        duration_seconds: Total wall-clock duration of the run.
        pattern_description: Human-readable description of the stage schedule.
        snapshots: Time-series of interval MetricSnapshot objects (one per tick).
        final_summary: Cumulative MetricSnapshot for the entire run.
    """

    script_name: str
    start_time: float
    end_time: float
    duration_seconds: float
    pattern_description: str
    snapshots: list[MetricSnapshot] = field(default_factory=list)
    final_summary: MetricSnapshot | None = None
