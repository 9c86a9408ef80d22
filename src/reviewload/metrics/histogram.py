"""HDR histogram wrapper for run-long latency distributions.

The cumulative run summary must not grow with run length, so it is backed
by ``hdrh.histogram.HdrHistogram`` instead of a list of samples.  The
wrapper works in milliseconds and stores integer microseconds internally.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from hdrh.histogram import HdrHistogram  # type: ignore[import-untyped]

if TYPE_CHECKING:
    from collections.abc import Iterable

# Range: 1 microsecond to 5 minutes, well past any sensible request timeout
_LOWEST_TRACKABLE_US = 1
_HIGHEST_TRACKABLE_US = 300_000_000
_SIGNIFICANT_DIGITS = 3


class LatencyHistogram:
    """Latency distribution with millisecond-based accessors.

    Values outside the trackable range are clamped rather than dropped, so
    the total count always matches the number of recorded requests.

    Attributes:
        lowest_us: Lowest trackable value in microseconds.
        highest_us: Highest trackable value in microseconds.
    """

    def __init__(
        self,
        lowest_us: int = _LOWEST_TRACKABLE_US,
        highest_us: int = _HIGHEST_TRACKABLE_US,
        significant_digits: int = _SIGNIFICANT_DIGITS,
    ) -> None:
        self.lowest_us = lowest_us
        self.highest_us = highest_us
        self._histogram: HdrHistogram = HdrHistogram(  # type: ignore[no-any-unimported]
            lowest_us, highest_us, significant_digits
        )

    def record(self, latency_ms: float) -> None:
        """Record one latency value in milliseconds."""
        value_us = int(latency_ms * 1000)
        self._histogram.record_value(max(self.lowest_us, min(value_us, self.highest_us)))

    @property
    def count(self) -> int:
        """Return the number of recorded values."""
        return int(self._histogram.total_count)

    def percentile(self, percentile: float) -> float:
        """Return the latency at *percentile* (0-100) in ms, or 0.0 if empty."""
        if self.count == 0:
            return 0.0
        return float(self._histogram.get_value_at_percentile(percentile)) / 1000.0

    def percentiles(self, percentiles: Iterable[float]) -> list[float]:
        """Return the latencies at each of *percentiles* in ms."""
        return [self.percentile(p) for p in percentiles]

    def minimum(self) -> float:
        """Return the minimum recorded latency in ms, or 0.0 if empty."""
        if self.count == 0:
            return 0.0
        return float(self._histogram.get_min_value()) / 1000.0

    def maximum(self) -> float:
        """Return the maximum recorded latency in ms, or 0.0 if empty."""
        if self.count == 0:
            return 0.0
        return float(self._histogram.get_max_value()) / 1000.0

    def mean(self) -> float:
        """Return the mean recorded latency in ms, or 0.0 if empty."""
        if self.count == 0:
            return 0.0
        return float(self._histogram.get_mean_value()) / 1000.0
