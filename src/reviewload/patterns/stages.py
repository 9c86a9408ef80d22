"""Staged schedule: piecewise-linear ramp between stage targets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from reviewload._internal.errors import ConfigError
from reviewload.patterns.base import LoadPattern, _validate_non_negative, _validate_positive

if TYPE_CHECKING:
    from collections.abc import Iterable


@dataclass(frozen=True)
class Stage:
    """One time-boxed segment of a run.

    Attributes:
        duration: Length of the stage in seconds.  Zero means the target is
            reached instantly.
        target: Virtual user count to reach by the end of the stage.
    """

    duration: float
    target: int

    def __post_init__(self) -> None:
        _validate_non_negative(self.duration, "stage duration")
        _validate_non_negative(self.target, "stage target")

    def __str__(self) -> str:
        return f"{self.duration:g}s:{self.target}"


class StagedPattern(LoadPattern):
    """Ramp concurrency through an ordered list of stages.

    Within each stage the target moves linearly from the previous stage's
    target (or *start_users* for the first stage) to the stage's own target,
    reaching it exactly at the stage boundary.  A stage whose target equals
    the previous one holds steady.  After the last stage the final target
    holds.

    Args:
        stages: Ordered stages.  Must be non-empty with a positive total
            duration.
        start_users: Concurrency at t=0.  Must be >= 0.

    Raises:
        ConfigError: If the stage list is empty or has zero total duration.

    Example::

        pattern = StagedPattern([Stage(20.0, 10), Stage(40.0, 30), Stage(20.0, 0)])
        assert pattern.total_duration == 80.0
        assert pattern.target_at(20.0) == 10
        assert pattern.target_at(40.0) == 20
        assert pattern.target_at(80.0) == 0
    """

    def __init__(self, stages: Iterable[Stage], start_users: int = 0) -> None:
        stage_list = tuple(stages)
        if not stage_list:
            msg = "at least one stage is required"
            raise ConfigError(msg)
        _validate_non_negative(start_users, "start_users")
        total = sum(stage.duration for stage in stage_list)
        _validate_positive(total, "total stage duration")
        self._stages = stage_list
        self._start_users = start_users
        self._total = total

    @property
    def stages(self) -> tuple[Stage, ...]:
        """Return the configured stages."""
        return self._stages

    @property
    def total_duration(self) -> float:
        """Return the sum of all stage durations."""
        return self._total

    def target_at(self, elapsed_seconds: float) -> int:
        """Return the interpolated target at *elapsed_seconds*.

        Args:
            elapsed_seconds: Time offset from the start of the run.

        Returns:
            Target concurrency, rounded to the nearest whole user.
        """
        elapsed = max(elapsed_seconds, 0.0)
        previous = self._start_users
        stage_start = 0.0
        # Zero-duration stages never satisfy the check below, so they jump
        for stage in self._stages:
            stage_end = stage_start + stage.duration
            if elapsed < stage_end:
                fraction = (elapsed - stage_start) / stage.duration
                return round(previous + (stage.target - previous) * fraction)
            previous = stage.target
            stage_start = stage_end
        return self._stages[-1].target

    def bounds_at(self, elapsed_seconds: float) -> tuple[int, int]:
        """Return the ``(low, high)`` targets of the stage active at *elapsed_seconds*.

        Any sampled concurrency inside that stage lies within these bounds.
        """
        previous = self._start_users
        stage_start = 0.0
        for stage in self._stages:
            stage_end = stage_start + stage.duration
            if elapsed_seconds < stage_end:
                return (min(previous, stage.target), max(previous, stage.target))
            previous = stage.target
            stage_start = stage_end
        last = self._stages[-1].target
        return (last, last)

    def describe(self) -> str:
        """Return a human-readable description.

        Returns:
            Description listing each stage.
        """
        parts = ", ".join(str(stage) for stage in self._stages)
        return f"Stages: {parts} ({self._total:g}s total, start {self._start_users} users)"
