"""Concurrency scheduler that converts a stage schedule into scale commands."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

from reviewload.patterns.base import _validate_positive

if TYPE_CHECKING:
    from collections.abc import Iterator

    from reviewload.patterns.base import LoadPattern


class ScaleDirection(Enum):
    """Direction of a concurrency scale event."""

    UP = auto()
    DOWN = auto()
    HOLD = auto()


@dataclass(frozen=True)
class ScaleCommand:
    """A command to adjust the number of active virtual users.

    Attributes:
        elapsed_seconds: Time offset from the start of the run.
        target_concurrency: Desired number of active virtual users.
        direction: Whether this is scaling up, down, or holding steady.
        delta: Absolute change in virtual user count (always >= 0).
    """

    elapsed_seconds: float
    target_concurrency: int
    direction: ScaleDirection
    delta: int


class Scheduler:
    """Converts a LoadPattern's concurrency timeline into ScaleCommands.

    Samples the pattern every *tick_interval* seconds from 0 to the end of
    the schedule and emits one ``ScaleCommand`` per tick, comparing each
    target with the previous tick's (the run starts from 0 active users).

    Args:
        pattern: The schedule to follow.
        tick_interval: Seconds between concurrency adjustments.

    Raises:
        ConfigError: If *tick_interval* is not positive.
    """

    def __init__(self, pattern: LoadPattern, tick_interval: float = 1.0) -> None:
        _validate_positive(tick_interval, "tick_interval")
        self._pattern = pattern
        self._tick_interval = tick_interval

    @property
    def duration_seconds(self) -> float:
        """Return the length of the schedule."""
        return self._pattern.total_duration

    def iter_commands(self) -> Iterator[ScaleCommand]:
        """Yield a ScaleCommand for each tick of the schedule.

        Yields:
            ScaleCommands in chronological order; the last one lands on the
            end of the schedule.
        """
        prev_concurrency = 0
        for elapsed, target in self._pattern.iter_concurrency(self._tick_interval):
            delta = target - prev_concurrency
            if delta > 0:
                direction = ScaleDirection.UP
            elif delta < 0:
                direction = ScaleDirection.DOWN
            else:
                direction = ScaleDirection.HOLD

            yield ScaleCommand(
                elapsed_seconds=elapsed,
                target_concurrency=target,
                direction=direction,
                delta=abs(delta),
            )
            prev_concurrency = target
