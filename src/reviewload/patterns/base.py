"""Abstract base class for concurrency schedules."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from reviewload._internal.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Iterator


class LoadPattern(ABC):
    """Abstract base for all concurrency schedules.

    A schedule maps elapsed run time to the number of virtual users that
    should be active.  Concrete subclasses implement :meth:`target_at` and
    :attr:`total_duration`; :meth:`iter_concurrency` samples the schedule at
    a fixed tick interval.

    Example::

        pattern = StagedPattern([Stage(20.0, 10), Stage(40.0, 30), Stage(20.0, 0)])
        for elapsed, users in pattern.iter_concurrency(tick_interval=10.0):
            print(f"t={elapsed:.0f}s -> {users} users")
    """

    @property
    @abstractmethod
    def total_duration(self) -> float:
        """Return the length of the schedule in seconds."""

    @abstractmethod
    def target_at(self, elapsed_seconds: float) -> int:
        """Return the target concurrency at *elapsed_seconds* into the run.

        Args:
            elapsed_seconds: Time offset from the start of the run.

        Returns:
            Number of virtual users that should be active at that moment.
        """

    @abstractmethod
    def describe(self) -> str:
        """Return a human-readable description of this schedule.

        Returns:
            A short string summarising the schedule, suitable for logs and
            report headers.
        """

    def iter_concurrency(self, tick_interval: float = 1.0) -> Iterator[tuple[float, int]]:
        """Yield ``(elapsed_seconds, target_concurrency)`` at each tick.

        Ticks start at 0 and are spaced *tick_interval* apart.  The last tick
        always lands exactly on :attr:`total_duration`, even when the duration
        is not a multiple of the interval.

        Args:
            tick_interval: Seconds between each yielded tick.  Defaults to 1.0.

        Yields:
            A tuple of ``(elapsed_seconds, target_concurrency)``.
        """
        _validate_positive(tick_interval, "tick_interval")
        total = self.total_duration
        # Tolerate float error so that 1.8 / 0.2 counts as 9 full ticks
        full_ticks = int(total / tick_interval + 1e-9)
        for index in range(full_ticks + 1):
            elapsed = index * tick_interval
            yield (elapsed, self.target_at(elapsed))
        if full_ticks * tick_interval < total - 1e-9:
            yield (total, self.target_at(total))


def _validate_positive(value: float, name: str) -> None:
    """Raise :class:`ConfigError` if *value* is not strictly positive.

    Args:
        value: The numeric value to validate.
        name: Parameter name used in the error message.

    Raises:
        ConfigError: If *value* is not a finite number > 0.
    """
    if not math.isfinite(value) or value <= 0:
        msg = f"{name} must be a finite positive number, got {value}"
        raise ConfigError(msg)


def _validate_non_negative(value: float, name: str) -> None:
    """Raise :class:`ConfigError` if *value* is negative.

    Args:
        value: The numeric value to validate.
        name: Parameter name used in the error message.

    Raises:
        ConfigError: If *value* is < 0, NaN or infinite.
    """
    if not math.isfinite(value) or value < 0:
        msg = f"{name} must be a finite non-negative number, got {value}"
        raise ConfigError(msg)
