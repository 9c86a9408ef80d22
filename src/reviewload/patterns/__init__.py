"""Concurrency schedules for reviewload.

A schedule defines how the target number of virtual users changes over the
wall-clock time of a run. All schedules implement :class:`LoadPattern` and
yield ``(elapsed_seconds, target_concurrency)`` tuples via
:meth:`LoadPattern.iter_concurrency`.
"""

from __future__ import annotations

from reviewload.patterns.base import LoadPattern
from reviewload.patterns.stages import Stage, StagedPattern

__all__ = [
    "LoadPattern",
    "Stage",
    "StagedPattern",
]
