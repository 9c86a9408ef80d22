"""Iteration identity and the iteration script protocol."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from reviewload.dsl.http_client import HttpClient, RequestResult


@dataclass(frozen=True)
class IterationId:
    """Identity of one virtual-user iteration.

    Virtual user numbers start at 1 and iteration counters at 0.  Every
    identifier a script derives from ``key`` is unique within a run because
    the engine never reuses a ``(vu, iteration)`` pair.

    Attributes:
        vu: Virtual user number.
        iteration: Iteration counter within that virtual user.
    """

    vu: int
    iteration: int

    @property
    def key(self) -> str:
        """Return the ``"<vu>-<iteration>"`` key used to build identifiers."""
        return f"{self.vu}-{self.iteration}"


class IterationScript(Protocol):
    """Protocol for the request sequence a virtual user runs per iteration.

    ``run`` executes the steps strictly in order against *client* and returns
    one result per request.  A failed step, whether a failed check or a
    transport error, never stops the steps after it.
    """

    @property
    def name(self) -> str:
        """Script name used in reports."""
        ...

    async def run(self, client: HttpClient, identity: IterationId) -> list[RequestResult]:
        """Run one iteration."""
        ...
