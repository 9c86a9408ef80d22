"""A virtual user: one task running iterations back to back."""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

from reviewload._internal.logging import get_logger
from reviewload.dsl.http_client import HttpClient
from reviewload.dsl.scenario import IterationId
from reviewload.metrics.models import IterationOutcome

if TYPE_CHECKING:
    from reviewload.dsl.scenario import IterationScript
    from reviewload.metrics.collector import MetricCollector

logger = get_logger("engine.virtual_user")


class VirtualUser:
    """Runs the iteration script in a loop with its own HTTP session.

    The loop checks for shutdown only between iterations, so an iteration
    that has started always runs to completion unless its task is
    cancelled.  Two things end the loop: the run-wide *stop_event* and
    :meth:`retire`, which the session calls when ramping down.

    Attributes:
        vu: Virtual user number, unique within the run.
        iterations: Number of iterations started so far.
    """

    def __init__(
        self,
        vu: int,
        script: IterationScript,
        *,
        base_url: str,
        collector: MetricCollector,
        stop_event: asyncio.Event,
        request_timeout: float = 30.0,
    ) -> None:
        self.vu = vu
        self.iterations = 0
        self._script = script
        self._base_url = base_url
        self._collector = collector
        self._stop_event = stop_event
        self._request_timeout = request_timeout
        self._retired = asyncio.Event()

    @property
    def retired(self) -> bool:
        """Return True once :meth:`retire` has been called."""
        return self._retired.is_set()

    def retire(self) -> None:
        """Ask the user to exit after its current iteration."""
        self._retired.set()

    def _should_stop(self) -> bool:
        return self._stop_event.is_set() or self._retired.is_set()

    async def run(self) -> None:
        """Run iterations until stopped or retired."""
        async with HttpClient(
            base_url=self._base_url,
            metric_callback=self._collector.record,
            check_callback=self._collector.record_check,
            vu=self.vu,
            timeout=self._request_timeout,
        ) as client:
            while not self._should_stop():
                identity = IterationId(vu=self.vu, iteration=self.iterations)
                self.iterations += 1
                await self._run_iteration(client, identity)

        logger.debug("VU %d finished after %d iterations", self.vu, self.iterations)

    async def _run_iteration(self, client: HttpClient, identity: IterationId) -> None:
        context = {"vu": identity.vu, "iteration": identity.iteration}
        start = time.monotonic()
        error: str | None = None
        try:
            results = await self._script.run(client, identity)
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"
            logger.warning("Iteration %s failed", identity.key, exc_info=True, extra=context)
        else:
            failed = [f"{r.name}: {r.error}" for r in results if r.error is not None]
            if failed:
                error = "; ".join(failed)
                logger.debug(
                    "Iteration %s had transport errors: %s", identity.key, error, extra=context
                )

        self._collector.record_iteration(
            IterationOutcome(
                vu=identity.vu,
                iteration=identity.iteration,
                duration_ms=(time.monotonic() - start) * 1000,
                error=error,
            )
        )
