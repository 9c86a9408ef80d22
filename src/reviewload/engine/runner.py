"""Top-level load test runner used by the CLI."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from reviewload._internal.logging import get_logger, setup_logging
from reviewload.engine.session import RunSession
from reviewload.metrics.store import MetricStore
from reviewload.patterns.stages import StagedPattern
from reviewload.scripts.review_flow import ReviewFlowScript

if TYPE_CHECKING:
    from collections.abc import Callable

    from reviewload._internal.config import DriverConfig
    from reviewload.dsl.scenario import IterationScript
    from reviewload.metrics.models import MetricSnapshot, RunResult

logger = get_logger("engine.runner")


class LoadTestRunner:
    """Runs a load test described by a :class:`DriverConfig`.

    Builds the stage schedule from the configuration, wires the iteration
    script (the review flow unless another one is supplied) into a
    :class:`RunSession`, and drives it on a fresh event loop.

    Example::

        runner = LoadTestRunner(load_config())
        result = runner.run()
        print(result.final_summary.checks_failed)

    Attributes:
        on_snapshot: Callback invoked with each interval snapshot.  The CLI
            swaps it for its live display.
        store: Snapshot series of the most recent run.
    """

    def __init__(
        self,
        config: DriverConfig,
        *,
        script: IterationScript | None = None,
        on_snapshot: Callable[[MetricSnapshot], None] | None = None,
        log_level: int = logging.INFO,
        json_logs: bool = False,
    ) -> None:
        """Initialize the runner.

        Args:
            config: Validated driver configuration.
            script: Iteration script to run.  Defaults to
                ``ReviewFlowScript(pacing=config.pacing)``.
            on_snapshot: Optional callback for each interval snapshot.
            log_level: Logging level for the ``reviewload`` logger.
            json_logs: Emit structured JSON logs instead of plain text.

        Raises:
            ConfigError: If the stage schedule is invalid.
        """
        self.config = config
        self.pattern = StagedPattern(config.stages, start_users=config.start_vus)
        self.script = script if script is not None else ReviewFlowScript(pacing=config.pacing)
        self.on_snapshot = on_snapshot
        self.store = MetricStore()
        self._log_level = log_level
        self._json_logs = json_logs

    def run(self) -> RunResult:
        """Run the load test to completion on a new event loop.

        Returns:
            The completed RunResult.

        Raises:
            EngineError: If the session fails.
        """
        setup_logging(self._log_level, json_format=self._json_logs)
        return asyncio.run(self.run_async())

    async def run_async(self, *, handle_signals: bool = True) -> RunResult:
        """Run the load test on the current event loop.

        Args:
            handle_signals: Install SIGINT/SIGTERM handlers for graceful stop.

        Returns:
            The completed RunResult.
        """
        self.store = MetricStore()
        session = RunSession(
            self.script,
            self.pattern,
            self.config.base_url,
            tick_interval=self.config.tick_interval,
            request_timeout=self.config.request_timeout,
            graceful_stop=self.config.graceful_stop,
            on_snapshot=self._dispatch_snapshot,
            store=self.store,
            handle_signals=handle_signals,
        )
        logger.debug("Runner configured: %s", self.config)
        return await session.run()

    def _dispatch_snapshot(self, snapshot: MetricSnapshot) -> None:
        if self.on_snapshot is not None:
            self.on_snapshot(snapshot)
