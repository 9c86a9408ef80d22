"""Run session lifecycle management and signal handling."""

from __future__ import annotations

import asyncio
import contextlib
import signal
import sys
import time
from enum import Enum, auto
from typing import TYPE_CHECKING

from reviewload._internal.errors import EngineError
from reviewload._internal.logging import get_logger
from reviewload.engine.scheduler import Scheduler
from reviewload.engine.virtual_user import VirtualUser
from reviewload.metrics.collector import MetricCollector
from reviewload.metrics.models import RunResult
from reviewload.metrics.store import MetricStore

if TYPE_CHECKING:
    from collections.abc import Callable

    from reviewload.dsl.scenario import IterationScript
    from reviewload.metrics.models import MetricSnapshot
    from reviewload.patterns.base import LoadPattern

logger = get_logger("engine.session")

# Extra time cancelled users get to unwind after the graceful stop expires
_CANCEL_GRACE_SECONDS = 2.0


class SessionState(Enum):
    """State machine for a run session."""

    CREATED = auto()
    STARTING = auto()
    RUNNING = auto()
    STOPPING = auto()
    COMPLETED = auto()
    FAILED = auto()


class RunSession:
    """Manages the lifecycle of one load test run.

    Coordinates the scheduler, the virtual users, the metric collector and
    signal handling.

    State machine: CREATED -> STARTING -> RUNNING -> STOPPING -> COMPLETED
                                                  -> FAILED (on error)

    Ramping down retires the most recently started users; a retired user
    no longer counts as active but finishes its in-flight iteration.  When
    the schedule ends or :meth:`stop` is called, no new iterations start,
    in-flight ones get *graceful_stop* seconds to finish, and whatever is
    still running after that is cancelled.

    Attributes:
        store: Time-series of the interval snapshots taken each tick.
    """

    def __init__(
        self,
        script: IterationScript,
        pattern: LoadPattern,
        base_url: str,
        *,
        tick_interval: float = 1.0,
        request_timeout: float = 30.0,
        graceful_stop: float = 5.0,
        on_snapshot: Callable[[MetricSnapshot], None] | None = None,
        store: MetricStore | None = None,
        handle_signals: bool = True,
    ) -> None:
        """Initialize a run session.

        Args:
            script: Iteration script every virtual user runs.
            pattern: Schedule controlling concurrency.
            base_url: Root URL of the target service.
            tick_interval: Seconds between concurrency adjustments.
            request_timeout: Total timeout per request in seconds.
            graceful_stop: Seconds in-flight iterations get to finish at
                shutdown before being cancelled.
            on_snapshot: Optional callback invoked with each interval
                snapshot.
            store: Store receiving the interval snapshots.  A new one is
                created when omitted.
            handle_signals: Install SIGINT/SIGTERM handlers that trigger a
                graceful stop.
        """
        self._script = script
        self._pattern = pattern
        self._base_url = base_url
        self._tick_interval = tick_interval
        self._request_timeout = request_timeout
        self._graceful_stop = graceful_stop
        self._on_snapshot = on_snapshot
        self._handle_signals = handle_signals
        self.store = store if store is not None else MetricStore()

        self._state = SessionState.CREATED
        self._collector = MetricCollector()
        self._active: list[tuple[VirtualUser, asyncio.Task[None]]] = []
        self._retiring: list[tuple[VirtualUser, asyncio.Task[None]]] = []
        self._next_vu = 1
        self._stop_event = asyncio.Event()

    @property
    def state(self) -> SessionState:
        """Return the current session state."""
        return self._state

    @property
    def active_user_count(self) -> int:
        """Return the number of active (not retiring) virtual users."""
        return len(self._active)

    @property
    def collector(self) -> MetricCollector:
        """Return the collector shared by all virtual users."""
        return self._collector

    async def run(self) -> RunResult:
        """Execute the full session lifecycle.

        Returns:
            RunResult containing all interval snapshots and the final summary.

        Raises:
            EngineError: If the session encounters an unrecoverable error.
        """
        self._state = SessionState.STARTING
        logger.info(
            "Starting run: script=%s, target=%s, %s",
            self._script.name,
            self._base_url,
            self._pattern.describe(),
        )

        if self._handle_signals:
            self._install_signal_handlers()

        scheduler = Scheduler(self._pattern, self._tick_interval)
        start_time = time.monotonic()

        self._state = SessionState.RUNNING

        try:
            for command in scheduler.iter_commands():
                target_time = start_time + command.elapsed_seconds
                if await self._wait_for_stop(target_time - time.monotonic()):
                    break

                self._scale_users(command.target_concurrency)

                elapsed = time.monotonic() - start_time
                snapshot = self._collector.flush(
                    elapsed_seconds=elapsed,
                    active_users=self.active_user_count,
                )
                self.store.append(snapshot)
                if self._on_snapshot is not None:
                    self._on_snapshot(snapshot)

                logger.debug(
                    "Tick %.1fs: users=%d, rps=%.1f, p95=%.1fms, checks_failed=%d, "
                    "transport_errors=%d",
                    elapsed,
                    self.active_user_count,
                    snapshot.requests_per_second,
                    snapshot.latency_p95,
                    snapshot.checks_failed,
                    snapshot.transport_errors,
                )

        except Exception as exc:
            self._state = SessionState.FAILED
            logger.exception("Run session failed")
            raise EngineError("Run session failed") from exc
        finally:
            if self._state != SessionState.FAILED:
                self._state = SessionState.STOPPING
            await self._shutdown_all_users()
            if self._handle_signals:
                self._remove_signal_handlers()

        end_time = time.monotonic()
        total_duration = end_time - start_time

        # Final interval covers iterations that finished while draining
        self.store.append(
            self._collector.flush(elapsed_seconds=total_duration, active_users=0),
        )

        final_summary = self._collector.get_cumulative_snapshot(
            elapsed_seconds=total_duration,
            active_users=0,
        )

        self._state = SessionState.COMPLETED
        logger.info(
            "Run completed: duration=%.1fs, iterations=%d, requests=%d, avg_rps=%.1f, "
            "p95=%.1fms, checks_failed=%d/%d, transport_errors=%d",
            total_duration,
            final_summary.iterations,
            final_summary.total_requests,
            final_summary.requests_per_second,
            final_summary.latency_p95,
            final_summary.checks_failed,
            final_summary.checks_passed + final_summary.checks_failed,
            final_summary.transport_errors,
        )

        return RunResult(
            script_name=self._script.name,
            start_time=start_time,
            end_time=end_time,
            duration_seconds=total_duration,
            pattern_description=self._pattern.describe(),
            snapshots=self.store.get_all(),
            final_summary=final_summary,
        )

    async def stop(self) -> None:
        """Request graceful shutdown of the session.

        The main loop exits immediately instead of waiting for the next tick;
        in-flight iterations then get the graceful stop period to finish.
        """
        if self._state == SessionState.RUNNING:
            logger.info("Graceful shutdown requested")
            self._state = SessionState.STOPPING
            self._stop_event.set()

    async def _wait_for_stop(self, delay: float) -> bool:
        """Sleep up to *delay* seconds; return True if a stop was requested."""
        if self._stop_event.is_set():
            return True
        if delay > 0:
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        return self._stop_event.is_set()

    def _scale_users(self, target: int) -> None:
        """Adjust the number of active virtual users to match *target*.

        Args:
            target: Desired number of active virtual users.
        """
        self._active = [(u, t) for u, t in self._active if not t.done()]
        self._retiring = [(u, t) for u, t in self._retiring if not t.done()]

        current = self.active_user_count
        if target > current:
            for _ in range(target - current):
                self._start_user()
        elif target < current:
            # Retire the most recently started users first (LIFO)
            for _ in range(current - target):
                user, task = self._active.pop()
                user.retire()
                self._retiring.append((user, task))

    def _start_user(self) -> None:
        vu = self._next_vu
        self._next_vu += 1
        user = VirtualUser(
            vu,
            self._script,
            base_url=self._base_url,
            collector=self._collector,
            stop_event=self._stop_event,
            request_timeout=self._request_timeout,
        )
        task = asyncio.create_task(user.run(), name=f"vu-{vu}")
        task.add_done_callback(self._on_user_done)
        self._active.append((user, task))

    @staticmethod
    def _on_user_done(task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Virtual user %s crashed", task.get_name(), exc_info=exc)

    async def _shutdown_all_users(self) -> None:
        """Stop every virtual user, waiting for in-flight iterations first.

        Sets the stop event, waits up to the graceful stop period for users
        to finish their current iteration, then cancels the rest.
        """
        self._stop_event.set()

        tasks = [t for _, t in self._active + self._retiring if not t.done()]
        if tasks:
            pending = set(tasks)
            if self._graceful_stop > 0:
                _done, pending = await asyncio.wait(tasks, timeout=self._graceful_stop)

            for task in pending:
                task.cancel()
            if pending:
                logger.info(
                    "Cancelled %d virtual users still running after %.1fs graceful stop",
                    len(pending),
                    self._graceful_stop,
                )
                await asyncio.wait(pending, timeout=_CANCEL_GRACE_SECONDS)

        self._active.clear()
        self._retiring.clear()
        logger.debug("All virtual users shut down")

    def _install_signal_handlers(self) -> None:
        """Install SIGINT and SIGTERM handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        def _signal_handler() -> None:
            logger.info("Signal received, initiating graceful shutdown")
            self._state = SessionState.STOPPING
            self._stop_event.set()

        if sys.platform != "win32":
            loop.add_signal_handler(signal.SIGINT, _signal_handler)
            loop.add_signal_handler(signal.SIGTERM, _signal_handler)
        else:
            # Windows doesn't support add_signal_handler
            signal.signal(signal.SIGINT, lambda _s, _f: _signal_handler())
            signal.signal(signal.SIGTERM, lambda _s, _f: _signal_handler())

    def _remove_signal_handlers(self) -> None:
        """Remove custom signal handlers, restoring defaults."""
        if sys.platform != "win32":
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
        else:
            signal.signal(signal.SIGINT, signal.default_int_handler)
            signal.signal(signal.SIGTERM, signal.SIG_DFL)
