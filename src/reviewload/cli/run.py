"""``reviewload run``: execute the load test with live terminal output."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from reviewload._internal.errors import ReviewLoadError
from reviewload.cli.options import build_config
from reviewload.engine.runner import LoadTestRunner
from reviewload.metrics.report import write_summary_json

if TYPE_CHECKING:
    from reviewload.metrics.models import MetricSnapshot, RunResult

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Rich live display
# ---------------------------------------------------------------------------


def _make_live_table(snapshot: MetricSnapshot | None, elapsed: float) -> Table:
    """Build a Rich table summarising the latest interval.

    Args:
        snapshot: Latest interval snapshot, or None if no data yet.
        elapsed: Elapsed seconds so far.

    Returns:
        Formatted Rich Table.
    """
    table = Table(show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    if snapshot is None:
        table.add_row("Elapsed", f"{elapsed:.0f}s")
        table.add_row("Status", "Starting...")
        return table

    table.add_row("Elapsed", f"{snapshot.elapsed_seconds:.0f}s")
    table.add_row("Active VUs", str(snapshot.active_users))
    table.add_row("Requests/sec", f"{snapshot.requests_per_second:.1f}")
    table.add_row("Iterations", str(snapshot.iterations))
    table.add_row("p95 Latency", f"{snapshot.latency_p95:.1f}ms")
    table.add_row("Checks Failed", str(snapshot.checks_failed))
    table.add_row("Transport Errors", str(snapshot.transport_errors))

    return table


def _print_summary(result: RunResult) -> None:
    """Print the end-of-test summary: overview, checks and per-request tables.

    Args:
        result: Completed run result.
    """
    summary = result.final_summary
    table = Table(
        title="Test Complete",
        show_header=True,
        header_style="bold green",
        expand=True,
    )
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Script", result.script_name)
    table.add_row("Schedule", result.pattern_description)
    table.add_row("Duration", f"{result.duration_seconds:.1f}s")

    if summary:
        table.add_row("Iterations", str(summary.iterations))
        table.add_row("Iteration Errors", str(summary.iteration_errors))
        table.add_row("Total Requests", str(summary.total_requests))
        table.add_row("Avg Requests/sec", f"{summary.requests_per_second:.1f}")
        table.add_row("Latency avg / min / max", (
            f"{summary.latency_avg:.1f} / {summary.latency_min:.1f} / {summary.latency_max:.1f}ms"
        ))
        table.add_row("p50 / p90 / p95 / p99", (
            f"{summary.latency_p50:.1f} / {summary.latency_p90:.1f} / "
            f"{summary.latency_p95:.1f} / {summary.latency_p99:.1f}ms"
        ))
        table.add_row("Transport Errors", str(summary.transport_errors))
        table.add_row("Transport Error Rate", f"{summary.transport_error_rate * 100:.2f}%")
        if summary.errors_by_type:
            table.add_row(
                "Errors by Type",
                ", ".join(f"{k}={v}" for k, v in summary.errors_by_type.items()),
            )
        table.add_row("Checks", f"{summary.checks_passed} passed, {summary.checks_failed} failed")

        if summary.checks:
            console.print()
            check_table = Table(
                title="Checks",
                show_header=True,
                header_style="bold cyan",
                expand=True,
            )
            check_table.add_column("")
            check_table.add_column("Check")
            check_table.add_column("Passes", justify="right")
            check_table.add_column("Fails", justify="right")
            check_table.add_column("Pass %", justify="right")

            for check in summary.checks.values():
                mark = "[green]✓[/green]" if check.fails == 0 else "[red]✗[/red]"
                check_table.add_row(
                    mark,
                    check.name,
                    str(check.passes),
                    str(check.fails),
                    f"{check.pass_rate * 100:.2f}%",
                )
            console.print(check_table)

        if summary.endpoints:
            console.print()
            ep_table = Table(
                title="Per-Request Breakdown",
                show_header=True,
                header_style="bold cyan",
                expand=True,
            )
            ep_table.add_column("Request")
            ep_table.add_column("Count", justify="right")
            ep_table.add_column("RPS", justify="right")
            ep_table.add_column("p50", justify="right")
            ep_table.add_column("p95", justify="right")
            ep_table.add_column("p99", justify="right")
            ep_table.add_column("Transport Errors", justify="right")

            for ep in summary.endpoints.values():
                ep_table.add_row(
                    ep.name,
                    str(ep.request_count),
                    f"{ep.requests_per_second:.1f}",
                    f"{ep.latency_p50:.1f}ms",
                    f"{ep.latency_p95:.1f}ms",
                    f"{ep.latency_p99:.1f}ms",
                    str(ep.error_count),
                )
            console.print(ep_table)

    console.print(table)


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------


def run_cmd(
    base_url: str | None = typer.Option(
        None,
        "--base-url",
        "-u",
        help="Target service root URL [env: REVIEWLOAD_BASE_URL].",
    ),
    stage: list[str] | None = typer.Option(
        None,
        "--stage",
        "-s",
        help="Stage as <duration>:<target>, repeatable, e.g. -s 20s:10 -s 40s:30 -s 20s:0 "
        "[env: REVIEWLOAD_STAGES].",
    ),
    pacing: str | None = typer.Option(
        None,
        "--pacing",
        help="Pause between PR creation and review lookup, e.g. 200ms.",
    ),
    timeout: str | None = typer.Option(
        None,
        "--timeout",
        help="Per-request timeout, e.g. 30s.",
    ),
    graceful_stop: str | None = typer.Option(
        None,
        "--graceful-stop",
        help="Time in-flight iterations get to finish at shutdown, e.g. 5s.",
    ),
    start_vus: int | None = typer.Option(
        None,
        "--start-vus",
        help="Virtual users active at t=0.",
        min=0,
    ),
    tick_interval: float | None = typer.Option(
        None,
        "--tick",
        help="Seconds between concurrency adjustments.",
        min=0.05,
    ),
    summary_export: Path | None = typer.Option(
        None,
        "--summary-export",
        help="Write the end-of-test summary as JSON to this file.",
    ),
    fail_on_check_rate: float | None = typer.Option(
        None,
        "--fail-on-check-rate",
        help="Exit non-zero if the failed-check rate exceeds this threshold (e.g., 0.05).",
    ),
    fail_on_error_rate: float | None = typer.Option(
        None,
        "--fail-on-error-rate",
        help="Exit non-zero if the transport error rate exceeds this threshold.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Emit structured JSON logs.",
    ),
) -> None:
    """Run the review-flow load test with live terminal output."""
    try:
        config = build_config(
            base_url=base_url,
            stages=stage,
            pacing=pacing,
            timeout=timeout,
            graceful_stop=graceful_stop,
            start_vus=start_vus,
            tick_interval=tick_interval,
        )
        test_runner = LoadTestRunner(
            config,
            log_level=logging.DEBUG if verbose else logging.INFO,
            json_logs=json_logs,
        )
    except ReviewLoadError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    console.print(
        Panel(
            f"[bold]Target:[/bold]   {config.base_url}\n"
            f"[bold]Script:[/bold]   {test_runner.script.name}\n"
            f"[bold]Schedule:[/bold] {test_runner.pattern.describe()}\n"
            f"[bold]Pacing:[/bold]   {config.pacing * 1000:.0f}ms",
            title="reviewload",
            border_style="cyan",
        )
    )

    try:
        with Live(
            _make_live_table(None, 0.0),
            console=console,
            refresh_per_second=2,
            transient=True,
        ) as live:

            def _live_snapshot(snapshot: MetricSnapshot) -> None:
                live.update(_make_live_table(snapshot, snapshot.elapsed_seconds))

            test_runner.on_snapshot = _live_snapshot
            result = test_runner.run()
    except ReviewLoadError as exc:
        console.print(f"[red]Load test failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    _print_summary(result)

    if summary_export is not None:
        write_summary_json(result, summary_export)
        console.print(f"[green]Summary written to[/green] {summary_export}")

    summary = result.final_summary
    failed = False
    if (
        fail_on_check_rate is not None
        and summary is not None
        and summary.check_failure_rate > fail_on_check_rate
    ):
        console.print(
            f"[red]FAIL:[/red] Failed-check rate {summary.check_failure_rate * 100:.2f}% "
            f"exceeds threshold {fail_on_check_rate * 100:.2f}%"
        )
        failed = True
    if (
        fail_on_error_rate is not None
        and summary is not None
        and summary.transport_error_rate > fail_on_error_rate
    ):
        console.print(
            f"[red]FAIL:[/red] Transport error rate {summary.transport_error_rate * 100:.2f}% "
            f"exceeds threshold {fail_on_error_rate * 100:.2f}%"
        )
        failed = True
    if failed:
        raise typer.Exit(code=1)

    console.print("[green]Load test completed successfully.[/green]")
