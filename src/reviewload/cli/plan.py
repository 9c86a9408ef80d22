"""``reviewload plan``: print the virtual-user schedule without sending traffic."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from reviewload._internal.errors import ReviewLoadError
from reviewload.cli.options import build_config
from reviewload.engine.scheduler import Scheduler
from reviewload.patterns.stages import StagedPattern

console = Console()


def plan_cmd(
    stage: list[str] | None = typer.Option(
        None,
        "--stage",
        "-s",
        help="Stage as <duration>:<target>, repeatable [env: REVIEWLOAD_STAGES].",
    ),
    start_vus: int | None = typer.Option(
        None,
        "--start-vus",
        help="Virtual users active at t=0.",
        min=0,
    ),
    every: float = typer.Option(
        5.0,
        "--every",
        "-e",
        help="Sampling interval in seconds for the VU target column.",
        min=0.1,
    ),
) -> None:
    """Show stage boundaries and sampled VU targets."""
    try:
        config = build_config(stages=stage, start_vus=start_vus)
        pattern = StagedPattern(config.stages, start_users=config.start_vus)
        commands = list(Scheduler(pattern, tick_interval=every).iter_commands())
    except ReviewLoadError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    stage_table = Table(title="Stages", show_header=True, header_style="bold cyan")
    stage_table.add_column("#", justify="right")
    stage_table.add_column("Starts at", justify="right")
    stage_table.add_column("Duration", justify="right")
    stage_table.add_column("Ramp")

    previous = config.start_vus
    offset = 0.0
    for index, current in enumerate(pattern.stages, start=1):
        ramp = "hold" if current.target == previous else f"{previous} -> {current.target}"
        stage_table.add_row(str(index), f"{offset:g}s", f"{current.duration:g}s", ramp)
        previous = current.target
        offset += current.duration
    console.print(stage_table)

    sample_table = Table(title="VU targets", show_header=True, header_style="bold cyan")
    sample_table.add_column("t", justify="right")
    sample_table.add_column("VUs", justify="right")
    sample_table.add_column("Change")
    for command in commands:
        change = "" if command.delta == 0 else f"{command.direction.name.lower()} {command.delta}"
        sample_table.add_row(f"{command.elapsed_seconds:g}s", str(command.target_concurrency), change)
    console.print(sample_table)
    console.print(f"Total duration: {pattern.total_duration:g}s")
