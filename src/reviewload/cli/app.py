"""Main Typer application: entry point for the ``reviewload`` CLI."""

from __future__ import annotations

import typer

from reviewload import __version__
from reviewload.cli.plan import plan_cmd
from reviewload.cli.run import run_cmd

app = typer.Typer(
    name="reviewload",
    help="Staged virtual-user load driver for the PR reviewer assignment service.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("run", help="Run the review-flow load test.")(run_cmd)
app.command("plan", help="Show the virtual-user schedule without sending traffic.")(plan_cmd)


def _version_callback(value: bool) -> None:
    """Print version and exit.

    Args:
        value: True if --version was passed.
    """
    if value:
        typer.echo(f"reviewload {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """reviewload: staged virtual-user load driver."""
