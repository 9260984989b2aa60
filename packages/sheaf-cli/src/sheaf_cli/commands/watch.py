"""sheaf watch command - Compile, then recompile on every change."""

from __future__ import annotations

import click

from sheaf_cli.commands.compile import load_orchestrator
from sheaf_cli.errors import EXIT_SYSTEM_ERROR, CLIError
from sheaf_cli.output import info
from sheaf_core.config import DEFAULT_CONFIG_FILENAME, DEFAULT_OUTPUT
from sheaf_core.errors import WatcherError

# How often the foreground loop wakes up to check the watcher
WAIT_SECONDS = 0.5


@click.command()
@click.argument("inputs", nargs=-1, type=str)
@click.option(
    "-o",
    "--output",
    "output_path",
    type=str,
    is_flag=False,
    flag_value=DEFAULT_OUTPUT,
    default=None,
    help=f"Output file [default: {DEFAULT_OUTPUT}]",
)
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help=f"JSON config file [default: ./{DEFAULT_CONFIG_FILENAME}]",
)
@click.option(
    "--poll-interval",
    "poll_interval",
    type=click.FloatRange(min=0, min_open=True),
    default=1.0,
    show_default=True,
    help="Seconds between filesystem polls.",
)
def watch(
    inputs: tuple[str, ...],
    output_path: str | None,
    config_path: str | None,
    poll_interval: float,
) -> None:
    """Compile, then recompile whenever an input file changes.

    Only the input files resolved at startup are watched; files added
    later are not picked up. A failed recompile is reported and the
    watcher keeps running. Stop with Ctrl+C.

    Examples:

        sheaf watch src/

        sheaf watch "src/**/*.scss" -o dist/app.css --poll-interval 0.25
    """
    orchestrator = load_orchestrator(inputs, output_path, config_path)
    try:
        watcher = orchestrator.watch(poll_interval=poll_interval)
    except WatcherError as e:
        orchestrator.close()
        raise CLIError(e.user_message, exit_code=EXIT_SYSTEM_ERROR) from e

    try:
        while watcher.is_alive():
            watcher.join(timeout=WAIT_SECONDS)
    except KeyboardInterrupt:
        info("Stopping watcher...")
    finally:
        orchestrator.close_watcher(watcher)
        orchestrator.close()
