"""sheaf compile command - Merge and process style sources once."""

from __future__ import annotations

import click

from sheaf_cli.errors import handle_compilation_error, handle_setup_error
from sheaf_cli.output import ConsoleReporter
from sheaf_core.config import DEFAULT_CONFIG_FILENAME, DEFAULT_OUTPUT
from sheaf_core.errors import CompilationError, ConfigurationError, ResolutionError
from sheaf_core.orchestrator import CompileOrchestrator


def load_orchestrator(
    inputs: tuple[str, ...],
    output_path: str | None,
    config_path: str | None,
) -> CompileOrchestrator:
    """Build an orchestrator reporting to the console, or exit.

    Raises:
        CLIError: If no inputs are configured or none resolve.
    """
    try:
        return CompileOrchestrator.from_config(
            list(inputs) or None,
            output_path,
            config_path,
            reporter=ConsoleReporter(),
        )
    except (ResolutionError, ConfigurationError) as e:
        handle_setup_error(e)


@click.command("compile")
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
def compile_cmd(inputs: tuple[str, ...], output_path: str | None, config_path: str | None) -> None:
    """Compile style sources into one output file.

    INPUTS are files, directories (searched recursively for
    .css/.scss/.sass/.less/.styl files) or glob patterns. Prefix a
    pattern with `!` to exclude matches.

    Examples:

        sheaf compile src/

        sheaf compile "src/**/*.css" "!src/vendor/**" -o dist/app.css

        sheaf compile --config build/sheafrc.json
    """
    orchestrator = load_orchestrator(inputs, output_path, config_path)
    with orchestrator:
        try:
            orchestrator.compile_now()
        except CompilationError as e:
            handle_compilation_error(e)
