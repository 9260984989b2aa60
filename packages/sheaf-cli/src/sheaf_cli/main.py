"""CLI entry point for sheaf.

This module defines the main CLI group using the LazyGroup pattern so
``sheaf --help`` does not import the style engine.
"""

from __future__ import annotations

import importlib
from typing import Any

import click
import rich_click as rclick

from sheaf_cli import __version__
from sheaf_cli.output import set_no_color
from sheaf_core.observability import configure_logging

# Configure rich-click for better help formatting
rclick.rich_click.TEXT_MARKUP = "markdown"
rclick.rich_click.SHOW_ARGUMENTS = True
rclick.rich_click.GROUP_ARGUMENTS_OPTIONS = True


class LazyGroup(rclick.RichGroup):
    """Click group that loads commands lazily.

    Commands are only imported when actually invoked, not at import time.

    Attributes:
        lazy_subcommands: Mapping of command names to module paths.
    """

    def __init__(
        self,
        *args: Any,
        lazy_subcommands: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize LazyGroup.

        Args:
            *args: Positional arguments for parent class.
            lazy_subcommands: Mapping of command name to module path.
                Format: {"compile": "sheaf_cli.commands.compile.compile_cmd"}
            **kwargs: Keyword arguments for parent class.
        """
        super().__init__(*args, **kwargs)
        self.lazy_subcommands: dict[str, str] = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        """Return sorted list of available command names."""
        commands = set(super().list_commands(ctx))
        commands.update(self.lazy_subcommands.keys())
        return sorted(commands)

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        """Get a command by name, loading lazily if needed.

        Args:
            ctx: Click context.
            cmd_name: Name of the command to get.

        Returns:
            Click Command instance, or None if not found.
        """
        cmd = super().get_command(ctx, cmd_name)  # type: ignore[arg-type]
        if cmd is not None:
            return cmd

        if cmd_name not in self.lazy_subcommands:
            return None

        module_path = self.lazy_subcommands[cmd_name]
        module_name, attr_name = module_path.rsplit(".", 1)
        mod = importlib.import_module(module_name)
        return getattr(mod, attr_name)  # type: ignore[no-any-return]


LAZY_COMMANDS = {
    "compile": "sheaf_cli.commands.compile.compile_cmd",
    "watch": "sheaf_cli.commands.watch.watch",
}


@click.command(cls=LazyGroup, lazy_subcommands=LAZY_COMMANDS)
@click.version_option(version=__version__, prog_name="sheaf")
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable colored output.",
    is_eager=True,
    expose_value=False,
    callback=lambda ctx, param, value: set_no_color(value) if value else None,
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    default=False,
    help="Log pipeline events to stderr.",
)
def cli(verbose: bool) -> None:
    """Sheaf - merge, process and minify stylesheets.

    Every input file is merged in order into one stylesheet, processed
    by the style engine and written to a single output file.

    **Getting Started:**

    - `sheaf compile src/` - Compile every style file under src/
    - `sheaf compile "src/**/*.css" -o dist/app.css` - Pick the output
    - `sheaf watch src/` - Recompile whenever an input changes

    Options can also be given in a `.sheafrc` JSON file; its `in` and
    `out` keys win over the command line.
    """
    configure_logging(log_level="DEBUG" if verbose else "WARNING")


if __name__ == "__main__":
    cli()
