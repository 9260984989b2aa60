"""Rich console output utilities for sheaf-cli.

This module provides formatted console output with Rich,
supporting colored success/error/warning messages and
respecting NO_COLOR environment variable. ConsoleReporter adapts
these helpers to the sheaf_core Reporter protocol so compile and
watch status lines are printed the same way.
"""

from __future__ import annotations

import os
from typing import Any

from rich.console import Console
from rich.markup import escape

# Rich automatically respects NO_COLOR, but we also support --no-color flag
_force_no_color = os.environ.get("NO_COLOR") is not None


def create_console(no_color: bool = False) -> Console:
    """Create a Rich Console instance with appropriate color settings.

    Args:
        no_color: If True, disable colored output. Also respects NO_COLOR env var.

    Returns:
        Configured Console instance.
    """
    force_terminal = None
    if no_color or _force_no_color:
        force_terminal = False
    return Console(
        force_terminal=force_terminal,
        no_color=no_color or _force_no_color,
        highlight=False,
    )


# Default console instance
console = create_console()


def success(message: str, **kwargs: Any) -> None:
    """Print a success message with green checkmark.

    Example:
        >>> success("Compiled 2 file(s) [a.css, b.css] to app.min.css")
        ✓ Compiled 2 file(s) [a.css, b.css] to app.min.css
    """
    console.print(f"[green]✓[/green] {message}", markup=True, **kwargs)


def error(message: str, **kwargs: Any) -> None:
    """Print an error message with red X.

    Example:
        >>> error("File(s) not found: src/*.css")
        ✗ File(s) not found: src/*.css
    """
    console.print(f"[red]✗[/red] {message}", markup=True, **kwargs)


def warning(message: str, **kwargs: Any) -> None:
    """Print a warning message with yellow triangle.

    Example:
        >>> warning("Config file .sheafrc is not valid JSON")
        ⚠ Config file .sheafrc is not valid JSON
    """
    console.print(f"[yellow]⚠[/yellow] {message}", markup=True, **kwargs)


def info(message: str, **kwargs: Any) -> None:
    """Print an informational message.

    Example:
        >>> info("Watcher is running...")
        Watcher is running...
    """
    console.print(message, **kwargs)


def set_no_color(no_color: bool) -> None:
    """Update the global console to enable/disable colors.

    Args:
        no_color: If True, disable colored output.

    Note:
        This updates the module-level console instance.
    """
    global console
    console = create_console(no_color=no_color)


class ConsoleReporter:
    """Reporter printing status lines to the Rich console.

    Messages may contain file paths with square brackets, so the
    message text itself is never parsed as Rich markup. Lines are not
    wrapped to the terminal width so long paths stay intact.
    """

    def log(self, message: str) -> None:
        info(escape(message), soft_wrap=True)

    def success(self, message: str) -> None:
        success(escape(message), soft_wrap=True)

    def warning(self, message: str) -> None:
        warning(escape(message), soft_wrap=True)

    def error(self, message: str) -> None:
        error(escape(message), soft_wrap=True)
