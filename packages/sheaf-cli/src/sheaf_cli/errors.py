"""CLI error handling for sheaf-cli.

This module provides CLI-specific error handling that wraps
sheaf-core exceptions and provides user-friendly messages
with appropriate exit codes.
"""

from __future__ import annotations

import sys
from typing import NoReturn

import click

from sheaf_cli.output import error
from sheaf_core.errors import (
    CompilationError,
    ConfigurationError,
    ResolutionError,
    SheafError,
    WriteError,
)

# Exit codes following sysexits.h convention
EXIT_USER_ERROR = 1  # User error (no inputs, no matches, bad CSS)
EXIT_SYSTEM_ERROR = 2  # System error (permissions, write failure)


class CLIError(click.ClickException):
    """CLI-specific exception with exit code support.

    Attributes:
        message: User-facing error message.
        exit_code: Exit code for the CLI (default: 1).
    """

    def __init__(self, message: str, exit_code: int = EXIT_USER_ERROR) -> None:
        """Initialize CLIError.

        Args:
            message: User-facing error message.
            exit_code: Exit code for the CLI.
        """
        super().__init__(message)
        self.exit_code = exit_code

    def show(self, file: object = None) -> None:
        """Display the error message using Rich formatting.

        Args:
            file: Output file (unused, for Click compatibility).
        """
        error(self.format_message())


def exit_code_for(err: SheafError) -> int:
    """Map a sheaf-core error to a CLI exit code.

    Write failures are system errors; everything else the user can fix
    by changing inputs or configuration.
    """
    if isinstance(err, WriteError):
        return EXIT_SYSTEM_ERROR
    return EXIT_USER_ERROR


def handle_setup_error(err: ResolutionError | ConfigurationError) -> NoReturn:
    """Handle errors raised before any compile has been scheduled.

    Raises:
        CLIError: Always raises with the error's user message.
    """
    raise CLIError(err.user_message, exit_code=exit_code_for(err))


def handle_compilation_error(err: CompilationError) -> NoReturn:
    """Exit after a failed compile.

    The orchestrator's reporter has already printed the failure, so
    nothing more is shown here.

    Note:
        This function never returns - it always calls sys.exit().
    """
    sys.exit(exit_code_for(err))
