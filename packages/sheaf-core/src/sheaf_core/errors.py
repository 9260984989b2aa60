"""Custom exception hierarchy for sheaf-core.

This module defines the exception classes used throughout sheaf:
- SheafError: Base exception for all sheaf-related errors
- ResolutionError: Raised when input files cannot be resolved (terminal)
- CompilationError: Raised when a single compile pass fails (recoverable)
- ConfigurationError: Raised when effective options are invalid
- WatcherError: Raised on watcher lifecycle misuse

Resolution errors end the current invocation before any compile is
attempted. Compilation errors abort one compile pass only; the
orchestrator and any running watcher stay alive for the next trigger.

User-facing messages are safe to display; technical details are
logged internally via structlog.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

logger = structlog.get_logger(__name__)


class SheafError(Exception):
    """Base exception for sheaf.

    All sheaf exceptions inherit from this class. User-facing messages
    are safe to display; technical details are logged internally.

    Args:
        user_message: Message to display to the user.
        internal_details: Optional technical details for logging. This is
            logged internally but never exposed to the user.

    Example:
        >>> raise SheafError(
        ...     "Compilation failed",
        ...     internal_details="engine returned no output for app.css",
        ... )
    """

    def __init__(
        self,
        user_message: str,
        *,
        internal_details: str | None = None,
    ) -> None:
        """Initialize SheafError with user message and optional internal details.

        Args:
            user_message: Safe message to display to the user.
            internal_details: Technical details for internal logging only.
        """
        super().__init__(user_message)
        self.user_message = user_message

        if internal_details:
            logger.debug(
                "sheaf_error",
                error_type=self.__class__.__name__,
                user_message=user_message,
                internal_details=internal_details,
            )


class ResolutionError(SheafError):
    """Raised when the input file set cannot be resolved.

    Resolution errors are fatal for the current invocation: they are
    reported and no compile (and no watcher) is started.
    """

    pass


class InputsNotFoundError(ResolutionError):
    """Raised when no inputs are configured at all.

    Neither the invocation nor the config file's ``in`` key provided
    any input pattern.
    """

    def __init__(self, *, internal_details: str | None = None) -> None:
        super().__init__(
            "You must define inputs files",
            internal_details=internal_details,
        )


class NoMatchingFilesError(ResolutionError):
    """Raised when the input patterns resolve to no usable style file.

    Covers both an empty glob expansion and an expansion whose every
    match was filtered out (non-style files, or only the output path).

    Attributes:
        patterns: The input patterns that were expanded.
    """

    def __init__(
        self,
        patterns: Sequence[str],
        *,
        internal_details: str | None = None,
    ) -> None:
        self.patterns = tuple(patterns)
        super().__init__(
            f"File(s) not found: {', '.join(self.patterns)}",
            internal_details=internal_details,
        )


class DirectoryReadError(ResolutionError):
    """Raised when a matched directory cannot be listed.

    Attributes:
        directory: The directory that could not be read.
    """

    def __init__(self, directory: str, reason: str) -> None:
        self.directory = directory
        super().__init__(f"Cannot read directory {directory}: {reason}")


class ConfigurationError(SheafError):
    """Raised when the merged configuration is not a valid option set.

    A missing or unparsable config file is not an error (defaults apply);
    this is raised only when values are present but have the wrong shape,
    e.g. ``"sourcemaps": 3``.

    Attributes:
        file_path: Path to the configuration file (if known).
    """

    def __init__(
        self,
        user_message: str,
        *,
        file_path: str | None = None,
        internal_details: str | None = None,
    ) -> None:
        full_message = f"{user_message} (in {file_path})" if file_path else user_message
        super().__init__(full_message, internal_details=internal_details)
        self.file_path = file_path


class CompilationError(SheafError):
    """Raised when one compile pass fails.

    Use the subclasses to tell the failing stage apart. A compile
    failure never leaves a partial artifact from the read/parse stages.

    Attributes:
        path: File involved in the failure, when known.
    """

    def __init__(
        self,
        user_message: str,
        *,
        path: str | None = None,
        internal_details: str | None = None,
    ) -> None:
        super().__init__(user_message, internal_details=internal_details)
        self.path = path


class FileReadError(CompilationError):
    """Raised when a listed input file cannot be read during a compile."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot read {path}: {reason}", path=path)


class ParseError(CompilationError):
    """Raised when the engine cannot parse a source file.

    Attributes:
        line: 1-based line of the offending token, when known.
        column: 1-based column of the offending token, when known.
    """

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        location = path or "<input>"
        if line is not None:
            location = f"{location}:{line}:{column or 1}"
        super().__init__(f"{location}: {message}", path=path)
        self.line = line
        self.column = column


class ProcessError(CompilationError):
    """Raised when the engine fails to transform the merged unit."""

    pass


class WriteError(CompilationError):
    """Raised when the output directory or an artifact cannot be written."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot write {path}: {reason}", path=path)


class WatcherError(SheafError):
    """Error in StyleWatcher operation.

    Raised when:
    - Watcher is started while already running
    - Watcher is started with no files to observe

    Example:
        >>> try:
        ...     watcher.start()
        ... except WatcherError as e:
        ...     print(f"Failed to start watcher: {e}")
    """

    pass
