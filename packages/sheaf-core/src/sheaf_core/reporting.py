"""Status reporting sink for sheaf.

The orchestrator and watcher announce what they did ("Compiled 3
file(s) ...", "Recompiled file a.css", "Compilation error ...") through
a Reporter. The CLI plugs in a Rich console reporter; library users get
StructlogReporter, which turns each line into a structured log event.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import structlog

logger = structlog.get_logger(__name__)


@runtime_checkable
class Reporter(Protocol):
    """Sink for user-facing status lines. Return values are ignored."""

    def log(self, message: str) -> None:
        """Report an informational line."""
        ...

    def success(self, message: str) -> None:
        """Report a successful operation."""
        ...

    def warning(self, message: str) -> None:
        """Report a non-fatal problem."""
        ...

    def error(self, message: str) -> None:
        """Report a failed operation."""
        ...


class StructlogReporter:
    """Reporter that emits every status line as a structlog event."""

    def __init__(self, name: str = "sheaf") -> None:
        self._log = logger.bind(reporter=name)

    def log(self, message: str) -> None:
        self._log.info("status", message=message)

    def success(self, message: str) -> None:
        self._log.info("success", message=message)

    def warning(self, message: str) -> None:
        self._log.warning("warning", message=message)

    def error(self, message: str) -> None:
        self._log.error("error", message=message)
