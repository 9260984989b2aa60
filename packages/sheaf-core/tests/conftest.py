"""Shared pytest fixtures for sheaf-core tests.

This module provides common fixtures used across unit and integration
tests: a structlog configuration writing to stdout, a small tree of
style sources, and a reporter that records every status line.
"""

from __future__ import annotations

import sys
import time
from collections.abc import Callable
from pathlib import Path

import pytest
import structlog

# Default polling configuration for wait_for_condition
DEFAULT_POLL_INTERVAL = 0.05
DEFAULT_POLL_TIMEOUT = 10.0


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> None:
    """Configure structlog to output to stdout for test capture.

    Without this, structlog may use different processors depending on
    test execution order.
    """
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,  # Important for test isolation
    )


class RecordingReporter:
    """Reporter that keeps every status line, by kind."""

    def __init__(self) -> None:
        self.logs: list[str] = []
        self.successes: list[str] = []
        self.warnings: list[str] = []
        self.errors: list[str] = []

    def log(self, message: str) -> None:
        self.logs.append(message)

    def success(self, message: str) -> None:
        self.successes.append(message)

    def warning(self, message: str) -> None:
        self.warnings.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


@pytest.fixture
def reporter() -> RecordingReporter:
    """Return a fresh RecordingReporter."""
    return RecordingReporter()


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Change into an empty temporary directory.

    Input and output paths in these tests are relative, the way they
    are given on a command line.

    Returns:
        The temporary working directory.
    """
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def style_tree(workdir: Path) -> Path:
    """Create a small tree of style sources in the working directory.

    Layout::

        src/a.css            a { color: red }
        src/b.css            b { margin: 0 }
        src/nested/c.scss    .c { padding: 1px }
        src/readme.txt       not a style source

    Returns:
        The working directory containing ``src/``.
    """
    src = workdir / "src"
    (src / "nested").mkdir(parents=True)
    (src / "a.css").write_text("a { color: red }\n")
    (src / "b.css").write_text("b { margin: 0 }\n")
    (src / "nested" / "c.scss").write_text(".c { padding: 1px }\n")
    (src / "readme.txt").write_text("not a style source\n")
    return workdir


@pytest.fixture
def wait_for_condition() -> Callable[..., bool]:
    """Return a polling helper for assertions on background threads."""

    def _wait(
        condition: Callable[[], bool],
        timeout: float = DEFAULT_POLL_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if condition():
                return True
            time.sleep(poll_interval)
        return condition()

    return _wait
