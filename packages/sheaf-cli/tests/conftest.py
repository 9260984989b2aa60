"""Shared test fixtures for sheaf-cli tests.

Provides CliRunner fixtures and helpers for writing style sources into
an isolated filesystem.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable, Generator, Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import structlog
from click.testing import CliRunner

from sheaf_cli import output


@pytest.fixture(autouse=True)
def quiet_structlog() -> Iterator[MagicMock]:
    """Keep pipeline log events out of command output.

    The CLI group normally rewires logging on every invocation; that is
    replaced by a mock so tests can assert on how it was called.

    Yields:
        The mock standing in for configure_logging.
    """
    structlog.configure(
        processors=[structlog.dev.ConsoleRenderer()],
        wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
    with patch("sheaf_cli.main.configure_logging") as configure:
        yield configure


@pytest.fixture(autouse=True)
def reset_console() -> Iterator[None]:
    """Undo --no-color between tests."""
    original = output.console
    yield
    output.console = original


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click test runner.

    Returns:
        CliRunner instance for testing CLI commands.
    """
    return CliRunner()


@pytest.fixture
def isolated_runner(cli_runner: CliRunner) -> Generator[CliRunner, None, None]:
    """Create a Click test runner with an isolated filesystem.

    This fixture creates a temporary directory and changes to it
    for the duration of the test.

    Yields:
        CliRunner instance with isolated filesystem.
    """
    with cli_runner.isolated_filesystem():
        yield cli_runner


@pytest.fixture
def create_style(isolated_runner: CliRunner) -> Callable[..., Path]:
    """Factory fixture to create style sources in the isolated filesystem.

    Returns:
        Function writing ``content`` to ``filename`` (parents created).
    """

    def _create(filename: str, content: str) -> Path:
        path = Path(filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path

    return _create


@pytest.fixture
def two_sources(create_style: Callable[..., Path]) -> tuple[Path, Path]:
    """Create a.css and b.css in the isolated filesystem."""
    return (
        create_style("a.css", "a { color: red }\n"),
        create_style("b.css", "b { margin: 0 }\n"),
    )
