"""File watcher for style source changes.

This module provides a watchdog-based watcher that observes exactly the
resolved input files of a build and reports each change to a callback
(normally CompileOrchestrator's recompile trigger).

Architecture:
- StyleWatcher: start/stop lifecycle, context manager support
- Uses watchdog's PollingObserver (stat polling, no native events)
- Schedules each input's parent directory non-recursively and filters
  events down to the input files themselves; files pulled in
  indirectly (imports) are not observed
- No debouncing here; bursts are coalesced by the orchestrator

Usage:
    >>> watcher = StyleWatcher(["src/a.css"], on_change=print, poll_interval=0.5)
    >>> with watcher:
    ...     time.sleep(60)
"""

from __future__ import annotations

import enum
import os
import threading
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

import structlog
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers.polling import PollingObserver

from sheaf_core.errors import WatcherError

if TYPE_CHECKING:
    from watchdog.observers.api import BaseObserver

logger = structlog.get_logger(__name__)

ChangeCallback = Callable[[str], None]

JOIN_TIMEOUT_SECONDS = 5.0


class WatcherState(enum.Enum):
    """State of the StyleWatcher.

    Attributes:
        STOPPED: Watcher is not running
        RUNNING: Watcher is actively polling
    """

    STOPPED = "stopped"
    RUNNING = "running"


def _decode(path: str | bytes) -> str:
    if isinstance(path, bytes):
        return os.fsdecode(path)
    return path


class _InputEventHandler(FileSystemEventHandler):
    """Internal handler mapping watchdog events back to input paths."""

    def __init__(self, watched: dict[str, str], on_change: ChangeCallback) -> None:
        """Initialize event handler.

        Args:
            watched: Absolute path -> input path as the user gave it.
            on_change: Called with the input path on every change.
        """
        super().__init__()
        self._watched = watched
        self._on_change = on_change

    def _dispatch_path(self, raw_path: str | bytes) -> None:
        absolute = os.path.abspath(_decode(raw_path))
        original = self._watched.get(absolute)
        if original is None:
            return
        logger.debug("input_change_event", path=original)
        self._on_change(original)

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._dispatch_path(event.src_path)

    def on_created(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._dispatch_path(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        # Atomic saves rename a temp file onto the input
        if event.is_directory:
            return
        self._dispatch_path(event.dest_path)


class StyleWatcher:
    """Polls a fixed list of input files and reports changes.

    Attributes:
        paths: Input paths being observed, as given.
        poll_interval: Seconds between polls.
        persistent: Whether the observer thread keeps the process alive.
        state: Current watcher state (STOPPED or RUNNING).

    Example:
        >>> watcher = StyleWatcher(
        ...     ["src/a.css", "src/b.css"],
        ...     on_change=lambda path: print(f"changed: {path}"),
        ... )
        >>> watcher.start()
        >>> try:
        ...     watcher.join()
        ... finally:
        ...     watcher.close()
    """

    def __init__(
        self,
        paths: Sequence[str],
        *,
        on_change: ChangeCallback,
        poll_interval: float = 1.0,
        persistent: bool = True,
    ) -> None:
        """Initialize StyleWatcher.

        Args:
            paths: Files to observe. Fixed for the watcher's lifetime.
            on_change: Called with the changed input path (as given).
            poll_interval: Seconds between filesystem polls.
            persistent: If True the observer is a non-daemon thread, so
                the process does not exit while the watcher is running.

        Raises:
            WatcherError: If no paths are given or poll_interval <= 0.
        """
        if not paths:
            raise WatcherError("Nothing to watch: no input files")
        if poll_interval <= 0:
            raise WatcherError(f"Poll interval must be positive, got {poll_interval}")

        self._paths = tuple(paths)
        self._on_change = on_change
        self._poll_interval = poll_interval
        self._persistent = persistent

        self._state = WatcherState.STOPPED
        self._observer: BaseObserver | None = None
        self._lock = threading.Lock()
        self._log = logger.bind(files=len(self._paths), poll_interval=poll_interval)

    @property
    def paths(self) -> tuple[str, ...]:
        """Get the observed input paths."""
        return self._paths

    @property
    def poll_interval(self) -> float:
        """Get the polling interval in seconds."""
        return self._poll_interval

    @property
    def persistent(self) -> bool:
        """Get whether the watcher keeps the process alive."""
        return self._persistent

    @property
    def state(self) -> WatcherState:
        """Get the current watcher state."""
        with self._lock:
            return self._state

    def start(self) -> None:
        """Start polling the input files.

        Raises:
            WatcherError: If watcher is already running
        """
        with self._lock:
            if self._state == WatcherState.RUNNING:
                raise WatcherError("Watcher is already running")

            self._log.info("starting_watcher")

            watched = {os.path.abspath(path): path for path in self._paths}
            directories = sorted({os.path.dirname(path) for path in watched})
            handler = _InputEventHandler(watched, self._on_change)

            observer = PollingObserver(timeout=self._poll_interval)
            observer.daemon = not self._persistent
            for directory in directories:
                observer.schedule(handler, directory, recursive=False)
            observer.start()

            self._observer = observer
            self._state = WatcherState.RUNNING
            self._log.info("watcher_started", directories=directories)

    def close(self) -> None:
        """Stop polling and release the observer threads.

        Safe to call even if not running. No change is reported after
        close() returns.
        """
        with self._lock:
            if self._state == WatcherState.STOPPED:
                return

            self._log.info("stopping_watcher")
            if self._observer is not None:
                self._observer.unschedule_all()
                self._observer.stop()
                self._observer.join(timeout=JOIN_TIMEOUT_SECONDS)
                self._observer = None

            self._state = WatcherState.STOPPED
            self._log.info("watcher_stopped")

    stop = close

    def is_alive(self) -> bool:
        """Return True while the observer thread is running."""
        with self._lock:
            observer = self._observer
        return observer is not None and observer.is_alive()

    def join(self, timeout: float | None = None) -> None:
        """Block until the watcher is closed or ``timeout`` elapses."""
        with self._lock:
            observer = self._observer
        if observer is not None:
            observer.join(timeout=timeout)

    def __enter__(self) -> StyleWatcher:
        """Context manager entry - start watching.

        Returns:
            Self for use in with statement
        """
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Context manager exit - stop watching."""
        self.close()
