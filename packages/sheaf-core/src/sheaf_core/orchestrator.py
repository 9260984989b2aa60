"""Compile orchestration for sheaf.

CompileOrchestrator owns everything one build needs: the effective
options, the resolved FileSet, a style engine and a status reporter.
It merges every input into a single Stylesheet, hands it to the
engine, writes the artifact(s), and can keep doing so on file changes.

Compile flow:
1. Read each input in order (sequential, no parallel I/O)
2. Parse it with an immutable ParseContext naming the file
3. First sheet is the root; later sheets' nodes are cloned onto it
4. engine.process(root, options)
5. mkdir -p the output directory, write output (+ output.map)
6. Report success, or report the error and fail the future

Serialization:
    compile() never blocks. Work runs on a single-worker executor owned
    by the instance, so at most one compile is active at a time. A
    trigger arriving while another compile is already queued joins that
    queued compile (same future, latest change marker) instead of
    adding one more.

Usage:
    >>> orchestrator = CompileOrchestrator.from_config(["src/"], "dist/app.css")
    >>> orchestrator.compile().result().written
    ('dist/app.css',)
    >>> watcher = orchestrator.watch()
    >>> ...
    >>> watcher.close()
    >>> orchestrator.close()
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

from sheaf_core.config import (
    EffectiveOptions,
    WarningCallback,
    build_options,
    normalize_invocation,
)
from sheaf_core.engine import ParseContext, ProcessedOutput, StyleEngine, Stylesheet
from sheaf_core.engine.tinycss import TinycssEngine
from sheaf_core.errors import (
    CompilationError,
    FileReadError,
    InputsNotFoundError,
    ParseError,
    ProcessError,
    SheafError,
    WriteError,
)
from sheaf_core.reporting import Reporter, StructlogReporter
from sheaf_core.resolver import FileSet, resolve_files
from sheaf_core.watcher import StyleWatcher

logger = structlog.get_logger(__name__)

MAP_SUFFIX = ".map"


class CompileResult(BaseModel):
    """Outcome of one successful compile.

    Attributes:
        output: Path of the compiled artifact.
        css: Text written to ``output``.
        map: Text written to ``output + ".map"``, if any.
        written: Every file written, in write order.
        changed: The watched file that triggered this compile, if any.
        file_count: Number of inputs merged.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    output: str = Field(..., description="Compiled artifact path")
    css: str = Field(..., description="Text written to output")
    map: str | None = Field(default=None, description="External source map text")
    written: tuple[str, ...] = Field(..., description="Files written, in order")
    changed: str | None = Field(default=None, description="Triggering file change")
    file_count: int = Field(..., ge=1, description="Number of merged inputs")


class CompileOrchestrator:
    """Merge, process and write a FileSet; recompile on changes.

    Each instance is self-contained: two orchestrators in one process
    share no state and do not serialize against each other.

    Attributes:
        options: Frozen effective options.
        file_set: Inputs and output, fixed for the instance's lifetime.
        engine: Style engine used for parse/process.
        reporter: Sink for status lines.

    Example:
        >>> options = EffectiveOptions(minifier=False)
        >>> files = FileSet(inputs=("a.css", "b.css"), output="out.css")
        >>> with CompileOrchestrator(options, files) as orchestrator:
        ...     result = orchestrator.compile_now()
    """

    def __init__(
        self,
        options: EffectiveOptions,
        file_set: FileSet,
        *,
        engine: StyleEngine | None = None,
        reporter: Reporter | None = None,
    ) -> None:
        self.options = options.for_output(file_set.output)
        self.file_set = file_set
        self.engine: StyleEngine = engine if engine is not None else TinycssEngine()
        self.reporter: Reporter = reporter if reporter is not None else StructlogReporter()

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="sheaf-compile")
        self._lock = threading.Lock()
        self._queued: Future[CompileResult] | None = None
        self._queued_changed: str | None = None
        self._closed = False
        self._log = logger.bind(output=file_set.output, inputs=len(file_set.inputs))

    @classmethod
    def from_config(
        cls,
        inputs: Sequence[str] | str | None = None,
        output: str | bool | None = None,
        config_path: Path | str | None = None,
        *,
        defaults: dict[str, Any] | None = None,
        engine: StyleEngine | None = None,
        reporter: Reporter | None = None,
    ) -> CompileOrchestrator:
        """Build an orchestrator from invocation arguments and config file.

        Config file ``in``/``out`` values take precedence over the
        ``inputs``/``output`` arguments.

        Args:
            inputs: Glob patterns or paths; None or empty means unset.
            output: Output path; None or True means ``app.min.css``.
            config_path: Config file override (default ``.sheafrc``).
            defaults: Base options the config is merged over.
            engine: Style engine (default TinycssEngine).
            reporter: Status sink (default StructlogReporter).

        Returns:
            Ready-to-compile orchestrator.

        Raises:
            InputsNotFoundError: If no inputs are configured anywhere.
            NoMatchingFilesError: If the inputs resolve to no style file.
            ConfigurationError: If config values have the wrong shape.
        """
        reporter = reporter if reporter is not None else StructlogReporter()
        warn: WarningCallback = reporter.warning
        options = build_options(config_path, defaults=defaults, warn=warn)

        arg_inputs, arg_output = normalize_invocation(inputs, output)
        resolved_inputs = options.inputs or arg_inputs
        resolved_output = options.output or arg_output
        if not resolved_inputs:
            raise InputsNotFoundError()

        file_set = resolve_files(resolved_inputs, resolved_output)
        return cls(options, file_set, engine=engine, reporter=reporter)

    def compile(self, changed: str | None = None) -> Future[CompileResult]:
        """Schedule a full compile of every input.

        Args:
            changed: Watched path that triggered this compile. Only used
                for reporting; all inputs are always recompiled.

        Returns:
            Future resolving to a CompileResult, or failing with the
            CompilationError that aborted the compile.

        Raises:
            RuntimeError: If the orchestrator has been closed.
        """
        future = self._schedule(changed)
        if future is None:
            raise RuntimeError("CompileOrchestrator is closed")
        return future

    def compile_now(self, changed: str | None = None) -> CompileResult:
        """Compile and wait for the result.

        Raises:
            CompilationError: If the compile fails.
        """
        return self.compile(changed).result()

    def watch(self, *, poll_interval: float = 1.0, persistent: bool = True) -> StyleWatcher:
        """Compile once, then recompile whenever an input changes.

        Args:
            poll_interval: Seconds between filesystem polls.
            persistent: Keep the process alive while the watcher runs.

        Returns:
            The running StyleWatcher; call ``close()`` to stop it.
        """
        self.compile()
        watcher = StyleWatcher(
            self.file_set.inputs,
            on_change=self._change_detected,
            poll_interval=poll_interval,
            persistent=persistent,
        )
        watcher.start()
        self.reporter.log(
            "Watching the following files:\n\n" + "\n".join(self.file_set.inputs) + "\n"
        )
        self.reporter.log("Watcher is running...")
        return watcher

    def close_watcher(self, watcher: StyleWatcher) -> None:
        """Stop a watcher started by watch()."""
        watcher.close()

    def close(self) -> None:
        """Wait for scheduled compiles to finish and release the worker."""
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=True)

    def __enter__(self) -> CompileOrchestrator:
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def _schedule(self, changed: str | None) -> Future[CompileResult] | None:
        with self._lock:
            if self._closed:
                return None
            if self._queued is not None:
                self._queued_changed = changed
                self._log.debug("compile_coalesced", changed=changed)
                return self._queued
            future = self._executor.submit(self._run_queued)
            self._queued = future
            self._queued_changed = changed
            return future

    def _change_detected(self, path: str) -> None:
        self._log.info("change_detected", path=path)
        if self._schedule(path) is None:
            self._log.debug("change_ignored", path=path, reason="orchestrator_closed")

    def _run_queued(self) -> CompileResult:
        with self._lock:
            self._queued = None
            changed = self._queued_changed
            self._queued_changed = None

        log = self._log.bind(changed=changed)
        log.debug("compile_started")
        try:
            result = self._compile(changed)
        except CompilationError as e:
            log.info("compile_failed", error=str(e), error_type=type(e).__name__)
            self.reporter.error(f"Compilation error\n{e}")
            raise

        if changed:
            self.reporter.success(f"Recompiled file {changed}")
        else:
            inputs = self.file_set.inputs
            self.reporter.success(
                f"Compiled {len(inputs)} file(s) [{', '.join(inputs)}] to {self.file_set.output}"
            )
        log.info("compile_finished", written=list(result.written))
        return result

    def _merge(self) -> Stylesheet:
        root: Stylesheet | None = None
        for filename in self.file_set.inputs:
            try:
                text = Path(filename).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                raise FileReadError(filename, str(e)) from e

            try:
                sheet = self.engine.parse(text, ParseContext(source=filename))
            except SheafError:
                raise
            except Exception as e:
                raise ParseError(str(e), path=filename) from e
            if root is None:
                root = sheet
                continue
            for node in sheet.each():
                root.append(node.clone())
            root.contents.update(sheet.contents)

        assert root is not None  # FileSet.inputs is never empty
        return root

    def _process(self, root: Stylesheet) -> ProcessedOutput:
        try:
            return self.engine.process(root, self.options)
        except SheafError:
            raise
        except Exception as e:
            raise ProcessError(
                "Style engine failed",
                path=self.file_set.output,
                internal_details=f"{type(e).__name__}: {e}",
            ) from e

    def _compile(self, changed: str | None) -> CompileResult:
        root = self._merge()
        processed = self._process(root)

        output = Path(self.file_set.output)
        try:
            output.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WriteError(str(output.parent), str(e)) from e

        written: list[str] = []
        map_text: str | None = None
        if self.options.external_sourcemaps:
            map_text = processed.map or ""
            self._write(self.file_set.output, processed.css)
            written.append(self.file_set.output)
            map_path = self.file_set.output + MAP_SUFFIX
            self._write(map_path, map_text)
            written.append(map_path)
        else:
            self._write(self.file_set.output, str(processed))
            written.append(self.file_set.output)

        return CompileResult(
            output=self.file_set.output,
            css=processed.css,
            map=map_text,
            written=tuple(written),
            changed=changed,
            file_count=len(self.file_set.inputs),
        )

    @staticmethod
    def _write(path: str, text: str) -> None:
        try:
            Path(path).write_text(text, encoding="utf-8")
        except OSError as e:
            raise WriteError(path, str(e)) from e
