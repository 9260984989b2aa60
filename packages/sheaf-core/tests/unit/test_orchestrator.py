"""Unit tests for sheaf_core.orchestrator.

Tests cover:
- Merge order and artifact writing
- Inline vs external source map artifacts
- Failure reporting and recovery on the next compile
- Serialization and coalescing of queued compiles
- Construction from invocation arguments plus config file
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any

import pytest
from structlog.testing import capture_logs

from sheaf_core.config import DEFAULT_CONFIG_FILENAME, DEFAULT_OUTPUT, EffectiveOptions
from sheaf_core.engine import ParseContext, ProcessedOutput, Stylesheet, TinycssEngine
from sheaf_core.errors import (
    CompilationError,
    FileReadError,
    InputsNotFoundError,
    NoMatchingFilesError,
    ParseError,
    ProcessError,
    WriteError,
)
from sheaf_core.orchestrator import CompileOrchestrator, CompileResult
from sheaf_core.resolver import FileSet

COMPILED = "Compiled 2 file(s) [a.css, b.css] to out.css"


@pytest.fixture
def sources(workdir: Path) -> Path:
    """Write a.css and b.css into the working directory."""
    (workdir / "a.css").write_text("a { color: red }\n")
    (workdir / "b.css").write_text("b { margin: 0 }\n")
    return workdir


def make_orchestrator(
    reporter: Any,
    output: str = "out.css",
    inputs: tuple[str, ...] = ("a.css", "b.css"),
    engine: Any = None,
    **options: Any,
) -> CompileOrchestrator:
    return CompileOrchestrator(
        EffectiveOptions.model_validate(options),
        FileSet(inputs=inputs, output=output),
        engine=engine,
        reporter=reporter,
    )


class GatedEngine:
    """TinycssEngine whose process() blocks until released."""

    def __init__(self) -> None:
        self.inner = TinycssEngine()
        self.started = threading.Event()
        self.release = threading.Event()
        self.calls = 0

    def parse(self, css: str, context: ParseContext) -> Stylesheet:
        return self.inner.parse(css, context)

    def process(self, root: Stylesheet, options: EffectiveOptions) -> ProcessedOutput:
        self.calls += 1
        self.started.set()
        self.release.wait(timeout=5)
        return self.inner.process(root, options)


class BrokenEngine(TinycssEngine):
    """Engine whose process() fails with a non-sheaf exception."""

    def process(self, root: Stylesheet, options: EffectiveOptions) -> ProcessedOutput:
        raise RuntimeError("plugin exploded")


class TestCompile:
    """Tests for a single compile pass."""

    def test_merges_inputs_in_order(self, sources: Path, reporter: Any) -> None:
        """Inputs are concatenated in FileSet order."""
        with make_orchestrator(reporter) as orchestrator:
            result = orchestrator.compile_now()

        assert isinstance(result, CompileResult)
        assert (sources / "out.css").read_text() == "a{color:red}b{margin:0}"
        assert result.written == ("out.css",)
        assert result.file_count == 2
        assert result.changed is None
        assert reporter.successes == [COMPILED]

    def test_order_follows_file_set(self, sources: Path, reporter: Any) -> None:
        """Reversing the inputs reverses the output."""
        with make_orchestrator(reporter, inputs=("b.css", "a.css")) as orchestrator:
            orchestrator.compile_now()
        assert (sources / "out.css").read_text() == "b{margin:0}a{color:red}"

    def test_unminified_output(self, sources: Path, reporter: Any) -> None:
        """minifier=False keeps one rule per line."""
        with make_orchestrator(reporter, minifier=False) as orchestrator:
            orchestrator.compile_now()
        assert (sources / "out.css").read_text() == "a { color: red }\nb { margin: 0 }\n"

    def test_compile_is_idempotent(self, sources: Path, reporter: Any) -> None:
        """Compiling unchanged inputs twice gives identical artifacts."""
        with make_orchestrator(reporter) as orchestrator:
            first = orchestrator.compile_now()
            second = orchestrator.compile_now()
        assert first.css == second.css
        assert (sources / "out.css").read_text() == second.css

    def test_duplicate_input_is_merged_twice(self, sources: Path, reporter: Any) -> None:
        """A file listed twice appears twice."""
        with make_orchestrator(reporter, inputs=("a.css", "a.css")) as orchestrator:
            orchestrator.compile_now()
        assert (sources / "out.css").read_text() == "a{color:red}a{color:red}"

    def test_changed_file_is_reported(self, sources: Path, reporter: Any) -> None:
        """A compile triggered by a change names the changed file."""
        with make_orchestrator(reporter) as orchestrator:
            result = orchestrator.compile_now("b.css")
        assert result.changed == "b.css"
        assert reporter.successes == ["Recompiled file b.css"]

    def test_creates_output_directory(self, sources: Path, reporter: Any) -> None:
        """Missing parent directories of the output are created."""
        with make_orchestrator(reporter, output="dist/css/app.css") as orchestrator:
            orchestrator.compile_now()
        assert (sources / "dist" / "css" / "app.css").read_text() == "a{color:red}b{margin:0}"

    def test_compile_returns_future(self, sources: Path, reporter: Any) -> None:
        """compile() schedules work and returns a future."""
        with make_orchestrator(reporter) as orchestrator:
            future = orchestrator.compile()
            assert future.result(timeout=5).output == "out.css"


class TestSourcemapArtifacts:
    """Tests for the files written with source maps enabled."""

    def test_inline_map_writes_one_file(self, sources: Path, reporter: Any) -> None:
        """Inline maps live inside the CSS."""
        with make_orchestrator(reporter, sourcemaps=True) as orchestrator:
            result = orchestrator.compile_now()

        assert result.written == ("out.css",)
        assert result.map is None
        assert not (sources / "out.css.map").exists()
        assert "sourceMappingURL=data:application/json;base64," in (
            sources / "out.css"
        ).read_text()

    def test_external_map_writes_two_files(self, sources: Path, reporter: Any) -> None:
        """External maps are written next to the output."""
        with make_orchestrator(
            reporter, output="dist/app.css", sourcemaps={"map": {"inline": False}}
        ) as orchestrator:
            result = orchestrator.compile_now()

        assert result.written == ("dist/app.css", "dist/app.css.map")
        css = (sources / "dist" / "app.css").read_text()
        assert css.endswith("/*# sourceMappingURL=app.css.map */\n")
        source_map = json.loads((sources / "dist" / "app.css.map").read_text())
        assert source_map["file"] == "app.css"
        assert source_map["sources"] == ["../a.css", "../b.css"]
        assert result.map == (sources / "dist" / "app.css.map").read_text()

    def test_sourcemap_target_is_output(self, sources: Path, reporter: Any) -> None:
        """The orchestrator points sourcemaps.to at the resolved output."""
        orchestrator = make_orchestrator(reporter, output="dist/app.css", sourcemaps=True)
        try:
            assert orchestrator.options.sourcemaps is not None
            assert orchestrator.options.sourcemaps.to == "dist/app.css"
            assert orchestrator.options.output == "dist/app.css"
        finally:
            orchestrator.close()


class TestCompileFailures:
    """Tests for compile failures and recovery."""

    def test_missing_input_fails_without_touching_output(
        self, sources: Path, reporter: Any
    ) -> None:
        """A read failure reports an error and leaves the old artifact."""
        (sources / "out.css").write_text("previous build")
        with make_orchestrator(reporter) as orchestrator:
            (sources / "b.css").unlink()
            with pytest.raises(FileReadError) as exc_info:
                orchestrator.compile_now()

            assert exc_info.value.path == "b.css"
            assert (sources / "out.css").read_text() == "previous build"
            assert reporter.errors[0].startswith("Compilation error\nCannot read b.css")
            assert reporter.successes == []

            (sources / "b.css").write_text("b { margin: 1px }\n")
            orchestrator.compile_now()

        assert (sources / "out.css").read_text() == "a{color:red}b{margin:1px}"
        assert reporter.successes == [COMPILED]

    def test_parse_error_fails_compile(self, sources: Path, reporter: Any) -> None:
        """Unparsable input is a ParseError naming the file."""
        (sources / "b.css").write_text("b, c")
        with make_orchestrator(reporter) as orchestrator:
            with pytest.raises(ParseError) as exc_info:
                orchestrator.compile_now()
        assert exc_info.value.path == "b.css"
        assert not (sources / "out.css").exists()

    def test_engine_exception_is_wrapped(self, sources: Path, reporter: Any) -> None:
        """Foreign exceptions from the engine become ProcessError."""
        with make_orchestrator(reporter, engine=BrokenEngine()) as orchestrator:
            with pytest.raises(ProcessError) as exc_info:
                orchestrator.compile_now()
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert reporter.errors == ["Compilation error\nStyle engine failed"]

    def test_unwritable_output_is_write_error(self, sources: Path, reporter: Any) -> None:
        """An output directory that cannot be created is a WriteError."""
        (sources / "blocker").write_text("a file, not a directory")
        with make_orchestrator(reporter, output="blocker/app.css") as orchestrator:
            with pytest.raises(WriteError):
                orchestrator.compile_now()
        assert len(reporter.errors) == 1

    def test_failure_is_logged_below_warning(self, sources: Path, reporter: Any) -> None:
        """The reporter shows the failure; the log event stays at info."""
        (sources / "a.css").unlink()
        with capture_logs() as logs, make_orchestrator(reporter) as orchestrator:
            with pytest.raises(FileReadError):
                orchestrator.compile_now()

        failed = [e for e in logs if e["event"] == "compile_failed"]
        assert [e["log_level"] for e in failed] == ["info"]
        assert len(reporter.errors) == 1

    def test_failure_is_a_compilation_error(self, sources: Path, reporter: Any) -> None:
        """Every compile failure can be caught as CompilationError."""
        (sources / "a.css").unlink()
        with make_orchestrator(reporter) as orchestrator:
            future = orchestrator.compile()
            assert isinstance(future.exception(timeout=5), CompilationError)


class TestSerialization:
    """Tests for compile serialization and coalescing."""

    def test_triggers_during_compile_are_coalesced(self, sources: Path, reporter: Any) -> None:
        """Triggers arriving while a compile runs share one queued compile."""
        engine = GatedEngine()
        orchestrator = make_orchestrator(reporter, engine=engine)
        try:
            first = orchestrator.compile()
            assert engine.started.wait(timeout=5)

            second = orchestrator.compile("a.css")
            third = orchestrator.compile("b.css")
            assert second is third
            assert second is not first

            engine.release.set()
            assert first.result(timeout=5).changed is None
            assert third.result(timeout=5).changed == "b.css"
        finally:
            orchestrator.close()

        assert engine.calls == 2
        assert reporter.successes == [COMPILED, "Recompiled file b.css"]

    def test_compile_after_close_raises(self, sources: Path, reporter: Any) -> None:
        """A closed orchestrator accepts no more work."""
        orchestrator = make_orchestrator(reporter)
        orchestrator.close()
        with pytest.raises(RuntimeError):
            orchestrator.compile()

    def test_change_after_close_is_ignored(self, sources: Path, reporter: Any) -> None:
        """Late watcher callbacks after close() do nothing."""
        orchestrator = make_orchestrator(reporter)
        orchestrator.close()
        orchestrator._change_detected("a.css")
        assert reporter.successes == []
        assert reporter.errors == []

    def test_orchestrators_are_independent(self, sources: Path, reporter: Any) -> None:
        """Two orchestrators in one process do not block each other."""
        engine = GatedEngine()
        blocked = make_orchestrator(reporter, engine=engine, output="one.css")
        free = make_orchestrator(reporter, output="two.css")
        try:
            blocked.compile()
            assert engine.started.wait(timeout=5)
            assert free.compile_now().output == "two.css"
        finally:
            engine.release.set()
            blocked.close()
            free.close()
        assert (sources / "one.css").exists()


class TestFromConfig:
    """Tests for CompileOrchestrator.from_config."""

    def test_arguments_only(self, sources: Path, reporter: Any) -> None:
        """Inputs and output come from the arguments."""
        with CompileOrchestrator.from_config(
            ["*.css"], "out.css", reporter=reporter
        ) as orchestrator:
            assert orchestrator.file_set.inputs == ("a.css", "b.css")
            assert orchestrator.file_set.output == "out.css"

    def test_default_output(self, sources: Path, reporter: Any) -> None:
        """Without an output the artifact is app.min.css."""
        with CompileOrchestrator.from_config(["a.css"], reporter=reporter) as orchestrator:
            assert orchestrator.file_set.output == DEFAULT_OUTPUT

    def test_config_in_and_out_take_precedence(self, sources: Path, reporter: Any) -> None:
        """Config file in/out win over the invocation arguments."""
        (sources / DEFAULT_CONFIG_FILENAME).write_text(
            json.dumps({"in": ["b.css"], "out": "from-config.css", "minifier": False})
        )
        with CompileOrchestrator.from_config(
            ["a.css"], "from-args.css", reporter=reporter
        ) as orchestrator:
            assert orchestrator.file_set.inputs == ("b.css",)
            assert orchestrator.file_set.output == "from-config.css"
            assert orchestrator.options.minifier is False

    def test_config_supplies_missing_inputs(self, sources: Path, reporter: Any) -> None:
        """Inputs may come from the config alone."""
        (sources / DEFAULT_CONFIG_FILENAME).write_text(json.dumps({"in": "a.css"}))
        with CompileOrchestrator.from_config(None, reporter=reporter) as orchestrator:
            assert orchestrator.file_set.inputs == ("a.css",)

    def test_no_inputs_anywhere(self, sources: Path, reporter: Any) -> None:
        """No inputs in arguments or config is a resolution error."""
        with pytest.raises(InputsNotFoundError):
            CompileOrchestrator.from_config([], reporter=reporter)

    def test_no_matching_files(self, sources: Path, reporter: Any) -> None:
        """Patterns that match nothing fail before any compile."""
        with pytest.raises(NoMatchingFilesError):
            CompileOrchestrator.from_config(["missing/*.css"], reporter=reporter)
        assert not (sources / DEFAULT_OUTPUT).exists()

    def test_broken_config_warns_through_reporter(self, sources: Path, reporter: Any) -> None:
        """A malformed config is reported as a warning and ignored."""
        (sources / DEFAULT_CONFIG_FILENAME).write_text("{ broken")
        with CompileOrchestrator.from_config(["a.css"], reporter=reporter) as orchestrator:
            assert orchestrator.options.minifier is True
        assert len(reporter.warnings) == 1
        assert "not valid JSON" in reporter.warnings[0]

    def test_explicit_config_path(self, sources: Path, reporter: Any) -> None:
        """An explicit config path is used instead of .sheafrc."""
        config = sources / "build.json"
        config.write_text(json.dumps({"sourcemaps": {"map": {"inline": False}}}))
        with CompileOrchestrator.from_config(
            ["a.css"], "out.css", config, reporter=reporter
        ) as orchestrator:
            assert orchestrator.options.external_sourcemaps is True
            assert orchestrator.compile_now().written == ("out.css", "out.css.map")
