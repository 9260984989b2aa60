"""sheaf-core: Stylesheet build pipeline for sheaf.

This package provides:
- resolve_files: Expand input globs/directories into a FileSet
- build_options: Merge the JSON config file over defaults
- CompileOrchestrator: Merge inputs, run the style engine, write artifacts
- StyleWatcher: Poll input files and trigger recompiles
- TinycssEngine: Default tinycss2-backed style engine

Example:
    >>> from sheaf_core import CompileOrchestrator
    >>> orchestrator = CompileOrchestrator.from_config(["src/**/*.css"], "dist/app.css")
    >>> orchestrator.compile_now().written
    ('dist/app.css',)
"""

from __future__ import annotations

__version__ = "0.1.0"

# Configuration
from sheaf_core.config import (
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_OPTIONS,
    DEFAULT_OUTPUT,
    EffectiveOptions,
    SourcemapMapOptions,
    SourcemapOptions,
    build_options,
    deep_merge,
    load_config,
)

# Style engine
from sheaf_core.engine import (
    ParseContext,
    ProcessedOutput,
    StyleEngine,
    StyleNode,
    Stylesheet,
    TinycssEngine,
)

# Error types
from sheaf_core.errors import (
    CompilationError,
    ConfigurationError,
    DirectoryReadError,
    FileReadError,
    InputsNotFoundError,
    NoMatchingFilesError,
    ParseError,
    ProcessError,
    ResolutionError,
    SheafError,
    WatcherError,
    WriteError,
)

# Orchestration
from sheaf_core.orchestrator import CompileOrchestrator, CompileResult
from sheaf_core.reporting import Reporter, StructlogReporter
from sheaf_core.resolver import STYLE_EXTENSIONS, FileSet, resolve_files
from sheaf_core.watcher import StyleWatcher, WatcherState

__all__ = [
    "__version__",
    # Configuration
    "DEFAULT_CONFIG_FILENAME",
    "DEFAULT_OPTIONS",
    "DEFAULT_OUTPUT",
    "EffectiveOptions",
    "SourcemapMapOptions",
    "SourcemapOptions",
    "build_options",
    "deep_merge",
    "load_config",
    # Style engine
    "ParseContext",
    "ProcessedOutput",
    "StyleEngine",
    "StyleNode",
    "Stylesheet",
    "TinycssEngine",
    # Errors
    "SheafError",
    "ResolutionError",
    "InputsNotFoundError",
    "NoMatchingFilesError",
    "DirectoryReadError",
    "ConfigurationError",
    "CompilationError",
    "FileReadError",
    "ParseError",
    "ProcessError",
    "WriteError",
    "WatcherError",
    # Orchestration
    "CompileOrchestrator",
    "CompileResult",
    "FileSet",
    "Reporter",
    "STYLE_EXTENSIONS",
    "StructlogReporter",
    "StyleWatcher",
    "WatcherState",
    "resolve_files",
]
