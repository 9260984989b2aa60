"""Effective options and config file merging for sheaf.

This module turns defaults plus an optional JSON config file into the
single EffectiveOptions object that drives a CompileOrchestrator.

Config file lookup:
1. Explicit path passed by the caller (``--config``)
2. ``.sheafrc`` resolved against the current working directory

A missing default config file is normal and silently yields the
defaults. An explicit path that does not exist, an unreadable file, or
a file that is not a JSON object also yields the defaults, but a
non-fatal warning is surfaced so a malformed config never goes
unnoticed.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from sheaf_core.errors import ConfigurationError

logger = structlog.get_logger(__name__)

DEFAULT_CONFIG_FILENAME = ".sheafrc"
"""Config file looked up in the working directory when no path is given."""

DEFAULT_OUTPUT = "app.min.css"
"""Output path used when the invocation gives none (or a bare flag)."""

DEFAULT_OPTIONS: dict[str, Any] = {
    "minifier": True,
    "sourcemaps": False,
}
"""Engine defaults that config file values are deep-merged over."""

WarningCallback = Callable[[str], None]


class SourcemapMapOptions(BaseModel):
    """How the generated source map is attached to the artifact.

    Attributes:
        inline: Embed the map in the CSS as a data URI. When False the
            map is written next to the output as ``<output>.map``.
        sources_content: Embed original source text in the map.
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    inline: bool = Field(default=True, description="Embed the map as a data URI")
    sources_content: bool = Field(
        default=False,
        alias="sourcesContent",
        description="Include original sources in the map",
    )


class SourcemapOptions(BaseModel):
    """Source map generation options.

    Attributes:
        map: Attachment options (inline vs external).
        to: Path of the generated CSS the map describes. Set to the
            resolved output path when the orchestrator is built.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    map: SourcemapMapOptions = Field(
        default_factory=SourcemapMapOptions,
        description="Attachment options",
    )
    to: str | None = Field(default=None, description="Generated file the map targets")

    @property
    def external(self) -> bool:
        """True when the map is written to a separate ``.map`` file."""
        return not self.map.inline


class EffectiveOptions(BaseModel):
    """Merged configuration controlling inputs, output and the engine.

    Unknown keys are kept (``extra="allow"``) and passed through to the
    style engine untouched. The model is frozen: per-compile state such
    as the current source origin travels in a ParseContext instead.

    Attributes:
        inputs: Input patterns from the config file (``in`` key).
        output: Output path from the config file (``out`` key).
        sourcemaps: Source map options, or None when disabled.
        minifier: Compact the processed output.

    Example:
        >>> options = EffectiveOptions.model_validate(
        ...     {"in": "src/*.css", "sourcemaps": True}
        ... )
        >>> options.inputs
        ('src/*.css',)
        >>> options.sourcemaps.map.inline
        True
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    inputs: tuple[str, ...] | None = Field(
        default=None,
        alias="in",
        description="Input glob patterns or paths",
    )
    output: str | None = Field(default=None, alias="out", description="Output file path")
    sourcemaps: SourcemapOptions | None = Field(
        default=None,
        description="Source map options (None disables source maps)",
    )
    minifier: bool = Field(default=True, description="Compact the processed output")

    @field_validator("inputs", mode="before")
    @classmethod
    def normalize_inputs(cls, v: Any) -> Any:
        """Accept a single pattern string and treat an empty list as unset."""
        if isinstance(v, str):
            return (v,)
        if isinstance(v, (list, tuple)) and not v:
            return None
        return v

    @field_validator("output", mode="before")
    @classmethod
    def normalize_output(cls, v: Any) -> Any:
        """Treat an empty output string as unset."""
        if v == "":
            return None
        return v

    @field_validator("sourcemaps", mode="before")
    @classmethod
    def normalize_sourcemaps(cls, v: Any) -> Any:
        """Map the boolean shorthand onto the options object."""
        if v is True:
            return {}
        if v is False:
            return None
        return v

    @property
    def sourcemaps_enabled(self) -> bool:
        """True when source maps should be generated."""
        return self.sourcemaps is not None

    @property
    def external_sourcemaps(self) -> bool:
        """True when the map goes to a separate ``.map`` file."""
        return self.sourcemaps is not None and self.sourcemaps.external

    def for_output(self, output: str) -> EffectiveOptions:
        """Return a copy whose output (and source map target) is ``output``."""
        update: dict[str, Any] = {"output": output}
        if self.sourcemaps is not None:
            update["sourcemaps"] = self.sourcemaps.model_copy(update={"to": output})
        return self.model_copy(update=update)


def deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Deep merge overrides into a copy of base.

    Nested dicts are merged key by key; any other override value
    replaces the base value outright. Neither argument is mutated.

    Example:
        >>> deep_merge({"a": {"x": 1, "y": 2}}, {"a": {"y": 3}, "b": True})
        {'a': {'x': 1, 'y': 3}, 'b': True}
    """
    result: dict[str, Any] = {}
    for key, value in base.items():
        if key in overrides:
            if isinstance(value, dict) and isinstance(overrides[key], dict):
                result[key] = deep_merge(value, overrides[key])
            else:
                result[key] = overrides[key]
        elif isinstance(value, dict):
            result[key] = deep_merge(value, {})
        elif isinstance(value, list):
            result[key] = list(value)
        else:
            result[key] = value
    for key, value in overrides.items():
        if key not in base:
            result[key] = value
    return result


def load_config(
    config_path: Path | str | None = None,
    *,
    warn: WarningCallback | None = None,
) -> dict[str, Any]:
    """Read the JSON config file, falling back to an empty config.

    Args:
        config_path: Explicit config path. Defaults to ``.sheafrc`` in
            the working directory.
        warn: Called with a user-facing message when the config exists
            but cannot be used. Without a callback the problem is logged as a
            warning; with one it is logged at info level.

    Returns:
        The parsed config object, or ``{}`` when there is none.
    """
    explicit = config_path is not None
    path = Path(config_path if config_path is not None else DEFAULT_CONFIG_FILENAME).resolve()
    log = logger.bind(config_path=str(path))

    def _fallback(message: str, **details: Any) -> dict[str, Any]:
        if warn is None:
            log.warning("config_ignored", reason=message, **details)
        else:
            log.info("config_ignored", reason=message, **details)
            warn(f"{message}; using default options")
        return {}

    if not path.exists():
        if explicit:
            return _fallback(f"Config file {path} not found")
        log.debug("config_not_found")
        return {}

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        return _fallback(
            f"Config file {path} is not valid JSON (line {e.lineno}, column {e.colno})",
            error=e.msg,
        )
    except (OSError, UnicodeDecodeError) as e:
        return _fallback(f"Config file {path} could not be read", error=str(e))

    if not isinstance(data, dict):
        return _fallback(
            f"Config file {path} must contain a JSON object",
            found=type(data).__name__,
        )

    log.debug("config_loaded", keys=sorted(data))
    return data


def build_options(
    config_path: Path | str | None = None,
    *,
    defaults: dict[str, Any] | None = None,
    warn: WarningCallback | None = None,
) -> EffectiveOptions:
    """Merge the config file over the defaults into EffectiveOptions.

    Args:
        config_path: Optional override of the config file location.
        defaults: Base options. Defaults to DEFAULT_OPTIONS.
        warn: Receives non-fatal config warnings.

    Returns:
        Frozen EffectiveOptions.

    Raises:
        ConfigurationError: If the merged values have the wrong shape.
    """
    config = load_config(config_path, warn=warn)
    merged = deep_merge(DEFAULT_OPTIONS if defaults is None else defaults, config)
    try:
        return EffectiveOptions.model_validate(merged)
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(x) for x in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(
            f"Invalid options: {details}",
            file_path=str(config_path) if config_path is not None else DEFAULT_CONFIG_FILENAME,
        ) from e


def normalize_invocation(
    inputs: Sequence[str] | str | None,
    output: str | bool | None,
) -> tuple[tuple[str, ...] | None, str]:
    """Apply the invocation defaults to raw inputs/output arguments.

    Empty or missing inputs become None. A missing output, or the bare
    ``True`` flag sentinel, becomes DEFAULT_OUTPUT.

    Example:
        >>> normalize_invocation([], True)
        (None, 'app.min.css')
    """
    if isinstance(inputs, str):
        inputs = [inputs]
    normalized_inputs = tuple(inputs) if inputs else None
    if output is None or output is True or output is False or output == "":
        return normalized_inputs, DEFAULT_OUTPUT
    return normalized_inputs, str(output)
