"""Input file resolution for sheaf.

Expands the invocation's input patterns into a FileSet: the ordered
list of style sources to merge plus the output path they compile to.

Resolution steps:
1. Expand every pattern with glob (``**`` recursive); matches of one
   pattern are sorted, pattern order is kept. ``!pattern`` entries
   exclude their matches.
2. Walk matched directories depth-first, in the order the filesystem
   lists their children.
3. Drop the output path (exact string match).
4. Keep only recognized style sources (STYLE_EXTENSIONS).

Resolution reads the filesystem but never writes to it.
"""

from __future__ import annotations

import glob
import os
from collections.abc import Sequence

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from sheaf_core.errors import DirectoryReadError, NoMatchingFilesError

logger = structlog.get_logger(__name__)

STYLE_EXTENSIONS: tuple[str, ...] = (".css", ".scss", ".sass", ".less", ".styl")
"""Suffixes of files treated as compile inputs."""

EXCLUDE_PREFIX = "!"


def is_style_file(path: str) -> bool:
    """Return True if ``path`` has a recognized style-source suffix."""
    return path.endswith(STYLE_EXTENSIONS)


class FileSet(BaseModel):
    """Resolved compile inputs and their output.

    Created once per invocation and never re-resolved: a watcher keeps
    observing the same inputs for its whole lifetime.

    Attributes:
        inputs: Style sources in merge order. Duplicates passed in by
            the caller are kept.
        output: Path of the compiled artifact.

    Example:
        >>> FileSet(inputs=("a.css", "b.scss"), output="app.min.css").inputs
        ('a.css', 'b.scss')
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    inputs: tuple[str, ...] = Field(..., min_length=1, description="Style sources in order")
    output: str = Field(..., min_length=1, description="Compiled artifact path")

    @field_validator("inputs")
    @classmethod
    def validate_extensions(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Reject inputs that are not recognized style sources."""
        invalid = [p for p in v if not is_style_file(p)]
        if invalid:
            raise ValueError(f"Not a style file: {', '.join(invalid)}")
        return v

    @model_validator(mode="after")
    def validate_output_not_input(self) -> FileSet:
        """Ensure the output never feeds back into the inputs."""
        if self.output in self.inputs:
            raise ValueError(f"Output {self.output} is also listed as an input")
        return self


def walk_directory(directory: str) -> list[str]:
    """Return every file beneath ``directory``, at any depth.

    Children are visited in the order ``os.scandir`` reports them and
    subdirectories are descended into as they are met (depth-first).
    No sorting or filtering happens here.

    Raises:
        DirectoryReadError: If ``directory`` or one of its subdirectories
            cannot be listed.
    """
    results: list[str] = []
    try:
        with os.scandir(directory) as entries:
            children = [entry.name for entry in entries]
    except OSError as e:
        raise DirectoryReadError(directory, e.strerror or str(e)) from e
    for name in children:
        path = os.path.join(directory, name)
        if os.path.isdir(path):
            results.extend(walk_directory(path))
        else:
            results.append(path)
    return results


def expand_patterns(patterns: Sequence[str]) -> list[str]:
    """Expand glob patterns into matching paths.

    Args:
        patterns: Glob patterns or plain paths. Entries starting with
            ``!`` remove their matches from the result.

    Returns:
        Matches in pattern order, each pattern's matches sorted.
    """
    matches: list[str] = []
    excluded: set[str] = set()
    for pattern in patterns:
        if pattern.startswith(EXCLUDE_PREFIX):
            excluded.update(glob.glob(pattern[len(EXCLUDE_PREFIX) :], recursive=True))
            continue
        matches.extend(sorted(glob.glob(pattern, recursive=True)))
    return [m for m in matches if m not in excluded]


def resolve_files(inputs: Sequence[str], output: str) -> FileSet:
    """Resolve input patterns into a FileSet.

    Args:
        inputs: Glob patterns, file paths or directories.
        output: Output path; removed from the inputs if matched.

    Returns:
        FileSet of the style sources to compile, in merge order.

    Raises:
        NoMatchingFilesError: If the patterns match nothing, or nothing
            that is a style source once the output is excluded.
        DirectoryReadError: If a matched directory cannot be listed.

    Example:
        >>> file_set = resolve_files(["src/"], "src/app.min.css")
        >>> file_set.inputs
        ('src/base.css', 'src/layout/grid.scss')
    """
    log = logger.bind(patterns=list(inputs), output=output)
    matched = expand_patterns(inputs)
    if not matched:
        raise NoMatchingFilesError(inputs)

    results: list[str] = []
    for entry in matched:
        if os.path.isdir(entry):
            results.extend(walk_directory(entry))
        else:
            results.append(entry)

    results = [path for path in results if path != output]
    style_files = [path for path in results if is_style_file(path)]
    log.debug(
        "files_resolved",
        matched=len(matched),
        candidates=len(results),
        style_files=len(style_files),
    )

    if not style_files:
        raise NoMatchingFilesError(
            inputs,
            internal_details=f"{len(results)} matched file(s), none with a style extension",
        )
    return FileSet(inputs=tuple(style_files), output=output)
