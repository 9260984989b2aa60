"""Style engine contract for sheaf.

The orchestrator only needs two things from an engine: turn one file's
text into a syntax unit, and turn the merged unit into output text.
Everything the engine does in between (prefixing, minification, import
resolution) is its own business.

Source attribution is explicit: each parse call receives an immutable
ParseContext naming the file being parsed, and every top-level node the
engine produces remembers that origin. No engine state is mutated per
file.
"""

from __future__ import annotations

import copy
from abc import abstractmethod
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from sheaf_core.config import EffectiveOptions


class ParseContext(BaseModel):
    """Per-call parse context.

    Attributes:
        source: Path of the file being parsed, recorded on every node
            for source map attribution and error locations. None for
            text that did not come from a file.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    source: str | None = Field(default=None, description="Origin of the parsed text")


@dataclass
class StyleNode:
    """One top-level rule (or at-rule, or comment) and its origin.

    Attributes:
        node: The engine's native node object.
        source: File the node was parsed from, if tracked.
    """

    node: Any
    source: str | None = None

    def clone(self) -> StyleNode:
        """Return an independent deep copy with the same origin."""
        return StyleNode(node=copy.deepcopy(self.node), source=self.source)


class Stylesheet:
    """Ordered sequence of top-level style nodes.

    The first parsed file's Stylesheet becomes the root of a merge;
    nodes from later files are cloned and appended to it. ``contents``
    maps each parsed source path to its text, for engines that embed
    sources in a source map.

    Example:
        >>> root = engine.parse(a_css, ParseContext(source="a.css"))
        >>> for node in engine.parse(b_css, ParseContext(source="b.css")).each():
        ...     root.append(node.clone())
    """

    def __init__(
        self,
        nodes: Iterable[StyleNode] = (),
        contents: dict[str, str] | None = None,
    ) -> None:
        self._nodes: list[StyleNode] = list(nodes)
        self.contents: dict[str, str] = dict(contents or {})

    def each(self) -> Iterator[StyleNode]:
        """Iterate over the top-level nodes in order."""
        return iter(list(self._nodes))

    def append(self, node: StyleNode) -> None:
        """Append a node at the end of the sheet."""
        self._nodes.append(node)

    @property
    def sources(self) -> list[str]:
        """Distinct node origins, in first-seen order."""
        seen: dict[str, None] = {}
        for node in self._nodes:
            if node.source is not None:
                seen.setdefault(node.source, None)
        return list(seen)

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"Stylesheet(nodes={len(self._nodes)}, sources={self.sources!r})"


class ProcessedOutput(BaseModel):
    """Engine output for one merged unit.

    Attributes:
        css: Processed stylesheet text. With inline source maps the map
            is already embedded here.
        map: Source map JSON for external maps, otherwise None.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    css: str = Field(..., description="Processed CSS text")
    map: str | None = Field(default=None, description="External source map JSON")

    def __str__(self) -> str:
        return self.css


@runtime_checkable
class StyleEngine(Protocol):
    """Protocol for style-processing engines.

    Implementations must be safe to call from the orchestrator's worker
    thread. Failures should be raised as sheaf ParseError/ProcessError;
    any other exception from ``process`` is wrapped by the orchestrator.
    """

    @abstractmethod
    def parse(self, css: str, context: ParseContext) -> Stylesheet:
        """Parse one file's text into a Stylesheet.

        Args:
            css: Source text.
            context: Origin of the text.

        Returns:
            Stylesheet whose nodes carry ``context.source``.

        Raises:
            ParseError: If the text cannot be parsed.
        """
        ...

    @abstractmethod
    def process(self, root: Stylesheet, options: EffectiveOptions) -> ProcessedOutput:
        """Transform the merged Stylesheet into output text.

        Args:
            root: Merged unit of all inputs.
            options: Effective options (minifier, sourcemaps, extras).

        Returns:
            ProcessedOutput for the artifact writer.

        Raises:
            ProcessError: If the transformation fails.
        """
        ...
