"""Style engine contract and the default tinycss2-backed engine.

Example:
    >>> from sheaf_core.engine import ParseContext, TinycssEngine
    >>> engine = TinycssEngine()
    >>> sheet = engine.parse("a { color: red }", ParseContext(source="a.css"))
    >>> len(sheet)
    1
"""

from __future__ import annotations

from sheaf_core.engine.base import (
    ParseContext,
    ProcessedOutput,
    StyleEngine,
    StyleNode,
    Stylesheet,
)
from sheaf_core.engine.sourcemap import SourceMapBuilder, encode_vlq
from sheaf_core.engine.tinycss import TinycssEngine

__all__ = [
    "ParseContext",
    "ProcessedOutput",
    "SourceMapBuilder",
    "StyleEngine",
    "StyleNode",
    "Stylesheet",
    "TinycssEngine",
    "encode_vlq",
]
