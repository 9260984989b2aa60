"""Source Map v3 builder.

Produces the JSON document described by the Source Map Revision 3
proposal: ``version``, ``file``, ``sources``, optional
``sourcesContent``, ``names`` and the Base64 VLQ ``mappings`` string.

Only what the default engine needs is supported: one segment per
mapped position, no symbol names.
"""

from __future__ import annotations

import base64
import json
import os
from dataclasses import dataclass
from typing import Any

_BASE64_DIGITS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_VLQ_SHIFT = 5
_VLQ_CONTINUATION = 1 << _VLQ_SHIFT
_VLQ_MASK = _VLQ_CONTINUATION - 1


def encode_vlq(value: int) -> str:
    """Encode one integer as a Base64 VLQ string.

    Example:
        >>> encode_vlq(0), encode_vlq(-1), encode_vlq(16)
        ('A', 'D', 'gB')
    """
    vlq = ((-value) << 1) + 1 if value < 0 else value << 1
    digits: list[str] = []
    while True:
        digit = vlq & _VLQ_MASK
        vlq >>= _VLQ_SHIFT
        if vlq:
            digit |= _VLQ_CONTINUATION
        digits.append(_BASE64_DIGITS[digit])
        if not vlq:
            return "".join(digits)


@dataclass(frozen=True)
class Mapping:
    """One generated position mapped to an original position (0-based)."""

    generated_line: int
    generated_column: int
    source_index: int
    original_line: int
    original_column: int


class SourceMapBuilder:
    """Accumulates mappings and renders a v3 source map.

    Args:
        file: Generated file the map describes (the ``file`` field).
        source_root: Directory sources are made relative to. Defaults
            to the directory of ``file``.
        include_sources_content: Embed source text in the map.

    Example:
        >>> builder = SourceMapBuilder(file="dist/app.css")
        >>> index = builder.add_source("src/a.css")
        >>> builder.add_mapping(0, 0, index, 0, 0)
        >>> builder.to_dict()["sources"]
        ['../src/a.css']
    """

    def __init__(
        self,
        file: str | None = None,
        *,
        source_root: str | None = None,
        include_sources_content: bool = False,
    ) -> None:
        self.file = file
        if source_root is None:
            source_root = os.path.dirname(file) if file else ""
        self._source_root = source_root or "."
        self._include_sources_content = include_sources_content
        self._sources: list[str] = []
        self._contents: list[str | None] = []
        self._mappings: list[Mapping] = []

    def add_source(self, path: str, content: str | None = None) -> int:
        """Register a source file and return its index (idempotent)."""
        if path in self._sources:
            index = self._sources.index(path)
            if content is not None and self._contents[index] is None:
                self._contents[index] = content
            return index
        self._sources.append(path)
        self._contents.append(content)
        return len(self._sources) - 1

    def add_mapping(
        self,
        generated_line: int,
        generated_column: int,
        source_index: int,
        original_line: int,
        original_column: int,
    ) -> None:
        """Map a generated position to a position in a registered source."""
        if not 0 <= source_index < len(self._sources):
            raise IndexError(f"Unknown source index {source_index}")
        self._mappings.append(
            Mapping(
                generated_line=generated_line,
                generated_column=generated_column,
                source_index=source_index,
                original_line=max(original_line, 0),
                original_column=max(original_column, 0),
            )
        )

    def _relative(self, path: str) -> str:
        if os.path.isabs(path) != os.path.isabs(self._source_root):
            path = os.path.abspath(path)
            root = os.path.abspath(self._source_root)
        else:
            root = self._source_root
        return os.path.relpath(path, root).replace(os.sep, "/")

    def encode_mappings(self) -> str:
        """Render the ``mappings`` field."""
        ordered = sorted(self._mappings, key=lambda m: (m.generated_line, m.generated_column))
        lines: list[str] = []
        previous_source = previous_line = previous_column = 0
        previous_generated_column = 0
        for mapping in ordered:
            while len(lines) <= mapping.generated_line:
                lines.append("")
                previous_generated_column = 0
            segment = "".join(
                (
                    encode_vlq(mapping.generated_column - previous_generated_column),
                    encode_vlq(mapping.source_index - previous_source),
                    encode_vlq(mapping.original_line - previous_line),
                    encode_vlq(mapping.original_column - previous_column),
                )
            )
            current = lines[mapping.generated_line]
            lines[mapping.generated_line] = f"{current},{segment}" if current else segment
            previous_generated_column = mapping.generated_column
            previous_source = mapping.source_index
            previous_line = mapping.original_line
            previous_column = mapping.original_column
        return ";".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """Render the source map as a dict."""
        result: dict[str, Any] = {"version": 3}
        if self.file:
            result["file"] = os.path.basename(self.file)
        result["sources"] = [self._relative(source) for source in self._sources]
        if self._include_sources_content:
            result["sourcesContent"] = list(self._contents)
        result["names"] = []
        result["mappings"] = self.encode_mappings()
        return result

    def to_json(self) -> str:
        """Render the source map as compact JSON."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    def to_data_uri(self) -> str:
        """Render the source map as a base64 ``data:`` URI."""
        encoded = base64.b64encode(self.to_json().encode("utf-8")).decode("ascii")
        return f"data:application/json;base64,{encoded}"
