"""Default style engine built on tinycss2.

TinycssEngine parses each source with ``tinycss2.parse_stylesheet`` and
serializes the merged unit back to text. It applies two transformations:

- ``minifier``: drop comments, collapse whitespace runs, remove
  whitespace around punctuation where CSS allows it, no separators
  between rules.
- ``sourcemaps``: one mapping per top-level node, pointing at the
  node's line/column in the file it was parsed from. Inline maps are
  embedded as a data URI comment; external maps are returned
  separately and referenced by file name.

Preprocessor sources (.scss, .sass, .less, .styl) are read as plain
CSS syntax; constructs tinycss2 cannot parse surface as ParseError.
"""

from __future__ import annotations

import copy
import os
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import structlog
import tinycss2
from tinycss2.ast import WhitespaceToken

from sheaf_core.engine.base import ParseContext, ProcessedOutput, Stylesheet, StyleNode
from sheaf_core.engine.sourcemap import SourceMapBuilder
from sheaf_core.errors import ParseError

if TYPE_CHECKING:
    from sheaf_core.config import EffectiveOptions

logger = structlog.get_logger(__name__)

# At-rules whose block holds nested rules rather than declarations
NESTED_RULE_AT_KEYWORDS = frozenset(
    {"media", "supports", "document", "layer", "container", "scope", "starting-style"}
)

_SELECTOR_PUNCTUATION = frozenset({",", ">"})
_DECLARATION_PUNCTUATION = frozenset({":", ";", ","})
_BLOCK_PUNCTUATION = frozenset({","})


def _is_punctuation(token: Any, punctuation: frozenset[str]) -> bool:
    return token.type == "literal" and token.value in punctuation


def _compact_tokens(tokens: Iterable[Any], punctuation: frozenset[str]) -> list[Any]:
    """Drop comments and squeeze whitespace out of a component value list."""
    collapsed: list[Any] = []
    for token in tokens:
        if token.type == "comment":
            continue
        if token.type == "whitespace":
            if collapsed and collapsed[-1].type == "whitespace":
                continue
            collapsed.append(WhitespaceToken(token.source_line, token.source_column, " "))
            continue
        if token.type in ("() block", "[] block", "{} block"):
            token.content = _compact_tokens(token.content, _BLOCK_PUNCTUATION)
        elif token.type == "function":
            token.arguments = _compact_tokens(token.arguments, _BLOCK_PUNCTUATION)
        collapsed.append(token)

    result: list[Any] = []
    for index, token in enumerate(collapsed):
        if token.type == "whitespace":
            before = collapsed[index - 1] if index > 0 else None
            after = collapsed[index + 1] if index + 1 < len(collapsed) else None
            if before is None or after is None:
                continue
            if _is_punctuation(before, punctuation) or _is_punctuation(after, punctuation):
                continue
        result.append(token)
    return result


def _compact_node(node: Any) -> Any:
    """Return a compacted copy of a top-level or nested rule."""
    node = copy.deepcopy(node)
    if node.type == "qualified-rule":
        node.prelude = _compact_tokens(node.prelude, _SELECTOR_PUNCTUATION)
        node.content = _compact_tokens(node.content, _DECLARATION_PUNCTUATION)
    elif node.type == "at-rule":
        prelude = _compact_tokens(node.prelude, _SELECTOR_PUNCTUATION)
        # "@media screen" needs the space after the keyword
        if prelude:
            prelude.insert(0, WhitespaceToken(node.source_line, node.source_column, " "))
        node.prelude = prelude
        if node.content is not None:
            if node.lower_at_keyword in NESTED_RULE_AT_KEYWORDS:
                rules = tinycss2.parse_rule_list(
                    node.content, skip_comments=True, skip_whitespace=True
                )
                node.content = [_compact_node(rule) for rule in rules]
            else:
                node.content = _compact_tokens(node.content, _DECLARATION_PUNCTUATION)
    return node


class TinycssEngine:
    """StyleEngine implementation backed by tinycss2.

    Example:
        >>> engine = TinycssEngine()
        >>> sheet = engine.parse("a { color: red }", ParseContext(source="a.css"))
        >>> engine.process(sheet, EffectiveOptions(minifier=True)).css
        'a{color:red}'
    """

    def parse(self, css: str, context: ParseContext) -> Stylesheet:
        """Parse one source into a Stylesheet of top-level nodes.

        Raises:
            ParseError: On the first top-level syntax error.
        """
        nodes = tinycss2.parse_stylesheet(css, skip_comments=False, skip_whitespace=True)
        for node in nodes:
            if node.type == "error":
                raise ParseError(
                    node.message,
                    path=context.source,
                    line=node.source_line,
                    column=node.source_column,
                )
        contents = {context.source: css} if context.source is not None else None
        return Stylesheet(
            (StyleNode(node=node, source=context.source) for node in nodes),
            contents=contents,
        )

    def process(self, root: Stylesheet, options: EffectiveOptions) -> ProcessedOutput:
        """Serialize the merged unit, optionally minified and source-mapped."""
        minify = options.minifier
        sourcemaps = options.sourcemaps
        target = (sourcemaps.to if sourcemaps is not None else None) or options.output
        builder: SourceMapBuilder | None = None
        if sourcemaps is not None:
            builder = SourceMapBuilder(
                file=target,
                include_sources_content=sourcemaps.map.sources_content,
            )

        chunks: list[str] = []
        line = column = 0
        separator = "" if minify else "\n"
        for style_node in root.each():
            node = style_node.node
            if minify:
                if node.type == "comment":
                    continue
                node = _compact_node(node)
            text = node.serialize()

            if chunks and separator:
                chunks.append(separator)
                line, column = line + 1, 0
            if builder is not None and style_node.source is not None:
                source_index = builder.add_source(
                    style_node.source, root.contents.get(style_node.source)
                )
                builder.add_mapping(
                    line,
                    column,
                    source_index,
                    (node.source_line or 1) - 1,
                    (node.source_column or 1) - 1,
                )
            chunks.append(text)
            newlines = text.count("\n")
            if newlines:
                line += newlines
                column = len(text) - text.rfind("\n") - 1
            else:
                column += len(text)

        css = "".join(chunks)
        logger.debug("stylesheet_processed", nodes=len(root), minify=minify, length=len(css))
        if builder is None or sourcemaps is None:
            return ProcessedOutput(css=css if minify else f"{css}\n")

        if sourcemaps.external:
            map_name = f"{os.path.basename(target)}.map" if target else "out.css.map"
            comment = f"/*# sourceMappingURL={map_name} */"
            return ProcessedOutput(css=f"{css}\n{comment}\n", map=builder.to_json())
        comment = f"/*# sourceMappingURL={builder.to_data_uri()} */"
        return ProcessedOutput(css=f"{css}\n{comment}\n")
