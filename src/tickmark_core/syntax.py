"""Block/list syntax tree consumed by discovery and the linter.

Discovery and the linter only rely on the ``ListItemNode`` shape (marker kind,
marker/content columns, range, direct children). ``parse_tree`` produces such a
tree from markdown text with markdown-it-py; any other block parser can be
plugged in by building ``ListItemNode`` objects directly.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence

from markdown_it import MarkdownIt

from .models import ListMarkerKind, Range

logger = logging.getLogger(__name__)

_MARKER_RE = re.compile(r"[ \t>]*(?P<marker>\d{1,9}[.)]|[-+*])")

_BLOCK_KINDS = {
    "heading_open": "heading",
    "bullet_list_open": "list",
    "ordered_list_open": "list",
    "paragraph_open": "paragraph",
    "blockquote_open": "blockquote",
    "fence": "code",
    "code_block": "code",
    "hr": "thematic_break",
    "html_block": "html",
}


@dataclass(eq=False)
class ListItemNode:
    """One list item with its direct child list items in document order."""

    marker_kind: ListMarkerKind
    marker_text: str
    marker_column: int
    content_column: int
    range: Range
    children: List["ListItemNode"] = field(default_factory=list)

    @property
    def key(self) -> str:
        """Structural identity: start row and marker column."""
        return f"{self.range.start.row}:{self.marker_column}"

    @property
    def row(self) -> int:
        return self.range.start.row

    def walk(self) -> Iterator["ListItemNode"]:
        """This node and all descendants, pre-order."""
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass(eq=False)
class BlockNode:
    """A top-level block (heading, list, paragraph, ...)."""

    kind: str
    range: Range
    items: List[ListItemNode] = field(default_factory=list)


@dataclass(eq=False)
class SyntaxTree:
    """Ordered top-level blocks of a document."""

    blocks: List[BlockNode] = field(default_factory=list)

    @classmethod
    def from_items(cls, items: Sequence[ListItemNode]) -> "SyntaxTree":
        """Wrap hand-built list items in a single list block."""
        if not items:
            return cls()
        span = Range(start=items[0].range.start, end=items[-1].range.end)
        return cls(blocks=[BlockNode(kind="list", range=span, items=list(items))])

    def roots(self) -> List[ListItemNode]:
        """Top-level list items across every list block."""
        return [item for block in self.blocks for item in block.items]

    def list_items(self) -> Iterator[ListItemNode]:
        """Every list item in document order (ascending start position)."""
        for root in self.roots():
            yield from root.walk()


def _content_column(line: str, after: int) -> int:
    """First column at or after ``after`` that is not a space or tab."""
    for idx in range(after, len(line)):
        if line[idx] not in " \t":
            return idx
    return len(line)


def _trim_end_row(lines: Sequence[str], start_row: int, end_row: int) -> int:
    """Last row of a span, skipping trailing blank lines."""
    end_row = min(end_row, len(lines) - 1)
    while end_row > start_row and not lines[end_row].strip():
        end_row -= 1
    return end_row


def _block_range(lines: Sequence[str], token_map: Sequence[int]) -> Range:
    start_row = token_map[0]
    end_row = _trim_end_row(lines, start_row, token_map[1] - 1)
    return Range.of(start_row, 0, end_row, len(lines[end_row]) if lines else 0)


def _build_item(
    lines: Sequence[str],
    token_map: Sequence[int],
    markup: str,
    parent: Optional[ListItemNode],
) -> ListItemNode:
    row = token_map[0]
    line = lines[row]
    # A nested list may open on its parent's first line ("- - item").
    min_col = parent.content_column if parent is not None and parent.row == row else 0
    match = _MARKER_RE.match(line, min_col)
    if match:
        marker_text = match.group("marker")
        marker_col = match.start("marker")
    else:
        marker_text = markup
        marker_col = min_col
    kind = ListMarkerKind.ORDERED if marker_text[-1] in ".)" else ListMarkerKind.UNORDERED
    end_row = _trim_end_row(lines, row, token_map[1] - 1)
    if end_row == row:
        end_col = len(line)
    else:
        end_col = len(lines[end_row])
    return ListItemNode(
        marker_kind=kind,
        marker_text=marker_text,
        marker_column=marker_col,
        content_column=_content_column(line, marker_col + len(marker_text)),
        range=Range.of(row, marker_col, end_row, end_col),
    )


def parse_tree(lines: Sequence[str]) -> SyntaxTree:
    """Parse markdown lines into a SyntaxTree using markdown-it-py."""
    tree = SyntaxTree()
    if not lines:
        return tree

    md = MarkdownIt("commonmark")
    tokens = md.parse("\n".join(lines) + "\n")

    stack: List[ListItemNode] = []
    current_block: Optional[BlockNode] = None
    for token in tokens:
        if token.level == 0 and token.nesting >= 0 and token.map is not None:
            kind = _BLOCK_KINDS.get(token.type, token.type.replace("_open", ""))
            current_block = BlockNode(kind=kind, range=_block_range(lines, token.map))
            tree.blocks.append(current_block)

        if token.type == "list_item_open" and token.map is not None:
            parent = stack[-1] if stack else None
            node = _build_item(lines, token.map, token.markup, parent)
            if parent is not None:
                parent.children.append(node)
            elif current_block is not None:
                current_block.items.append(node)
            stack.append(node)
        elif token.type == "list_item_close":
            stack.pop()

    logger.debug(f"Parsed {len(tree.blocks)} blocks, {sum(1 for _ in tree.list_items())} list items")
    return tree
