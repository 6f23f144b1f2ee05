"""Discovery of todo items from a list syntax tree.

Discovery is a full, pull-model rebuild: every call walks the whole tree and
returns a fresh ``TodoMap``. Nesting is taken from the tree as given; judging
indentation is the linter's job.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Set, Tuple

from .config import DEFAULT_CONFIG, TickmarkConfig, TodoMarkers
from .metadata import MetadataSchema, extract_metadata_lines
from .models import ListMarker, Position, TodoItem, TodoMarker, TodoState
from .syntax import ListItemNode, SyntaxTree, parse_tree

if TYPE_CHECKING:
    from .document import Document

logger = logging.getLogger(__name__)

TodoMap = Dict[str, TodoItem]

# Exactly one interior character, then whitespace or end of line.
_CHECKBOX_RE = re.compile(r"\[(?P<mark>[ xX])\](?=\s|$)")


def _ends_token(text: str, idx: int) -> bool:
    return idx >= len(text) or text[idx].isspace()


def match_todo_marker(text: str, markers: TodoMarkers) -> Optional[Tuple[TodoState, str]]:
    """Classify the leading token of list item content.

    Args:
        text: Content of the list item starting at its content column
        markers: Configured glyphs

    Returns:
        ``(state, glyph_as_found)`` or None when the item is not a todo
    """
    for glyph, state in ((markers.unchecked, TodoState.UNCHECKED), (markers.checked, TodoState.CHECKED)):
        if text.startswith(glyph) and _ends_token(text, len(glyph)):
            return state, glyph
    match = _CHECKBOX_RE.match(text)
    if match:
        state = TodoState.UNCHECKED if match.group("mark") == " " else TodoState.CHECKED
        return state, match.group(0)
    return None


def _own_rows(node: ListItemNode) -> List[int]:
    """Rows of ``node`` that are not part of a nested list item."""
    nested: Set[int] = set()
    for child in node.children:
        nested.update(range(child.range.start.row, child.range.end.row + 1))
    return [
        row
        for row in range(node.range.start.row, node.range.end.row + 1)
        if row == node.row or row not in nested
    ]


def _build_item(
    node: ListItemNode,
    lines: Sequence[str],
    markers: TodoMarkers,
    schema: MetadataSchema,
) -> Optional[TodoItem]:
    line = lines[node.row]
    found = match_todo_marker(line[node.content_column:], markers)
    if found is None:
        # ParseMismatch: a plain list item, not an error
        logger.debug(f"List item at row {node.row} is not a todo")
        return None
    state, glyph = found
    return TodoItem(
        id=node.key,
        range=node.range,
        state=state,
        marker=TodoMarker(glyph=glyph, position=Position(row=node.row, column=node.content_column)),
        list_marker=ListMarker(kind=node.marker_kind, text=node.marker_text, column=node.marker_column),
        content_column=node.content_column,
        text=line,
        metadata=extract_metadata_lines(lines, _own_rows(node), schema),
    )


def discover_todos(
    tree: SyntaxTree,
    lines: Sequence[str],
    config: TickmarkConfig = DEFAULT_CONFIG,
    schema: Optional[MetadataSchema] = None,
) -> TodoMap:
    """Build the TodoMap for a document.

    Args:
        tree: Syntax tree of the document
        lines: Document lines (character columns)
        config: Marker glyphs and metadata schema source
        schema: Explicit metadata schema (defaults to one built from ``config``)

    Returns:
        Mapping of item id to TodoItem in document order
    """
    schema = schema or MetadataSchema.from_config(config)
    markers = config.todo_markers
    todo_map: TodoMap = {}

    def visit(node: ListItemNode, todo_ancestor: Optional[str]) -> None:
        item = _build_item(node, lines, markers, schema)
        if item is not None:
            item.parent_id = todo_ancestor
            todo_map[item.id] = item
            todo_ancestor = item.id
        for child in node.children:
            visit(child, todo_ancestor)

    for root in tree.roots():
        visit(root, None)

    for item in todo_map.values():
        if item.parent_id is not None:
            todo_map[item.parent_id].children.append(item.id)
    for item in todo_map.values():
        item.children.sort(key=lambda child_id: todo_map[child_id].range.start.as_tuple())

    logger.debug(f"Discovered {len(todo_map)} todo items")
    return todo_map


def discover_document(
    document: "Document",
    config: TickmarkConfig = DEFAULT_CONFIG,
    schema: Optional[MetadataSchema] = None,
) -> TodoMap:
    """Parse ``document`` and discover its todos."""
    return discover_todos(parse_tree(document.lines), document.lines, config, schema)


def sorted_todos(todo_map: TodoMap) -> List[TodoItem]:
    """Todo items ordered by start position."""
    return sorted(todo_map.values(), key=lambda item: item.range.start.as_tuple())


def descendants(todo_map: TodoMap, item_id: str) -> List[str]:
    """All descendant todo ids of ``item_id``, pre-order."""
    result: List[str] = []
    for child_id in todo_map[item_id].children:
        result.append(child_id)
        result.extend(descendants(todo_map, child_id))
    return result


def todo_counts(todo_map: TodoMap, item_id: str, recursive: bool = False) -> Tuple[int, int]:
    """``(completed, total)`` child todos of an item."""
    ids = descendants(todo_map, item_id) if recursive else todo_map[item_id].children
    completed = sum(1 for child_id in ids if todo_map[child_id].state is TodoState.CHECKED)
    return completed, len(ids)


def _path_to_row(tree: SyntaxTree, row: int) -> List[ListItemNode]:
    """List items containing ``row``, outermost first."""
    path: List[ListItemNode] = []
    candidates = tree.roots()
    while True:
        node = next((n for n in candidates if n.range.contains_row(row)), None)
        if node is None:
            return path
        path.append(node)
        candidates = node.children


def find_todo_at(
    todo_map: TodoMap,
    tree: SyntaxTree,
    lines: Sequence[str],
    row: int,
    max_depth: int = 1,
) -> Optional[TodoItem]:
    """Resolve the todo item that acts for ``row``.

    - A blank row resolves to nothing.
    - A todo starting on ``row`` wins.
    - Inside a todo (not its first line) the todo is returned when ``max_depth >= 1``.
    - Inside a plain list item, todo ancestors up to ``max_depth`` list levels
      above are considered, nearest first.
    """
    if row < 0 or row >= len(lines) or not lines[row].strip():
        return None

    for item in todo_map.values():
        if item.range.start.row == row:
            return item

    path = _path_to_row(tree, row)
    if not path:
        return None

    innermost = path[-1]
    if innermost.key in todo_map:
        return todo_map[innermost.key] if max_depth >= 1 else None

    for depth, ancestor in enumerate(reversed(path[:-1]), start=1):
        if depth > max_depth:
            break
        if ancestor.key in todo_map:
            logger.debug(f"Matched parent todo item at depth={depth}")
            return todo_map[ancestor.key]
    return None
