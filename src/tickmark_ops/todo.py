"""
todo.py - Todo state and creation use cases.

Each function discovers the current todo map, computes the change, and applies
it to the document inside one transaction.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

from tickmark_core import transaction
from tickmark_core.config import DEFAULT_CONFIG, TickmarkConfig
from tickmark_core.discovery import TodoMap, discover_document, discover_todos, find_todo_at, match_todo_marker
from tickmark_core.document import Document
from tickmark_core.errors import InvalidTargetError
from tickmark_core.models import StateChange, TextEdit, TodoState
from tickmark_core.propagation import SmartTogglePropagator
from tickmark_core.syntax import parse_tree
from tickmark_core.transaction import TransactionContext

logger = logging.getLogger(__name__)

_LIST_ITEM_RE = re.compile(r"^(?P<indent>[ \t>]*)(?P<marker>[-+*]|\d{1,9}[.)])(?P<space>[ \t]+|$)")


@dataclass
class ToggleResult:
    """Result of a state change request."""
    ok: bool
    changes: List[StateChange] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class CreateTodoResult:
    """Result of converting a line into a todo."""
    ok: bool
    item_id: Optional[str] = None
    created: bool = False
    error: Optional[str] = None


def _marker_text(glyph_found: str, state: TodoState, config: TickmarkConfig) -> str:
    # Keep the bracket form when the item uses it.
    if glyph_found.startswith("["):
        return "[x]" if state is TodoState.CHECKED else "[ ]"
    markers = config.todo_markers
    return markers.checked if state is TodoState.CHECKED else markers.unchecked


def set_marker(ctx: TransactionContext, item_id: str, state: TodoState) -> Optional[List[TextEdit]]:
    """Mutator: rewrite one item's marker glyph for ``state``."""
    item = ctx.get_item(item_id)
    if item is None or item.state is state:
        return None
    pos = item.marker.position
    new_marker = _marker_text(item.marker.glyph, state, ctx.config)
    return [TextEdit.replace(pos.row, pos.column, pos.column + len(item.marker.glyph), new_marker)]


def replace_line(ctx: TransactionContext, row: int, text: str) -> Optional[List[TextEdit]]:
    """Mutator: replace the full text of ``row``."""
    line = ctx.document.line(row)
    if line == text:
        return None
    return [TextEdit.replace(row, 0, len(line), text)]


def set_todo_state(
    document: Document,
    item_id: str,
    state: TodoState,
    config: TickmarkConfig = DEFAULT_CONFIG,
    todo_map: Optional[TodoMap] = None,
) -> ToggleResult:
    """Set a todo's state and apply the smart-toggle cascade.

    Args:
        document: Target document
        item_id: Todo id from the current discovery pass
        state: Requested state
        config: Markers and smart-toggle policy
        todo_map: Pre-discovered map (discovered when omitted)

    Returns:
        ToggleResult. A stale or unknown id yields ``ok=False`` and leaves the
        document untouched.

    Raises:
        TransactionOpFailure: If applying a change failed
    """
    if todo_map is None:
        todo_map = discover_document(document, config)
    try:
        changes = SmartTogglePropagator(config.smart_toggle).propagate(todo_map, item_id, state)
    except InvalidTargetError as e:
        logger.warning(f"Skipping state change: {e}")
        return ToggleResult(ok=False, error=str(e))

    if not changes:
        return ToggleResult(ok=True)

    def builder(ctx: TransactionContext) -> None:
        for change in changes:
            ctx.add_op(set_marker, change.item_id, change.new_state)

    transaction.run(document, builder, config=config, todo_map=todo_map)
    return ToggleResult(ok=True, changes=changes)


def toggle_todo(
    document: Document,
    item_id: str,
    config: TickmarkConfig = DEFAULT_CONFIG,
    todo_map: Optional[TodoMap] = None,
) -> ToggleResult:
    """Flip a todo's state (with cascade)."""
    if todo_map is None:
        todo_map = discover_document(document, config)
    item = todo_map.get(item_id)
    if item is None:
        logger.warning(f"Skipping toggle: todo item not found: {item_id}")
        return ToggleResult(ok=False, error=str(InvalidTargetError(item_id)))
    return set_todo_state(document, item_id, item.state.toggled(), config, todo_map)


def toggle_todo_at(
    document: Document,
    row: int,
    target: Optional[TodoState] = None,
    config: TickmarkConfig = DEFAULT_CONFIG,
) -> ToggleResult:
    """Toggle (or set to ``target``) the todo acting for ``row``."""
    tree = parse_tree(document.lines)
    todo_map = discover_todos(tree, document.lines, config)
    item = find_todo_at(todo_map, tree, document.lines, row, config.todo_action_depth)
    if item is None:
        return ToggleResult(ok=False, error=f"No todo item at row {row}")
    state = target if target is not None else item.state.toggled()
    return set_todo_state(document, item.id, state, config, todo_map)


def create_todo(document: Document, row: int, config: TickmarkConfig = DEFAULT_CONFIG) -> CreateTodoResult:
    """Turn the line at ``row`` into an unchecked todo.

    A list item gets a marker after its list marker; any other line becomes a
    new list item with the configured list marker, keeping its indentation.
    A line that already is a todo is left as is.
    """
    if row < 0 or row >= len(document):
        return CreateTodoResult(ok=False, error=f"Row out of range: {row}")

    line = document.line(row)
    glyph = config.todo_markers.unchecked
    match = _LIST_ITEM_RE.match(line)
    if match:
        rest = line[match.end():]
        if match_todo_marker(rest, config.todo_markers):
            return CreateTodoResult(ok=True, item_id=_item_id_at(document, row, config))
        prefix = line[:match.end()] if match.group("space") else line[:match.end()] + " "
    else:
        indent = line[:len(line) - len(line.lstrip())]
        prefix = f"{indent}{config.default_list_marker} "
        rest = line.lstrip()
    new_line = f"{prefix}{glyph} {rest}" if rest else f"{prefix}{glyph}"

    transaction.run(document, lambda ctx: ctx.add_op(replace_line, row, new_line), config=config)
    item_id = _item_id_at(document, row, config)
    logger.debug(f"Created todo {item_id} at row {row}")
    return CreateTodoResult(ok=item_id is not None, item_id=item_id, created=item_id is not None)


def _item_id_at(document: Document, row: int, config: TickmarkConfig) -> Optional[str]:
    for item in discover_document(document, config).values():
        if item.row == row:
            return item.id
    return None
