"""
metadata.py - Add and remove ``@tag(value)`` annotations on todo items.

Edits are alias-aware through the metadata schema. The schema's ``on_add`` /
``on_remove`` observers run after the document edit succeeded, with the
refreshed todo item.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from tickmark_core import transaction
from tickmark_core.config import DEFAULT_CONFIG, TickmarkConfig
from tickmark_core.discovery import discover_document
from tickmark_core.document import Document
from tickmark_core.errors import InvalidTargetError
from tickmark_core.metadata import MetadataSchema
from tickmark_core.models import MetadataEntry, TextEdit, TodoItem
from tickmark_core.transaction import TransactionContext

logger = logging.getLogger(__name__)


@dataclass
class MetadataResult:
    """Result of a metadata edit."""
    ok: bool
    item: Optional[TodoItem] = None
    entries: List[MetadataEntry] = field(default_factory=list)
    error: Optional[str] = None


def _apply_edits(ctx: TransactionContext, edits: List[TextEdit]) -> List[TextEdit]:
    return edits


def _removal_edit(line: str, entry: MetadataEntry) -> TextEdit:
    start, end = entry.range.start.column, entry.range.end.column
    # Take one separating space along with the tag.
    if start > 0 and line[start - 1] == " ":
        start -= 1
    elif end < len(line) and line[end] == " ":
        end += 1
    return TextEdit.replace(entry.range.start.row, start, end, "")


def _insert_column(item: TodoItem, tag: str, schema: MetadataSchema) -> int:
    """Column on the item's first line where a new tag keeps sort order."""
    order = schema.sort_order(tag)
    for entry in item.metadata.entries:
        if entry.range.start.row == item.row and schema.sort_order(entry.tag) > order:
            return entry.range.start.column
    return len(item.text.rstrip())


def _load_item(document: Document, item_id: str, config: TickmarkConfig, schema: MetadataSchema) -> TodoItem:
    todo_map = discover_document(document, config, schema)
    item = todo_map.get(item_id)
    if item is None:
        raise InvalidTargetError(item_id)
    return item


def add_metadata(
    document: Document,
    item_id: str,
    tag: str,
    value: str = "",
    schema: Optional[MetadataSchema] = None,
    config: TickmarkConfig = DEFAULT_CONFIG,
) -> MetadataResult:
    """Add ``@tag(value)`` to a todo, or update the value of an existing tag.

    An empty ``value`` falls back to the tag's configured default.
    """
    schema = schema or MetadataSchema.from_config(config)
    try:
        item = _load_item(document, item_id, config, schema)
    except InvalidTargetError as e:
        logger.warning(f"Skipping metadata add: {e}")
        return MetadataResult(ok=False, error=str(e))

    if not value:
        props = schema.tag_config(tag)
        value = props.default_value if props and props.default_value else ""

    names = schema.names_for(tag)
    existing = next(
        (entry for entry in reversed(item.metadata.entries) if entry.tag in names),
        None,
    )
    if existing is not None:
        if existing.value == value:
            return MetadataResult(ok=True, item=item, entries=[existing])
        edit = TextEdit(range=existing.range, lines=[f"@{existing.tag}({value})"])
    else:
        column = _insert_column(item, tag, schema)
        text = f"@{tag}({value}) " if column < len(item.text.rstrip()) else f" @{tag}({value})"
        edit = TextEdit.replace(item.row, column, column, text)

    transaction.run(document, lambda ctx: ctx.add_op(_apply_edits, [edit]), config=config)

    refreshed = _load_item(document, item_id, config, schema)
    added = refreshed.metadata.get(existing.tag if existing else tag)
    if added is None:
        return MetadataResult(ok=False, item=refreshed, error=f"Metadata @{tag} not found after edit")
    schema.notify_added(refreshed, added)
    return MetadataResult(ok=True, item=refreshed, entries=[added])


def _remove_entries(
    document: Document,
    item: TodoItem,
    entries: List[MetadataEntry],
    schema: MetadataSchema,
    config: TickmarkConfig,
) -> MetadataResult:
    if not entries:
        return MetadataResult(ok=False, item=item, error="No matching metadata")

    edits = [_removal_edit(document.line(entry.range.start.row), entry) for entry in entries]
    transaction.run(document, lambda ctx: ctx.add_op(_apply_edits, edits), config=config)

    refreshed = _load_item(document, item.id, config, schema)
    for entry in entries:
        schema.notify_removed(refreshed, entry)
    return MetadataResult(ok=True, item=refreshed, entries=list(entries))


def remove_metadata(
    document: Document,
    item_id: str,
    tag: str,
    schema: Optional[MetadataSchema] = None,
    config: TickmarkConfig = DEFAULT_CONFIG,
) -> MetadataResult:
    """Remove every occurrence of ``tag`` (or any of its aliases) from a todo."""
    schema = schema or MetadataSchema.from_config(config)
    try:
        item = _load_item(document, item_id, config, schema)
    except InvalidTargetError as e:
        logger.warning(f"Skipping metadata removal: {e}")
        return MetadataResult(ok=False, error=str(e))
    names = schema.names_for(tag)
    entries = [entry for entry in item.metadata.entries if entry.tag in names]
    return _remove_entries(document, item, entries, schema, config)


def remove_all_metadata(
    document: Document,
    item_id: str,
    schema: Optional[MetadataSchema] = None,
    config: TickmarkConfig = DEFAULT_CONFIG,
) -> MetadataResult:
    schema = schema or MetadataSchema.from_config(config)
    try:
        item = _load_item(document, item_id, config, schema)
    except InvalidTargetError as e:
        logger.warning(f"Skipping metadata removal: {e}")
        return MetadataResult(ok=False, error=str(e))
    return _remove_entries(document, item, list(item.metadata.entries), schema, config)
