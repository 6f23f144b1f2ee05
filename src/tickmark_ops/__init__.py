"""
tickmark_ops - Use-case functions over tickmark documents.

CLI commands and editor integrations delegate to these functions.

Modules:
    todo: Set/toggle todo state with smart-toggle cascade, create todos
    metadata: Add and remove @tag(value) annotations
    lint: Lint documents, publish diagnostics, apply fixes
"""

from .todo import (
    CreateTodoResult,
    ToggleResult,
    create_todo,
    set_todo_state,
    toggle_todo,
    toggle_todo_at,
)
from .metadata import MetadataResult, add_metadata, remove_all_metadata, remove_metadata
from .lint import fix_document, lint_document

__all__ = [
    # Todo
    "CreateTodoResult",
    "ToggleResult",
    "create_todo",
    "set_todo_state",
    "toggle_todo",
    "toggle_todo_at",
    # Metadata
    "MetadataResult",
    "add_metadata",
    "remove_all_metadata",
    "remove_metadata",
    # Lint
    "fix_document",
    "lint_document",
]
