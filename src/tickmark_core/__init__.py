"""Tickmark Core - Hierarchical todo model over markdown lists."""

from .__version__ import __version__, __version_info__

from .config import (
    DEFAULT_CONFIG,
    ConfigLoader,
    LinterConfig,
    PropagationMode,
    SmartTogglePolicy,
    TickmarkConfig,
    TodoMarkers,
)
from .models import (
    ListMarker,
    ListMarkerKind,
    MetadataEntry,
    MetadataSet,
    Position,
    Range,
    Severity,
    StateChange,
    TextEdit,
    TodoItem,
    TodoMarker,
    TodoState,
)
from .document import Document
from .syntax import ListItemNode, SyntaxTree, parse_tree
from .metadata import MetadataSchema, extract_metadata
from .discovery import (
    TodoMap,
    discover_document,
    discover_todos,
    find_todo_at,
    sorted_todos,
    todo_counts,
)
from .propagation import SmartTogglePropagator, propagate
from .linter import (
    DiagnosticsSink,
    InMemoryDiagnosticsSink,
    LintContext,
    LintIssue,
    Linter,
)
from .transaction import TransactionContext, TransactionManager, is_active, run
from .convert import to_glyphs, to_markdown
from .errors import (
    ConfigError,
    InvalidTargetError,
    TickmarkError,
    TransactionOpFailure,
)

__all__ = [
    # Version
    "__version__",
    "__version_info__",
    # Config
    "DEFAULT_CONFIG",
    "ConfigLoader",
    "LinterConfig",
    "PropagationMode",
    "SmartTogglePolicy",
    "TickmarkConfig",
    "TodoMarkers",
    # Models
    "ListMarker",
    "ListMarkerKind",
    "MetadataEntry",
    "MetadataSet",
    "Position",
    "Range",
    "Severity",
    "StateChange",
    "TextEdit",
    "TodoItem",
    "TodoMarker",
    "TodoState",
    # Document / syntax
    "Document",
    "ListItemNode",
    "SyntaxTree",
    "parse_tree",
    # Metadata
    "MetadataSchema",
    "extract_metadata",
    # Discovery
    "TodoMap",
    "discover_document",
    "discover_todos",
    "find_todo_at",
    "sorted_todos",
    "todo_counts",
    # Propagation
    "SmartTogglePropagator",
    "propagate",
    # Linter
    "DiagnosticsSink",
    "InMemoryDiagnosticsSink",
    "LintContext",
    "LintIssue",
    "Linter",
    # Transaction
    "TransactionContext",
    "TransactionManager",
    "is_active",
    "run",
    # Conversion
    "to_glyphs",
    "to_markdown",
    # Errors
    "ConfigError",
    "InvalidTargetError",
    "TickmarkError",
    "TransactionOpFailure",
]
