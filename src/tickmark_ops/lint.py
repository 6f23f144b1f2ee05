"""
lint.py - Lint a document and publish or apply the results.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from tickmark_core import transaction
from tickmark_core.config import DEFAULT_CONFIG, TickmarkConfig
from tickmark_core.document import Document
from tickmark_core.linter import DiagnosticsSink, LintIssue, Linter
from tickmark_core.models import TextEdit
from tickmark_core.syntax import parse_tree
from tickmark_core.transaction import TransactionContext

logger = logging.getLogger(__name__)


def lint_document(
    document: Document,
    sink: Optional[DiagnosticsSink] = None,
    config: TickmarkConfig = DEFAULT_CONFIG,
    linter: Optional[Linter] = None,
) -> List[LintIssue]:
    """Lint ``document``; publish to ``sink`` when given.

    A disabled linter yields no issues and, with a sink, publishes an empty list.
    """
    linter = linter or Linter(config.linter)
    tree = parse_tree(document.lines)
    if sink is None:
        return linter.lint(tree, document.lines)
    return linter.lint_and_publish(tree, document.lines, sink)


def _apply_fix(ctx: TransactionContext, edit: TextEdit) -> List[TextEdit]:
    return [edit]


def fix_document(document: Document, issues: List[LintIssue], config: TickmarkConfig = DEFAULT_CONFIG) -> int:
    """Apply the fixers of ``issues`` in one transaction.

    Returns:
        Number of edits queued
    """
    edits = [issue.fixer() for issue in issues if issue.fixer is not None]
    if not edits:
        return 0

    def builder(ctx: TransactionContext) -> None:
        for edit in edits:
            ctx.add_op(_apply_fix, edit)

    transaction.run(document, builder, config=config)
    logger.info(f"Applied {len(edits)} lint fix(es)")
    return len(edits)
