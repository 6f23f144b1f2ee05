"""Tests for document-level lint operations."""

from conftest import make_document
from tickmark_core.config import LinterConfig, TickmarkConfig
from tickmark_core.linter import INDENT_SHALLOW, InMemoryDiagnosticsSink
from tickmark_ops import fix_document, lint_document


def test_lint_document_publishes_to_sink():
    doc = make_document("- □ Parent", " - □ Bad child")
    sink = InMemoryDiagnosticsSink()
    issues = lint_document(doc, sink)
    assert [i.code for i in issues] == [INDENT_SHALLOW]
    assert sink.get("tickmark_lint") == issues


def test_disabled_linter_clears_diagnostics():
    doc = make_document("- □ Parent", " - □ Bad child")
    sink = InMemoryDiagnosticsSink()
    config = TickmarkConfig(linter=LinterConfig(enabled=False))
    assert lint_document(doc, sink, config) == []
    assert sink.published == {"tickmark_lint": []}


def test_fix_document_realigns_markers():
    doc = make_document("- □ Parent", " - □ Bad child")
    issues = lint_document(doc)
    assert fix_document(doc, issues) == 1
    assert doc.lines == ["- □ Parent", "  - □ Bad child"]
    assert lint_document(doc) == []


def test_fix_document_without_fixers():
    doc = make_document("- a", "- b")
    assert fix_document(doc, lint_document(doc)) == 0
    assert doc.version == 0
