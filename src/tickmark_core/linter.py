"""Validator-based list indentation linter.

Enforces the CommonMark list nesting rules:

1. A child's marker must start at or right of its parent's *content* column
   (``INDENT_SHALLOW``).
2. A child's marker may sit at most 3 columns past the parent's content column
   (``INDENT_DEEP``).

It also flags mixed ordered/unordered markers among siblings at the same marker
column (``INCONSISTENT_MARKER``).

Each rule is a validator object with ``validate(ctx) -> bool``. Validators are
registered with a priority (ascending, ties by registration order) and are
instantiated fresh for every lint run, so they may keep per-run state.

Key terms:
- marker column: column where the list marker (``-``, ``*``, ``+``, ``1.``) begins
- content column: column of the first non-blank character after the marker
- parent: nearest earlier list item with a smaller marker column
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from .config import LinterConfig
from .errors import ConfigError
from .models import ListMarkerKind, Range, Severity, TextEdit
from .syntax import ListItemNode, SyntaxTree

logger = logging.getLogger(__name__)

INCONSISTENT_MARKER = "INCONSISTENT_MARKER"
INDENT_SHALLOW = "INDENT_SHALLOW"
INDENT_DEEP = "INDENT_DEEP"

DEFAULT_PRIORITY = 100
LAZY_CONTINUATION_SLACK = 3


@dataclass(frozen=True)
class LintRule:
    code: str
    message: str
    severity: Severity = Severity.WARNING


BUILTIN_RULES: Dict[str, LintRule] = {
    INCONSISTENT_MARKER: LintRule(INCONSISTENT_MARKER, "Mixed ordered / unordered list markers at this indent level"),
    INDENT_SHALLOW: LintRule(INDENT_SHALLOW, "List marker indented too little for nesting"),
    INDENT_DEEP: LintRule(INDENT_DEEP, "List marker indented too far"),
}


@dataclass(frozen=True)
class LintIssue:
    """One diagnostic. ``fixer`` returns an edit that resolves the issue."""

    code: str
    message: str
    severity: Severity
    range: Range
    fixer: Optional[Callable[[], TextEdit]] = field(default=None, compare=False, repr=False)

    @property
    def row(self) -> int:
        return self.range.start.row

    @property
    def column(self) -> int:
        return self.range.start.column


class LintContext:
    """What a validator sees for one list item."""

    def __init__(
        self,
        node: ListItemNode,
        parent: Optional[ListItemNode],
        lines: Sequence[str],
        issues: List[LintIssue],
        reporter: Callable[..., bool],
    ) -> None:
        self.node = node
        self.row = node.row
        self.parent = parent
        self.lines = lines
        self.issues = issues
        self._reporter = reporter

    @property
    def line(self) -> str:
        return self.lines[self.row]

    def report(
        self,
        code: str,
        column: int,
        detail: Optional[str] = None,
        fixer: Optional[Callable[[], TextEdit]] = None,
    ) -> bool:
        """Record an issue on the current row; False if ``code`` is unknown."""
        return self._reporter(code, self.row, column, detail, fixer)

    def parent_has_indent_issue(self) -> bool:
        if self.parent is None:
            return False
        return any(
            issue.code in (INDENT_SHALLOW, INDENT_DEEP)
            and issue.row == self.parent.row
            and issue.column == self.parent.marker_column
            for issue in self.issues
        )


class LintValidator(Protocol):
    def validate(self, ctx: LintContext) -> bool: ...


ValidatorFactory = Callable[..., LintValidator]


def _realign_fixer(lines: Sequence[str], node: ListItemNode, target_col: int) -> Optional[Callable[[], TextEdit]]:
    """Fixer that moves a marker to ``target_col`` by rewriting leading whitespace."""
    line = lines[node.row]
    if line[:node.marker_column].strip():
        return None
    row, marker_col = node.row, node.marker_column
    return lambda: TextEdit.replace(row, 0, marker_col, " " * target_col)


class InconsistentMarkerValidator:
    """Siblings at the same marker column must share a marker class."""

    def __init__(self) -> None:
        self._seen: Dict[Tuple[Optional[str], int], ListMarkerKind] = {}

    def validate(self, ctx: LintContext) -> bool:
        scope = (ctx.parent.key if ctx.parent else None, ctx.node.marker_column)
        existing = self._seen.get(scope)
        if existing is not None and existing is not ctx.node.marker_kind:
            ctx.report(INCONSISTENT_MARKER, ctx.node.marker_column)
            return True
        self._seen.setdefault(scope, ctx.node.marker_kind)
        return False


class IndentShallowValidator:
    """A nested marker must not start left of the parent's content column."""

    def validate(self, ctx: LintContext) -> bool:
        if ctx.parent is None or ctx.parent_has_indent_issue():
            return False
        if ctx.node.marker_column < ctx.parent.content_column:
            target = ctx.parent.content_column
            ctx.report(
                INDENT_SHALLOW,
                ctx.node.marker_column,
                f"(should be at column {target} or greater)",
                fixer=_realign_fixer(ctx.lines, ctx.node, target),
            )
            return True
        return False


class IndentDeepValidator:
    """A nested marker may be at most ``max_extra`` columns past the parent's content."""

    def __init__(self, max_extra: int = LAZY_CONTINUATION_SLACK) -> None:
        self.max_extra = max_extra

    def validate(self, ctx: LintContext) -> bool:
        if ctx.parent is None or ctx.parent_has_indent_issue():
            return False
        limit = ctx.parent.content_column + self.max_extra
        if ctx.node.marker_column > limit:
            ctx.report(
                INDENT_DEEP,
                ctx.node.marker_column,
                f"(maximum allowed is column {limit})",
                fixer=_realign_fixer(ctx.lines, ctx.node, ctx.parent.content_column),
            )
            return True
        return False


class ValidatorRegistry:
    """Priority-ordered validator factories."""

    def __init__(self) -> None:
        self._entries: List[Tuple[int, int, ValidatorFactory, Dict[str, Any]]] = []
        self._seq = 0

    def register(self, factory: ValidatorFactory, priority: int = DEFAULT_PRIORITY, **default_kwargs: Any) -> int:
        """Register a validator factory.

        Args:
            factory: Callable (usually a class) returning an object with ``validate(ctx)``
            priority: Lower runs first; equal priorities run in registration order
            **default_kwargs: Passed to ``factory`` on every lint run

        Returns:
            Registration sequence number
        """
        if not callable(factory):
            raise ValueError("Validator factory must be callable")
        seq = self._seq
        self._seq += 1
        self._entries.append((priority, seq, factory, default_kwargs))
        logger.debug(f"Registered validator {getattr(factory, '__name__', factory)!s} at priority {priority}")
        return seq

    def create(self) -> List[LintValidator]:
        ordered = sorted(self._entries, key=lambda entry: (entry[0], entry[1]))
        return [factory(**kwargs) for _, _, factory, kwargs in ordered]

    def __len__(self) -> int:
        return len(self._entries)


def default_registry() -> ValidatorRegistry:
    registry = ValidatorRegistry()
    registry.register(InconsistentMarkerValidator)
    registry.register(IndentShallowValidator)
    registry.register(IndentDeepValidator)
    return registry


class DiagnosticsSink(Protocol):
    def publish(self, namespace: str, issues: List[LintIssue]) -> None: ...

    def clear(self, namespace: str) -> None: ...


class InMemoryDiagnosticsSink:
    """Keeps the last published issues per namespace."""

    def __init__(self) -> None:
        self.published: Dict[str, List[LintIssue]] = {}

    def publish(self, namespace: str, issues: List[LintIssue]) -> None:
        self.published[namespace] = list(issues)

    def clear(self, namespace: str) -> None:
        self.published.pop(namespace, None)

    def get(self, namespace: str) -> List[LintIssue]:
        return list(self.published.get(namespace, []))


class Linter:
    """Run registered validators over every list item of a syntax tree."""

    def __init__(self, config: Optional[LinterConfig] = None, registry: Optional[ValidatorRegistry] = None) -> None:
        self.config = config or LinterConfig()
        self.registry = registry or default_registry()
        self.rules: Dict[str, LintRule] = dict(BUILTIN_RULES)

    def register_validator(self, factory: ValidatorFactory, priority: int = DEFAULT_PRIORITY, **default_kwargs: Any) -> int:
        return self.registry.register(factory, priority, **default_kwargs)

    def register_rule(self, code: str, message: str, severity: Severity = Severity.WARNING) -> None:
        """Add a custom issue code.

        Raises:
            ConfigError: If ``code`` already exists
        """
        if code in self.rules:
            raise ConfigError(f"Rule ID '{code}' already exists")
        self.rules[code] = LintRule(code, message, severity)

    def severity_for(self, code: str) -> Severity:
        if code in self.config.severity:
            return self.config.severity[code]
        return self.rules[code].severity

    def lint(self, tree: SyntaxTree, lines: Sequence[str]) -> List[LintIssue]:
        """Lint every list item of ``tree``.

        Returns:
            Issues in document order (empty when the linter is disabled)
        """
        if not self.config.enabled:
            return []

        issues: List[LintIssue] = []
        validators = self.registry.create()

        def reporter(code: str, row: int, column: int, detail: Optional[str], fixer) -> bool:
            rule = self.rules.get(code)
            if rule is None:
                logger.debug(f"Ignoring report with unknown rule {code}")
                return False
            message = rule.message
            if detail and self.config.verbose:
                message = f"{message} {detail}"
            issues.append(
                LintIssue(
                    code=code,
                    message=message,
                    severity=self.severity_for(code),
                    range=Range.of(row, column, row, column + 1),
                    fixer=fixer,
                )
            )
            return True

        stack: List[ListItemNode] = []
        for node in tree.list_items():
            while stack and stack[-1].marker_column >= node.marker_column:
                stack.pop()
            parent = stack[-1] if stack else None
            ctx = LintContext(node, parent, lines, issues, reporter)
            for validator in validators:
                validator.validate(ctx)
            stack.append(node)

        logger.debug(f"Lint produced {len(issues)} issue(s)")
        return issues

    def lint_and_publish(self, tree: SyntaxTree, lines: Sequence[str], sink: DiagnosticsSink) -> List[LintIssue]:
        """Lint and publish the issues to ``sink`` under the configured namespace."""
        issues = self.lint(tree, lines)
        sink.publish(self.config.namespace, issues)
        return issues
