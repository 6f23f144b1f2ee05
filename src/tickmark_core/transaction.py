"""Batched document mutations.

A transaction collects operations and callbacks from a synchronous builder,
then applies them as one batch:

1. Queued operations run in FIFO order. Consecutive operations sharing a
   mutator form a group: every op of the group sees the same todo map, their
   ``TextEdit`` results are applied to the document together (edits of one
   group must not overlap), and the todo map is re-discovered once, the next
   time it is read.
2. Queued callbacks run in FIFO order. They may queue more operations or
   callbacks, in which case step 1 repeats.
3. The transaction is deactivated and ``on_complete`` runs.

At most one transaction is active per document. A ``run`` call on a document
that already has one re-enters it: its builder queues into the active batch.

Failure semantics: when an operation raises, the remaining operations are
skipped, callbacks and ``on_complete`` do not run, the transaction is
deactivated and ``TransactionOpFailure`` is raised. Groups already applied are
not rolled back; no edit of the failing group is applied.
"""

from __future__ import annotations

import logging
import weakref
from collections import deque
from typing import Any, Callable, Deque, List, Optional, Set, Tuple

from .config import DEFAULT_CONFIG, TickmarkConfig
from .discovery import TodoMap, discover_document
from .document import Document
from .errors import TransactionOpFailure
from .models import Range, TextEdit, TodoItem

logger = logging.getLogger(__name__)

Mutator = Callable[..., Optional[List[TextEdit]]]
Callback = Callable[..., None]
Builder = Callable[["TransactionContext"], None]


def _callable_name(fn: Callable[..., Any]) -> str:
    return getattr(fn, "__qualname__", None) or getattr(fn, "__name__", None) or repr(fn)


class TransactionContext:
    """Handle passed to builders, mutators and callbacks."""

    def __init__(self, transaction: "Transaction") -> None:
        self._transaction = transaction

    @property
    def document(self) -> Document:
        return self._transaction.document

    @property
    def anchor(self) -> Optional[Range]:
        return self._transaction.anchor

    @property
    def config(self) -> TickmarkConfig:
        return self._transaction.config

    @property
    def todo_map(self) -> TodoMap:
        return self._transaction.todo_map

    def get_item(self, item_id: str) -> Optional[TodoItem]:
        """Latest version of an item, or None if it no longer exists."""
        item = self._transaction.todo_map.get(item_id)
        if item is None:
            logger.warning(f"Transaction target {item_id} not found in current todo map")
        return item

    def add_op(self, mutator: Mutator, *args: Any) -> bool:
        return self._transaction.add_op(mutator, *args)

    def add_cb(self, fn: Callback, *args: Any) -> None:
        self._transaction.add_cb(fn, *args)


class Transaction:
    """Queue state of one active transaction."""

    def __init__(
        self,
        document: Document,
        config: TickmarkConfig = DEFAULT_CONFIG,
        anchor: Optional[Range] = None,
        todo_map: Optional[TodoMap] = None,
    ) -> None:
        self.document = document
        self.config = config
        self.anchor = anchor
        self._todo_map: Optional[TodoMap] = todo_map
        self.active = True
        self.applied = 0
        self.context = TransactionContext(self)
        self._ops: Deque[Tuple[Mutator, Tuple[Any, ...]]] = deque()
        self._callbacks: Deque[Tuple[Callback, Tuple[Any, ...]]] = deque()
        self._seen_ops: Set[Tuple[Any, ...]] = set()

    @property
    def todo_map(self) -> TodoMap:
        """Todo map of the current text, re-discovered on first access after a change."""
        if self._todo_map is None:
            self.refresh()
        return self._todo_map

    def add_op(self, mutator: Mutator, *args: Any) -> bool:
        """Queue an operation.

        Returns:
            False if an identical operation (same mutator, equal hashable args)
            was already queued in this transaction
        """
        try:
            key = (mutator, args)
            hash(key)
        except TypeError:
            key = None
        if key is not None:
            if key in self._seen_ops:
                logger.debug(f"Skipping duplicate op {_callable_name(mutator)}{args}")
                return False
            self._seen_ops.add(key)
        self._ops.append((mutator, args))
        return True

    def add_cb(self, fn: Callback, *args: Any) -> None:
        self._callbacks.append((fn, args))

    def refresh(self) -> None:
        self._todo_map = discover_document(self.document, self.config)

    def _next_group(self) -> Tuple[Mutator, List[Tuple[Any, ...]]]:
        mutator, args = self._ops.popleft()
        group = [args]
        while self._ops and self._ops[0][0] is mutator:
            group.append(self._ops.popleft()[1])
        return mutator, group

    def _apply_ops(self) -> None:
        while self._ops:
            mutator, group = self._next_group()
            edits: List[TextEdit] = []
            done = 0
            try:
                for args in group:
                    edits.extend(mutator(self.context, *args) or [])
                    done += 1
                if edits:
                    self.document.apply_edits(edits)
                    self._todo_map = None
            except Exception as e:
                skipped = len(group[done + 1:]) + len(self._ops)
                self._ops.clear()
                self._callbacks.clear()
                raise TransactionOpFailure(e, self.applied, skipped, _callable_name(mutator)) from e
            self.applied += len(group)

    def _run_callbacks(self) -> None:
        batch = list(self._callbacks)
        self._callbacks.clear()
        for fn, args in batch:
            fn(self.context, *args)

    def execute(self) -> None:
        """Drain operations then callbacks until both queues are empty."""
        while self._ops or self._callbacks:
            self._apply_ops()
            if self._callbacks:
                self._run_callbacks()
        logger.info(f"Transaction on {self.document!r} applied {self.applied} op(s)")


class TransactionManager:
    """Tracks the active transaction of each document."""

    def __init__(self) -> None:
        self._active: "weakref.WeakKeyDictionary[Document, Transaction]" = weakref.WeakKeyDictionary()

    def is_active(self, document: Document) -> bool:
        return document in self._active

    def current(self, document: Document) -> Optional[TransactionContext]:
        transaction = self._active.get(document)
        return transaction.context if transaction else None

    def run(
        self,
        document: Document,
        builder: Builder,
        *,
        anchor: Optional[Range] = None,
        on_complete: Optional[Callable[[], None]] = None,
        config: Optional[TickmarkConfig] = None,
        todo_map: Optional[TodoMap] = None,
    ) -> TransactionContext:
        """Run ``builder`` inside a transaction on ``document``.

        Args:
            document: Target document
            builder: Synchronous function queuing ops/callbacks on the context
            anchor: Optional range the transaction is about (cursor, selection)
            on_complete: Called after the batch is applied and the transaction
                is inactive. For a re-entrant call it is queued as a callback
                of the enclosing transaction instead.
            config: Configuration used for re-discovery
            todo_map: Pre-discovered todo map (discovered when omitted)

        Returns:
            The transaction context

        Raises:
            TransactionOpFailure: If a queued operation raised
        """
        existing = self._active.get(document)
        if existing is not None:
            logger.debug(f"Re-entering active transaction on {document!r}")
            builder(existing.context)
            if on_complete is not None:
                existing.add_cb(lambda _ctx: on_complete())
            return existing.context

        transaction = Transaction(document, config or DEFAULT_CONFIG, anchor, todo_map)
        self._active[document] = transaction
        try:
            builder(transaction.context)
            transaction.execute()
        finally:
            transaction.active = False
            self._active.pop(document, None)

        if on_complete is not None:
            on_complete()
        return transaction.context


_default_manager = TransactionManager()


def run(
    document: Document,
    builder: Builder,
    *,
    anchor: Optional[Range] = None,
    on_complete: Optional[Callable[[], None]] = None,
    config: Optional[TickmarkConfig] = None,
    todo_map: Optional[TodoMap] = None,
) -> TransactionContext:
    return _default_manager.run(
        document, builder, anchor=anchor, on_complete=on_complete, config=config, todo_map=todo_map
    )


def is_active(document: Document) -> bool:
    return _default_manager.is_active(document)


def current(document: Document) -> Optional[TransactionContext]:
    return _default_manager.current(document)
