"""Tests for the transaction engine."""

import pytest

from conftest import make_document
from tickmark_core import transaction
from tickmark_core.errors import TransactionOpFailure
from tickmark_core.models import TextEdit, TodoState
from tickmark_core.transaction import TransactionManager


def check_item(ctx, item_id):
    item = ctx.get_item(item_id)
    pos = item.marker.position
    return [TextEdit.replace(pos.row, pos.column, pos.column + 1, "✔")]


def failing_op(ctx, *args):
    raise RuntimeError("boom")


def test_ops_apply_in_order_and_refresh_todo_map():
    doc = make_document("- □ a", "- □ b")
    seen = []

    def record(ctx, item_id):
        seen.append(ctx.todo_map[item_id].state)

    def builder(ctx):
        ctx.add_op(check_item, "0:0")
        ctx.add_op(record, "0:0")

    transaction.run(doc, builder)
    assert doc.lines == ["- ✔ a", "- □ b"]
    assert seen == [TodoState.CHECKED]


def test_failing_op_skips_rest_and_deactivates():
    doc = make_document("- □ a", "- □ b")
    callbacks = []
    completed = []

    def builder(ctx):
        ctx.add_op(failing_op)
        ctx.add_op(check_item, "1:0")
        ctx.add_cb(lambda ctx: callbacks.append("cb"))

    with pytest.raises(TransactionOpFailure) as exc_info:
        transaction.run(doc, builder, on_complete=lambda: completed.append(True))

    failure = exc_info.value
    assert failure.applied == 0
    assert failure.skipped == 1
    assert isinstance(failure.__cause__, RuntimeError)
    assert doc.lines == ["- □ a", "- □ b"]
    assert callbacks == []
    assert completed == []
    assert transaction.is_active(doc) is False


def test_applied_ops_are_not_rolled_back():
    doc = make_document("- □ a", "- □ b")

    def builder(ctx):
        ctx.add_op(check_item, "0:0")
        ctx.add_op(failing_op)

    with pytest.raises(TransactionOpFailure) as exc_info:
        transaction.run(doc, builder)
    assert exc_info.value.applied == 1
    assert doc.lines[0] == "- ✔ a"


def test_callbacks_run_after_ops_and_may_queue_more():
    doc = make_document("- □ a", "- □ b")
    events = []

    def second_round(ctx):
        events.append("cb")
        ctx.add_op(check_item, "1:0")

    def builder(ctx):
        ctx.add_cb(second_round)
        ctx.add_op(check_item, "0:0")

    transaction.run(doc, builder, on_complete=lambda: events.append("done"))
    assert events == ["cb", "done"]
    assert doc.lines == ["- ✔ a", "- ✔ b"]


def test_callbacks_run_without_ops():
    doc = make_document("- □ a")
    events = []
    transaction.run(doc, lambda ctx: ctx.add_cb(lambda ctx, tag: events.append(tag), "x"))
    assert events == ["x"]


def test_active_only_while_running():
    doc = make_document("- □ a")
    states = []

    def builder(ctx):
        states.append(transaction.is_active(doc))
        ctx.add_cb(lambda ctx: states.append(transaction.is_active(doc)))

    transaction.run(doc, builder, on_complete=lambda: states.append(transaction.is_active(doc)))
    assert states == [True, True, False]
    assert transaction.current(doc) is None


def test_reentrant_run_joins_active_transaction():
    doc = make_document("- □ a", "- □ b")
    events = []

    def inner(ctx):
        ctx.add_op(check_item, "1:0")

    def outer(ctx):
        ctx.add_op(check_item, "0:0")
        inner_ctx = transaction.run(doc, inner, on_complete=lambda: events.append("inner done"))
        assert inner_ctx is ctx
        assert doc.lines == ["- □ a", "- □ b"]

    transaction.run(doc, outer, on_complete=lambda: events.append("outer done"))
    assert doc.lines == ["- ✔ a", "- ✔ b"]
    assert events == ["inner done", "outer done"]


def test_duplicate_ops_are_queued_once():
    doc = make_document("- □ a")
    calls = []

    def count(ctx, item_id):
        calls.append(item_id)

    def builder(ctx):
        assert ctx.add_op(count, "0:0") is True
        assert ctx.add_op(count, "0:0") is False
        ctx.add_op(count, "1:0")

    transaction.run(doc, builder)
    assert calls == ["0:0", "1:0"]


def test_unhashable_args_are_not_deduplicated():
    doc = make_document("- □ a")
    calls = []

    def collect(ctx, items):
        calls.append(items)

    def builder(ctx):
        ctx.add_op(collect, ["x"])
        ctx.add_op(collect, ["x"])

    transaction.run(doc, builder)
    assert len(calls) == 2


def test_builder_error_deactivates():
    doc = make_document("- □ a")

    def builder(ctx):
        raise ValueError("bad builder")

    with pytest.raises(ValueError):
        transaction.run(doc, builder)
    assert not transaction.is_active(doc)


def test_managers_track_documents_independently():
    manager = TransactionManager()
    first = make_document("- □ a")
    second = make_document("- □ b")
    observed = []

    def builder(ctx):
        observed.append((manager.is_active(first), manager.is_active(second)))

    manager.run(first, builder)
    assert observed == [(True, False)]


def test_missing_item_is_none():
    doc = make_document("- □ a")
    found = []
    transaction.run(doc, lambda ctx: found.append(ctx.get_item("7:0")))
    assert found == [None]


def test_ops_sharing_a_mutator_are_applied_with_one_rediscovery(monkeypatch):
    doc = make_document(*[f"- □ item {i}" for i in range(20)])
    discoveries = []
    real_discover = transaction.discover_document

    def counting_discover(*args, **kwargs):
        discoveries.append(doc.version)
        return real_discover(*args, **kwargs)

    monkeypatch.setattr(transaction, "discover_document", counting_discover)
    seen = []

    def builder(ctx):
        for row in range(20):
            ctx.add_op(check_item, f"{row}:0")
        ctx.add_cb(lambda ctx: seen.append(ctx.get_item("19:0").state))

    transaction.run(doc, builder)
    assert all(line.startswith("- ✔") for line in doc.lines)
    # One pass for the group, one after it when the callback reads the map.
    assert len(discoveries) == 2
    assert seen == [TodoState.CHECKED]


def test_failing_group_applies_none_of_its_edits():
    doc = make_document("- □ a", "- □ b")

    def builder(ctx):
        ctx.add_op(check_item, "0:0")
        ctx.add_op(check_item, "9:0")
        ctx.add_op(failing_op)

    with pytest.raises(TransactionOpFailure) as exc_info:
        transaction.run(doc, builder)
    assert exc_info.value.applied == 0
    assert exc_info.value.skipped == 1
    assert doc.lines == ["- □ a", "- □ b"]
