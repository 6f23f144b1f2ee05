"""Tests for the todo use-case functions."""

import time

from conftest import make_document
from tickmark_core import transaction
from tickmark_core.config import PropagationMode, SmartTogglePolicy, TickmarkConfig
from tickmark_core.models import TodoState
from tickmark_ops import create_todo, set_todo_state, toggle_todo, toggle_todo_at


def test_check_parent_cascades_into_text(nested_document):
    result = set_todo_state(nested_document, "0:0", TodoState.CHECKED)
    assert result.ok
    assert len(result.changes) == 4
    assert nested_document.lines == [
        "- ✔ Parent",
        "  - ✔ Child 1",
        "  - ✔ Child 2",
        "  - ✔ Child 3",
    ]
    assert not transaction.is_active(nested_document)


def test_bracket_form_is_kept():
    doc = make_document("- [ ] a", "  - [ ] b")
    result = toggle_todo(doc, "0:0")
    assert result.ok
    assert doc.lines == ["- [x] a", "  - [x] b"]


def test_unknown_item_fails_without_mutation(nested_document):
    result = set_todo_state(nested_document, "42:0", TodoState.CHECKED)
    assert not result.ok
    assert "42:0" in result.error
    assert result.changes == []
    assert nested_document.version == 0

    result = toggle_todo(nested_document, "42:0")
    assert not result.ok
    assert nested_document.version == 0


def test_no_change_when_state_already_set(nested_document):
    result = set_todo_state(nested_document, "0:0", TodoState.UNCHECKED)
    assert result.ok
    assert result.changes == []
    assert nested_document.version == 0


def test_policy_from_config():
    config = TickmarkConfig(smart_toggle=SmartTogglePolicy(check_down=PropagationMode.NONE))
    doc = make_document("- □ P", "  - □ C")
    set_todo_state(doc, "0:0", TodoState.CHECKED, config)
    assert doc.lines == ["- ✔ P", "  - □ C"]


def test_toggle_at_row_inside_item():
    doc = make_document("- □ Parent", "  more text", "- □ Other")
    result = toggle_todo_at(doc, 1)
    assert result.ok
    assert doc.lines[0] == "- ✔ Parent"

    result = toggle_todo_at(doc, 0, target=TodoState.CHECKED)
    assert result.ok
    assert result.changes == []


def test_toggle_at_row_without_todo():
    doc = make_document("# Heading", "", "- □ a")
    result = toggle_todo_at(doc, 0)
    assert not result.ok
    assert doc.version == 0


def test_create_todo_from_plain_text():
    doc = make_document("Buy milk", "  indented note")
    first = create_todo(doc, 0)
    assert first.ok and first.created
    assert first.item_id == "0:0"
    assert doc.lines[0] == "- □ Buy milk"

    second = create_todo(doc, 1)
    assert doc.lines[1] == "  - □ indented note"
    assert second.item_id == "1:2"


def test_create_todo_from_list_item():
    doc = make_document("* shopping", "1. first")
    create_todo(doc, 0)
    create_todo(doc, 1)
    assert doc.lines == ["* □ shopping", "1. □ first"]


def test_create_todo_on_existing_todo_is_noop():
    doc = make_document("- ✔ done")
    result = create_todo(doc, 0)
    assert result.ok
    assert not result.created
    assert result.item_id == "0:0"
    assert doc.version == 0


def test_create_todo_on_empty_line_and_out_of_range():
    config = TickmarkConfig(default_list_marker="*")
    doc = make_document("")
    result = create_todo(doc, 0, config)
    assert doc.lines == ["* □"]
    assert result.item_id == "0:0"
    assert not create_todo(doc, 5).ok


def test_cascade_over_hundreds_of_todos_is_fast():
    lines = ["- □ root"] + [f"  - □ child {i} @priority(high)" for i in range(300)]
    doc = make_document(*lines)

    start_time = time.time()
    result = set_todo_state(doc, "0:0", TodoState.CHECKED)
    processing_time = time.time() - start_time

    assert result.ok
    assert len(result.changes) == 301
    assert all("✔" in line for line in doc.lines)
    assert doc.lines[300] == "  - ✔ child 299 @priority(high)"
    assert processing_time < 0.5, f"Cascade over 301 todos took {processing_time:.3f}s (should be < 0.5s)"
