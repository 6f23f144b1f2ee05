"""Tests for todo discovery, lookup and counting."""

from hypothesis import given, strategies as st

from conftest import make_document
from tickmark_core.config import TickmarkConfig, TodoMarkers
from tickmark_core.discovery import (
    discover_document,
    discover_todos,
    find_todo_at,
    match_todo_marker,
    sorted_todos,
    todo_counts,
)
from tickmark_core.document import Document
from tickmark_core.models import TodoState
from tickmark_core.syntax import parse_tree


def test_three_top_level_todos():
    doc = Document.from_text("- [ ] Task1\n- [ ] Task2\n- [ ] Task3\n")
    todo_map = discover_document(doc)
    assert len(todo_map) == 3
    for item in todo_map.values():
        assert item.state is TodoState.UNCHECKED
        assert item.parent_id is None
        assert item.children == []


def test_nested_todos(nested_document):
    todo_map = discover_document(nested_document)
    parent = todo_map["0:0"]
    assert parent.children == ["1:2", "2:2", "3:2"]
    assert all(todo_map[child].parent_id == "0:0" for child in parent.children)
    assert parent.marker.glyph == "□"
    assert parent.marker.position.column == 2
    assert parent.content_column == 2


def test_plain_list_items_are_skipped_but_nesting_kept():
    doc = make_document("- □ A", "  - plain", "    - ✔ B")
    todo_map = discover_document(doc)
    assert list(todo_map) == ["0:0", "2:4"]
    assert todo_map["2:4"].parent_id == "0:0"
    assert todo_map["2:4"].state is TodoState.CHECKED
    assert todo_map["0:0"].children == ["2:4"]


def test_bracket_and_glyph_forms_both_recognized():
    doc = make_document("- [ ] open", "- [x] done", "- [X] done too", "- ✔ glyph done")
    states = [item.state for item in sorted_todos(discover_document(doc))]
    assert states == [TodoState.UNCHECKED, TodoState.CHECKED, TodoState.CHECKED, TodoState.CHECKED]


def test_marker_must_be_followed_by_whitespace():
    markers = TodoMarkers()
    assert match_todo_marker("□x", markers) is None
    assert match_todo_marker("[ ]x", markers) is None
    assert match_todo_marker("[  ] x", markers) is None
    assert match_todo_marker("✔", markers) == (TodoState.CHECKED, "✔")
    assert match_todo_marker("[x] y", markers) == (TodoState.CHECKED, "[x]")


def test_custom_markers():
    config = TickmarkConfig(todo_markers=TodoMarkers(unchecked="○", checked="●"))
    doc = make_document("- ○ a", "- ● b", "- □ not a todo here")
    todo_map = discover_document(doc, config)
    assert [item.state for item in sorted_todos(todo_map)] == [TodoState.UNCHECKED, TodoState.CHECKED]


def test_metadata_collected_from_own_lines_only():
    doc = make_document(
        "- □ Parent @priority(high)",
        "  continued @started(today)",
        "  - □ Child @done(now)",
    )
    todo_map = discover_document(doc)
    parent = todo_map["0:0"]
    assert [e.tag for e in parent.metadata.entries] == ["priority", "started"]
    assert todo_map["2:2"].metadata.get("done").value == "now"


def test_unusual_indent_jump_nests_under_nearest_ancestor():
    doc = make_document("- □ Parent", "     - □ Deep child")
    todo_map = discover_document(doc)
    assert todo_map["1:5"].parent_id == "0:0"


def test_find_todo_at_respects_depth():
    doc = make_document(
        "- □ Parent",
        "  continued",
        "  - plain child",
        "    - plain grandchild",
        "",
    )
    tree = parse_tree(doc.lines)
    todo_map = discover_todos(tree, doc.lines)
    assert find_todo_at(todo_map, tree, doc.lines, 0).id == "0:0"
    assert find_todo_at(todo_map, tree, doc.lines, 1).id == "0:0"
    assert find_todo_at(todo_map, tree, doc.lines, 2).id == "0:0"
    assert find_todo_at(todo_map, tree, doc.lines, 3) is None
    assert find_todo_at(todo_map, tree, doc.lines, 3, max_depth=2).id == "0:0"
    assert find_todo_at(todo_map, tree, doc.lines, 4) is None
    assert find_todo_at(todo_map, tree, doc.lines, 1, max_depth=0) is None


def test_todo_counts():
    doc = make_document("- □ A", "  - ✔ B", "    - ✔ C", "  - □ D")
    todo_map = discover_document(doc)
    assert todo_counts(todo_map, "0:0") == (1, 2)
    assert todo_counts(todo_map, "0:0", recursive=True) == (2, 3)


_items = st.lists(
    st.tuples(
        st.sampled_from([0, 2, 4]),
        st.sampled_from(["-", "*"]),
        st.sampled_from(["[ ]", "[x]", "□", "✔", ""]),
        st.text(alphabet="abc ", max_size=6),
    ),
    min_size=1,
    max_size=12,
)


def _render(items):
    lines = []
    for idx, (indent, bullet, box, text) in enumerate(items):
        indent = 0 if idx == 0 else indent
        lines.append(f"{' ' * indent}{bullet} {box} x{text}")
    return lines


@given(_items)
def test_discovery_is_deterministic(items) -> None:
    doc = Document(_render(items))
    assert discover_document(doc) == discover_document(doc)


@given(_items)
def test_item_ranges_contain_marker_and_children(items) -> None:
    doc = Document(_render(items))
    todo_map = discover_document(doc)
    for item in todo_map.values():
        assert item.range.contains_position(item.marker.position)
        for child_id in item.children:
            assert item.range.contains_range(todo_map[child_id].range)
            assert todo_map[child_id].parent_id == item.id
