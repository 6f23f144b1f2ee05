"""Pydantic models for todo items and their building blocks."""

from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TodoState(str, Enum):
    """Todo item state."""

    UNCHECKED = "unchecked"
    CHECKED = "checked"

    def toggled(self) -> "TodoState":
        return TodoState.CHECKED if self is TodoState.UNCHECKED else TodoState.UNCHECKED


class ListMarkerKind(str, Enum):
    """List marker class of a list item."""

    ORDERED = "ordered"  # 1. / 1)
    UNORDERED = "unordered"  # - + *


class Severity(str, Enum):
    """Diagnostic severity of a lint issue."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    HINT = "hint"


class Position(BaseModel):
    """Zero-indexed row and character column."""

    row: int = Field(..., ge=0)
    column: int = Field(..., ge=0, description="Column in characters, not bytes")

    model_config = ConfigDict(frozen=True)

    def as_tuple(self) -> Tuple[int, int]:
        return (self.row, self.column)

    def __lt__(self, other: "Position") -> bool:
        return self.as_tuple() < other.as_tuple()

    def __le__(self, other: "Position") -> bool:
        return self.as_tuple() <= other.as_tuple()

    def __gt__(self, other: "Position") -> bool:
        return self.as_tuple() > other.as_tuple()

    def __ge__(self, other: "Position") -> bool:
        return self.as_tuple() >= other.as_tuple()

    def to_byte(self, line: str) -> int:
        """UTF-8 byte column of this position within ``line``."""
        from .position import char_to_byte_col

        return char_to_byte_col(line, self.column)

    @classmethod
    def from_byte(cls, line: str, row: int, byte_col: int) -> "Position":
        from .position import byte_to_char_col

        return cls(row=row, column=byte_to_char_col(line, byte_col))


class Range(BaseModel):
    """Half-open range; ``end`` points one past the last included character."""

    start: Position
    end: Position

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_order(self) -> "Range":
        if self.end < self.start:
            raise ValueError(f"Range end {self.end.as_tuple()} precedes start {self.start.as_tuple()}")
        return self

    @classmethod
    def of(cls, start_row: int, start_col: int, end_row: int, end_col: int) -> "Range":
        return cls(
            start=Position(row=start_row, column=start_col),
            end=Position(row=end_row, column=end_col),
        )

    def contains_position(self, pos: Position) -> bool:
        return self.start <= pos < self.end

    def contains_range(self, other: "Range") -> bool:
        return self.start <= other.start and other.end <= self.end

    def contains_row(self, row: int) -> bool:
        return self.start.row <= row <= self.end.row


class TodoMarker(BaseModel):
    """The glyph or bracket checkbox that signals a todo's state."""

    glyph: str = Field(..., description="Marker text as found, e.g. '□', '✔', '[ ]', '[x]'")
    position: Position


class ListMarker(BaseModel):
    """The list marker (- + * 1. 1)) in front of a list item."""

    kind: ListMarkerKind
    text: str
    column: int = Field(..., ge=0)


class MetadataEntry(BaseModel):
    """Single ``@tag(value)`` annotation."""

    tag: str
    value: str
    alias_for: Optional[str] = Field(None, description="Canonical tag name if ``tag`` is an alias")
    range: Range
    position_in_line: int = Field(..., ge=0)

    @property
    def canonical_tag(self) -> str:
        return self.alias_for or self.tag


class MetadataSet(BaseModel):
    """Metadata entries in scan order plus a last-tag-wins lookup."""

    entries: List[MetadataEntry] = Field(default_factory=list)
    by_tag: Dict[str, MetadataEntry] = Field(default_factory=dict)

    def add(self, entry: MetadataEntry) -> None:
        self.entries.append(entry)
        self.by_tag[entry.tag] = entry
        if entry.alias_for:
            self.by_tag[entry.alias_for] = entry

    def merge(self, other: "MetadataSet") -> None:
        for entry in other.entries:
            self.add(entry)

    def get(self, tag: str) -> Optional[MetadataEntry]:
        return self.by_tag.get(tag)

    def __bool__(self) -> bool:
        return bool(self.entries)


class TodoItem(BaseModel):
    """A list item whose leading content is a todo marker."""

    id: str = Field(..., description="Structural node identity, stable within one discovery pass")
    range: Range
    state: TodoState
    marker: TodoMarker
    list_marker: ListMarker
    content_column: int = Field(..., ge=0)
    text: str = Field(..., description="First line of the item")
    metadata: MetadataSet = Field(default_factory=MetadataSet)
    parent_id: Optional[str] = None
    children: List[str] = Field(default_factory=list)

    @property
    def row(self) -> int:
        return self.range.start.row


class StateChange(BaseModel):
    """One entry of a smart-toggle change set."""

    item_id: str
    old_state: TodoState
    new_state: TodoState

    model_config = ConfigDict(frozen=True)


class TextEdit(BaseModel):
    """Replace the text inside ``range`` with ``lines`` (a diff hunk)."""

    range: Range
    lines: List[str]

    model_config = ConfigDict(frozen=True)

    @classmethod
    def replace(cls, row: int, start_col: int, end_col: int, text: str) -> "TextEdit":
        return cls(range=Range.of(row, start_col, row, end_col), lines=[text])
