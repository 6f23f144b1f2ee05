"""In-memory document text accessor."""

import logging
from typing import Iterable, List, Optional

from .models import Range, TextEdit
from .position import ranges_overlap

logger = logging.getLogger(__name__)


class Document:
    """Lines of one document plus the ``get_lines``/``set_text`` mutation surface.

    ``version`` increases on every mutation so callers can tell whether a
    previously discovered TodoMap is stale.
    """

    def __init__(self, lines: Optional[Iterable[str]] = None, *, trailing_newline: bool = True, name: str = "") -> None:
        self.lines: List[str] = list(lines or [])
        self.trailing_newline = trailing_newline
        self.name = name
        self.version = 0

    @classmethod
    def from_text(cls, text: str, name: str = "") -> "Document":
        text = text.replace("\r\n", "\n")
        trailing = text.endswith("\n")
        lines = text.split("\n")
        if trailing:
            lines.pop()
        return cls(lines, trailing_newline=trailing, name=name)

    def to_text(self) -> str:
        text = "\n".join(self.lines)
        if self.trailing_newline and self.lines:
            text += "\n"
        return text

    def __len__(self) -> int:
        return len(self.lines)

    def __repr__(self) -> str:
        return f"Document(name={self.name!r}, lines={len(self.lines)}, version={self.version})"

    def line(self, row: int) -> str:
        return self.lines[row] if 0 <= row < len(self.lines) else ""

    def get_lines(self, span: Optional[Range] = None) -> List[str]:
        """Text inside ``span`` (whole document when omitted), one entry per row."""
        if span is None:
            return list(self.lines)
        start, end = span.start, span.end
        if start.row == end.row:
            return [self.line(start.row)[start.column:end.column]]
        result = [self.line(start.row)[start.column:]]
        result.extend(self.line(row) for row in range(start.row + 1, end.row))
        result.append(self.line(end.row)[:end.column])
        return result

    def set_text(self, span: Range, new_lines: List[str]) -> None:
        """Replace the text inside ``span`` with ``new_lines``.

        Raises:
            ValueError: If ``span`` starts beyond the end of the document
        """
        start, end = span.start, span.end
        if start.row > len(self.lines):
            raise ValueError(f"Range starts past end of document: row {start.row} > {len(self.lines)}")
        while len(self.lines) <= end.row:
            self.lines.append("")

        replacement = list(new_lines) or [""]
        prefix = self.lines[start.row][:start.column]
        suffix = self.lines[end.row][end.column:]
        replacement[0] = prefix + replacement[0]
        replacement[-1] = replacement[-1] + suffix
        self.lines[start.row:end.row + 1] = replacement
        self.version += 1

    def apply_edits(self, edits: Iterable[TextEdit]) -> int:
        """Apply edits bottom-up so earlier edits do not shift later ones.

        Returns:
            Number of edits applied

        Raises:
            ValueError: If two edits overlap
        """
        ordered = sorted(edits, key=lambda e: (e.range.start.as_tuple(), e.range.end.as_tuple()), reverse=True)
        for later, earlier in zip(ordered, ordered[1:]):
            if ranges_overlap(later.range, earlier.range):
                raise ValueError(f"Overlapping edits at {earlier.range.start.as_tuple()}")
        for edit in ordered:
            self.set_text(edit.range, edit.lines)
        if ordered:
            logger.debug(f"Applied {len(ordered)} edit(s) to {self!r}")
        return len(ordered)
