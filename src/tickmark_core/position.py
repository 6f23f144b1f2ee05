"""Character/byte coordinate helpers.

Columns throughout tickmark are character (code point) offsets into a line.
Hosts that address text in UTF-8 bytes convert at the boundary with the helpers
below; both directions are lossless for any column that falls on a character
boundary.
"""

from typing import List

from .models import Position, Range


def char_to_byte_col(line: str, col: int) -> int:
    """Return the UTF-8 byte offset of character column ``col`` in ``line``.

    Columns past the end of the line are clamped to the line length.
    """
    if col < 0:
        raise ValueError(f"column must be non-negative: {col}")
    return len(line[:col].encode("utf-8"))


def byte_to_char_col(line: str, byte_col: int) -> int:
    """Return the character column of UTF-8 byte offset ``byte_col`` in ``line``.

    Raises:
        ValueError: If ``byte_col`` falls inside a multi-byte character.
    """
    if byte_col < 0:
        raise ValueError(f"byte column must be non-negative: {byte_col}")
    encoded = line.encode("utf-8")
    if byte_col >= len(encoded):
        return len(line)
    try:
        return len(encoded[:byte_col].decode("utf-8"))
    except UnicodeDecodeError as e:
        raise ValueError(f"byte column {byte_col} is not on a character boundary") from e


def to_byte_position(lines: List[str], pos: Position) -> Position:
    line = lines[pos.row] if pos.row < len(lines) else ""
    return Position(row=pos.row, column=char_to_byte_col(line, pos.column))


def from_byte_position(lines: List[str], pos: Position) -> Position:
    line = lines[pos.row] if pos.row < len(lines) else ""
    return Position(row=pos.row, column=byte_to_char_col(line, pos.column))


def ranges_overlap(a: Range, b: Range) -> bool:
    return a.start < b.end and b.start < a.end
