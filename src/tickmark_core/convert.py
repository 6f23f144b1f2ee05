"""Conversion between the persisted checkbox form and the editable glyph form.

On disk a todo is written as a GitHub-style checkbox (``- [ ] task``,
``- [x] task``); in memory the configured glyphs are used (``- □ task``).
Only list-prefixed checkboxes with exactly one interior character that are
followed by whitespace or end of line are converted; spacing variants such as
``[  ]`` or ``[ ]task`` are left untouched.

The round trip is lossless except for an upper-case ``[X]``: it is read as
checked and written back as ``[x]``.
"""

import logging
import re
from typing import List, Sequence, Tuple

from .config import TodoMarkers

logger = logging.getLogger(__name__)

_LIST_PREFIX = r"^(?P<prefix>[ \t>]*(?:[-+*]|\d{1,9}[.)])[ \t]+)"

_UNCHECKED_BOX = re.compile(_LIST_PREFIX + r"\[ \](?=\s|$)")
_CHECKED_BOX = re.compile(_LIST_PREFIX + r"\[[xX]\](?=\s|$)")


def _glyph_pattern(glyph: str) -> "re.Pattern[str]":
    return re.compile(_LIST_PREFIX + re.escape(glyph) + r"(?=\s|$)")


def _convert(lines: Sequence[str], rules: Sequence[Tuple["re.Pattern[str]", str]]) -> Tuple[List[str], bool]:
    result: List[str] = []
    changed = False
    for line in lines:
        new_line = line
        for pattern, replacement in rules:
            new_line, count = pattern.subn(lambda m: m.group("prefix") + replacement, new_line, count=1)
            if count:
                break
        changed = changed or new_line != line
        result.append(new_line)
    return result, changed


def to_glyphs(lines: Sequence[str], markers: TodoMarkers) -> Tuple[List[str], bool]:
    """Convert ``[ ]``/``[x]``/``[X]`` checkboxes to glyphs.

    Returns:
        (converted lines, whether anything changed)
    """
    converted, changed = _convert(
        lines,
        [(_UNCHECKED_BOX, markers.unchecked), (_CHECKED_BOX, markers.checked)],
    )
    if changed:
        logger.debug("Converted markdown checkboxes to glyphs")
    return converted, changed


def to_markdown(lines: Sequence[str], markers: TodoMarkers) -> Tuple[List[str], bool]:
    """Convert glyphs back to ``[ ]``/``[x]`` checkboxes."""
    converted, changed = _convert(
        lines,
        [(_glyph_pattern(markers.unchecked), "[ ]"), (_glyph_pattern(markers.checked), "[x]")],
    )
    if changed:
        logger.debug("Converted glyphs to markdown checkboxes")
    return converted, changed
