"""Metadata extraction for ``@tag(value)`` annotations."""

import logging
import re
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from .config import MetadataTagConfig, TickmarkConfig
from .models import MetadataEntry, MetadataSet, Range, TodoItem

logger = logging.getLogger(__name__)

# Letters, digits, hyphen, underscore; must be followed directly by "("
_TAG_RE = re.compile(r"[A-Za-z0-9_-]+(?=\()")

MetadataObserver = Callable[[TodoItem, MetadataEntry], None]


class MetadataSchema:
    """Canonical tag names, their aliases and ordered add/remove observers."""

    def __init__(self, tags: Optional[Mapping[str, MetadataTagConfig]] = None) -> None:
        self._tags: Dict[str, MetadataTagConfig] = {}
        self._aliases: Dict[str, str] = {}
        self._on_add: Dict[str, List[MetadataObserver]] = {}
        self._on_remove: Dict[str, List[MetadataObserver]] = {}
        for name, props in (tags or {}).items():
            self.register(name, props)

    @classmethod
    def from_config(cls, config: TickmarkConfig) -> "MetadataSchema":
        return cls(config.metadata)

    def register(self, name: str, props: Optional[MetadataTagConfig] = None) -> None:
        """Register a canonical tag. A repeated alias is taken over by the latest tag."""
        props = props or MetadataTagConfig()
        self._tags[name] = props
        for alias in props.aliases:
            previous = self._aliases.get(alias)
            if previous is not None and previous != name:
                logger.debug(f"Alias '{alias}' reassigned from '{previous}' to '{name}'")
            self._aliases[alias] = name

    @property
    def tags(self) -> Dict[str, MetadataTagConfig]:
        return dict(self._tags)

    def alias_for(self, tag: str) -> Optional[str]:
        """Canonical name for an alias; ``None`` for canonical or unknown tags."""
        if tag in self._tags:
            return None
        return self._aliases.get(tag)

    def canonical(self, tag: str) -> str:
        return self.alias_for(tag) or tag

    def names_for(self, tag: str) -> Tuple[str, ...]:
        """The canonical name of ``tag`` followed by all of its aliases."""
        canonical = self.canonical(tag)
        aliases = tuple(a for a, c in self._aliases.items() if c == canonical)
        return (canonical,) + aliases

    def tag_config(self, tag: str) -> Optional[MetadataTagConfig]:
        return self._tags.get(self.canonical(tag))

    def sort_order(self, tag: str) -> int:
        props = self.tag_config(tag)
        return props.sort_order if props else 100

    def observe(
        self,
        tag: str,
        on_add: Optional[MetadataObserver] = None,
        on_remove: Optional[MetadataObserver] = None,
    ) -> None:
        """Append observers for a canonical tag. They run in registration order."""
        canonical = self.canonical(tag)
        if on_add is not None:
            self._on_add.setdefault(canonical, []).append(on_add)
        if on_remove is not None:
            self._on_remove.setdefault(canonical, []).append(on_remove)

    def notify_added(self, item: TodoItem, entry: MetadataEntry) -> None:
        for observer in self._on_add.get(self.canonical(entry.tag), []):
            observer(item, entry)

    def notify_removed(self, item: TodoItem, entry: MetadataEntry) -> None:
        for observer in self._on_remove.get(self.canonical(entry.tag), []):
            observer(item, entry)


def _find_value_end(line: str, start: int) -> int:
    """Index of the ``)`` closing a value that begins at ``start``, or -1.

    Backslash escapes the next character; nested parentheses must balance.
    """
    depth = 0
    i = start
    while i < len(line):
        ch = line[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "(":
            depth += 1
        elif ch == ")":
            if depth == 0:
                return i
            depth -= 1
        i += 1
    return -1


def iter_tag_spans(line: str) -> Iterator[Tuple[int, int, str, str]]:
    """Yield ``(start, end, tag, value)`` for each ``@tag(value)`` left to right.

    ``end`` is exclusive; ``value`` has surrounding whitespace trimmed.
    """
    pos = 0
    while True:
        at = line.find("@", pos)
        if at == -1:
            return
        match = _TAG_RE.match(line, at + 1)
        if not match:
            pos = at + 1
            continue
        value_start = match.end() + 1
        close = _find_value_end(line, value_start)
        if close == -1:
            pos = at + 1
            continue
        yield at, close + 1, match.group(0), line[value_start:close].strip()
        pos = close + 1


def extract_metadata(line: str, row: int, schema: Optional[MetadataSchema] = None) -> MetadataSet:
    """Extract all ``@tag(value)`` annotations from one line.

    Args:
        line: Line text
        row: Zero-indexed row of the line (used for entry ranges)
        schema: Alias resolution; without it every tag is canonical

    Returns:
        MetadataSet with entries in scan order and last-tag-wins ``by_tag``
    """
    metadata = MetadataSet()
    for start, end, tag, value in iter_tag_spans(line):
        entry = MetadataEntry(
            tag=tag,
            value=value,
            alias_for=schema.alias_for(tag) if schema else None,
            range=Range.of(row, start, row, end),
            position_in_line=start,
        )
        metadata.add(entry)
        logger.debug(f"Metadata found: {tag}={value} at [{row},{start}]-[{row},{end}]")
    return metadata


def extract_metadata_lines(
    lines: Sequence[str],
    rows: Sequence[int],
    schema: Optional[MetadataSchema] = None,
) -> MetadataSet:
    """Extract metadata from several rows, merged in row order."""
    merged = MetadataSet()
    for row in rows:
        merged.merge(extract_metadata(lines[row], row, schema))
    return merged
