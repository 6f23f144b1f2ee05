from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional

import typer

from tickmark_core.config import ConfigLoader, TickmarkConfig
from tickmark_core.convert import to_glyphs, to_markdown
from tickmark_core.document import Document
from tickmark_core.errors import ConfigError

# Global variables set by the root callback
_global_config_file: Optional[Path] = None
_explicit_log_level: Optional[str] = None

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def set_global_config_file(config_file: Optional[Path]) -> None:
    """Set the global config file path for use by utility functions."""
    global _global_config_file
    _global_config_file = config_file.resolve() if config_file else None


def get_global_config_file() -> Optional[Path]:
    """Get the global config file path if set."""
    return _global_config_file


def configure_stdio() -> None:
    """Make glyph output robust on Windows consoles with a non-UTF8 encoding."""
    if os.name != "nt":
        return

    for stream in (sys.stdout, sys.stderr):
        reconfigure = getattr(stream, "reconfigure", None)
        if reconfigure is not None:
            reconfigure(errors="replace")


def set_log_level(level: Optional[str]) -> None:
    """Remember an explicit --log-level; it wins over the config file."""
    global _explicit_log_level
    _explicit_log_level = level
    if level:
        configure_logging(level)


def configure_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        raise typer.BadParameter(f"Unknown log level: {level}")
    logging.basicConfig(level=numeric, format=LOG_FORMAT, force=True)


def load_config(document_path: Optional[Path] = None) -> TickmarkConfig:
    """Resolve config: explicit --config-file, else tickmark.toml found above the document."""
    config_file = get_global_config_file()
    if config_file is None and document_path is not None:
        config_file = ConfigLoader.find_config_file(document_path)
    try:
        config = ConfigLoader.load(config_file)
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=2)
    if _explicit_log_level is None:
        configure_logging(config.log.level)
    return config


def read_document(path: Path, config: TickmarkConfig) -> Document:
    """Read a markdown file and switch its checkboxes to the glyph form."""
    if not path.exists():
        typer.echo(f"Error: File not found: {path}", err=True)
        raise typer.Exit(code=1)
    document = Document.from_text(path.read_text(encoding="utf-8"), name=str(path))
    lines, changed = to_glyphs(document.lines, config.todo_markers)
    if changed:
        document.lines = lines
    return document


def write_document(path: Path, document: Document, config: TickmarkConfig) -> None:
    """Write the document back in the persisted checkbox form."""
    lines, _ = to_markdown(document.lines, config.todo_markers)
    persisted = Document(lines, trailing_newline=document.trailing_newline, name=document.name)
    path.write_text(persisted.to_text(), encoding="utf-8")
