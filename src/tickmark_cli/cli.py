from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from tickmark_core.convert import to_glyphs, to_markdown
from tickmark_core.discovery import discover_document, sorted_todos, todo_counts
from tickmark_core.errors import TransactionOpFailure
from tickmark_core.models import TodoState
from tickmark_ops import (
    add_metadata,
    create_todo,
    fix_document,
    lint_document,
    remove_metadata,
    set_todo_state,
    toggle_todo,
    toggle_todo_at,
)

from .util import (
    configure_stdio,
    load_config,
    read_document,
    set_global_config_file,
    set_log_level,
    write_document,
)

app = typer.Typer(help="tickmark: Hierarchical todo lists in markdown")
console = Console()


@app.callback()
def _init(
    config_file: Optional[Path] = typer.Option(
        None,
        "--config-file",
        help="Path to a tickmark.toml config file",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="debug|info|warning|error (default: config log.level)"
    ),
):
    configure_stdio()
    set_log_level(log_level)
    set_global_config_file(config_file)


@app.command()
def todos(
    path: Path = typer.Argument(..., help="Markdown file"),
    output_format: str = typer.Option("plain", "--format", help="plain|json"),
):
    """List the todo items of a file."""
    config = load_config(path)
    document = read_document(path, config)
    todo_map = discover_document(document, config)
    items = sorted_todos(todo_map)

    if output_format == "json":
        data = [item.model_dump(mode="json") for item in items]
        typer.echo(json.dumps(data, ensure_ascii=False))
        return

    if not items:
        console.print("[yellow]No todo items found[/yellow]")
        return

    table = Table(title=f"Todos in {path.name}")
    table.add_column("ID", style="cyan")
    table.add_column("State", style="green")
    table.add_column("Done", style="magenta")
    table.add_column("Text", style="white")
    table.add_column("Metadata", style="dim")
    for item in items:
        done, total = todo_counts(todo_map, item.id)
        meta = " ".join(f"{e.tag}={e.value}" for e in item.metadata.entries)
        table.add_row(
            item.id,
            item.state.value,
            f"{done}/{total}" if total else "",
            item.text.strip(),
            meta,
        )
    console.print(table)


@app.command()
def lint(
    path: Path = typer.Argument(..., help="Markdown file"),
    fix: bool = typer.Option(False, "--fix", help="Apply available fixes and write the file"),
    verbose: bool = typer.Option(False, "--verbose", help="Include validator detail in messages"),
):
    """Check list indentation. Exits 1 when issues remain."""
    config = load_config(path)
    if verbose:
        config = config.model_copy(update={"linter": config.linter.model_copy(update={"verbose": True})})
    document = read_document(path, config)
    issues = lint_document(document, config=config)

    if fix and issues:
        fixed = fix_document(document, issues, config)
        if fixed:
            write_document(path, document, config)
            console.print(f"[green]✓ Applied {fixed} fix(es)[/green]")
        issues = lint_document(document, config=config)

    if not issues:
        console.print("[green]✓ No issues[/green]")
        return

    for issue in issues:
        console.print(
            f"{path}:{issue.row + 1}:{issue.column + 1}: "
            f"[yellow]{issue.severity.value}[/yellow] {issue.code} {issue.message}"
        )
    raise typer.Exit(code=1)


def _set_state(path: Path, item_id: Optional[str], row: Optional[int], target: Optional[TodoState]) -> None:
    config = load_config(path)
    document = read_document(path, config)
    try:
        if item_id is not None:
            if target is None:
                result = toggle_todo(document, item_id, config)
            else:
                result = set_todo_state(document, item_id, target, config)
        elif row is not None:
            result = toggle_todo_at(document, row - 1, target, config)
        else:
            typer.echo("Error: Pass an item ID or --row", err=True)
            raise typer.Exit(code=2)
    except TransactionOpFailure as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=3)

    if not result.ok:
        typer.echo(f"Error: {result.error}", err=True)
        raise typer.Exit(code=1)

    if result.changes:
        write_document(path, document, config)
    for change in result.changes:
        typer.echo(f"✓ {change.item_id}: {change.old_state.value} -> {change.new_state.value}")


@app.command()
def check(
    path: Path = typer.Argument(..., help="Markdown file"),
    item_id: Optional[str] = typer.Argument(None, help="Todo ID (row:column), see `tickmark todos`"),
    row: Optional[int] = typer.Option(None, "--row", help="1-based line number"),
):
    """Mark a todo checked (with smart-toggle cascade)."""
    _set_state(path, item_id, row, TodoState.CHECKED)


@app.command()
def uncheck(
    path: Path = typer.Argument(..., help="Markdown file"),
    item_id: Optional[str] = typer.Argument(None, help="Todo ID (row:column)"),
    row: Optional[int] = typer.Option(None, "--row", help="1-based line number"),
):
    """Mark a todo unchecked (with smart-toggle cascade)."""
    _set_state(path, item_id, row, TodoState.UNCHECKED)


@app.command()
def toggle(
    path: Path = typer.Argument(..., help="Markdown file"),
    item_id: Optional[str] = typer.Argument(None, help="Todo ID (row:column)"),
    row: Optional[int] = typer.Option(None, "--row", help="1-based line number"),
):
    """Flip a todo's state (with smart-toggle cascade)."""
    _set_state(path, item_id, row, None)


@app.command()
def create(
    path: Path = typer.Argument(..., help="Markdown file"),
    row: int = typer.Option(..., "--row", help="1-based line number"),
):
    """Turn a line into an unchecked todo."""
    config = load_config(path)
    document = read_document(path, config)
    result = create_todo(document, row - 1, config)
    if not result.ok:
        typer.echo(f"Error: {result.error}", err=True)
        raise typer.Exit(code=1)
    if result.created:
        write_document(path, document, config)
        typer.echo(f"✓ Created {result.item_id}")
    else:
        typer.echo(f"{result.item_id} is already a todo")


@app.command()
def tag(
    path: Path = typer.Argument(..., help="Markdown file"),
    item_id: str = typer.Argument(..., help="Todo ID (row:column)"),
    name: str = typer.Argument(..., help="Tag name, e.g. priority"),
    value: str = typer.Argument("", help="Tag value (configured default when empty)"),
    remove: bool = typer.Option(False, "--remove", help="Remove the tag instead"),
):
    """Add, update or remove an @tag(value) on a todo."""
    config = load_config(path)
    document = read_document(path, config)
    if remove:
        result = remove_metadata(document, item_id, name, config=config)
    else:
        result = add_metadata(document, item_id, name, value, config=config)
    if not result.ok:
        typer.echo(f"Error: {result.error}", err=True)
        raise typer.Exit(code=1)
    write_document(path, document, config)
    action = "Removed" if remove else "Set"
    for entry in result.entries:
        typer.echo(f"✓ {action} @{entry.tag}({entry.value}) on {item_id}")


@app.command()
def convert(
    path: Path = typer.Argument(..., help="Markdown file"),
    to: str = typer.Option("markdown", "--to", help="glyphs|markdown"),
    stdout: bool = typer.Option(False, "--stdout", help="Print instead of writing the file"),
):
    """Convert between [ ]/[x] checkboxes and the configured glyphs."""
    if to not in ("glyphs", "markdown"):
        typer.echo(f"Error: --to must be glyphs or markdown, got {to}", err=True)
        raise typer.Exit(code=2)
    config = load_config(path)
    if not path.exists():
        typer.echo(f"Error: File not found: {path}", err=True)
        raise typer.Exit(code=1)
    text = path.read_text(encoding="utf-8")
    lines = text.split("\n")
    convert_fn = to_glyphs if to == "glyphs" else to_markdown
    converted, changed = convert_fn(lines, config.todo_markers)
    output = "\n".join(converted)
    if stdout:
        typer.echo(output, nl=False)
        return
    if changed:
        path.write_text(output, encoding="utf-8")
        typer.echo(f"✓ Converted {path} to {to}")
    else:
        typer.echo("Nothing to convert")


def main():
    app()
