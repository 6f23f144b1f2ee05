import json
from pathlib import Path

from typer.testing import CliRunner

from tickmark_cli.cli import app

runner = CliRunner()


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "todo.md"
    path.write_text(text, encoding="utf-8")
    return path


def test_help_lists_commands():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0, result.output
    for name in ("todos", "lint", "check", "uncheck", "toggle", "convert"):
        assert name in result.output


def test_todos_json(tmp_path: Path):
    path = _write(tmp_path, "- [ ] Task1 @priority(high)\n  - [x] Sub\n- [ ] Task2\n")
    result = runner.invoke(app, ["todos", str(path), "--format", "json"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert [item["id"] for item in data] == ["0:0", "1:2", "2:0"]
    assert data[0]["children"] == ["1:2"]
    assert data[1]["state"] == "checked"
    assert data[0]["metadata"]["entries"][0]["value"] == "high"


def test_todos_table(tmp_path: Path):
    path = _write(tmp_path, "- [ ] Task1\n")
    result = runner.invoke(app, ["todos", str(path)])
    assert result.exit_code == 0, result.output
    assert "0:0" in result.output


def test_check_writes_persisted_form(tmp_path: Path):
    path = _write(tmp_path, "- [ ] Parent\n  - [ ] Child\n")
    result = runner.invoke(app, ["check", str(path), "0:0"])
    assert result.exit_code == 0, result.output
    assert path.read_text(encoding="utf-8") == "- [x] Parent\n  - [x] Child\n"


def test_toggle_by_row(tmp_path: Path):
    path = _write(tmp_path, "- [x] Done\n- [ ] Open\n")
    result = runner.invoke(app, ["toggle", str(path), "--row", "1"])
    assert result.exit_code == 0, result.output
    assert path.read_text(encoding="utf-8") == "- [ ] Done\n- [ ] Open\n"


def test_uncheck_unknown_id_fails(tmp_path: Path):
    path = _write(tmp_path, "- [x] Done\n")
    result = runner.invoke(app, ["uncheck", str(path), "9:0"])
    assert result.exit_code == 1
    assert path.read_text(encoding="utf-8") == "- [x] Done\n"


def test_lint_reports_and_fixes(tmp_path: Path):
    path = _write(tmp_path, "- [ ] Parent\n - [ ] Bad child\n")
    result = runner.invoke(app, ["lint", str(path)])
    assert result.exit_code == 1
    assert "INDENT_SHALLOW" in result.output

    result = runner.invoke(app, ["lint", str(path), "--fix"])
    assert result.exit_code == 0, result.output
    assert path.read_text(encoding="utf-8") == "- [ ] Parent\n  - [ ] Bad child\n"


def test_convert_to_glyphs_stdout(tmp_path: Path):
    path = _write(tmp_path, "- [ ] a\n- [x] b\n")
    result = runner.invoke(app, ["convert", str(path), "--to", "glyphs", "--stdout"])
    assert result.exit_code == 0, result.output
    assert result.stdout == "- □ a\n- ✔ b\n"
    assert path.read_text(encoding="utf-8") == "- [ ] a\n- [x] b\n"


def test_create_and_tag(tmp_path: Path):
    path = _write(tmp_path, "Buy milk\n")
    result = runner.invoke(app, ["create", str(path), "--row", "1"])
    assert result.exit_code == 0, result.output
    assert path.read_text(encoding="utf-8") == "- [ ] Buy milk\n"

    result = runner.invoke(app, ["tag", str(path), "0:0", "priority", "high"])
    assert result.exit_code == 0, result.output
    assert path.read_text(encoding="utf-8") == "- [ ] Buy milk @priority(high)\n"


def test_config_file_markers(tmp_path: Path):
    config = tmp_path / "custom.toml"
    config.write_text('[smart_toggle]\ncheck_down = "none"\n', encoding="utf-8")
    path = _write(tmp_path, "- [ ] Parent\n  - [ ] Child\n")
    result = runner.invoke(app, ["--config-file", str(config), "check", str(path), "0:0"])
    assert result.exit_code == 0, result.output
    assert path.read_text(encoding="utf-8") == "- [x] Parent\n  - [ ] Child\n"


def test_missing_file(tmp_path: Path):
    result = runner.invoke(app, ["todos", str(tmp_path / "missing.md")])
    assert result.exit_code == 1
