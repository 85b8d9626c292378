"""Tests for the command line surface."""

import json

import pytest
from typer.testing import CliRunner

from cli_wrapper import app

runner = CliRunner()


@pytest.fixture
def env(tmp_path):
    return {"INTEROP_DATA_DIR": str(tmp_path / "data"), "INTEROP_LOG_LEVEL": "WARNING"}


def test_modules_lists_builtins(env):
    result = runner.invoke(app, ["modules"], env=env)
    assert result.exit_code == 0
    assert "enex" in result.output
    assert "unavailable" in result.output
    assert "default" in result.output


def test_modules_type_filter(env):
    result = runner.invoke(app, ["modules", "--type", "importer"], env=env)
    assert result.exit_code == 0
    assert all(line.startswith("importer") for line in result.output.strip().splitlines())


def test_import_then_export(env, tmp_path):
    source = tmp_path / "todo.md"
    source.write_text("buy milk", encoding="utf-8")

    result = runner.invoke(app, ["import", str(source)], env=env)
    assert result.exit_code == 0, result.output
    assert "Completed." in result.output

    snapshot = json.loads((tmp_path / "data" / "store.json").read_text(encoding="utf-8"))
    assert [d["title"] for d in snapshot["document"]] == ["todo"]

    out = tmp_path / "out"
    result = runner.invoke(app, ["export", str(out), "--format", "md"], env=env)
    assert result.exit_code == 0, result.output
    assert (out / "todo" / "todo.md").read_text(encoding="utf-8") == "buy milk"


def test_fatal_error_exits_non_zero(env, tmp_path):
    result = runner.invoke(app, ["import", str(tmp_path / "missing.md")], env=env)
    assert result.exit_code == 1
    assert "Cannot find" in result.output


def test_unknown_export_format(env, tmp_path):
    result = runner.invoke(app, ["export", str(tmp_path / "x"), "--format", "pdf"], env=env)
    assert result.exit_code == 1
    assert "pdf" in result.output
