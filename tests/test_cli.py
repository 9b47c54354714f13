# tests/test_cli.py
"""
Tests for the Draftline command-line interface (CLI).

Scope
-----
1.  **Command Registration**: `--help` lists the commands.
2.  **Round Trip**: create, save, autosave, history, restore, prune and list
    against a throwaway SQLite file passed with `--db`.
3.  **Structured Fields**: `set-field` merges one key of a JSON document.
4.  **Error Handling**: unknown ids exit with code 1 and a readable message.

We use `typer.testing.CliRunner` to invoke the app in-process.
"""

from __future__ import annotations

import json
import re
from pathlib import Path

import pytest
from typer.testing import CliRunner

from draftline.cli import app
from draftline.core.store.sqlite import SQLiteStore


@pytest.fixture  # type: ignore[misc]
def runner() -> CliRunner:
    """Create a fresh CliRunner for each test."""
    return CliRunner()


@pytest.fixture  # type: ignore[misc]
def db(tmp_path: Path) -> str:
    return str(tmp_path / "cli.db")


def _create(runner: CliRunner, db: str, *args: str) -> str:
    result = runner.invoke(app, ["create", *args, "--db", db])
    assert result.exit_code == 0, f"create failed: {result.output}"
    match = re.search(r"Created (\S+) \(v1\)", result.output)
    assert match, result.output
    return match.group(1)


def test_cli_help_shows_usage(runner: CliRunner) -> None:
    """Invoking --help should print usage instructions and exit 0."""
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0, f"Help failed: {result.output}"
    assert "Draftline" in result.output
    for command in ("create", "save", "history", "restore", "set-field"):
        assert command in result.output


def test_save_history_restore_round_trip(runner: CliRunner, db: str) -> None:
    doc_id = _create(runner, db, "Plan", "--content", "first", "--owner", "alice")

    saved = runner.invoke(app, ["save", doc_id, "--content", "second", "--db", db])
    assert saved.exit_code == 0, saved.output
    assert "v2" in saved.output

    store = SQLiteStore(db)
    try:
        v1 = store.list_snapshots(doc_id)[0]
    finally:
        store.close()

    restored = runner.invoke(app, ["restore", v1.id, "--db", db])
    assert restored.exit_code == 0, restored.output
    assert "v3" in restored.output

    history = runner.invoke(app, ["history", doc_id, "--db", db])
    assert history.exit_code == 0, history.output
    assert "restore" in history.output

    shown = runner.invoke(app, ["show", doc_id, "--db", db])
    assert shown.exit_code == 0
    assert "first" in shown.output

    listed = runner.invoke(app, ["list", "--owner", "alice", "--db", db])
    assert doc_id in listed.output


def test_autosave_updates_in_place(runner: CliRunner, db: str) -> None:
    doc_id = _create(runner, db, "Plan", "--content", "a")

    result = runner.invoke(app, ["autosave", doc_id, "--content", "ab", "--db", db])
    assert result.exit_code == 0, result.output
    assert "Updated v1" in result.output


def test_title_only_save_keeps_content(runner: CliRunner, db: str) -> None:
    doc_id = _create(runner, db, "Plan", "--content", "precious text")

    saved = runner.invoke(app, ["save", doc_id, "--title", "Plan v2", "--db", db])
    assert saved.exit_code == 0, saved.output
    autosaved = runner.invoke(app, ["autosave", doc_id, "--title", "Plan v3", "--db", db])
    assert autosaved.exit_code == 0, autosaved.output

    store = SQLiteStore(db)
    try:
        current = store.current_snapshot(doc_id)
    finally:
        store.close()
    assert current is not None
    assert current.version == 2
    assert current.payload.title == "Plan v3"
    assert current.payload.content == "precious text"


def test_set_field_on_json_document(runner: CliRunner, db: str) -> None:
    content = json.dumps({"title": "Acme", "problem": ""})
    doc_id = _create(runner, db, "Acme", "--json", "--content", content)

    result = runner.invoke(app, ["set-field", doc_id, "Problem", "No budget", "--db", db])
    assert result.exit_code == 0, result.output

    store = SQLiteStore(db)
    try:
        current = store.current_snapshot(doc_id)
    finally:
        store.close()
    assert current is not None
    assert json.loads(current.payload.content) == {"title": "Acme", "problem": "No budget"}


def test_prune_keeps_latest(runner: CliRunner, db: str) -> None:
    doc_id = _create(runner, db, "Plan")
    for content in ("b", "c", "d"):
        runner.invoke(app, ["save", doc_id, "--content", content, "--db", db])

    result = runner.invoke(app, ["prune", doc_id, "--keep", "2", "--db", db])
    assert result.exit_code == 0, result.output
    assert "Pruned 2" in result.output


def test_unknown_document_exits_with_error(runner: CliRunner, db: str) -> None:
    result = runner.invoke(app, ["show", "ghost", "--db", db])
    assert result.exit_code == 1
    assert "not found" in result.output
