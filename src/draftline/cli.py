# src/draftline/cli.py
"""
Draftline Command Line Interface (CLI).

A thin `typer` + `rich` front end over :class:`VersionManager` and the SQLite
store. Every command opens the database given by ``--db`` (default
``DRAFTLINE_DB_PATH``), runs one operation and closes it again.

Usage
-----
    $ draftline create "Launch plan" --owner alice
    $ draftline save <document-id> --content "First paragraph"
    $ draftline set-field <document-id> problem "Slow onboarding"
    $ draftline history <document-id>
    $ draftline restore <snapshot-id>
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from draftline.core.contracts.document import ContentFormat, DocumentMetadata
from draftline.core.errors import DraftlineError
from draftline.core.settings import load_settings
from draftline.core.store.sqlite import SQLiteStore
from draftline.core.structured import codec
from draftline.core.structured.merge import merge_fields, single_field_update
from draftline.core.versioning.lifecycle import VersionManager

load_dotenv()

app = typer.Typer(
    help="Draftline: versioned documents with session autosave.",
    rich_markup_mode="markdown",
)
console = Console()

DbOption = Annotated[
    Path | None,
    typer.Option("--db", help="SQLite database file (default: DRAFTLINE_DB_PATH)."),
]


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #


@contextmanager
def _manager(db: Path | None) -> Iterator[VersionManager]:
    """Open the store, yield a manager, and turn domain errors into exit code 1."""
    store = SQLiteStore(str(db) if db is not None else load_settings().db_path)
    try:
        yield VersionManager(store)
    except DraftlineError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e
    finally:
        store.close()


def _render_content(content: str, fmt: ContentFormat) -> None:
    if fmt is ContentFormat.JSON:
        console.print(Syntax(content or "{}", "json"))
    elif fmt is ContentFormat.MARKDOWN:
        console.print(Markdown(content))
    else:
        console.print(content)


# --------------------------------------------------------------------------- #
# Commands
# --------------------------------------------------------------------------- #


@app.command()  # type: ignore[misc]
def create(
    title: Annotated[str, typer.Argument(help="Document title.")],
    owner: Annotated[str, typer.Option("--owner", "-o", help="Owner id.")] = "local",
    content: Annotated[str, typer.Option("--content", "-c")] = "",
    json_content: Annotated[
        bool, typer.Option("--json", help="Store content as a flat JSON field map.")
    ] = False,
    db: DbOption = None,
) -> None:
    """Create a document with its initial version."""
    meta = DocumentMetadata(
        content_format=ContentFormat.JSON if json_content else ContentFormat.MARKDOWN
    )
    with _manager(db) as manager:
        doc, snap = manager.create_document(owner, title, content, meta)
    console.print(f"[green]Created[/green] {doc.id} (v{snap.version})")


@app.command()  # type: ignore[misc]
def show(
    document_id: Annotated[str, typer.Argument()],
    db: DbOption = None,
) -> None:
    """Print the current version of a document."""
    with _manager(db) as manager:
        doc = manager.get_document(document_id)
        snap = manager.get_current_snapshot(document_id)
    console.rule(f"[bold]{snap.payload.title}[/bold]  v{snap.version}")
    _render_content(snap.payload.content, doc.metadata.content_format)


@app.command()  # type: ignore[misc]
def save(
    document_id: Annotated[str, typer.Argument()],
    content: Annotated[str | None, typer.Option("--content", "-c")] = None,
    title: Annotated[str | None, typer.Option("--title", "-t")] = None,
    db: DbOption = None,
) -> None:
    """Save a new version (explicit save)."""
    with _manager(db) as manager:
        current = manager.get_current_snapshot(document_id)
        snap = manager.save_draft(
            document_id,
            title or current.payload.title,
            current.payload.content if content is None else content,
        )
    console.print(f"[green]Saved[/green] v{snap.version} ({snap.id})")


@app.command()  # type: ignore[misc]
def autosave(
    document_id: Annotated[str, typer.Argument()],
    content: Annotated[str | None, typer.Option("--content", "-c")] = None,
    title: Annotated[str | None, typer.Option("--title", "-t")] = None,
    db: DbOption = None,
) -> None:
    """Save under the session heuristic (may update the current version in place)."""
    with _manager(db) as manager:
        current = manager.get_current_snapshot(document_id)
        snap, created = manager.autosave(
            document_id,
            title or current.payload.title,
            current.payload.content if content is None else content,
        )
    verb = "Created" if created else "Updated"
    console.print(f"[green]{verb}[/green] v{snap.version} ({snap.id})")


@app.command("set-field")  # type: ignore[misc]
def set_field(
    document_id: Annotated[str, typer.Argument()],
    key: Annotated[str, typer.Argument(help="Field key, matched loosely.")],
    value: Annotated[str, typer.Argument()],
    db: DbOption = None,
) -> None:
    """Set one field of a JSON document and autosave it."""
    with _manager(db) as manager:
        current = manager.get_current_snapshot(document_id)
        fields = codec.loads(current.payload.content)
        merged = merge_fields(fields, single_field_update(key, value))
        if merged == fields:
            console.print("[yellow]No change[/yellow]")
            return
        snap, _ = manager.autosave(document_id, current.payload.title, codec.dumps(merged))
    console.print(f"[green]Set[/green] {key} (v{snap.version})")


@app.command()  # type: ignore[misc]
def history(
    document_id: Annotated[str, typer.Argument()],
    db: DbOption = None,
) -> None:
    """List every version of a document, newest first."""
    with _manager(db) as manager:
        versions = manager.list_versions(document_id)
    table = Table(title=f"History of {document_id}")
    table.add_column("v", justify="right")
    table.add_column("kind")
    table.add_column("origin")
    table.add_column("current")
    table.add_column("created")
    table.add_column("id", style="dim", overflow="fold")
    for snap in versions:
        table.add_row(
            str(snap.version),
            snap.kind.value,
            snap.origin.value,
            "*" if snap.is_current else "",
            snap.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            snap.id,
        )
    console.print(table)


@app.command()  # type: ignore[misc]
def restore(
    snapshot_id: Annotated[str, typer.Argument()],
    db: DbOption = None,
) -> None:
    """Restore a historical version as a new current version."""
    with _manager(db) as manager:
        snap = manager.restore_version(snapshot_id)
    console.print(
        Panel.fit(
            f"Restored as v{snap.version}\nFrom: {snap.base_version_id}",
            title=snap.payload.title,
            border_style="green",
        )
    )


@app.command()  # type: ignore[misc]
def prune(
    document_id: Annotated[str, typer.Argument()],
    keep: Annotated[int | None, typer.Option("--keep", "-k", min=1)] = None,
    db: DbOption = None,
) -> None:
    """Delete the oldest non-current versions beyond the retention limit."""
    with _manager(db) as manager:
        deleted = manager.prune(document_id, keep)
    console.print(f"Pruned {len(deleted)} version(s)")


@app.command("list")  # type: ignore[misc]
def list_documents(
    owner: Annotated[str, typer.Option("--owner", "-o")] = "local",
    db: DbOption = None,
) -> None:
    """List an owner's documents, most recently updated first."""
    with _manager(db) as manager:
        docs = manager.list_documents(owner)
    if not docs:
        console.print("[dim]No documents[/dim]")
        return
    for doc in docs:
        console.print(f"{doc.id}  [bold]{doc.title}[/bold]  [dim]{doc.document_type.value}[/dim]")


if __name__ == "__main__":
    app()
