"""CLI for Codemap."""

import json
import logging
import sys
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import CODEMAP_FILE, __version__
from .config import DEFAULT_EXTENSIONS, load_config
from .diff import ChangeSet
from .manifest import CodemapError, IndexStore
from .tracker import FolderTracker

console = Console()
error_console = Console(stderr=True)

folder_argument = click.argument("folder", required=False, default=".")
extensions_option = click.option(
    "--extensions",
    "-e",
    default=None,
    help=f"Comma-separated file extensions (default: {','.join(e.lstrip('.') for e in DEFAULT_EXTENSIONS)})",
)
exclude_option = click.option(
    "--exclude",
    "-x",
    default=None,
    help="Comma-separated extra ignore patterns (e.g. tests,**/*.spec.ts)",
)
workers_option = click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=None,
    help="Threads used to hash files",
)


def setup_logging(verbose: bool) -> None:
    """Send codemap log records to stderr through rich."""
    logger = logging.getLogger("codemap")
    logger.handlers = [RichHandler(console=error_console, show_path=False)]
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


def emit(data: dict[str, Any]) -> None:
    """Print a JSON document on stdout."""
    click.echo(json.dumps(data, indent=2))


def fail(message: str) -> None:
    error_console.print(f"[red]Error:[/red] {escape(message)}")
    sys.exit(1)


def get_tracker(
    ctx: click.Context,
    extensions: str | None,
    exclude: str | None,
    workers: int | None = None,
) -> FolderTracker:
    """Build a tracker for the invocation's root and scan options."""
    try:
        config = load_config(extensions, exclude, hash_workers=workers)
    except ValueError as e:
        raise click.UsageError(f"Invalid scan options: {e}") from e
    return FolderTracker(ctx.obj["root"], config)


def _change_fields(changes: ChangeSet) -> dict[str, list[str]]:
    return {
        "changedFiles": changes.changed,
        "added": changes.added,
        "modified": changes.modified,
        "removed": changes.removed,
    }


@click.group()
@click.version_option(version=__version__, prog_name="codemap")
@click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    envvar="CODEMAP_ROOT",
    help="Project root holding the index (default: current directory)",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging on stderr")
@click.pass_context
def main(ctx: click.Context, root: Path | None, verbose: bool) -> None:
    """Codemap - Track which folders changed since the last map update."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["root"] = (root or Path.cwd()).resolve()


@main.command()
@folder_argument
@extensions_option
@exclude_option
@click.pass_context
def scan(ctx: click.Context, folder: str, extensions: str | None, exclude: str | None) -> None:
    """List the files that would be tracked in FOLDER."""
    tracker = get_tracker(ctx, extensions, exclude)
    try:
        path, _ = tracker.resolve_folder(folder)
        files = tracker.scan(path)
    except CodemapError as e:
        fail(str(e))
    emit({"folder": str(path), "files": files})


@main.command(name="hash")
@folder_argument
@extensions_option
@exclude_option
@workers_option
@click.pass_context
def hash_(
    ctx: click.Context,
    folder: str,
    extensions: str | None,
    exclude: str | None,
    workers: int | None,
) -> None:
    """Compute file digests and the folder digest of FOLDER."""
    tracker = get_tracker(ctx, extensions, exclude, workers)
    try:
        result = tracker.hash(folder)
    except CodemapError as e:
        fail(str(e))
    emit({"folderHash": result.composite_digest, "files": result.digests()})


@main.command()
@folder_argument
@extensions_option
@exclude_option
@workers_option
@click.pass_context
def update(
    ctx: click.Context,
    folder: str,
    extensions: str | None,
    exclude: str | None,
    workers: int | None,
) -> None:
    """Commit FOLDER's current state to the index if it changed."""
    tracker = get_tracker(ctx, extensions, exclude, workers)
    try:
        path, _ = tracker.resolve_folder(folder)
        result = tracker.update(path)
    except CodemapError as e:
        fail(str(e))

    if result.updated:
        emit({
            "updated": True,
            "folder": str(path),
            "fileCount": result.file_count,
            **_change_fields(result.changes),
        })
    else:
        emit({
            "updated": False,
            "folder": str(path),
            "message": "No changes detected",
        })


@main.command()
@folder_argument
@extensions_option
@exclude_option
@workers_option
@click.pass_context
def changes(
    ctx: click.Context,
    folder: str,
    extensions: str | None,
    exclude: str | None,
    workers: int | None,
) -> None:
    """Report what changed in FOLDER since its last update, without writing."""
    tracker = get_tracker(ctx, extensions, exclude, workers)
    try:
        path, _ = tracker.resolve_folder(folder)
        report = tracker.changes(path)
    except CodemapError as e:
        fail(str(e))

    emit({
        "folder": str(path),
        "fileCount": report.file_count,
        "folderHash": report.folder_hash,
        **_change_fields(report.changes),
        "hasChanges": report.has_changes,
    })


@main.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the folders tracked in the index."""
    store = IndexStore.for_root(ctx.obj["root"])
    index = store.load()

    if not len(index):
        console.print(f"[dim]No folders tracked in {escape(str(store.path))}[/dim]")
        return

    table = Table(title="Codemap Index")
    table.add_column("Folder", style="cyan")
    table.add_column("Files", justify="right")
    table.add_column("Hash")

    for key in index.keys():
        entry = index.get(key)
        if entry is None:
            table.add_row(escape(key), "-", "[red]malformed[/red]")
        else:
            table.add_row(escape(key), str(len(entry.files)), escape(entry.composite_digest))

    console.print(table)


@main.command()
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def clean(ctx: click.Context, force: bool) -> None:
    """Remove the index file."""
    store = IndexStore.for_root(ctx.obj["root"])

    if not store.path.exists():
        console.print(f"[dim]Nothing to clean - {CODEMAP_FILE} does not exist.[/dim]")
        return

    if not force:
        if not click.confirm(f"Remove {store.path}?"):
            console.print("[dim]Cancelled.[/dim]")
            return

    try:
        store.delete()
    except OSError as e:
        fail(f"Could not remove {store.path}: {e}")
    console.print(f"[green]Removed {CODEMAP_FILE}[/green]")


if __name__ == "__main__":
    main()
