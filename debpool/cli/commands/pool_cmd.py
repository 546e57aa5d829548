"""``debpool import`` / ``pool-list`` / ``pool-verify``: package pool commands."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.markup import escape
from rich.table import Table

from debpool.cli.commands._common import (
    ROOT_OPTION_HELP,
    console,
    fail,
    load_settings,
    open_pool,
)
from debpool.core.hasher import checksums_for_file
from debpool.core.progress import RichProgress
from debpool.errors import DebpoolError


def import_cmd(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to import."),
    move: bool = typer.Option(False, "--move", help="Remove the source after importing."),
    root: Path = typer.Option(None, "--root", "-r", help=ROOT_OPTION_HELP),
) -> None:
    """Import a file into the package pool and print its pool path."""
    pool = open_pool(load_settings(root))
    try:
        checksums = checksums_for_file(file)
        pool_path = pool.import_file(file, file.name, checksums, move=move)
    except (DebpoolError, OSError) as exc:
        raise fail("Import failed", exc)
    console.print(pool_path, soft_wrap=True, highlight=False, markup=False)


def pool_list_cmd(
    root: Path = typer.Option(None, "--root", "-r", help=ROOT_OPTION_HELP),
) -> None:
    """List every file stored in the package pool."""
    pool = open_pool(load_settings(root))
    for path in pool.filepath_list(RichProgress(console)):
        console.print(path, soft_wrap=True, highlight=False, markup=False)


def pool_verify_cmd(
    root: Path = typer.Option(None, "--root", "-r", help=ROOT_OPTION_HELP),
) -> None:
    """Re-hash every pool entry and report entries that no longer match their address."""
    pool = open_pool(load_settings(root))
    progress = RichProgress(console)
    paths = pool.filepath_list()

    corrupted: list[str] = []
    progress.init_bar(len(paths), False)
    try:
        for path in paths:
            try:
                ok = pool.verify(path)
            except (DebpoolError, OSError) as exc:
                raise fail("Verify failed", exc)
            if not ok:
                corrupted.append(path)
            progress.add_bar(1)
    finally:
        progress.shutdown_bar()

    if not corrupted:
        console.print(f"[green]All {len(paths)} pool entries verified.[/green]")
        return

    table = Table(title="Corrupted pool entries")
    table.add_column("Path", style="red")
    for path in corrupted:
        table.add_row(escape(path))
    console.print(table)
    raise typer.Exit(code=1)
