"""``debpool publish`` / ``published-list``: published storage commands."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.panel import Panel

from debpool.cli.commands._common import (
    ROOT_OPTION_HELP,
    console,
    fail,
    load_settings,
    open_pool,
    open_storage,
)
from debpool.core.publisher import publish_package
from debpool.errors import DebpoolError


def publish_cmd(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Package file to publish."),
    component: str = typer.Option("main", "--component", "-c", help="Archive component."),
    prefix: str = typer.Option("", "--prefix", "-p", help="Publishing prefix."),
    force: bool = typer.Option(False, "--force", help="Overwrite a conflicting published file."),
    move: bool = typer.Option(False, "--move", help="Remove the source after importing."),
    root: Path = typer.Option(None, "--root", "-r", help=ROOT_OPTION_HELP),
) -> None:
    """Import a package into the pool and hardlink it into the public tree."""
    settings = load_settings(root)
    pool = open_pool(settings)
    storage = open_storage(settings)
    try:
        pool_path, published = publish_package(
            pool, storage, file, component=component, prefix=prefix, move=move, force=force
        )
    except (DebpoolError, OSError, ValueError) as exc:
        raise fail("Publish failed", exc)

    console.print(
        Panel(
            "\n".join([
                f"[bold]Pool:[/bold]      {pool_path}",
                f"[bold]Published:[/bold] {published}",
            ]),
            title="[bold green]Published[/bold green]",
            border_style="green",
        ),
        soft_wrap=True,
    )


def published_list_cmd(
    prefix: str = typer.Argument("", help="Directory under the public root to list."),
    root: Path = typer.Option(None, "--root", "-r", help=ROOT_OPTION_HELP),
) -> None:
    """List published files under PREFIX."""
    storage = open_storage(load_settings(root))
    try:
        files = storage.filelist(prefix)
    except DebpoolError as exc:
        raise fail("Listing failed", exc)
    for path in files:
        console.print(path, soft_wrap=True, highlight=False, markup=False)
