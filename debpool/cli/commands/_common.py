"""Shared helpers for CLI commands."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from debpool.config import DebpoolSettings
from debpool.core.pool import FilesPackagePool
from debpool.core.public import FilesPublishedStorage

console = Console()

ROOT_OPTION_HELP = "Storage root (overrides DEBPOOL_ROOT_DIR)."


def load_settings(root: Path | None) -> DebpoolSettings:
    settings = DebpoolSettings()
    if root is not None:
        settings = settings.model_copy(update={"root_dir": root})
    return settings


def open_pool(settings: DebpoolSettings) -> FilesPackagePool:
    return FilesPackagePool(settings.pool_path)


def open_storage(settings: DebpoolSettings) -> FilesPublishedStorage:
    return FilesPublishedStorage(settings.public_root)


def fail(message: str, exc: BaseException) -> typer.Exit:
    """Print an error line and return the Exit to raise."""
    console.print(f"[bold red]{message}:[/bold red] {escape(str(exc))}", soft_wrap=True)
    return typer.Exit(code=1)
