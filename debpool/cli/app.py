"""Main Typer application: imports and registers all CLI commands.

Entry point: ``debpool`` (configured via pyproject.toml project.scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from debpool.cli.commands._common import console
from debpool.cli.commands.download_cmd import download_cmd
from debpool.cli.commands.pool_cmd import import_cmd, pool_list_cmd, pool_verify_cmd
from debpool.cli.commands.publish_cmd import publish_cmd, published_list_cmd
from debpool.config import DebpoolSettings

app = typer.Typer(
    name="debpool",
    help="debpool: deduplicated package pool and hardlinked published storage.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


def configure_logging(level: str) -> None:
    """Route log records through Rich, once per process."""
    root = logging.getLogger()
    if any(isinstance(handler, RichHandler) for handler in root.handlers):
        root.setLevel(level.upper())
        return
    handler = RichHandler(console=console, show_path=False, rich_tracebacks=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    root.setLevel(level.upper())


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Configure logging from settings before any command runs."""
    configure_logging("DEBUG" if verbose else DebpoolSettings().log_level)


# Register subcommands
app.command(name="import", help="Import a file into the package pool.")(import_cmd)
app.command(name="pool-list", help="List files in the package pool.")(pool_list_cmd)
app.command(name="pool-verify", help="Verify pool entries against their addresses.")(pool_verify_cmd)
app.command(name="publish", help="Publish a package into the public tree.")(publish_cmd)
app.command(name="published-list", help="List published files.")(published_list_cmd)
app.command(name="download", help="Download a file with checksum verification.")(download_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
