"""``debpool download URL DEST``: fetch a file with optional checksum verification."""

from __future__ import annotations

from pathlib import Path

import typer
from pydantic import ValidationError

from debpool.cli.commands._common import console, fail, load_settings
from debpool.core.downloader import ParallelDownloader
from debpool.core.progress import RichProgress
from debpool.errors import DebpoolError
from debpool.models.checksums import ChecksumInfo


def download_cmd(
    url: str = typer.Argument(..., help="URL to fetch."),
    destination: Path = typer.Argument(..., help="Local file to write."),
    md5: str = typer.Option("", "--md5", help="Expected MD5 digest."),
    sha1: str = typer.Option("", "--sha1", help="Expected SHA1 digest."),
    sha256: str = typer.Option("", "--sha256", help="Expected SHA256 digest."),
    size: int = typer.Option(0, "--size", help="Expected size in bytes."),
    max_tries: int | None = typer.Option(
        None, "--max-tries", help="Attempts on checksum mismatch (default from settings)."
    ),
    ignore_mismatch: bool = typer.Option(
        False, "--ignore-mismatch", help="Keep the file even if it never matches."
    ),
) -> None:
    """Download URL to DESTINATION, verifying any checksums given."""
    settings = load_settings(None)
    try:
        expected = ChecksumInfo(size=size, md5=md5, sha1=sha1, sha256=sha256)
    except ValidationError as exc:
        raise fail("Invalid checksum", exc)

    progress = RichProgress(console)
    progress.start()
    try:
        with ParallelDownloader.from_settings(settings, progress) as downloader:
            downloader.download_with_checksum(
                url,
                destination,
                expected,
                ignore_mismatch=ignore_mismatch,
                max_tries=max_tries or settings.download_max_tries,
            )
    except (DebpoolError, OSError) as exc:
        raise fail("Download failed", exc)
    finally:
        progress.shutdown()

    console.print(f"[green]Saved[/green] {destination}", soft_wrap=True, highlight=False)
