"""Download task model."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from debpool.models.checksums import ChecksumInfo


class DownloadTask(BaseModel):
    """One URL to fetch into one local destination.

    Two tasks for the same ``destination`` must never run at the same time;
    the downloader does not serialize them.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    destination: Path
    expected: ChecksumInfo | None = None
    ignore_mismatch: bool = False
    max_tries: int = Field(default=1, ge=1)
