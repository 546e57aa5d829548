"""debpool data models: pydantic v2, frozen (immutable)."""

from debpool.models.checksums import DIGEST_NAMES, ChecksumInfo
from debpool.models.downloads import DownloadTask

__all__ = [
    # checksums
    "ChecksumInfo",
    "DIGEST_NAMES",
    # downloads
    "DownloadTask",
]
