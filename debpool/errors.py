"""Error taxonomy shared by the pool, the published storage and the downloader.

Pool and storage operations raise these to the caller; nothing here is
logged-and-swallowed.  Subclasses also inherit from the matching builtin
(``FileNotFoundError``, ``ValueError`` ...) so generic ``except`` clauses
keep working.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from debpool.models.checksums import ChecksumInfo


class DebpoolError(RuntimeError):
    """Base class for every error raised by debpool."""


class InvalidChecksumError(DebpoolError, ValueError):
    """Raised when a checksum set cannot be used to derive a pool address."""


class AddressCollisionError(DebpoolError):
    """Raised when a pool address is occupied by different content.

    Checksum-derived paths are assumed collision-free, so this points at a
    wrong digest or a layout bug.  The existing entry is never overwritten.
    """

    def __init__(self, pool_path: str, source_path: str) -> None:
        self.pool_path = pool_path
        self.source_path = source_path
        super().__init__(
            f"unable to import {source_path} into pool: {pool_path} "
            "already exists with different content"
        )


class FileConflictError(DebpoolError):
    """Raised when a published destination holds different content."""

    def __init__(self, destination: str) -> None:
        self.destination = destination
        super().__init__(
            f"error linking file to {destination}: file already exists and is different"
        )


class PoolEntryNotFoundError(DebpoolError, FileNotFoundError):
    """Raised by stat/open/remove on a path absent from the pool."""


class PublishedFileNotFoundError(DebpoolError, FileNotFoundError):
    """Raised by remove/rename on a path absent from published storage."""


class PathEscapeError(DebpoolError, PermissionError):
    """Raised when a relative path resolves outside its storage root."""


class UnknownStorageError(DebpoolError, KeyError):
    """Raised when a published storage name is not configured."""

    def __str__(self) -> str:
        return RuntimeError.__str__(self)


class DownloadError(DebpoolError):
    """Raised when a fetch ends with a non-success transport outcome."""

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(f"download of {url} failed: {reason}")


class DownloadAbortedError(DownloadError):
    """Raised when a caller gives up on a download before it finished.

    Nothing is left at the destination; the partial file is removed.
    """


class ChecksumMismatchError(DebpoolError):
    """Raised when downloaded bytes do not match the expected checksums."""

    def __init__(self, url: str, expected: ChecksumInfo, actual: ChecksumInfo) -> None:
        self.url = url
        self.expected = expected
        self.actual = actual
        details = "; ".join(expected.mismatches(actual))
        super().__init__(f"checksum mismatch for {url}: {details}")