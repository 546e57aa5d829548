"""Capability protocols for package pools, published storages and downloaders.

Storage backends are interchangeable as long as they satisfy these
Protocols.  Hardlinking is a narrower capability: only pools that share a
filesystem with their consumer implement ``LocalPackagePool``, and
``link_from_pool`` of a local published storage asks for that protocol in its
signature rather than probing types at runtime.
"""

from __future__ import annotations

import os
from typing import BinaryIO, Protocol, runtime_checkable

from debpool.models.checksums import ChecksumInfo


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


@runtime_checkable
class Progress(Protocol):
    """Progress display sink: one active bar plus out-of-band messages.

    ``write`` lets byte streams tick the bar as they pass through, so a sink
    can be handed to anything that writes downloaded data.
    """

    def write(self, data: bytes) -> int: ...

    def start(self) -> None: ...

    def shutdown(self) -> None: ...

    def flush(self) -> None:
        """Return once all queued output has been drained."""
        ...

    def init_bar(self, count: int, is_bytes: bool) -> None: ...

    def shutdown_bar(self) -> None: ...

    def add_bar(self, count: int) -> None: ...

    def set_bar(self, count: int) -> None: ...

    def printf(self, msg: str, *args: object) -> None:
        """Print without corrupting an active bar."""
        ...

    def colored_printf(self, msg: str, *args: object) -> None: ...


# ---------------------------------------------------------------------------
# Package pool
# ---------------------------------------------------------------------------


@runtime_checkable
class PackagePool(Protocol):
    """Content-addressed store of package files, deduplicated by checksum."""

    def import_file(
        self,
        src_path: str | os.PathLike[str],
        basename: str,
        checksums: ChecksumInfo,
        move: bool = False,
    ) -> str:
        """Place ``src_path`` at its checksum-derived path and return that path.

        ``basename`` is the canonical human-readable filename; ``move``
        allows ``src_path`` to be consumed.
        """
        ...

    def legacy_path(self, filename: str, checksums: ChecksumInfo) -> str:
        """Path of the file in the flat, pre-sharding pool layout."""
        ...

    def stat(self, path: str) -> os.stat_result: ...

    def open(self, path: str) -> BinaryIO:
        """Return a seekable binary stream; the caller closes it."""
        ...

    def filepath_list(self, progress: Progress | None = None) -> list[str]: ...

    def remove(self, path: str) -> int:
        """Delete an entry and return the number of bytes it occupied."""
        ...

    def original_filename(self, path: str) -> str:
        """Canonical basename an entry was imported under."""
        ...


@runtime_checkable
class LocalPackagePool(PackagePool, Protocol):
    """Package pool residing on the same filesystem as its consumers."""

    def generate_temp_path(self, filename: str) -> str:
        """Scratch path that can be imported later without a cross-device copy."""
        ...

    def link(self, path: str, dst_path: str | os.PathLike[str]) -> None:
        """Hardlink a pool entry to ``dst_path``."""
        ...


# ---------------------------------------------------------------------------
# Published storage
# ---------------------------------------------------------------------------


@runtime_checkable
class PublishedStorage(Protocol):
    """Directory tree that published repositories live in."""

    def mkdir(self, path: str) -> None: ...

    def put_file(self, path: str, source_filename: str | os.PathLike[str]) -> None: ...

    def remove_dirs(self, path: str, progress: Progress | None = None) -> None: ...

    def remove(self, path: str) -> None: ...

    def link_from_pool(
        self,
        published_directory: str,
        source_pool: PackagePool,
        source_path: str,
        source_checksums: ChecksumInfo,
        force: bool = False,
    ) -> None: ...

    def filelist(self, prefix: str) -> list[str]: ...

    def rename_file(self, old_name: str, new_name: str) -> None: ...


@runtime_checkable
class LocalPublishedStorage(PublishedStorage, Protocol):
    """Published storage on the local filesystem."""

    @property
    def public_path(self) -> str:
        """Absolute root of the public tree."""
        ...


@runtime_checkable
class PublishedStorageProvider(Protocol):
    def get_published_storage(self, name: str) -> PublishedStorage: ...


# ---------------------------------------------------------------------------
# Downloader
# ---------------------------------------------------------------------------


@runtime_checkable
class Downloader(Protocol):
    """Parallel fetcher of remote files."""

    def download(
        self,
        url: str,
        destination: str | os.PathLike[str],
        timeout: float | None = None,
    ) -> None: ...

    def download_with_checksum(
        self,
        url: str,
        destination: str | os.PathLike[str],
        expected: ChecksumInfo | None,
        ignore_mismatch: bool = False,
        max_tries: int = 1,
        timeout: float | None = None,
    ) -> None: ...

    def get_progress(self) -> Progress: ...
