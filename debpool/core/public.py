"""Published storage: the public directory tree served to clients.

Package files only ever enter the tree as hardlinks to pool entries, so
disk usage tracks unique content rather than the number of publications.
Every mutation is a single OS-level primitive (link, rename, unlink) or is
staged under a hidden name and swapped in with ``os.replace``; readers never
observe a half-written file.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import uuid
from pathlib import Path

from debpool.core.hasher import checksums_for_file
from debpool.core.interfaces import LocalPackagePool, Progress, PublishedStorage
from debpool.core.progress import ensure_progress
from debpool.errors import (
    FileConflictError,
    PathEscapeError,
    PublishedFileNotFoundError,
    UnknownStorageError,
)
from debpool.models.checksums import ChecksumInfo

logger = logging.getLogger(__name__)

PUBLIC_DIRNAME = "public"


def _staging_name(target: Path) -> Path:
    return target.parent / f".{target.name}.{uuid.uuid4().hex}.tmp"


def _missing_directories(directory: Path) -> list[Path]:
    """Directories ``mkdir(parents=True)`` would create, deepest first."""
    missing: list[Path] = []
    current = directory
    while not os.path.lexists(current):
        missing.append(current)
        current = current.parent
    return missing


class FilesPublishedStorage:
    """Published storage on the local filesystem.

    Parameters
    ----------
    root:
        Storage root; the public tree lives in ``{root}/public``.
    """

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self._root = Path(os.path.normpath(Path(root).absolute()))
        self._public = self._root / PUBLIC_DIRNAME

    @property
    def public_path(self) -> str:
        return str(self._public)

    def _resolve(self, path: str | os.PathLike[str]) -> Path:
        """Absolute location of ``path`` under the public root.

        Only the parent directory is resolved; the last component is kept as
        named, so operations on a symlink act on the link, not its target.
        """
        public = self._public.resolve()
        candidate = Path(os.path.normpath(self._public / path))
        if candidate == self._public:
            return public
        parent = candidate.parent.resolve()
        if not parent.is_relative_to(public):
            raise PathEscapeError(f"path {os.fspath(path)!r} is outside of the published storage")
        return parent / candidate.name

    # ------------------------------------------------------------------
    # Directories and plain files
    # ------------------------------------------------------------------

    def mkdir(self, path: str) -> None:
        """Create ``path`` and every missing parent."""
        self._resolve(path).mkdir(parents=True, exist_ok=True)

    def put_file(self, path: str, source_filename: str | os.PathLike[str]) -> None:
        """Copy a small generated file (index, signature ...) to ``path``.

        The copy is staged next to the target and renamed over it, so an
        existing hardlink at ``path`` is replaced, never written through.
        """
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        staging = _staging_name(target)
        try:
            shutil.copyfile(source_filename, staging)
            os.replace(staging, target)
        finally:
            staging.unlink(missing_ok=True)
        logger.debug("Put %s at %s", source_filename, path)

    def remove(self, path: str) -> None:
        target = self._resolve(path)
        try:
            target.unlink()
        except FileNotFoundError as exc:
            raise PublishedFileNotFoundError(f"published file {path} not found") from exc
        logger.debug("Removed published file %s", path)

    def remove_dirs(self, path: str, progress: Progress | None = None) -> None:
        """Remove ``path`` and everything below it; a missing path is a no-op."""
        target = self._resolve(path)
        if target == self._public.resolve():
            raise PathEscapeError("refusing to remove the published storage root")
        progress = ensure_progress(progress)
        progress.printf("Removing %s...\n", target)
        if target.is_symlink():
            target.unlink()
        else:
            try:
                shutil.rmtree(target)
            except FileNotFoundError:
                return
            except NotADirectoryError:
                target.unlink()
        logger.debug("Removed published directory %s", path)

    def filelist(self, prefix: str) -> list[str]:
        """Regular files under ``prefix``, relative to it, in lexical order."""
        base = self._resolve(prefix)
        if not base.is_dir():
            return []
        result: list[str] = []
        for dirpath, _dirnames, filenames in os.walk(base):
            for filename in filenames:
                full = Path(dirpath) / filename
                if full.is_file():
                    result.append(full.relative_to(base).as_posix())
        return sorted(result)

    def rename_file(self, old_name: str, new_name: str) -> None:
        """Move a file within the tree with a single ``rename(2)``."""
        source = self._resolve(old_name)
        target = self._resolve(new_name)
        try:
            os.rename(source, target)
        except FileNotFoundError as exc:
            if not os.path.lexists(source):
                raise PublishedFileNotFoundError(f"published file {old_name} not found") from exc
            raise

    # ------------------------------------------------------------------
    # Pool links
    # ------------------------------------------------------------------

    def link_from_pool(
        self,
        published_directory: str,
        source_pool: LocalPackagePool,
        source_path: str,
        source_checksums: ChecksumInfo,
        force: bool = False,
        file_name: str | None = None,
    ) -> None:
        """Hardlink a pool entry into ``published_directory``.

        The destination filename is ``file_name`` or the entry's original
        basename.  An existing destination is accepted when it is the same
        inode.  It is also accepted when it is an independent copy whose
        content verifies against a *complete* ``source_checksums``; the copy
        is then swapped for a link.  Anything else needs ``force``.
        """
        base_name = file_name or source_pool.original_filename(source_path)
        directory = self._resolve(published_directory)
        destination = self._resolve(Path(published_directory) / base_name)

        created = _missing_directories(directory)
        directory.mkdir(parents=True, exist_ok=True)
        try:
            self._link_or_replace(
                destination, source_pool, source_path, source_checksums, force
            )
        except BaseException:
            # a failed link leaves the tree as it was
            for path in created:
                with contextlib.suppress(OSError):
                    path.rmdir()
            raise

    def _link_or_replace(
        self,
        destination: Path,
        source_pool: LocalPackagePool,
        source_path: str,
        source_checksums: ChecksumInfo,
        force: bool,
    ) -> None:
        try:
            source_pool.link(source_path, destination)
            logger.debug("Linked %s to %s", source_path, destination)
            return
        except FileExistsError:
            pass

        dst_stat = destination.lstat()
        src_stat = source_pool.stat(source_path)
        if (dst_stat.st_dev, dst_stat.st_ino) == (src_stat.st_dev, src_stat.st_ino):
            return

        verified_copy = source_checksums.is_complete and source_checksums.matches(
            checksums_for_file(destination)
        )
        if not verified_copy and not force:
            raise FileConflictError(str(destination))

        staging = _staging_name(destination)
        try:
            source_pool.link(source_path, staging)
            os.replace(staging, destination)
        finally:
            staging.unlink(missing_ok=True)
        logger.info(
            "Replaced %s with link to pool entry %s (%s)",
            destination,
            source_path,
            "forced" if not verified_copy else "verified copy",
        )


class PublishedStorageRegistry:
    """Returns published storages by name.

    ``""`` names the default storage; ``filesystem:<name>`` names one of the
    configured endpoints.  Storages are created lazily and reused.
    """

    def __init__(
        self,
        default_root: str | os.PathLike[str],
        endpoints: dict[str, Path] | None = None,
    ) -> None:
        self._default_root = Path(default_root)
        self._endpoints = dict(endpoints or {})
        self._storages: dict[str, PublishedStorage] = {}

    def get_published_storage(self, name: str) -> PublishedStorage:
        if name in self._storages:
            return self._storages[name]

        if name == "":
            root = self._default_root
        elif name.startswith("filesystem:"):
            endpoint = name.split(":", 1)[1]
            if endpoint not in self._endpoints:
                raise UnknownStorageError(f"published local storage {endpoint} not configured")
            root = self._endpoints[endpoint]
        else:
            raise UnknownStorageError(f"unknown published storage {name!r}")

        storage = FilesPublishedStorage(root)
        self._storages[name] = storage
        return storage
