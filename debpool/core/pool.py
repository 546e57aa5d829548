"""Content-addressed package pool on the local filesystem.

Storage layout: {root}/{d[0:2]}/{d[2:4]}/{d}_{basename}
where ``d`` is the address digest of the file's checksum set.  Entries are
never modified in place; they are created by ``import_file`` and deleted
by ``remove``.

Placement relies on ``os.link`` being an exclusive create: when two
imports race on the same checksum, exactly one link succeeds and every
other caller lands in the comparison branch.  No in-process lock is
involved, so the protocol also holds between processes sharing the root.
"""

from __future__ import annotations

import errno
import logging
import os
import shutil
import string
import uuid
from pathlib import Path
from typing import BinaryIO

from debpool.core.hasher import checksums_for_file, same_content
from debpool.core.interfaces import Progress
from debpool.core.progress import ensure_progress
from debpool.errors import (
    AddressCollisionError,
    InvalidChecksumError,
    PathEscapeError,
    PoolEntryNotFoundError,
)
from debpool.models.checksums import ChecksumInfo

logger = logging.getLogger(__name__)

# errno values for which a hardlink cannot work and a copy is needed instead
_LINK_FALLBACK_ERRNOS = frozenset({errno.EXDEV, errno.EPERM, errno.EMLINK, errno.ENOTSUP})

TEMP_DIRNAME = ".incoming"


def _is_hidden(name: str) -> bool:
    return name.startswith(".")


def _is_hex(value: str) -> bool:
    return all(char in string.hexdigits for char in value)


def _validate_basename(filename: str) -> str:
    basename = os.path.basename(filename)
    if basename in ("", ".", "..") or _is_hidden(basename):
        raise InvalidChecksumError(f"filename {filename!r} is invalid")
    return basename


class FilesPackagePool:
    """Package pool rooted at a local directory.

    Parameters
    ----------
    root:
        Root directory of the pool.  Created on first use.
    """

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self._root = Path(root).absolute()

    @property
    def root(self) -> Path:
        return self._root

    # ------------------------------------------------------------------
    # Path derivation
    # ------------------------------------------------------------------

    def relative_path(self, filename: str, checksums: ChecksumInfo) -> str:
        """Pool path for ``filename`` with ``checksums``, relative to the root."""
        basename = _validate_basename(filename)
        digest = checksums.address_digest
        if len(digest) < 4:
            raise InvalidChecksumError(
                f"unable to compute pool location for {basename}: digest {digest!r} is too short"
            )
        return f"{digest[0:2]}/{digest[2:4]}/{digest}_{basename}"

    def legacy_path(self, filename: str, checksums: ChecksumInfo) -> str:
        """Pre-sharding location: {md5[0:2]}/{md5[2:4]}/{basename}."""
        basename = _validate_basename(filename)
        if len(checksums.md5) < 4:
            raise InvalidChecksumError(
                f"unable to compute pool location for filename {basename}, MD5 is missing"
            )
        return f"{checksums.md5[0:2]}/{checksums.md5[2:4]}/{basename}"

    def full_path(self, path: str) -> Path:
        """Absolute path of a pool entry; rejects paths leaving the root."""
        candidate = (self._root / path).resolve()
        root = self._root.resolve()
        if candidate == root or not candidate.is_relative_to(root):
            raise PathEscapeError(f"path {path!r} is outside of the package pool")
        return candidate

    def original_filename(self, path: str) -> str:
        """Basename an entry was imported under.

        Current-layout names carry a ``{digest}_`` prefix whose first four
        characters repeat the two shard directories; legacy names do not.
        """
        parts = Path(path).parts
        name = parts[-1]
        if len(parts) >= 3 and "_" in name:
            digest, rest = name.split("_", 1)
            shard = parts[-3] + parts[-2]
            if rest and len(digest) >= 4 and digest.startswith(shard) and _is_hex(digest):
                return rest
        return name

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    def import_file(
        self,
        src_path: str | os.PathLike[str],
        basename: str,
        checksums: ChecksumInfo,
        move: bool = False,
    ) -> str:
        """Place ``src_path`` into the pool and return its relative pool path.

        An identical entry already at the address is a dedup hit and nothing
        is written.  Different content at the address raises
        ``AddressCollisionError`` and leaves the existing entry untouched.
        """
        rel_path = self.relative_path(basename, checksums)
        target = self.full_path(rel_path)
        source = Path(src_path)
        if not source.is_file():
            raise FileNotFoundError(f"unable to import into pool: {source} is not a file")

        target.parent.mkdir(parents=True, exist_ok=True)

        created = self._place(source, target)
        if not created:
            if not same_content(target, source):
                raise AddressCollisionError(rel_path, str(source))
            logger.debug("Pool already holds %s, skipping import of %s", rel_path, source)
            return rel_path

        logger.debug("Imported %s into pool as %s", source, rel_path)
        if move:
            source.unlink()
        return rel_path

    def _place(self, source: Path, target: Path) -> bool:
        """Exclusively create ``target`` with the bytes of ``source``.

        Returns False if ``target`` already existed.
        """
        try:
            os.link(source, target)
            return True
        except FileExistsError:
            return False
        except OSError as exc:
            if exc.errno not in _LINK_FALLBACK_ERRNOS:
                raise

        # Cross-device or unlinkable source: stage a copy next to the target,
        # then link the copy into place so the create stays exclusive.
        staging = target.parent / f".{uuid.uuid4().hex}.tmp"
        try:
            shutil.copyfile(source, staging)
            os.link(staging, target)
            return True
        except FileExistsError:
            return False
        finally:
            staging.unlink(missing_ok=True)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    def stat(self, path: str) -> os.stat_result:
        try:
            return self.full_path(path).stat()
        except FileNotFoundError as exc:
            raise PoolEntryNotFoundError(f"pool entry {path} not found") from exc

    def open(self, path: str) -> BinaryIO:
        try:
            return open(self.full_path(path), "rb")
        except FileNotFoundError as exc:
            raise PoolEntryNotFoundError(f"pool entry {path} not found") from exc

    def filepath_list(self, progress: Progress | None = None) -> list[str]:
        """Every entry in the pool, as sorted relative paths."""
        if not self._root.is_dir():
            return []

        progress = ensure_progress(progress)
        shards = sorted(
            entry.name
            for entry in os.scandir(self._root)
            if entry.is_dir() and not _is_hidden(entry.name)
        )
        progress.init_bar(len(shards), False)
        result: list[str] = []
        try:
            for shard in shards:
                for dirpath, dirnames, filenames in os.walk(self._root / shard):
                    dirnames[:] = [d for d in dirnames if not _is_hidden(d)]
                    for filename in filenames:
                        if _is_hidden(filename):
                            continue
                        full = Path(dirpath) / filename
                        result.append(full.relative_to(self._root).as_posix())
                progress.add_bar(1)
        finally:
            progress.shutdown_bar()
        return sorted(result)

    def verify(self, path: str) -> bool:
        """Re-hash an entry and check it still matches its address.

        Current-layout entries must carry one of their digests as filename
        prefix; legacy entries must sit under their MD5 shard directories.
        """
        try:
            actual = checksums_for_file(self.full_path(path))
        except FileNotFoundError as exc:
            raise PoolEntryNotFoundError(f"pool entry {path} not found") from exc

        parts = Path(path).parts
        if len(parts) < 3:
            return False
        name = parts[-1]
        if self.original_filename(path) != name:
            claimed = name.split("_", 1)[0]
            return claimed in actual.digests().values()
        return actual.md5.startswith(parts[-3] + parts[-2])

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def remove(self, path: str) -> int:
        """Delete a pool entry and return its former size in bytes."""
        full = self.full_path(path)
        try:
            size = full.stat().st_size
            full.unlink()
        except FileNotFoundError as exc:
            raise PoolEntryNotFoundError(f"pool entry {path} not found") from exc
        logger.debug("Removed %s from pool (%d bytes)", path, size)
        return size

    # ------------------------------------------------------------------
    # Local-filesystem extension
    # ------------------------------------------------------------------

    def generate_temp_path(self, filename: str) -> str:
        """Unique scratch path on the pool's filesystem for a pending download."""
        basename = _validate_basename(filename)
        temp_dir = self._root / TEMP_DIRNAME
        temp_dir.mkdir(parents=True, exist_ok=True)
        return str(temp_dir / f"{uuid.uuid4().hex}_{basename}")

    def link(self, path: str, dst_path: str | os.PathLike[str]) -> None:
        """Hardlink a pool entry to ``dst_path``."""
        source = self.full_path(path)
        try:
            os.link(source, dst_path)
        except FileNotFoundError as exc:
            if not source.exists():
                raise PoolEntryNotFoundError(f"pool entry {path} not found") from exc
            raise
