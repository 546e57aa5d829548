"""Checksum helpers for content addressing and download verification.

Every function streams its input, so package files of any size are hashed
in constant memory.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

from debpool.models.checksums import ChecksumInfo

CHUNK_SIZE = 1 << 20


class ChecksumWriter:
    """Incremental size + MD5/SHA1/SHA256 calculator for streamed bytes.

    Usage::

        writer = ChecksumWriter()
        writer.update(chunk1)
        writer.update(chunk2)
        info = writer.sum()
    """

    def __init__(self) -> None:
        self._size = 0
        self._md5 = hashlib.md5()
        self._sha1 = hashlib.sha1()
        self._sha256 = hashlib.sha256()

    def update(self, data: bytes) -> int:
        self._size += len(data)
        self._md5.update(data)
        self._sha1.update(data)
        self._sha256.update(data)
        return len(data)

    # file-like alias so the writer can sit behind shutil.copyfileobj
    write = update

    def sum(self) -> ChecksumInfo:
        """Return the checksum set of everything written so far."""
        return ChecksumInfo(
            size=self._size,
            md5=self._md5.hexdigest(),
            sha1=self._sha1.hexdigest(),
            sha256=self._sha256.hexdigest(),
        )


def checksums_for_file(path: str | Path) -> ChecksumInfo:
    """Compute the full checksum set of a file."""
    writer = ChecksumWriter()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(CHUNK_SIZE), b""):
            writer.update(chunk)
    return writer.sum()


def sha256_file(path: str | Path) -> str:
    """Return the SHA-256 hex digest of a file's bytes."""
    digest = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def same_content(first: str | Path, second: str | Path) -> bool:
    """True if two files hold identical bytes (same inode, or same size and SHA-256)."""
    first_stat = Path(first).stat()
    second_stat = Path(second).stat()
    if (first_stat.st_dev, first_stat.st_ino) == (second_stat.st_dev, second_stat.st_ino):
        return True
    if first_stat.st_size != second_stat.st_size:
        return False
    return sha256_file(first) == sha256_file(second)
