"""Shared test fixtures for debpool."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from debpool.core.hasher import checksums_for_file
from debpool.core.pool import FilesPackagePool
from debpool.core.public import FilesPublishedStorage
from debpool.models.checksums import ChecksumInfo


class RecordingProgress:
    """Progress sink that records every notification for assertions."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple]] = []
        self.bytes_written = 0

    def _record(self, name: str, *args: object) -> None:
        self.calls.append((name, args))

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def write(self, data: bytes) -> int:
        self.bytes_written += len(data)
        return len(data)

    def start(self) -> None:
        self._record("start")

    def shutdown(self) -> None:
        self._record("shutdown")

    def flush(self) -> None:
        self._record("flush")

    def init_bar(self, count: int, is_bytes: bool) -> None:
        self._record("init_bar", count, is_bytes)

    def shutdown_bar(self) -> None:
        self._record("shutdown_bar")

    def add_bar(self, count: int) -> None:
        self._record("add_bar", count)

    def set_bar(self, count: int) -> None:
        self._record("set_bar", count)

    def printf(self, msg: str, *args: object) -> None:
        self._record("printf", msg % args if args else msg)

    def colored_printf(self, msg: str, *args: object) -> None:
        self._record("colored_printf", msg % args if args else msg)


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for pool and storage roots."""
    return tmp_path


@pytest.fixture
def pool(tmp_dir: Path) -> FilesPackagePool:
    """Provide a fresh package pool in a temp directory."""
    return FilesPackagePool(tmp_dir / "pool")


@pytest.fixture
def storage(tmp_dir: Path) -> FilesPublishedStorage:
    """Provide a published storage rooted next to the pool (same filesystem)."""
    return FilesPublishedStorage(tmp_dir)


@pytest.fixture
def scratch_dir(tmp_dir: Path) -> Path:
    """Directory for source files handed to the pool."""
    path = tmp_dir / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def make_package(scratch_dir: Path) -> Callable[..., tuple[Path, ChecksumInfo]]:
    """Factory fixture: write a package file and return it with its checksums.

    Each call writes into its own subdirectory, so the same basename can be
    created several times.
    """
    counter = {"n": 0}

    def _factory(
        name: str = "mars-invaders_1.03.deb", content: bytes = b"Contents"
    ) -> tuple[Path, ChecksumInfo]:
        counter["n"] += 1
        directory = scratch_dir / f"src{counter['n']}"
        directory.mkdir()
        path = directory / name
        path.write_bytes(content)
        return path, checksums_for_file(path)

    return _factory


@pytest.fixture
def recording_progress() -> RecordingProgress:
    return RecordingProgress()
