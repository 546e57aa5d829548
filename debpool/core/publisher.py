"""Import-and-publish glue: pool a package file, then link it into a public tree."""

from __future__ import annotations

import logging
import os
import posixpath
from pathlib import Path

from debpool.core.hasher import checksums_for_file
from debpool.core.pool import FilesPackagePool
from debpool.core.public import FilesPublishedStorage
from debpool.core.sharding import published_pool_directory
from debpool.models.checksums import ChecksumInfo

logger = logging.getLogger(__name__)


def publish_package(
    pool: FilesPackagePool,
    storage: FilesPublishedStorage,
    src_path: str | os.PathLike[str],
    *,
    component: str,
    prefix: str = "",
    checksums: ChecksumInfo | None = None,
    move: bool = False,
    force: bool = False,
) -> tuple[str, str]:
    """Import ``src_path`` into ``pool`` and link it under the sharded public path.

    Checksums are computed from the file when not supplied.  Returns the pool
    path and the published path (relative to the public root).
    """
    source = Path(src_path)
    if checksums is None:
        checksums = checksums_for_file(source)
    pool_path = pool.import_file(source, source.name, checksums, move=move)

    directory = published_pool_directory(prefix, component, source.name)
    storage.link_from_pool(directory, pool, pool_path, checksums, force=force, file_name=source.name)
    published = posixpath.join(directory, source.name)
    logger.info("Published %s as %s", pool_path, published)
    return pool_path, published
