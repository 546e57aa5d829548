"""debpool: deduplicated package pool with hardlinked published storage.

  - Content-addressed package pool keyed by MD5/SHA1/SHA256 checksum sets
  - Published tree populated by hardlinks under pool/<component>/<shard>/<pkg>/
  - Parallel downloader with checksum verification and bounded retries
"""

__version__ = "0.1.0"
__description__ = "Deduplicated package pool and hardlinked published storage"

from debpool.core.downloader import ParallelDownloader
from debpool.core.pool import FilesPackagePool
from debpool.core.public import FilesPublishedStorage, PublishedStorageRegistry
from debpool.models.checksums import ChecksumInfo

__all__ = [
    "ChecksumInfo",
    "FilesPackagePool",
    "FilesPublishedStorage",
    "ParallelDownloader",
    "PublishedStorageRegistry",
    "__version__",
]
