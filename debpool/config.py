"""Runtime configuration: env-driven.

Centralized config using pydantic-settings.  Reads from a .env file and
DEBPOOL_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DebpoolSettings(BaseSettings):
    """Settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export DEBPOOL_ROOT_DIR=/srv/aptly
        export DEBPOOL_LOG_LEVEL=DEBUG
        export DEBPOOL_DOWNLOAD_WORKERS=8

    Publish endpoints are a JSON mapping::

        export DEBPOOL_PUBLISH_ENDPOINTS='{"mirror": "/srv/mirror"}'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="DEBPOOL_",
        env_file_encoding="utf-8",
    )

    # Storage
    root_dir: Path = Path(".debpool")
    publish_endpoints: dict[str, Path] = Field(default_factory=dict)

    # Logging
    log_level: str = "INFO"

    # Downloader
    download_workers: int = Field(default=4, ge=1)
    download_max_tries: int = Field(default=3, ge=1)
    download_timeout_seconds: float = 60.0
    retry_wait_seconds: float = 0.0
    transport_retries: int = Field(default=2, ge=0)
    user_agent: str = "debpool"

    @property
    def pool_path(self) -> Path:
        """Root of the package pool."""
        return self.root_dir / "pool"

    @property
    def public_root(self) -> Path:
        """Root of the default published storage (the tree is ``public/`` below it)."""
        return self.root_dir
