"""Object storage for site sources and generated content."""

from pathlib import Path

from ..config import Config
from .base import ContentStore
from .local import LocalContentStore
from .s3 import S3ContentStore


def create_store(config: Config) -> ContentStore:
    """Build the content store selected in configuration."""
    storage = config.config.storage
    if storage.backend == "s3":
        if not storage.bucket:
            raise ValueError("storage.bucket is required for the s3 backend")
        return S3ContentStore(
            bucket=storage.bucket,
            prefix=storage.prefix,
            cache_dir=config.workspace_root / "materialized",
            region=storage.region,
            endpoint_url=storage.endpoint_url,
        )
    return LocalContentStore(Path(storage.root).expanduser())


__all__ = ["ContentStore", "LocalContentStore", "S3ContentStore", "create_store"]
