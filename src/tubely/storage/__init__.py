"""Storage backends and key generation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .keys import generate_key
from .local_disk import LocalDiskStorage
from .object_store import S3ObjectStorage, build_s3_client
from .storage_backend import StorageBackend, StoredObject

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from ..config import AppConfig


def build_backend(config: "AppConfig", *, s3_client: Any | None = None) -> StorageBackend:
    """Return the single backend configured for this deployment."""
    settings = config.storage
    if settings.backend == "s3":
        client = s3_client or build_s3_client(settings.s3_region, settings.s3_endpoint_url)
        return S3ObjectStorage(
            client=client,
            bucket=settings.s3_bucket,
            region=settings.s3_region,
        )
    return LocalDiskStorage(
        root=config.media_paths.assets,
        host=settings.platform_host,
        port=settings.port,
        chunk_size_bytes=config.ingest_limits.chunk_size_bytes,
    )


__all__ = [
    "LocalDiskStorage",
    "S3ObjectStorage",
    "StorageBackend",
    "StoredObject",
    "build_backend",
    "generate_key",
]
