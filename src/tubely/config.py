"""Application configuration builder."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .db.db_init import init_db

STORAGE_BACKENDS = ("local", "s3")


@dataclass(slots=True)
class IngestLimits:
    thumbnail_content_types: Sequence[str] = ("image/jpeg", "image/png")
    video_content_types: Sequence[str] = ("video/mp4",)
    thumbnail_max_bytes: int = 10 << 20
    video_max_bytes: int = 1 << 30
    chunk_size_bytes: int = 1 << 20
    sniff_bytes: int = 2048


@dataclass(slots=True)
class MediaPaths:
    assets: Path
    scratch: Path | None = None


@dataclass(slots=True)
class StorageSettings:
    backend: str = "local"
    platform_host: str = "localhost"
    port: str = "8091"
    s3_bucket: str = ""
    s3_region: str = ""
    s3_endpoint_url: str | None = None


@dataclass(slots=True)
class ProbeSettings:
    binary: str = "ffprobe"
    timeout_seconds: float = 30.0


@dataclass(slots=True)
class AppConfig:
    media_paths: MediaPaths
    ingest_limits: IngestLimits
    storage: StorageSettings
    probe: ProbeSettings
    database_url: str
    engine: Engine
    session_factory: sessionmaker[Session]
    jwt_secret: str
    jwt_ttl_hours: int = 24


def _validate_storage(settings: StorageSettings) -> None:
    if settings.backend not in STORAGE_BACKENDS:
        raise RuntimeError(
            f"TUBELY_STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}, "
            f"got '{settings.backend}'"
        )
    if settings.backend == "s3" and not (settings.s3_bucket and settings.s3_region):
        raise RuntimeError("S3_BUCKET and S3_REGION are required for the s3 backend")


def load_config() -> AppConfig:
    """Load configuration from environment (SQLite by default)."""
    scratch_dir = os.getenv("SCRATCH_DIR")
    media_paths = MediaPaths(
        assets=Path(os.getenv("ASSETS_ROOT", "assets")),
        scratch=Path(scratch_dir) if scratch_dir else None,
    )

    ingest_limits = IngestLimits(
        thumbnail_max_bytes=int(os.getenv("THUMBNAIL_MAX_BYTES", 10 << 20)),
        video_max_bytes=int(os.getenv("VIDEO_MAX_BYTES", 1 << 30)),
        chunk_size_bytes=int(os.getenv("INGEST_CHUNK_SIZE_BYTES", 1 << 20)),
    )

    storage = StorageSettings(
        backend=os.getenv("TUBELY_STORAGE_BACKEND", "local").strip().lower(),
        platform_host=os.getenv("PLATFORM_HOST", "localhost"),
        port=os.getenv("PORT", "8091"),
        s3_bucket=os.getenv("S3_BUCKET", ""),
        s3_region=os.getenv("S3_REGION", ""),
        s3_endpoint_url=os.getenv("S3_ENDPOINT_URL") or None,
    )
    _validate_storage(storage)

    probe = ProbeSettings(
        binary=os.getenv("FFPROBE_PATH", "ffprobe"),
        timeout_seconds=float(os.getenv("FFPROBE_TIMEOUT_SECONDS", 30)),
    )

    jwt_secret = os.getenv("JWT_SECRET", "")
    if not jwt_secret:
        raise RuntimeError("JWT_SECRET is not configured")

    database_url = os.getenv("DATABASE_URL", "sqlite:///tubely.db")
    engine = create_engine(database_url, future=True)
    session_factory: sessionmaker[Session] = sessionmaker(bind=engine, expire_on_commit=False)

    init_db(engine)

    return AppConfig(
        media_paths=media_paths,
        ingest_limits=ingest_limits,
        storage=storage,
        probe=probe,
        database_url=database_url,
        engine=engine,
        session_factory=session_factory,
        jwt_secret=jwt_secret,
        jwt_ttl_hours=int(os.getenv("JWT_TTL_HOURS", 24)),
    )
