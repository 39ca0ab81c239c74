"""Dependency wiring helpers."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from .auth.auth_service import TokenService
from .config import AppConfig
from .ingest.ingest_api import router as ingest_router
from .ingest.ingest_service import IngestService
from .ingest.validation import UploadValidator
from .media.probe import FFProbe
from .media.scratch_store import ScratchStore
from .storage import LocalDiskStorage, build_backend
from .videos.videos_api import router as videos_router
from .videos.videos_repository import VideoRepository


def include_routers(app: FastAPI, config: AppConfig, *, s3_client: Any | None = None) -> None:
    """Mount module routers and attach services."""
    backend = build_backend(config, s3_client=s3_client)
    probe = FFProbe(
        binary=config.probe.binary,
        timeout_seconds=config.probe.timeout_seconds,
    )
    ingest_service = IngestService(
        validator=UploadValidator(config.ingest_limits),
        scratch_store=ScratchStore(
            directory=config.media_paths.scratch,
            chunk_size_bytes=config.ingest_limits.chunk_size_bytes,
        ),
        probe=probe.probe_aspect_ratio,
    )

    app.state.config = config
    app.state.storage_backend = backend
    app.state.ingest_service = ingest_service
    app.state.video_repo = VideoRepository(config.session_factory)
    app.state.token_service = TokenService(
        signing_key=config.jwt_secret,
        token_ttl=timedelta(hours=config.jwt_ttl_hours),
    )

    app.include_router(videos_router)
    app.include_router(ingest_router)

    if isinstance(backend, LocalDiskStorage):
        backend.ensure_root()
        app.mount(
            "/assets",
            StaticFiles(directory=config.media_paths.assets),
            name="assets",
        )
