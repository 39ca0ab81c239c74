"""Domain service for ingest operations."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from ..exceptions import StorageCommitError
from ..media.probe import AspectRatio, ProbeError
from ..media.scratch_store import ScratchStore
from ..storage.keys import extension_for, generate_key
from ..storage.storage_backend import StorageBackend
from .ingest_models import IngestResult, UploadRequest
from .validation import UploadValidator

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IngestService:
    """Coordinates validate → stage → probe → commit → address."""

    validator: UploadValidator
    scratch_store: ScratchStore
    probe: Callable[[Path], AspectRatio] | None = None
    key_factory: Callable[[str], str] = field(default=generate_key)
    log: logging.Logger = field(default_factory=lambda: logger)

    async def ingest(self, request: UploadRequest, backend: StorageBackend) -> IngestResult:
        """Persist the upload in ``backend`` and return its retrieval URL.

        Ownership of ``request.video_id`` must already be established by the
        caller. No step is retried; the scratch file never outlives the call.
        """
        policy = self.validator.policy_for(request.kind)
        validation = await self.validator.validate(request)
        content_type = validation.content_type
        extra = {
            "video_id": request.video_id,
            "kind": request.kind.value,
            "backend": backend.kind,
        }

        async with self.scratch_store.stage(
            request.source,
            head=validation.head,
            limit=policy.max_bytes,
            suffix=extension_for(content_type),
        ) as staged:
            aspect_ratio: AspectRatio | None = None
            if policy.probe and self.probe is not None:
                aspect_ratio = await self._probe(self.probe, staged.path, extra)

            key = self.key_factory(content_type)
            staged.handle.seek(0)
            try:
                stored = await asyncio.to_thread(
                    backend.put, key, staged.handle, content_type
                )
            except StorageCommitError as exc:
                self.log.error("ingest.commit.failed", extra={**extra, **exc.context()})
                raise
            except OSError as exc:
                self.log.error("ingest.commit.failed", extra={**extra, "key": key}, exc_info=exc)
                raise StorageCommitError(
                    "backend put failed", operation=f"{backend.kind}.put", key=key
                ) from exc

        url = backend.url_for(stored.key)
        self.log.info(
            "ingest.commit.done",
            extra={
                **extra,
                "key": stored.key,
                "size_bytes": stored.size_bytes,
                "content_type": stored.content_type,
                "aspect_ratio": aspect_ratio.value if aspect_ratio else None,
            },
        )
        return IngestResult(
            url=url,
            key=stored.key,
            size_bytes=stored.size_bytes,
            content_type=stored.content_type,
            aspect_ratio=aspect_ratio,
        )

    async def _probe(
        self,
        probe: Callable[[Path], AspectRatio],
        path: Path,
        extra: dict[str, str],
    ) -> AspectRatio | None:
        try:
            return await asyncio.to_thread(probe, path)
        except ProbeError as exc:
            self.log.warning("ingest.probe.failed", extra={**extra, **exc.context()})
            return None
