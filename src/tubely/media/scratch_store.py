"""Request-scoped scratch files for staging uploads."""

from __future__ import annotations

import logging
import tempfile
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

from ..ingest.ingest_errors import PayloadTooLargeError, UploadReadError
from ..ingest.ingest_models import AsyncByteSource

SCRATCH_PREFIX = "tubely-upload-"


@dataclass(slots=True)
class ScratchFile:
    """Staged upload, readable and seekable until the scope exits."""

    path: Path
    handle: BinaryIO
    size_bytes: int


@dataclass(slots=True)
class ScratchStore:
    """Create scratch files and guarantee their removal."""

    directory: Path | None = None
    chunk_size_bytes: int = 1 << 20
    log: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    @asynccontextmanager
    async def stage(
        self,
        source: AsyncByteSource,
        *,
        head: bytes,
        limit: int,
        suffix: str = "",
    ) -> AsyncIterator[ScratchFile]:
        """Copy ``head`` plus the rest of ``source`` into a fresh scratch file.

        The file is removed when the block exits, whatever the outcome.
        """
        if self.directory is not None:
            self.directory.mkdir(parents=True, exist_ok=True)
        handle = tempfile.NamedTemporaryFile(
            mode="w+b",
            prefix=SCRATCH_PREFIX,
            suffix=suffix,
            dir=self.directory,
            delete=False,
        )
        path = Path(handle.name)
        try:
            size = await self._copy(source, handle, head=head, limit=limit)
            handle.flush()
            handle.seek(0)
            self.log.info(
                "media.scratch.staged",
                extra={"path": str(path), "size_bytes": size},
            )
            yield ScratchFile(path=path, handle=handle, size_bytes=size)
        finally:
            handle.close()
            path.unlink(missing_ok=True)
            self.log.debug("media.scratch.removed", extra={"path": str(path)})

    async def _copy(
        self,
        source: AsyncByteSource,
        sink: BinaryIO,
        *,
        head: bytes,
        limit: int,
    ) -> int:
        # Never request more than limit + 1 bytes in total from the source.
        total = len(head)
        if total > limit:
            raise PayloadTooLargeError(f"upload exceeds {limit} bytes", operation="ingest.stage")
        sink.write(head)
        while True:
            want = min(self.chunk_size_bytes, limit + 1 - total)
            try:
                chunk = await source.read(want)
            except OSError as exc:
                raise UploadReadError("failed to read upload", operation="ingest.stage") from exc
            if not chunk:
                break
            total += len(chunk)
            if total > limit:
                self.log.warning(
                    "media.scratch.payload_too_large",
                    extra={"size_bytes": total, "limit_bytes": limit},
                )
                raise PayloadTooLargeError(
                    f"upload exceeds {limit} bytes", operation="ingest.stage"
                )
            sink.write(chunk)
        return total
