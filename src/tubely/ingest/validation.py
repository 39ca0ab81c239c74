"""Upload validation utilities."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from ..config import IngestLimits
from ..media.sniff import normalize_content_type, sniff_content_type
from .ingest_errors import (
    MissingUploadError,
    PayloadTooLargeError,
    UnsupportedMediaError,
    UploadReadError,
)
from .ingest_models import (
    AsyncByteSource,
    MediaKind,
    MediaPolicy,
    UploadRequest,
    UploadValidationResult,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class UploadValidator:
    """Validate uploads against configured limits before anything is staged."""

    limits: IngestLimits
    sniffer: Callable[[bytes], str] = field(default=sniff_content_type)

    def policy_for(self, kind: MediaKind) -> MediaPolicy:
        if kind is MediaKind.VIDEO:
            return MediaPolicy(
                kind=kind,
                allowed_content_types=frozenset(self.limits.video_content_types),
                max_bytes=self.limits.video_max_bytes,
                probe=True,
            )
        return MediaPolicy(
            kind=kind,
            allowed_content_types=frozenset(self.limits.thumbnail_content_types),
            max_bytes=self.limits.thumbnail_max_bytes,
        )

    async def validate(self, request: UploadRequest) -> UploadValidationResult:
        """Check declared metadata, then sniff the leading bytes.

        Only ``min(sniff_bytes, max_bytes + 1)`` bytes are consumed here; the
        rest of the body stays in ``request.source`` for staging.
        """
        policy = self.policy_for(request.kind)
        extra = {"video_id": request.video_id, "kind": request.kind.value}

        declared = normalize_content_type(request.declared_content_type)
        if declared is None:
            logger.warning("ingest.upload.missing_content_type", extra=extra)
            raise UnsupportedMediaError("missing Content-Type", operation="ingest.validate")
        if declared not in policy.allowed_content_types:
            logger.warning(
                "ingest.upload.unsupported_media",
                extra={**extra, "content_type": declared},
            )
            raise UnsupportedMediaError(
                f"unsupported Content-Type '{declared}'", operation="ingest.validate"
            )

        if request.declared_size is not None and request.declared_size > policy.max_bytes:
            logger.warning(
                "ingest.upload.payload_too_large",
                extra={**extra, "size_bytes": request.declared_size, "limit_bytes": policy.max_bytes},
            )
            raise PayloadTooLargeError(
                f"upload exceeds {policy.max_bytes} bytes", operation="ingest.validate"
            )

        head = await self._read_head(
            request.source, min(self.limits.sniff_bytes, policy.max_bytes + 1)
        )
        if not head:
            raise MissingUploadError("upload is empty", operation="ingest.validate")
        if len(head) > policy.max_bytes:
            raise PayloadTooLargeError(
                f"upload exceeds {policy.max_bytes} bytes", operation="ingest.validate"
            )

        sniffed = self.sniffer(head)
        if sniffed != declared:
            logger.warning(
                "ingest.upload.content_type_mismatch",
                extra={**extra, "declared": declared, "sniffed": sniffed},
            )
            raise UnsupportedMediaError(
                f"declared '{declared}' but content is '{sniffed}'",
                operation="ingest.validate",
            )

        logger.info(
            "ingest.upload.validated",
            extra={**extra, "content_type": declared, "upload_filename": request.filename},
        )
        return UploadValidationResult(
            content_type=declared,
            sniffed_content_type=sniffed,
            head=head,
        )

    @staticmethod
    async def _read_head(source: AsyncByteSource, size: int) -> bytes:
        buffer = bytearray()
        try:
            while len(buffer) < size:
                chunk = await source.read(size - len(buffer))
                if not chunk:
                    break
                buffer.extend(chunk)
        except OSError as exc:
            logger.error("ingest.upload.read_failed", exc_info=exc)
            raise UploadReadError("failed to read upload", operation="ingest.validate") from exc
        return bytes(buffer)
