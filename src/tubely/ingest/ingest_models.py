"""Data structures for the ingest pipeline."""

from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from ..media.probe import AspectRatio


class MediaKind(StrEnum):
    """Kinds of media a video record can point to."""

    THUMBNAIL = "thumbnail"
    VIDEO = "video"


class FailureReason(StrEnum):
    """Failure reasons enumerated in upload error responses."""

    INVALID_REQUEST = "invalid_request"
    INVALID_VIDEO_ID = "invalid_video_id"
    VIDEO_NOT_FOUND = "video_not_found"
    NOT_OWNER = "not_owner"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    UNSUPPORTED_MEDIA_TYPE = "unsupported_media_type"
    STORAGE_ERROR = "storage_error"
    PERSISTENCE_ERROR = "persistence_error"


class AsyncByteSource(Protocol):
    async def read(self, size: int = -1) -> bytes: ...


@dataclass(slots=True)
class MediaPolicy:
    """Acceptance rules for one media kind."""

    kind: MediaKind
    allowed_content_types: frozenset[str]
    max_bytes: int
    probe: bool = False


@dataclass(slots=True)
class UploadRequest:
    """Single inbound upload, consumed once by the pipeline."""

    video_id: str
    user_id: str
    kind: MediaKind
    source: AsyncByteSource
    declared_content_type: str | None
    declared_size: int | None = None
    filename: str | None = None


@dataclass(slots=True)
class UploadValidationResult:
    """Outcome of validating the leading bytes of an upload."""

    content_type: str
    sniffed_content_type: str
    head: bytes


@dataclass(slots=True)
class IngestResult:
    """Committed object and the URL the caller should persist."""

    url: str
    key: str
    size_bytes: int
    content_type: str
    aspect_ratio: AspectRatio | None = None
