"""HTTP routes for thumbnail and video uploads."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import replace

from fastapi import APIRouter, Depends, HTTPException, Request, status
from starlette.datastructures import UploadFile
from starlette.types import Message, Receive

from ..auth.auth_dependencies import require_user
from ..exceptions import RepositoryError, StorageCommitError, StorageError
from ..storage.storage_backend import StorageBackend
from ..videos.videos_api import get_video_repo
from ..videos.videos_models import Video
from ..videos.videos_repository import VideoRepository
from ..videos.videos_schemas import VideoResponse
from .ingest_errors import (
    AuthorizationError,
    ClientInputError,
    InvalidIdentifierError,
    MissingUploadError,
    PayloadTooLargeError,
    PersistenceError,
    UnsupportedMediaError,
)
from .ingest_models import FailureReason, IngestResult, MediaKind, UploadRequest
from .ingest_schemas import IngestErrorSchema
from .ingest_service import IngestService

router = APIRouter(prefix="/api", tags=["uploads"])
logger = logging.getLogger(__name__)

MULTIPART_OVERHEAD_BYTES = 1 << 20

ERROR_RESPONSES = {
    code: {"model": IngestErrorSchema}
    for code in (400, 403, 404, 413, 415, 500)
}


def get_ingest_service(request: Request) -> IngestService:
    """Fetch ingest service from application state."""
    try:
        return request.app.state.ingest_service  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - defensive path
        raise RuntimeError("IngestService is not configured") from exc


def get_storage_backend(request: Request) -> StorageBackend:
    try:
        return request.app.state.storage_backend  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - defensive path
        raise RuntimeError("StorageBackend is not configured") from exc


def _error(status_code: int, reason: FailureReason, details: str | None = None) -> HTTPException:
    detail: dict[str, str] = {"status": "error", "failure_reason": reason.value}
    if details:
        detail["details"] = details
    return HTTPException(status_code=status_code, detail=detail)


def _parse_video_id(raw: str) -> str:
    try:
        return str(uuid.UUID(raw))
    except ValueError as exc:
        raise InvalidIdentifierError(
            f"invalid video id '{raw}'", operation="upload.parse_video_id"
        ) from exc


def _check_content_length(request: Request, budget: int) -> None:
    raw = request.headers.get("content-length")
    if raw is None:
        return
    try:
        declared = int(raw)
    except ValueError:
        raise MissingUploadError("invalid Content-Length header", operation="upload.guard") from None
    if declared > budget:
        raise PayloadTooLargeError(f"request body exceeds {budget} bytes", operation="upload.guard")


class BodySizeGuard:
    """ASGI receive wrapper that stops the body once it grows past ``budget`` bytes.

    Covers requests without ``Content-Length`` (chunked transfer encoding), so
    the multipart parser never spools more than the budget.
    """

    def __init__(self, receive: Receive, budget: int) -> None:
        self._receive = receive
        self.budget = budget
        self.received = 0

    async def __call__(self) -> Message:
        message = await self._receive()
        if message["type"] == "http.request":
            self.received += len(message.get("body", b""))
            if self.received > self.budget:
                logger.warning(
                    "upload.guard.body_too_large",
                    extra={"received_bytes": self.received, "limit_bytes": self.budget},
                )
                raise PayloadTooLargeError(
                    f"request body exceeds {self.budget} bytes", operation="upload.guard"
                )
        return message


def _load_target(repo: VideoRepository, video_id: str, user_id: str) -> Video:
    video = repo.get_video(video_id)
    if video.user_id != user_id:
        raise AuthorizationError(
            f"video '{video_id}' is not owned by the caller", operation="upload.authorize"
        )
    return video


def _apply_result(video: Video, kind: MediaKind, result: IngestResult) -> Video:
    if kind is MediaKind.VIDEO:
        return replace(
            video,
            video_url=result.url,
            aspect_ratio=result.aspect_ratio.value if result.aspect_ratio else video.aspect_ratio,
        )
    return replace(video, thumbnail_url=result.url)


async def _discard_orphan(backend: StorageBackend, key: str) -> None:
    try:
        await asyncio.to_thread(backend.delete, key)
    except (StorageError, OSError, ValueError) as exc:
        logger.warning(
            "upload.orphan.cleanup_failed",
            extra={"key": key, "backend": backend.kind},
            exc_info=exc,
        )
    else:
        logger.info("upload.orphan.removed", extra={"key": key, "backend": backend.kind})


async def _handle_upload(
    *,
    kind: MediaKind,
    field_name: str,
    raw_video_id: str,
    request: Request,
    user_id: str,
    service: IngestService,
    backend: StorageBackend,
    repo: VideoRepository,
) -> Video:
    try:
        video_id = _parse_video_id(raw_video_id)
    except InvalidIdentifierError as exc:
        raise _error(status.HTTP_400_BAD_REQUEST, FailureReason.INVALID_VIDEO_ID) from exc

    try:
        video = _load_target(repo, video_id, user_id)
    except KeyError:
        raise _error(status.HTTP_404_NOT_FOUND, FailureReason.VIDEO_NOT_FOUND) from None
    except AuthorizationError as exc:
        logger.warning("upload.access.not_owner", extra={"video_id": video_id, "user_id": user_id})
        raise _error(status.HTTP_403_FORBIDDEN, FailureReason.NOT_OWNER) from exc
    policy = service.validator.policy_for(kind)

    try:
        budget = policy.max_bytes + MULTIPART_OVERHEAD_BYTES
        _check_content_length(request, budget)
        limited = Request(request.scope, receive=BodySizeGuard(request.receive, budget))
        async with limited.form(max_files=1) as form:
            upload = form.get(field_name)
            if not isinstance(upload, UploadFile):
                raise MissingUploadError(
                    f"form field '{field_name}' is required", operation="upload.parse_form"
                )
            result = await service.ingest(
                UploadRequest(
                    video_id=video_id,
                    user_id=user_id,
                    kind=kind,
                    source=upload,
                    declared_content_type=upload.content_type,
                    declared_size=upload.size,
                    filename=upload.filename,
                ),
                backend,
            )
    except PayloadTooLargeError as exc:
        raise _error(
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, FailureReason.PAYLOAD_TOO_LARGE
        ) from exc
    except UnsupportedMediaError as exc:
        raise _error(
            status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            FailureReason.UNSUPPORTED_MEDIA_TYPE,
            exc.message,
        ) from exc
    except ClientInputError as exc:
        raise _error(
            status.HTTP_400_BAD_REQUEST, FailureReason.INVALID_REQUEST, exc.message
        ) from exc
    except StorageCommitError as exc:
        raise _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR, FailureReason.STORAGE_ERROR
        ) from exc

    try:
        return repo.update_video(_apply_result(video, kind, result))
    except (RepositoryError, KeyError) as exc:
        failure = PersistenceError(
            "unable to record uploaded media", operation="video.update", key=result.key
        )
        failure.__cause__ = exc
        logger.error(
            "upload.persist.failed",
            extra={"video_id": video_id, "kind": kind.value, **failure.context()},
        )
        await _discard_orphan(backend, result.key)
        raise _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR, FailureReason.PERSISTENCE_ERROR
        ) from failure


@router.post(
    "/thumbnail_upload/{video_id}",
    response_model=VideoResponse,
    responses=ERROR_RESPONSES,
)
async def upload_thumbnail(
    video_id: str,
    request: Request,
    user_id: str = Depends(require_user),
    service: IngestService = Depends(get_ingest_service),
    backend: StorageBackend = Depends(get_storage_backend),
    repo: VideoRepository = Depends(get_video_repo),
) -> VideoResponse:
    """Store a thumbnail image and point the video's ``thumbnail_url`` at it."""
    video = await _handle_upload(
        kind=MediaKind.THUMBNAIL,
        field_name="thumbnail",
        raw_video_id=video_id,
        request=request,
        user_id=user_id,
        service=service,
        backend=backend,
        repo=repo,
    )
    return VideoResponse.from_domain(video)


@router.post(
    "/video_upload/{video_id}",
    status_code=status.HTTP_201_CREATED,
    response_model=VideoResponse,
    responses=ERROR_RESPONSES,
)
async def upload_video(
    video_id: str,
    request: Request,
    user_id: str = Depends(require_user),
    service: IngestService = Depends(get_ingest_service),
    backend: StorageBackend = Depends(get_storage_backend),
    repo: VideoRepository = Depends(get_video_repo),
) -> VideoResponse:
    """Store an MP4 and point the video's ``video_url`` at it."""
    video = await _handle_upload(
        kind=MediaKind.VIDEO,
        field_name="video",
        raw_video_id=video_id,
        request=request,
        user_id=user_id,
        service=service,
        backend=backend,
        repo=repo,
    )
    return VideoResponse.from_domain(video)
