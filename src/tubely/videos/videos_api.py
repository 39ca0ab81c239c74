"""HTTP routes for video metadata."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ..auth.auth_dependencies import require_user
from ..exceptions import RepositoryError
from .videos_models import Video
from .videos_repository import VideoRepository
from .videos_schemas import CreateVideoRequest, VideoResponse

router = APIRouter(prefix="/api/videos", tags=["videos"])
logger = logging.getLogger(__name__)


def get_video_repo(request: Request) -> VideoRepository:
    """Fetch video repository from application state."""
    try:
        return request.app.state.video_repo  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - defensive path
        raise RuntimeError("VideoRepository is not configured") from exc


def load_owned_video(repo: VideoRepository, video_id: str, user_id: str) -> Video:
    """Return the video or raise 404/403 when it is missing or foreign."""
    try:
        video = repo.get_video(video_id)
    except KeyError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"status": "error", "failure_reason": "video_not_found"},
        ) from None
    if video.user_id != user_id:
        logger.warning(
            "videos.access.not_owner",
            extra={"video_id": video_id, "user_id": user_id},
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"status": "error", "failure_reason": "not_owner"},
        )
    return video


@router.post("", status_code=status.HTTP_201_CREATED, response_model=VideoResponse)
def create_video(
    payload: CreateVideoRequest,
    user_id: str = Depends(require_user),
    repo: VideoRepository = Depends(get_video_repo),
) -> VideoResponse:
    try:
        video = repo.create_video(
            user_id=user_id, title=payload.title, description=payload.description
        )
    except RepositoryError as exc:
        logger.error("videos.create.failed", extra=exc.context())
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"status": "error", "failure_reason": "persistence_error"},
        ) from exc
    logger.info("videos.created", extra={"video_id": video.id, "user_id": user_id})
    return VideoResponse.from_domain(video)


@router.get("", response_model=list[VideoResponse])
def list_videos(
    user_id: str = Depends(require_user),
    repo: VideoRepository = Depends(get_video_repo),
) -> list[VideoResponse]:
    return [VideoResponse.from_domain(video) for video in repo.list_videos(user_id)]


@router.get("/{video_id}", response_model=VideoResponse)
def get_video(
    video_id: str,
    user_id: str = Depends(require_user),
    repo: VideoRepository = Depends(get_video_repo),
) -> VideoResponse:
    return VideoResponse.from_domain(load_owned_video(repo, video_id, user_id))
