"""Pydantic schemas for video endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from .videos_models import Video


class CreateVideoRequest(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = ""


class VideoResponse(BaseModel):
    id: str
    user_id: str
    title: str
    description: str
    thumbnail_url: str | None = None
    video_url: str | None = None
    aspect_ratio: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, video: Video) -> "VideoResponse":
        return cls(
            id=video.id,
            user_id=video.user_id,
            title=video.title,
            description=video.description,
            thumbnail_url=video.thumbnail_url,
            video_url=video.video_url,
            aspect_ratio=video.aspect_ratio,
            created_at=video.created_at,
            updated_at=video.updated_at,
        )
