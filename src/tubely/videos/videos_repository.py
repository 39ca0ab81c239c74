"""Video metadata repository backed by SQLAlchemy."""

from __future__ import annotations

import uuid
from collections.abc import Callable, Sequence
from datetime import datetime

from sqlalchemy.orm import Session

from ..db.db_models import VideoModel
from ..exceptions import handle_sqlalchemy_errors
from .videos_models import Video


class VideoRepository:
    """Read and update video records owned by users."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def create_video(self, *, user_id: str, title: str, description: str = "") -> Video:
        now = datetime.utcnow()
        row = VideoModel(
            id=str(uuid.uuid4()),
            user_id=user_id,
            title=title,
            description=description,
            created_at=now,
            updated_at=now,
        )
        with handle_sqlalchemy_errors(entity="video", operation="video.create"):
            with self._session_factory() as session:
                session.add(row)
                session.commit()
                return self._to_domain(row)

    def get_video(self, video_id: str) -> Video:
        with self._session_factory() as session:
            row = session.get(VideoModel, video_id)
            if row is None:
                raise KeyError(f"Video '{video_id}' not found")
            return self._to_domain(row)

    def list_videos(self, user_id: str) -> Sequence[Video]:
        with self._session_factory() as session:
            rows = (
                session.query(VideoModel)
                .filter(VideoModel.user_id == user_id)
                .order_by(VideoModel.created_at.desc())
                .all()
            )
            return [self._to_domain(row) for row in rows]

    def list_asset_urls(self) -> set[str]:
        """Return every thumbnail/video URL currently referenced."""
        with self._session_factory() as session:
            rows = session.query(VideoModel.thumbnail_url, VideoModel.video_url).all()
        urls: set[str] = set()
        for thumbnail_url, video_url in rows:
            if thumbnail_url:
                urls.add(thumbnail_url)
            if video_url:
                urls.add(video_url)
        return urls

    def update_video(self, video: Video) -> Video:
        """Persist mutable fields and bump ``updated_at``."""
        with handle_sqlalchemy_errors(entity="video", operation="video.update"):
            with self._session_factory() as session:
                row = session.get(VideoModel, video.id)
                if row is None:
                    raise KeyError(f"Video '{video.id}' not found")
                row.title = video.title
                row.description = video.description
                row.thumbnail_url = video.thumbnail_url
                row.video_url = video.video_url
                row.aspect_ratio = video.aspect_ratio
                row.updated_at = datetime.utcnow()
                session.commit()
                return self._to_domain(row)

    @staticmethod
    def _to_domain(row: VideoModel) -> Video:
        return Video(
            id=row.id,
            user_id=row.user_id,
            title=row.title,
            description=row.description,
            created_at=row.created_at,
            updated_at=row.updated_at,
            thumbnail_url=row.thumbnail_url,
            video_url=row.video_url,
            aspect_ratio=row.aspect_ratio,
        )
