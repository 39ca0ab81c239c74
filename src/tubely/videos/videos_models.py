"""Video metadata domain objects."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class Video:
    id: str
    user_id: str
    title: str
    description: str
    created_at: datetime
    updated_at: datetime
    thumbnail_url: str | None = None
    video_url: str | None = None
    aspect_ratio: str | None = None
