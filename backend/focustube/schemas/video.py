from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class ChannelSummary(BaseModel):
    title: str
    thumbnail_url: Optional[str] = None
    custom_url: Optional[str] = None


class FeedVideo(BaseModel):
    video_id: str
    channel_id: str
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    thumbnail_high_url: Optional[str] = None
    published_at: datetime
    duration: Optional[str] = None
    view_count: Optional[str] = None
    like_count: Optional[str] = None
    channel: Optional[ChannelSummary] = None

    # Per-user state
    watched: bool = False
    progress_seconds: int = 0
    completed: bool = False


class FeedResponse(BaseModel):
    videos: list[FeedVideo]
    has_more: bool
    next_cursor: Optional[datetime] = None


class MarkWatchedRequest(BaseModel):
    watched: bool = True


class ProgressUpdate(BaseModel):
    progress_seconds: int = Field(..., ge=0)
    completed: bool = False


class WatchDeltaRequest(BaseModel):
    delta_seconds: int = Field(..., description="Seconds watched since the last report; negatives count as 0")
    progress_seconds: Optional[int] = Field(None, ge=0)
    completed: bool = False
    is_new_session: bool = False


class WatchDeltaResponse(BaseModel):
    total_watched_seconds: int
    watched: bool


class VideoStateResponse(BaseModel):
    video_id: str
    watched: bool
    completed: bool
    progress_seconds: int
    total_watched_seconds: int
    watch_count: int
    watched_at: Optional[datetime] = None
    first_watched_at: Optional[datetime] = None
    last_watched_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class VideoSummary(BaseModel):
    video_id: str
    title: str
    thumbnail_url: Optional[str] = None
    thumbnail_high_url: Optional[str] = None
    duration: Optional[str] = None
    channel_id: str
    published_at: Optional[datetime] = None
    view_count: Optional[str] = None
    channel: Optional[ChannelSummary] = None


class HistoryEntry(BaseModel):
    video_id: str
    watched_at: Optional[datetime] = None
    first_watched_at: Optional[datetime] = None
    last_watched_at: Optional[datetime] = None
    progress_seconds: int = 0
    total_watched_seconds: int = 0
    completed: bool = False
    watch_count: int = 0
    video: Optional[VideoSummary] = None


class WatchLaterEntry(BaseModel):
    video_id: str
    added_at: datetime
    video: VideoSummary


class WatchLaterToggleResponse(BaseModel):
    in_watch_later: bool


class WatchLaterStatusRequest(BaseModel):
    video_ids: list[str] = Field(default_factory=list)
