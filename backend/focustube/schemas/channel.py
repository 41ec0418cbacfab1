from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime
from typing import Optional


class ChannelData(BaseModel):
    """Channel metadata as returned by the YouTube Data API."""
    channel_id: str
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    subscriber_count: Optional[str] = None
    video_count: Optional[str] = None
    uploads_playlist_id: Optional[str] = None
    custom_url: Optional[str] = None


class VideoData(BaseModel):
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


class AddChannelRequest(BaseModel):
    input: str = Field(..., min_length=1, description="Channel URL, @handle, id or search term")
    category_ids: list[UUID] = Field(default_factory=list)


class ChannelResponse(BaseModel):
    channel_id: str
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    subscriber_count: Optional[str] = None
    video_count: Optional[str] = None
    custom_url: Optional[str] = None

    class Config:
        from_attributes = True


class SubscriptionResponse(BaseModel):
    id: UUID
    channel_id: str
    created_at: datetime
    channel: Optional[ChannelResponse] = None

    class Config:
        from_attributes = True


class RefreshResponse(BaseModel):
    channel_id: str
    videos_cached: int
