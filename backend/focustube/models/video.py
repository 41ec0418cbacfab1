import uuid
from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from focustube.database import Base


class YoutubeVideo(Base):
    """Shared cache of uploads for subscribed channels."""
    __tablename__ = "youtube_videos"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    video_id = Column(String(32), nullable=False, unique=True, index=True)
    channel_id = Column(String(64), nullable=False, index=True)
    title = Column(String(512), nullable=False)
    description = Column(Text, nullable=True)
    thumbnail_url = Column(Text, nullable=True)
    thumbnail_high_url = Column(Text, nullable=True)
    published_at = Column(DateTime(timezone=True), nullable=False, index=True)
    duration = Column(String(16), nullable=True)    # formatted, e.g. "12:34"
    view_count = Column(String(32), nullable=True)
    like_count = Column(String(32), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class UserVideoState(Base):
    """Per-user watch state of one video."""
    __tablename__ = "user_video_state"
    __table_args__ = (
        UniqueConstraint("user_id", "video_id", name="uq_user_video_state"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    video_id = Column(String(32), nullable=False, index=True)

    watched = Column(Boolean, nullable=False, default=False)
    completed = Column(Boolean, nullable=False, default=False)
    progress_seconds = Column(Integer, nullable=False, default=0)        # resume position
    total_watched_seconds = Column(Integer, nullable=False, default=0)   # all sessions combined
    watch_count = Column(Integer, nullable=False, default=0)

    watched_at = Column(DateTime(timezone=True), nullable=True)
    first_watched_at = Column(DateTime(timezone=True), nullable=True)
    last_watched_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class WatchLater(Base):
    __tablename__ = "user_watch_later"
    __table_args__ = (
        UniqueConstraint("user_id", "video_id", name="uq_user_watch_later"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    video_id = Column(String(32), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
