import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from focustube.database import Base


class YoutubeChannel(Base):
    """Shared cache of YouTube channel metadata (one row per channel, all users)."""
    __tablename__ = "youtube_channels"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    channel_id = Column(String(64), nullable=False, unique=True, index=True)  # e.g. "UC..."
    title = Column(String(512), nullable=False)
    description = Column(Text, nullable=True)
    thumbnail_url = Column(Text, nullable=True)
    subscriber_count = Column(String(32), nullable=True)
    video_count = Column(String(32), nullable=True)
    uploads_playlist_id = Column(String(64), nullable=True)
    custom_url = Column(String(255), nullable=True)  # @handle

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class ChannelSubscription(Base):
    """A channel the user chose to follow."""
    __tablename__ = "channel_subscriptions"
    __table_args__ = (
        UniqueConstraint("user_id", "channel_id", name="uq_user_channel_subscription"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    channel_id = Column(String(64), ForeignKey("youtube_channels.channel_id"), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    channel = relationship("YoutubeChannel", foreign_keys=[channel_id], lazy="joined")
