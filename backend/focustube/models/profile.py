import uuid
from sqlalchemy import Column, String, Integer, Boolean, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
import enum
from focustube.database import Base


class SubscriptionTier(str, enum.Enum):
    FREE = "free"
    PRO = "pro"
    UNLIMITED = "unlimited"


# Max subscribed channels per tier (None = no limit)
CHANNEL_LIMITS = {
    SubscriptionTier.FREE: 5,
    SubscriptionTier.PRO: 25,
    SubscriptionTier.UNLIMITED: None,
}


class Profile(Base):
    """A FocusTube user. The id is the hosted auth provider's user id (JWT `sub`)."""
    __tablename__ = "profiles"

    # Primary key
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Identity (mirrored from the auth provider)
    email = Column(String(255), nullable=True, index=True)
    full_name = Column(String(255), nullable=True)
    avatar_url = Column(String, nullable=True)

    # Plan (written by the billing provider, read-only here)
    subscription_tier = Column(String(20), nullable=False, default=SubscriptionTier.FREE.value)

    # Watch time settings
    daily_watch_limit_minutes = Column(Integer, nullable=True)
    watch_limit_enabled = Column(Boolean, nullable=True)
    time_zone = Column(String(64), nullable=True)  # IANA name, e.g. "Europe/Paris"

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    @property
    def channel_limit(self):
        try:
            tier = SubscriptionTier(self.subscription_tier or SubscriptionTier.FREE.value)
        except ValueError:
            tier = SubscriptionTier.FREE
        return CHANNEL_LIMITS[tier]

    def __repr__(self):
        return f"<Profile {self.id} ({self.email})>"
