import uuid
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from focustube.database import Base


class DailyWatchSession(Base):
    """Seconds watched by one user on one calendar day of their own timezone."""
    __tablename__ = "daily_watch_sessions"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_user_watch_date"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)

    # YYYY-MM-DD in the user's local timezone; sorts lexically
    date = Column(String(10), nullable=False, index=True)
    watched_seconds = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
