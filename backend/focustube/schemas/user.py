from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
import uuid


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, max_length=255)
    avatar_url: Optional[str] = None


class ProfileResponse(BaseModel):
    id: uuid.UUID
    email: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    subscription_tier: str
    daily_watch_limit_minutes: Optional[int] = None
    watch_limit_enabled: Optional[bool] = None
    time_zone: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ExtensionMeResponse(BaseModel):
    authenticated: bool = True
    user_id: uuid.UUID
    email: Optional[str] = None
    subscription_tier: str
    channel_count: int
    channel_limit: Optional[int] = None   # None = unlimited
