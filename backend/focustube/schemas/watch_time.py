from pydantic import BaseModel, Field
from typing import Optional


class WatchTimeData(BaseModel):
    daily_limit_minutes: int
    limit_enabled: bool
    timezone: str
    today: str                      # YYYY-MM-DD in the user's timezone
    today_watched_seconds: int


class WatchSecondsUpdate(BaseModel):
    seconds: int = Field(..., ge=0, description="Seconds to set (absolute) or add (increment)")


class WatchSecondsResponse(BaseModel):
    date: str
    watched_seconds: int


class WatchLimitSettingsUpdate(BaseModel):
    daily_limit_minutes: Optional[int] = Field(None, gt=0, le=24 * 60)
    limit_enabled: Optional[bool] = None


class WatchLimitSettingsResponse(BaseModel):
    daily_limit_minutes: int
    limit_enabled: bool


class DailyWatchEntry(BaseModel):
    date: str
    watched_seconds: int


class WatchHistoryResponse(BaseModel):
    since: str
    history: list[DailyWatchEntry]


class WatchStats(BaseModel):
    days: int
    total_seconds: int
    avg_seconds_per_day: int
    best_day: Optional[str] = None
    best_day_seconds: int = 0
    days_with_data: int = 0

    # Trend vs the period of equal length just before
    previous_period_total_seconds: int = 0
    delta_seconds: int = 0
    delta_percent: Optional[int] = None   # None when the previous period is 0

    daily_series: list[DailyWatchEntry]


class TimezoneUpdate(BaseModel):
    timezone: str = Field(..., min_length=1, max_length=64)


class TimezoneResponse(BaseModel):
    timezone: str
