import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from focustube.database import get_db
from focustube.models.profile import Profile
from focustube.schemas.watch_time import (
    WatchTimeData,
    WatchSecondsUpdate,
    WatchSecondsResponse,
    WatchLimitSettingsUpdate,
    WatchLimitSettingsResponse,
    WatchHistoryResponse,
    WatchStats,
)
from focustube.security import get_current_user
from focustube.services.local_date import local_date_days_ago
from focustube.services.watch_time_service import WatchTimeService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/watch-time", tags=["watch-time"])


@router.get("", response_model=WatchTimeData)
async def get_watch_time(
    session: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """
    Limit settings and seconds watched today.
    "Today" is the calendar date in the user's stored timezone.
    """
    return await WatchTimeService.get_watch_time_data(session, current_user)


@router.put("/today", response_model=WatchSecondsResponse)
async def set_today_watch_time(
    data: WatchSecondsUpdate,
    session: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """Overwrite today's total with an absolute value."""
    return await WatchTimeService.set_watch_time(session, current_user, data.seconds)


@router.post("/increment", response_model=WatchSecondsResponse)
async def increment_today_watch_time(
    data: WatchSecondsUpdate,
    session: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """
    Add seconds to today's total and return the new total.
    Used by trackers that report deltas, so several devices add up.
    """
    return await WatchTimeService.increment_watch_time(session, current_user, data.seconds)


@router.patch("/settings", response_model=WatchLimitSettingsResponse)
async def update_watch_limit_settings(
    data: WatchLimitSettingsUpdate,
    session: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    return await WatchTimeService.update_limit_settings(session, current_user, data)


@router.get("/history", response_model=WatchHistoryResponse)
async def get_watch_time_history(
    days: int = Query(7, ge=1, le=366),
    since: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    session: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """
    Per-day totals, newest first.
    `since` (YYYY-MM-DD) takes precedence over `days`.
    """
    if since is None:
        since = local_date_days_ago(WatchTimeService.user_timezone(current_user), days)
    history = await WatchTimeService.get_watch_history(session, current_user, since)
    return WatchHistoryResponse(since=since, history=history)


@router.get("/stats", response_model=WatchStats)
async def get_watch_time_stats(
    days: int = Query(7, ge=1, le=90),
    session: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    return await WatchTimeService.get_watch_stats(session, current_user, days)
