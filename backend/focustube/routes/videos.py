from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from focustube.database import get_db
from focustube.models.profile import Profile
from focustube.schemas.video import (
    FeedResponse,
    MarkWatchedRequest,
    ProgressUpdate,
    WatchDeltaRequest,
    WatchDeltaResponse,
    VideoStateResponse,
    HistoryEntry,
    WatchLaterEntry,
    WatchLaterToggleResponse,
    WatchLaterStatusRequest,
)
from focustube.security import get_current_user
from focustube.services.video_service import VideoService

router = APIRouter(prefix="/videos", tags=["videos"])


@router.get("/feed", response_model=FeedResponse)
async def get_feed(
    cursor: Optional[datetime] = Query(None, description="published_at of the last video already shown"),
    limit: int = Query(20, ge=1, le=50),
    channel_id: Optional[str] = None,
    category_id: Optional[str] = Query(None, description='Category id, or "uncategorized"'),
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """
    Newest videos from the user's subscribed channels.

    Filters:
    - **channel_id**: one subscribed channel
    - **category_id**: channels in that category
    - **category_id=uncategorized**: channels without any category
    """
    return await VideoService.get_feed(db, current_user, cursor, limit, channel_id, category_id)


@router.get("/history", response_model=list[HistoryEntry])
async def get_video_history(
    limit: int = Query(50, ge=1, le=200),
    include_partial: bool = True,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    return await VideoService.get_watch_history(db, current_user, limit, include_partial)


@router.get("/continue-watching", response_model=list[HistoryEntry])
async def get_continue_watching(
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """Started videos that were not finished, most recent first."""
    return await VideoService.get_continue_watching(db, current_user, limit)


# ─── Watch later ─────────────────────────────────────────────────────────────

@router.get("/watch-later", response_model=list[WatchLaterEntry])
async def get_watch_later(
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    return await VideoService.get_watch_later(db, current_user, limit)


@router.post("/watch-later/status", response_model=dict[str, bool])
async def get_watch_later_status(
    data: WatchLaterStatusRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """Which of the given videos are on the watch later list."""
    return await VideoService.get_watch_later_status(db, current_user, data.video_ids)


@router.put("/watch-later/{video_id}", response_model=WatchLaterToggleResponse)
async def add_to_watch_later(
    video_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    await VideoService.add_to_watch_later(db, current_user, video_id)
    return WatchLaterToggleResponse(in_watch_later=True)


@router.delete("/watch-later/{video_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_from_watch_later(
    video_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    await VideoService.remove_from_watch_later(db, current_user, video_id)


@router.post("/watch-later/{video_id}/toggle", response_model=WatchLaterToggleResponse)
async def toggle_watch_later(
    video_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    in_list = await VideoService.toggle_watch_later(db, current_user, video_id)
    return WatchLaterToggleResponse(in_watch_later=in_list)


# ─── Per-video state ─────────────────────────────────────────────────────────

@router.get("/{video_id}/state", response_model=VideoStateResponse)
async def get_video_state(
    video_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    state = await VideoService.get_video_state(db, current_user, video_id)
    if not state:
        raise HTTPException(status_code=404, detail="No watch state for this video")
    return state


@router.put("/{video_id}/watched", response_model=VideoStateResponse)
async def mark_watched(
    video_id: str,
    data: MarkWatchedRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    return await VideoService.mark_video_watched(db, current_user, video_id, data.watched)


@router.put("/{video_id}/progress", response_model=VideoStateResponse)
async def update_progress(
    video_id: str,
    data: ProgressUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """Store the resume position. Completing a video marks it watched."""
    return await VideoService.update_video_progress(
        db, current_user, video_id, data.progress_seconds, data.completed
    )


@router.post("/{video_id}/watch-delta", response_model=WatchDeltaResponse)
async def log_watch_delta(
    video_id: str,
    data: WatchDeltaRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """
    Report seconds actually watched since the previous report.
    A video becomes watched after 30 seconds or on completion.
    """
    return await VideoService.log_video_watch_delta(
        db,
        current_user,
        video_id,
        data.delta_seconds,
        progress_seconds=data.progress_seconds,
        completed=data.completed,
        is_new_session=data.is_new_session,
    )
