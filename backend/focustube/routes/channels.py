import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from focustube.database import get_db
from focustube.models.profile import Profile
from focustube.schemas.category import ChannelCategoriesUpdate
from focustube.schemas.channel import (
    AddChannelRequest,
    ChannelData,
    ChannelResponse,
    SubscriptionResponse,
    RefreshResponse,
)
from focustube.security import get_current_user
from focustube.services.category_service import CategoryService
from focustube.services.channel_service import ChannelService
from focustube.services.youtube_service import YoutubeService, YoutubeApiError, get_youtube_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/channels", tags=["channels"])


@router.get("", response_model=list[SubscriptionResponse])
async def list_my_channels(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """Subscribed channels, most recently added first."""
    return await ChannelService.get_user_channels(db, current_user)


@router.post("", response_model=ChannelResponse, status_code=status.HTTP_201_CREATED)
async def add_channel(
    data: AddChannelRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
    youtube: YoutubeService = Depends(get_youtube_service),
):
    """
    Subscribe to a channel from a URL, @handle, channel id or search term.

    - 404 if nothing matches
    - 409 if already subscribed
    - 400 when the plan's channel limit is reached
    """
    return await ChannelService.add_channel_for_user(
        db, current_user, data.input, youtube, data.category_ids
    )


@router.get("/search", response_model=list[ChannelData])
async def search_channels(
    q: str = Query(..., min_length=1),
    max_results: int = Query(10, ge=1, le=25),
    current_user: Profile = Depends(get_current_user),
    youtube: YoutubeService = Depends(get_youtube_service),
):
    try:
        return await youtube.search_channels(q, max_results)
    except YoutubeApiError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.delete("/{channel_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_channel(
    channel_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    await ChannelService.remove_channel(db, current_user, channel_id)


@router.post("/{channel_id}/refresh", response_model=RefreshResponse)
async def refresh_channel(
    channel_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
    youtube: YoutubeService = Depends(get_youtube_service),
):
    """Fetch the channel's latest uploads into the video cache."""
    count = await ChannelService.refresh_channel_videos(db, current_user, channel_id, youtube)
    return RefreshResponse(channel_id=channel_id, videos_cached=count)


@router.get("/{channel_id}/categories", response_model=list[UUID])
async def get_channel_categories(
    channel_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    return await CategoryService.get_channel_categories(db, current_user, channel_id)


@router.put("/{channel_id}/categories", response_model=list[UUID])
async def set_channel_categories(
    channel_id: str,
    data: ChannelCategoriesUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """Replace the channel's categories. An empty list makes it uncategorized."""
    return await CategoryService.set_channel_categories(db, current_user, channel_id, data.category_ids)
