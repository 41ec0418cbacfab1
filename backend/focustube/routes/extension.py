import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from focustube.database import get_db
from focustube.models.profile import Profile
from focustube.schemas.category import ExtensionCategory
from focustube.schemas.channel import AddChannelRequest, ChannelResponse
from focustube.schemas.user import ExtensionMeResponse
from focustube.security import get_current_user
from focustube.services.category_service import CategoryService
from focustube.services.channel_service import ChannelService
from focustube.services.user_service import UserService
from focustube.services.youtube_service import YoutubeService, get_youtube_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/extension", tags=["extension"])


@router.get("/me", response_model=ExtensionMeResponse)
async def extension_me(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """Who is signed in, and how many channels they can still add."""
    return await UserService.get_extension_info(db, current_user)


@router.get("/categories", response_model=list[ExtensionCategory])
async def extension_categories(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    return await CategoryService.get_user_categories(db, current_user)


@router.post("/add-channel", response_model=ChannelResponse)
async def extension_add_channel(
    data: AddChannelRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
    youtube: YoutubeService = Depends(get_youtube_service),
):
    """
    Add the channel the user is looking at on YouTube.
    Every failure is reported as 400 with a message the popup can show.
    """
    try:
        return await ChannelService.add_channel_for_user(
            db, current_user, data.input, youtube, data.category_ids
        )
    except HTTPException as e:
        logger.info(f"Extension add-channel failed for {current_user.id}: {e.detail}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.detail)
