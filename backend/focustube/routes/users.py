from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from focustube.database import get_db
from focustube.models.profile import Profile
from focustube.schemas.user import ProfileUpdate, ProfileResponse
from focustube.schemas.watch_time import TimezoneUpdate, TimezoneResponse
from focustube.security import get_current_user
from focustube.services.user_service import UserService
from focustube.services.watch_time_service import WatchTimeService

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    current_user: Profile = Depends(get_current_user),
):
    """
    Get the current user's profile.

    Requires: Valid JWT token in Authorization header

    Includes the subscription tier and watch time settings.
    """
    return current_user


@router.put("/me", response_model=ProfileResponse)
async def update_my_profile(
    update_data: ProfileUpdate,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Update the current user's display name and avatar.

    Requires: Valid JWT token in Authorization header
    """
    return await UserService.update_profile(db, current_user, update_data)


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
async def delete_my_account(
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete the current user's profile with their channels, categories,
    video state and watch time.
    """
    await UserService.delete_account(db, current_user)


@router.get("/me/timezone", response_model=TimezoneResponse)
async def get_my_timezone(
    current_user: Profile = Depends(get_current_user),
):
    return TimezoneResponse(timezone=WatchTimeService.user_timezone(current_user))


@router.put("/me/timezone", response_model=TimezoneResponse)
async def update_my_timezone(
    data: TimezoneUpdate,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Store the IANA timezone used to decide which calendar day watch time
    counts toward. Unknown zones are rejected with 400.
    """
    tz = await WatchTimeService.update_timezone(db, current_user, data.timezone)
    return TimezoneResponse(timezone=tz)
