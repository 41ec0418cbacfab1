import logging
from datetime import datetime, timezone

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from focustube.models.profile import Profile
from focustube.models.category import ChannelCategory, ChannelCategoryChannel
from focustube.models.channel import ChannelSubscription
from focustube.models.video import UserVideoState, WatchLater
from focustube.models.watch_session import DailyWatchSession
from focustube.schemas.user import ProfileUpdate, ExtensionMeResponse
from focustube.services.channel_service import ChannelService

logger = logging.getLogger(__name__)


class UserService:

    @staticmethod
    async def update_profile(db: AsyncSession, user: Profile, update_data: ProfileUpdate) -> Profile:
        """Update the user's display fields. Only provided fields change."""
        changes = update_data.model_dump(exclude_unset=True)
        for field, value in changes.items():
            setattr(user, field, value)

        user.updated_at = datetime.now(timezone.utc)
        await db.flush()
        return user

    @staticmethod
    async def delete_account(db: AsyncSession, user: Profile):
        """Delete the profile and every row it owns."""
        for model in (
            ChannelCategoryChannel,
            ChannelCategory,
            ChannelSubscription,
            UserVideoState,
            WatchLater,
            DailyWatchSession,
        ):
            await db.execute(delete(model).where(model.user_id == user.id))

        await db.delete(user)
        await db.flush()
        logger.info(f"Deleted account {user.id}")

    @staticmethod
    async def get_extension_info(db: AsyncSession, user: Profile) -> ExtensionMeResponse:
        return ExtensionMeResponse(
            user_id=user.id,
            email=user.email,
            subscription_tier=user.subscription_tier or "free",
            channel_count=await ChannelService.count_subscriptions(db, user),
            channel_limit=user.channel_limit,
        )
