import logging
from datetime import datetime, timezone
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from focustube.config import settings
from focustube.models.profile import Profile
from focustube.models.channel import YoutubeChannel, ChannelSubscription
from focustube.models.category import ChannelCategory, ChannelCategoryChannel
from focustube.models.video import YoutubeVideo
from focustube.schemas.channel import ChannelData, VideoData
from focustube.services.youtube_service import YoutubeService, YoutubeApiError

logger = logging.getLogger(__name__)


class ChannelService:
    """Subscriptions and the shared channel/video cache."""

    @staticmethod
    async def count_subscriptions(db: AsyncSession, user: Profile) -> int:
        return await db.scalar(
            select(func.count(ChannelSubscription.id)).where(ChannelSubscription.user_id == user.id)
        ) or 0

    @staticmethod
    async def upsert_channel(db: AsyncSession, data: ChannelData) -> YoutubeChannel:
        result = await db.execute(select(YoutubeChannel).where(YoutubeChannel.channel_id == data.channel_id))
        channel = result.scalar_one_or_none()
        values = data.model_dump()
        if channel:
            for key, value in values.items():
                setattr(channel, key, value)
            channel.updated_at = datetime.now(timezone.utc)
        else:
            channel = YoutubeChannel(**values)
            db.add(channel)
        await db.flush()
        return channel

    @staticmethod
    async def upsert_videos(db: AsyncSession, videos: list[VideoData]) -> int:
        """Insert or refresh cached videos (idempotent on video_id)."""
        if not videos:
            return 0
        ids = [v.video_id for v in videos]
        result = await db.execute(select(YoutubeVideo).where(YoutubeVideo.video_id.in_(ids)))
        existing = {v.video_id: v for v in result.scalars().all()}

        now = datetime.now(timezone.utc)
        for video in videos:
            values = video.model_dump()
            row = existing.get(video.video_id)
            if row:
                for key, value in values.items():
                    setattr(row, key, value)
                row.updated_at = now
            else:
                db.add(YoutubeVideo(**values))
        await db.flush()
        return len(videos)

    @staticmethod
    async def add_channel_for_user(
        db: AsyncSession,
        user: Profile,
        raw_input: str,
        youtube: YoutubeService,
        category_ids: list[UUID] | None = None,
    ) -> YoutubeChannel:
        """
        Subscribe the user to whatever channel `raw_input` points at.

        Category assignment and caching the latest uploads are best effort:
        a failure there is logged and the subscription is kept.
        """
        if not raw_input or not raw_input.strip():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid channel input")

        try:
            data = await youtube.resolve_channel(raw_input)
        except YoutubeApiError as e:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

        if data is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Channel not found")

        existing = await db.execute(
            select(ChannelSubscription.id).where(
                ChannelSubscription.user_id == user.id,
                ChannelSubscription.channel_id == data.channel_id,
            )
        )
        if existing.first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="You're already subscribed to this channel"
            )

        limit = user.channel_limit
        if limit is not None and await ChannelService.count_subscriptions(db, user) >= limit:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"You've reached the {limit} channel limit for your plan. Upgrade to add more."
            )

        channel = await ChannelService.upsert_channel(db, data)
        db.add(ChannelSubscription(user_id=user.id, channel_id=data.channel_id))
        await db.flush()
        logger.info(f"User {user.id} subscribed to {data.channel_id} ({data.title})")

        if category_ids:
            owned = await db.execute(
                select(ChannelCategory.id).where(
                    ChannelCategory.user_id == user.id,
                    ChannelCategory.id.in_(category_ids),
                )
            )
            owned_ids = set(owned.scalars().all())
            skipped = [cid for cid in category_ids if cid not in owned_ids]
            if skipped:
                logger.warning(f"Ignoring unknown categories {skipped} for user {user.id}")
            for category_id in dict.fromkeys(category_ids):
                if category_id in owned_ids:
                    db.add(ChannelCategoryChannel(user_id=user.id, category_id=category_id, channel_id=data.channel_id))
            await db.flush()

        try:
            videos = await youtube.get_channel_videos(data.uploads_playlist_id, settings.CHANNEL_VIDEO_FETCH_LIMIT)
            await ChannelService.upsert_videos(db, videos)
        except YoutubeApiError as e:
            logger.warning(f"Could not cache videos for {data.channel_id}: {e}")

        return channel

    @staticmethod
    async def remove_channel(db: AsyncSession, user: Profile, channel_id: str):
        await db.execute(
            delete(ChannelCategoryChannel).where(
                ChannelCategoryChannel.user_id == user.id,
                ChannelCategoryChannel.channel_id == channel_id,
            )
        )
        result = await db.execute(
            delete(ChannelSubscription).where(
                ChannelSubscription.user_id == user.id,
                ChannelSubscription.channel_id == channel_id,
            )
        )
        if result.rowcount == 0:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Channel not found in your subscriptions")

    @staticmethod
    async def get_user_channels(db: AsyncSession, user: Profile) -> list[ChannelSubscription]:
        """Subscriptions with their cached channel, newest first."""
        result = await db.execute(
            select(ChannelSubscription)
            .where(ChannelSubscription.user_id == user.id)
            .order_by(ChannelSubscription.created_at.desc())
        )
        return result.scalars().unique().all()

    @staticmethod
    async def get_subscribed_ids(db: AsyncSession, user: Profile) -> list[str]:
        result = await db.execute(
            select(ChannelSubscription.channel_id).where(ChannelSubscription.user_id == user.id)
        )
        return result.scalars().all()

    @staticmethod
    async def refresh_channel_videos(
        db: AsyncSession,
        user: Profile,
        channel_id: str,
        youtube: YoutubeService,
    ) -> int:
        result = await db.execute(
            select(YoutubeChannel.uploads_playlist_id)
            .join(ChannelSubscription, ChannelSubscription.channel_id == YoutubeChannel.channel_id)
            .where(
                YoutubeChannel.channel_id == channel_id,
                ChannelSubscription.user_id == user.id,
            )
        )
        uploads = result.scalar_one_or_none()
        if not uploads:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Channel not found")

        try:
            videos = await youtube.get_channel_videos(uploads, settings.CHANNEL_VIDEO_FETCH_LIMIT)
        except YoutubeApiError as e:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

        count = await ChannelService.upsert_videos(db, videos)
        logger.info(f"Refreshed {count} videos for {channel_id}")
        return count
