import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import select, delete, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from focustube.config import settings
from focustube.models.profile import Profile
from focustube.models.channel import YoutubeChannel
from focustube.models.category import ChannelCategoryChannel
from focustube.models.video import YoutubeVideo, UserVideoState, WatchLater
from focustube.schemas.video import (
    ChannelSummary,
    FeedVideo,
    FeedResponse,
    HistoryEntry,
    VideoSummary,
    WatchDeltaResponse,
    WatchLaterEntry,
)
from focustube.services.category_service import CategoryService
from focustube.services.channel_service import ChannelService

logger = logging.getLogger(__name__)

# Seconds of actual watching after which a video counts as watched
WATCHED_THRESHOLD_SECONDS = 30

UNCATEGORIZED = "uncategorized"


class VideoService:
    """Chronological feed, per-user video state and the watch-later list."""

    # ── Feed ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def _feed_channel_ids(
        db: AsyncSession,
        user: Profile,
        channel_id: Optional[str],
        category_id: Optional[str],
    ) -> list[str]:
        subscribed = await ChannelService.get_subscribed_ids(db, user)
        if not subscribed:
            return []

        if channel_id:
            return [channel_id] if channel_id in subscribed else []

        if category_id == UNCATEGORIZED:
            result = await db.execute(
                select(ChannelCategoryChannel.channel_id)
                .where(ChannelCategoryChannel.user_id == user.id)
                .distinct()
            )
            categorized = set(result.scalars().all())
            return [cid for cid in subscribed if cid not in categorized]

        if category_id:
            try:
                cat_uuid = UUID(category_id)
            except ValueError:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid category ID")
            in_category = set(await CategoryService.get_channels_in_category(db, user, cat_uuid))
            # Assignments can outlive an unsubscribe
            return [cid for cid in subscribed if cid in in_category]

        return subscribed

    @staticmethod
    async def _states_for(db: AsyncSession, user: Profile, video_ids: list[str]) -> dict[str, UserVideoState]:
        if not video_ids:
            return {}
        result = await db.execute(
            select(UserVideoState).where(
                UserVideoState.user_id == user.id,
                UserVideoState.video_id.in_(video_ids),
            )
        )
        return {s.video_id: s for s in result.scalars().all()}

    @staticmethod
    async def _channel_summaries(db: AsyncSession, channel_ids) -> dict[str, ChannelSummary]:
        ids = list(set(channel_ids))
        if not ids:
            return {}
        result = await db.execute(select(YoutubeChannel).where(YoutubeChannel.channel_id.in_(ids)))
        return {
            c.channel_id: ChannelSummary(title=c.title, thumbnail_url=c.thumbnail_url, custom_url=c.custom_url)
            for c in result.scalars().all()
        }

    @staticmethod
    async def get_feed(
        db: AsyncSession,
        user: Profile,
        cursor: Optional[datetime] = None,
        limit: Optional[int] = None,
        channel_id: Optional[str] = None,
        category_id: Optional[str] = None,
    ) -> FeedResponse:
        """
        Newest-first videos of the selected channels. `cursor` is the
        published_at of the last video of the previous page.
        """
        limit = limit or settings.FEED_PAGE_SIZE
        channel_ids = await VideoService._feed_channel_ids(db, user, channel_id, category_id)
        if not channel_ids:
            return FeedResponse(videos=[], has_more=False, next_cursor=None)

        query = select(YoutubeVideo).where(YoutubeVideo.channel_id.in_(channel_ids))
        if cursor is not None:
            query = query.where(YoutubeVideo.published_at < cursor)
        query = query.order_by(YoutubeVideo.published_at.desc()).limit(limit + 1)

        rows = (await db.execute(query)).scalars().all()
        has_more = len(rows) > limit
        rows = rows[:limit]

        states = await VideoService._states_for(db, user, [v.video_id for v in rows])
        channels = await VideoService._channel_summaries(db, [v.channel_id for v in rows])

        videos = []
        for v in rows:
            state = states.get(v.video_id)
            videos.append(FeedVideo(
                video_id=v.video_id,
                channel_id=v.channel_id,
                title=v.title,
                description=v.description,
                thumbnail_url=v.thumbnail_url,
                thumbnail_high_url=v.thumbnail_high_url,
                published_at=v.published_at,
                duration=v.duration,
                view_count=v.view_count,
                like_count=v.like_count,
                channel=channels.get(v.channel_id),
                watched=bool(state and state.watched),
                progress_seconds=state.progress_seconds if state else 0,
                completed=bool(state and state.completed),
            ))

        return FeedResponse(
            videos=videos,
            has_more=has_more,
            next_cursor=videos[-1].published_at if has_more else None,
        )

    # ── Per-video state ──────────────────────────────────────────────────────

    @staticmethod
    async def _get_state(db: AsyncSession, user: Profile, video_id: str) -> Optional[UserVideoState]:
        result = await db.execute(
            select(UserVideoState).where(
                and_(
                    UserVideoState.user_id == user.id,
                    UserVideoState.video_id == video_id,
                )
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def _get_or_create_state(db: AsyncSession, user: Profile, video_id: str) -> UserVideoState:
        state = await VideoService._get_state(db, user, video_id)
        if state is None:
            state = UserVideoState(
                user_id=user.id,
                video_id=video_id,
                watched=False,
                completed=False,
                progress_seconds=0,
                total_watched_seconds=0,
                watch_count=0,
            )
            db.add(state)
        return state

    @staticmethod
    async def get_video_state(db: AsyncSession, user: Profile, video_id: str) -> Optional[UserVideoState]:
        return await VideoService._get_state(db, user, video_id)

    @staticmethod
    async def mark_video_watched(db: AsyncSession, user: Profile, video_id: str, watched: bool = True) -> UserVideoState:
        state = await VideoService._get_or_create_state(db, user, video_id)
        state.watched = watched
        state.watched_at = datetime.now(timezone.utc) if watched else None
        await db.flush()
        return state

    @staticmethod
    async def update_video_progress(
        db: AsyncSession,
        user: Profile,
        video_id: str,
        progress_seconds: int,
        completed: bool = False,
    ) -> UserVideoState:
        state = await VideoService._get_or_create_state(db, user, video_id)
        state.progress_seconds = progress_seconds
        state.completed = completed
        state.watched = completed
        if completed:
            state.watched_at = datetime.now(timezone.utc)
        await db.flush()
        return state

    @staticmethod
    async def log_video_watch_delta(
        db: AsyncSession,
        user: Profile,
        video_id: str,
        delta_seconds: int,
        progress_seconds: Optional[int] = None,
        completed: bool = False,
        is_new_session: bool = False,
    ) -> WatchDeltaResponse:
        """
        Accumulate per-video watch time reported by the player.
        Progress never moves backwards; negative deltas count as zero.
        """
        now = datetime.now(timezone.utc)
        state = await VideoService._get_state(db, user, video_id)
        is_first = state is None
        if is_first:
            state = await VideoService._get_or_create_state(db, user, video_id)

        state.total_watched_seconds = (state.total_watched_seconds or 0) + max(0, delta_seconds)
        if is_new_session:
            state.watch_count = (state.watch_count or 0) + 1
        if progress_seconds is not None:
            state.progress_seconds = max(state.progress_seconds or 0, progress_seconds)

        state.last_watched_at = now
        if state.first_watched_at is None:
            state.first_watched_at = now
        if completed:
            state.completed = True

        should_mark_watched = completed or state.total_watched_seconds >= WATCHED_THRESHOLD_SECONDS
        if should_mark_watched:
            if not state.watched or state.watched_at is None:
                state.watched_at = now
            state.watched = True

        await db.flush()
        return WatchDeltaResponse(
            total_watched_seconds=state.total_watched_seconds,
            watched=should_mark_watched,
        )

    # ── History ──────────────────────────────────────────────────────────────

    @staticmethod
    async def _video_summaries(db: AsyncSession, video_ids: list[str]) -> dict[str, VideoSummary]:
        if not video_ids:
            return {}
        result = await db.execute(select(YoutubeVideo).where(YoutubeVideo.video_id.in_(video_ids)))
        videos = result.scalars().all()
        channels = await VideoService._channel_summaries(db, [v.channel_id for v in videos])
        return {
            v.video_id: VideoSummary(
                video_id=v.video_id,
                title=v.title,
                thumbnail_url=v.thumbnail_url,
                thumbnail_high_url=v.thumbnail_high_url,
                duration=v.duration,
                channel_id=v.channel_id,
                published_at=v.published_at,
                view_count=v.view_count,
                channel=channels.get(v.channel_id),
            )
            for v in videos
        }

    @staticmethod
    def _history_entry(state: UserVideoState, video: Optional[VideoSummary]) -> HistoryEntry:
        return HistoryEntry(
            video_id=state.video_id,
            watched_at=state.watched_at,
            first_watched_at=state.first_watched_at,
            last_watched_at=state.last_watched_at,
            progress_seconds=state.progress_seconds or 0,
            total_watched_seconds=state.total_watched_seconds or 0,
            completed=bool(state.completed),
            watch_count=state.watch_count or 0,
            video=video,
        )

    @staticmethod
    async def get_watch_history(
        db: AsyncSession,
        user: Profile,
        limit: int = 50,
        include_partial: bool = True,
    ) -> list[HistoryEntry]:
        """Videos the user interacted with, most recent activity first."""
        query = select(UserVideoState).where(UserVideoState.user_id == user.id)
        if include_partial:
            query = query.where(
                or_(
                    UserVideoState.watched.is_(True),
                    UserVideoState.total_watched_seconds > 0,
                    UserVideoState.progress_seconds > 0,
                )
            )
        else:
            query = query.where(UserVideoState.watched.is_(True))
        query = query.order_by(UserVideoState.last_watched_at.desc().nulls_last()).limit(limit)

        states = (await db.execute(query)).scalars().all()
        videos = await VideoService._video_summaries(db, [s.video_id for s in states])
        return [VideoService._history_entry(s, videos.get(s.video_id)) for s in states]

    @staticmethod
    async def get_continue_watching(db: AsyncSession, user: Profile, limit: int = 10) -> list[HistoryEntry]:
        """Started but unfinished videos that are still in the cache."""
        result = await db.execute(
            select(UserVideoState)
            .where(
                UserVideoState.user_id == user.id,
                UserVideoState.progress_seconds > 0,
                or_(UserVideoState.completed.is_(None), UserVideoState.completed.is_(False)),
            )
            .order_by(UserVideoState.last_watched_at.desc().nulls_last())
            .limit(limit)
        )
        states = result.scalars().all()
        videos = await VideoService._video_summaries(db, [s.video_id for s in states])
        return [
            VideoService._history_entry(s, videos[s.video_id])
            for s in states
            if s.video_id in videos
        ]

    # ── Watch later ──────────────────────────────────────────────────────────

    @staticmethod
    async def get_watch_later(db: AsyncSession, user: Profile, limit: int = 50) -> list[WatchLaterEntry]:
        result = await db.execute(
            select(WatchLater)
            .where(WatchLater.user_id == user.id)
            .order_by(WatchLater.created_at.desc())
            .limit(limit)
        )
        entries = result.scalars().all()
        videos = await VideoService._video_summaries(db, [e.video_id for e in entries])
        return [
            WatchLaterEntry(video_id=e.video_id, added_at=e.created_at, video=videos[e.video_id])
            for e in entries
            if e.video_id in videos
        ]

    @staticmethod
    async def _watch_later_row(db: AsyncSession, user: Profile, video_id: str) -> Optional[WatchLater]:
        result = await db.execute(
            select(WatchLater).where(WatchLater.user_id == user.id, WatchLater.video_id == video_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def add_to_watch_later(db: AsyncSession, user: Profile, video_id: str) -> bool:
        """Returns False if the video was already on the list."""
        if await VideoService._watch_later_row(db, user, video_id):
            return False
        db.add(WatchLater(user_id=user.id, video_id=video_id))
        await db.flush()
        return True

    @staticmethod
    async def remove_from_watch_later(db: AsyncSession, user: Profile, video_id: str):
        await db.execute(
            delete(WatchLater).where(WatchLater.user_id == user.id, WatchLater.video_id == video_id)
        )

    @staticmethod
    async def toggle_watch_later(db: AsyncSession, user: Profile, video_id: str) -> bool:
        """Returns whether the video is on the list afterwards."""
        row = await VideoService._watch_later_row(db, user, video_id)
        if row:
            await db.delete(row)
            await db.flush()
            return False
        db.add(WatchLater(user_id=user.id, video_id=video_id))
        await db.flush()
        return True

    @staticmethod
    async def get_watch_later_status(db: AsyncSession, user: Profile, video_ids: list[str]) -> dict[str, bool]:
        if not video_ids:
            return {}
        result = await db.execute(
            select(WatchLater.video_id).where(
                WatchLater.user_id == user.id,
                WatchLater.video_id.in_(video_ids),
            )
        )
        saved = set(result.scalars().all())
        return {vid: vid in saved for vid in video_ids}
