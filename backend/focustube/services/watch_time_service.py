import logging
import uuid
from datetime import datetime
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import select, and_, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from focustube.config import settings
from focustube.models.profile import Profile
from focustube.models.watch_session import DailyWatchSession
from focustube.schemas.watch_time import (
    WatchTimeData,
    WatchSecondsResponse,
    WatchLimitSettingsUpdate,
    WatchLimitSettingsResponse,
    DailyWatchEntry,
    WatchStats,
)
from focustube.services.local_date import (
    DEFAULT_TIMEZONE,
    resolve_local_date,
    local_date_days_ago,
    is_valid_timezone,
)

logger = logging.getLogger(__name__)


class WatchTimeService:
    """Daily watch budget: settings, per-day session rows, history and stats."""

    @staticmethod
    def user_timezone(user: Profile) -> str:
        return user.time_zone or DEFAULT_TIMEZONE

    @staticmethod
    def limit_settings(user: Profile) -> WatchLimitSettingsResponse:
        limit = user.daily_watch_limit_minutes
        enabled = user.watch_limit_enabled
        return WatchLimitSettingsResponse(
            daily_limit_minutes=limit if limit is not None else settings.DEFAULT_DAILY_LIMIT_MINUTES,
            limit_enabled=bool(enabled),
        )

    @staticmethod
    async def _get_session(db: AsyncSession, user_id, date: str) -> Optional[DailyWatchSession]:
        # Increments write through Core, so reload over any cached row
        result = await db.execute(
            select(DailyWatchSession)
            .where(
                and_(
                    DailyWatchSession.user_id == user_id,
                    DailyWatchSession.date == date,
                )
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_watch_time_data(
        db: AsyncSession,
        user: Profile,
        now: Optional[datetime] = None,
    ) -> WatchTimeData:
        """Current limit settings plus what has been watched today."""
        tz = WatchTimeService.user_timezone(user)
        today = resolve_local_date(tz, now)
        session = await WatchTimeService._get_session(db, user.id, today)
        limits = WatchTimeService.limit_settings(user)

        return WatchTimeData(
            daily_limit_minutes=limits.daily_limit_minutes,
            limit_enabled=limits.limit_enabled,
            timezone=tz,
            today=today,
            today_watched_seconds=session.watched_seconds if session else 0,
        )

    @staticmethod
    async def set_watch_time(
        db: AsyncSession,
        user: Profile,
        total_seconds: int,
        now: Optional[datetime] = None,
    ) -> WatchSecondsResponse:
        """Absolute upsert of today's total. Can lower the stored value."""
        today = resolve_local_date(WatchTimeService.user_timezone(user), now)
        session = await WatchTimeService._get_session(db, user.id, today)

        if session:
            session.watched_seconds = total_seconds
        else:
            session = DailyWatchSession(user_id=user.id, date=today, watched_seconds=total_seconds)
            db.add(session)

        await db.flush()
        return WatchSecondsResponse(date=today, watched_seconds=session.watched_seconds)

    @staticmethod
    async def increment_watch_time(
        db: AsyncSession,
        user: Profile,
        additional_seconds: int,
        now: Optional[datetime] = None,
    ) -> WatchSecondsResponse:
        """
        Add seconds to today's total. The addition runs in SQL so concurrent
        clients add up instead of overwriting each other.
        """
        today = resolve_local_date(WatchTimeService.user_timezone(user), now)
        where = and_(
            DailyWatchSession.user_id == user.id,
            DailyWatchSession.date == today,
        )

        if db.get_bind().dialect.name == "postgresql":
            upsert = postgresql.insert(DailyWatchSession)
        else:
            upsert = sqlite.insert(DailyWatchSession)

        # Single statement: the first increment of the day from two devices
        # cannot both insert
        await db.execute(
            upsert.values(
                id=uuid.uuid4(),
                user_id=user.id,
                date=today,
                watched_seconds=additional_seconds,
            ).on_conflict_do_update(
                index_elements=[DailyWatchSession.user_id, DailyWatchSession.date],
                set_={
                    "watched_seconds": DailyWatchSession.watched_seconds + additional_seconds,
                    "updated_at": func.now(),
                },
            )
        )

        total = await db.scalar(select(DailyWatchSession.watched_seconds).where(where))
        logger.debug(f"User {user.id}: +{additional_seconds}s on {today} (total {total}s)")
        return WatchSecondsResponse(date=today, watched_seconds=total or 0)

    @staticmethod
    async def update_limit_settings(
        db: AsyncSession,
        user: Profile,
        update_data: WatchLimitSettingsUpdate,
    ) -> WatchLimitSettingsResponse:
        """Partial update: only the provided fields change."""
        if update_data.daily_limit_minutes is not None:
            user.daily_watch_limit_minutes = update_data.daily_limit_minutes

        if update_data.limit_enabled is not None:
            user.watch_limit_enabled = update_data.limit_enabled

        await db.flush()
        return WatchTimeService.limit_settings(user)

    @staticmethod
    async def get_watch_history(
        db: AsyncSession,
        user: Profile,
        since_date: str,
    ) -> list[DailyWatchEntry]:
        """Day rows on or after `since_date`, newest first."""
        result = await db.execute(
            select(DailyWatchSession.date, DailyWatchSession.watched_seconds)
            .where(
                and_(
                    DailyWatchSession.user_id == user.id,
                    DailyWatchSession.date >= since_date,
                )
            )
            .order_by(DailyWatchSession.date.desc())
        )
        return [
            DailyWatchEntry(date=row.date, watched_seconds=row.watched_seconds or 0)
            for row in result.all()
        ]

    @staticmethod
    async def update_timezone(db: AsyncSession, user: Profile, tz_name: str) -> str:
        if not is_valid_timezone(tz_name):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid timezone",
            )
        if user.time_zone != tz_name:
            user.time_zone = tz_name
            await db.flush()
            logger.info(f"User {user.id} timezone set to {tz_name}")
        return tz_name

    @staticmethod
    async def get_watch_stats(
        db: AsyncSession,
        user: Profile,
        days: int = 7,
        now: Optional[datetime] = None,
    ) -> WatchStats:
        """
        Totals for the last `days` local days (today included) compared to
        the `days` before them. Days without a row count as 0.
        """
        tz = WatchTimeService.user_timezone(user)
        today = resolve_local_date(tz, now)
        start = local_date_days_ago(tz, days * 2, now)

        result = await db.execute(
            select(DailyWatchSession.date, DailyWatchSession.watched_seconds)
            .where(
                and_(
                    DailyWatchSession.user_id == user.id,
                    DailyWatchSession.date >= start,
                    DailyWatchSession.date <= today,
                )
            )
            .order_by(DailyWatchSession.date.asc())
        )
        by_date = {row.date: row.watched_seconds or 0 for row in result.all()}

        current_dates = [local_date_days_ago(tz, i, now) for i in range(days - 1, -1, -1)]
        previous_dates = [local_date_days_ago(tz, i, now) for i in range(days * 2 - 1, days - 1, -1)]

        total = 0
        best_day = None
        best_day_seconds = 0
        days_with_data = 0
        series = []
        for date in current_dates:
            seconds = by_date.get(date, 0)
            series.append(DailyWatchEntry(date=date, watched_seconds=seconds))
            total += seconds
            if seconds > 0:
                days_with_data += 1
            if seconds > best_day_seconds:
                best_day_seconds = seconds
                best_day = date

        previous_total = sum(by_date.get(date, 0) for date in previous_dates)
        delta = total - previous_total
        delta_percent = round(delta / previous_total * 100) if previous_total > 0 else None

        return WatchStats(
            days=days,
            total_seconds=total,
            avg_seconds_per_day=round(total / days) if days > 0 else 0,
            best_day=best_day,
            best_day_seconds=best_day_seconds,
            days_with_data=days_with_data,
            previous_period_total_seconds=previous_total,
            delta_seconds=delta,
            delta_percent=delta_percent,
            daily_series=series,
        )
