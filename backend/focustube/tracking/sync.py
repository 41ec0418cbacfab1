import asyncio
import logging
from typing import Awaitable, Callable, Optional

from focustube.config import settings
from focustube.services.local_date import resolve_local_date
from focustube.tracking.timer import WatchTimer

logger = logging.getLogger(__name__)

TICK_SECONDS = 1.0

PersistDelta = Callable[[int], Awaitable[object]]
FetchState = Callable[[], Awaitable[dict]]


class WatchTimeTracker:
    """
    Drives a WatchTimer: a 1 s tick loop plus a periodic sync loop that
    pushes unsynced seconds to the server as a delta.

    Delivery is best effort. A failed sync keeps the watermark where it was,
    so the next sync sends the missed seconds along with the new ones.
    """

    def __init__(
        self,
        timer: WatchTimer,
        persist: PersistDelta,
        timezone: Optional[str] = None,
        sync_interval: Optional[float] = None,
        tick_interval: float = TICK_SECONDS,
        today: Optional[Callable[[], str]] = None,
        fetch: Optional[FetchState] = None,
    ):
        self.timer = timer
        self.timezone = timezone
        self.sync_interval = sync_interval or settings.WATCH_SYNC_INTERVAL_SECONDS
        self.tick_interval = tick_interval
        self._persist = persist
        self._fetch = fetch
        self._today = today or (lambda: resolve_local_date(self.timezone))
        self._sync_lock = asyncio.Lock()
        self._tick_task: Optional[asyncio.Task] = None
        self._sync_task: Optional[asyncio.Task] = None
        if self.timer.date is None:
            self.timer.date = self._today()

    @property
    def is_running(self) -> bool:
        return self._tick_task is not None

    async def sync(self) -> bool:
        """
        Push accumulated - watermark to the server if positive, then start a
        new day if the local date moved on and nothing is left to send.
        Returns True when a persistence call succeeded.
        """
        async with self._sync_lock:
            return await self._push_pending()

    async def _push_pending(self) -> bool:
        target = self.timer.accumulated_seconds
        delta = target - self.timer.synced_seconds
        if delta <= 0:
            self._roll_over_if_new_day()
            return False
        try:
            await self._persist(delta)
        except Exception as e:
            logger.warning(f"Watch time sync of {delta}s failed, will retry next interval: {e}")
            return False
        self.timer.mark_synced(target)
        self._roll_over_if_new_day()
        return True

    async def refresh(self) -> None:
        """
        Reload limit settings, timezone and today's total from the server.

        Pending seconds are pushed first. If that push fails they are kept on
        top of the server's total for the same day so the next sync retries
        them.
        """
        if self._fetch is None:
            raise RuntimeError("Tracker was created without a way to fetch server state")
        async with self._sync_lock:
            await self._push_pending()
            pending = self.timer.pending_seconds()
            previous_date = self.timer.date
            data = await self._fetch()
            self.timer.load(
                today_seconds=data["today_watched_seconds"],
                daily_limit_minutes=data["daily_limit_minutes"],
                limit_enabled=data["limit_enabled"],
                date=data["today"],
            )
            if pending and self.timer.date == previous_date:
                self.timer.accumulated_seconds += pending
            self.timezone = data["timezone"]
        logger.info(f"Watch timer refreshed: {self.timer.accumulated_seconds}s on {self.timer.date}")

    def _roll_over_if_new_day(self) -> None:
        if self.timer.pending_seconds() > 0:
            return
        today = self._today()
        if self.timer.roll_over(today):
            logger.info(f"Local day changed, watch timer reset for {today}")

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self.tick_interval)
            self.timer.tick()

    async def _sync_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sync_interval)
            await self.sync()

    def start(self) -> None:
        if self._tick_task is not None:
            return
        self.timer.start_tracking()
        self._tick_task = asyncio.create_task(self._tick_loop())
        self._sync_task = asyncio.create_task(self._sync_loop())

    async def stop(self) -> None:
        """Cancel both loops, go idle and run one final best-effort sync."""
        tick_task, sync_task = self._tick_task, self._sync_task
        self._tick_task = None
        self._sync_task = None
        if tick_task is not None:
            tick_task.cancel()
        # An in-flight persistence call completes before its loop is cancelled
        async with self._sync_lock:
            if sync_task is not None:
                sync_task.cancel()
        tasks = [t for t in (tick_task, sync_task) if t is not None]
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.timer.stop_tracking()
        await self.sync()

    async def __aenter__(self):
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()
