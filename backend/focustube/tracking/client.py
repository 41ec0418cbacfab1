import logging
from typing import Optional

import httpx

from focustube.tracking.sync import WatchTimeTracker
from focustube.tracking.timer import WatchTimer

logger = logging.getLogger(__name__)


class FocusTubeClient:
    """
    Thin async client for the watch-time API, used by the tracker.

    Usage:
        async with FocusTubeClient(base_url, token) as client:
            tracker = await client.create_tracker()
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/api/v1",
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> dict:
        resp = await self._client.request(method, url, **kwargs)
        resp.raise_for_status()
        return resp.json()

    # ── Watch time ───────────────────────────────────────────────────────────

    async def get_watch_time_data(self) -> dict:
        return await self._request("GET", "/watch-time")

    async def increment_watch_time(self, seconds: int) -> dict:
        return await self._request("POST", "/watch-time/increment", json={"seconds": seconds})

    async def set_watch_time(self, seconds: int) -> dict:
        return await self._request("PUT", "/watch-time/today", json={"seconds": seconds})

    async def update_limit_settings(
        self,
        daily_limit_minutes: Optional[int] = None,
        limit_enabled: Optional[bool] = None,
    ) -> dict:
        payload = {}
        if daily_limit_minutes is not None:
            payload["daily_limit_minutes"] = daily_limit_minutes
        if limit_enabled is not None:
            payload["limit_enabled"] = limit_enabled
        return await self._request("PATCH", "/watch-time/settings", json=payload)

    async def get_watch_history(self, days: int = 7) -> list[dict]:
        data = await self._request("GET", "/watch-time/history", params={"days": days})
        return data["history"]

    async def update_timezone(self, timezone: str) -> bool:
        """Best-effort push of the detected timezone. Never raises."""
        try:
            await self._request("PUT", "/users/me/timezone", json={"timezone": timezone})
        except httpx.HTTPError as e:
            logger.warning(f"Timezone sync failed for {timezone!r}: {e}")
            return False
        return True

    # ── Tracker factory ──────────────────────────────────────────────────────

    async def create_tracker(
        self,
        sync_interval: Optional[float] = None,
        detected_timezone: Optional[str] = None,
    ) -> WatchTimeTracker:
        """
        Build a tracker seeded with the server's view of today.

        A `detected_timezone` (the zone of the device running the tracker) is
        pushed first so "today" is resolved in it. A rejected zone is logged
        and the stored one is kept.
        """
        if detected_timezone:
            await self.update_timezone(detected_timezone)
        data = await self.get_watch_time_data()
        timer = WatchTimer(
            today_seconds=data["today_watched_seconds"],
            daily_limit_minutes=data["daily_limit_minutes"],
            limit_enabled=data["limit_enabled"],
            date=data["today"],
        )
        return WatchTimeTracker(
            timer,
            persist=self.increment_watch_time,
            timezone=data["timezone"],
            sync_interval=sync_interval,
            fetch=self.get_watch_time_data,
        )
