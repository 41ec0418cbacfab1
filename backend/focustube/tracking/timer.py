import enum
import time
from typing import Callable, Optional

from focustube.tracking.limits import is_limit_reached, snooze_deadline


class TrackingState(str, enum.Enum):
    IDLE = "idle"
    PAUSED = "tracking-paused"
    ACTIVE = "tracking-active"


class WatchTimer:
    """
    In-memory watch time counter for the current local day.

    Seconds only accumulate while tracking is on, the tab is visible and the
    video is playing. `synced_seconds` is the watermark: the part of
    `accumulated_seconds` the server has acknowledged.
    """

    def __init__(
        self,
        today_seconds: int = 0,
        daily_limit_minutes: int = 60,
        limit_enabled: bool = False,
        date: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.accumulated_seconds = today_seconds
        self.synced_seconds = today_seconds
        self.daily_limit_minutes = daily_limit_minutes
        self.limit_enabled = limit_enabled
        self.date = date
        self.snooze_until: Optional[float] = None
        self.is_tracking = False
        self.is_video_playing = False
        self.is_visible = True
        self._clock = clock

    @property
    def state(self) -> TrackingState:
        if not self.is_tracking:
            return TrackingState.IDLE
        if self.is_visible and self.is_video_playing:
            return TrackingState.ACTIVE
        return TrackingState.PAUSED

    @property
    def is_limit_reached(self) -> bool:
        return is_limit_reached(
            self.accumulated_seconds,
            self.daily_limit_minutes,
            self.limit_enabled,
            self.snooze_until,
            self._clock(),
        )

    # ── Transitions ──────────────────────────────────────────────────────────

    def start_tracking(self) -> None:
        self.is_tracking = True

    def stop_tracking(self) -> None:
        self.is_tracking = False
        self.is_video_playing = False

    def set_video_playing(self, playing: bool) -> None:
        self.is_video_playing = playing

    def set_visible(self, visible: bool) -> None:
        self.is_visible = visible

    def tick(self) -> bool:
        """One second elapsed. Returns True if it was counted."""
        if self.state is not TrackingState.ACTIVE:
            return False
        self.accumulated_seconds += 1
        return True

    # ── Snooze / settings ────────────────────────────────────────────────────

    def snooze(self, minutes: float) -> None:
        self.snooze_until = snooze_deadline(self._clock(), minutes)

    def update_settings(
        self,
        daily_limit_minutes: Optional[int] = None,
        limit_enabled: Optional[bool] = None,
    ) -> None:
        if daily_limit_minutes is not None:
            self.daily_limit_minutes = daily_limit_minutes
        if limit_enabled is not None:
            self.limit_enabled = limit_enabled

    def load(
        self,
        today_seconds: int,
        daily_limit_minutes: int,
        limit_enabled: bool,
        date: Optional[str] = None,
    ) -> None:
        """Reset counter and settings from the server's view of today."""
        self.accumulated_seconds = today_seconds
        self.synced_seconds = today_seconds
        self.daily_limit_minutes = daily_limit_minutes
        self.limit_enabled = limit_enabled
        if date is not None:
            self.date = date

    # ── Sync bookkeeping ─────────────────────────────────────────────────────

    def pending_seconds(self) -> int:
        return max(0, self.accumulated_seconds - self.synced_seconds)

    def mark_synced(self, value: int) -> None:
        # Never move the watermark backwards
        if value > self.synced_seconds:
            self.synced_seconds = value

    def roll_over(self, date: str) -> bool:
        """Start a fresh day. Returns False if `date` is already the current day."""
        if date == self.date:
            return False
        self.date = date
        self.accumulated_seconds = 0
        self.synced_seconds = 0
        self.snooze_until = None
        return True
