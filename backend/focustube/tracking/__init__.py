from focustube.tracking.limits import is_limit_reached
from focustube.tracking.timer import WatchTimer, TrackingState
from focustube.tracking.sync import WatchTimeTracker

__all__ = ["is_limit_reached", "WatchTimer", "TrackingState", "WatchTimeTracker"]
