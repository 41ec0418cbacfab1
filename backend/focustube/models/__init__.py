from focustube.models.profile import Profile, SubscriptionTier
from focustube.models.channel import YoutubeChannel, ChannelSubscription
from focustube.models.category import ChannelCategory, ChannelCategoryChannel
from focustube.models.video import YoutubeVideo, UserVideoState, WatchLater
from focustube.models.watch_session import DailyWatchSession

__all__ = [
    "Profile",
    "SubscriptionTier",
    "YoutubeChannel",
    "ChannelSubscription",
    "ChannelCategory",
    "ChannelCategoryChannel",
    "YoutubeVideo",
    "UserVideoState",
    "WatchLater",
    "DailyWatchSession",
]
