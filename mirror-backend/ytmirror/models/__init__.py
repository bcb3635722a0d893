from ytmirror.models.channel import Channel
from ytmirror.models.channel_statistics import ChannelStatistics, ChannelStatisticsDaily
from ytmirror.models.playlist import Playlist
from ytmirror.models.video import Video
from ytmirror.models.video_statistics import VideoStatistics, VideoStatisticsDaily
from ytmirror.models.video_top_comment import VideoTopComment
from ytmirror.models.etag_cache import EtagCacheEntry
from ytmirror.models.subscription import SubscribedChannel

__all__ = [
    "Channel",
    "ChannelStatistics",
    "ChannelStatisticsDaily",
    "Playlist",
    "Video",
    "VideoStatistics",
    "VideoStatisticsDaily",
    "VideoTopComment",
    "EtagCacheEntry",
    "SubscribedChannel",
]
