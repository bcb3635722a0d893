from enum import Enum

class ResourceType(str, Enum):
    # Keys of the etag cache
    CHANNEL = "channel"
    PLAYLIST = "playlist"
    VIDEO = "video"

class SyncState(str, Enum):
    # Per-channel refresh run (ordered)
    SEEDING = "seeding"
    DIFFING_PLAYLISTS = "diffing-playlists"
    DIFFING_VIDEOS = "diffing-videos"

    # Terminal states
    DONE = "done"
    FAILED = "failed"

class UpstreamErrorKind(str, Enum):
    UNAVAILABLE = "UNAVAILABLE"  # network-level, no response
    REJECTED = "REJECTED"        # platform 4xx
    DEGRADED = "DEGRADED"        # platform 5xx or timeout

class TrendMetric(str, Enum):
    VIEW_COUNT = "view_count"
    SUBSCRIBER_COUNT = "subscriber_count"
    VIDEO_COUNT = "video_count"
