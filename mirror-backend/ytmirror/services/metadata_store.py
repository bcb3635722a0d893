"""
Metadata Store - the persistence boundary of the mirror.

Every write is an idempotent upsert keyed by platform id, so repeating a
refresh (or running two of them for the same channel) converges on the same
rows. A store is bound to one session; ``MetadataStore.transaction`` scopes
a unit of work that commits on success and rolls back on any exception.
"""
from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from sqlalchemy.orm import Session

from ytmirror.db.context import get_db_session
from ytmirror.db.repositories import (
    ChannelRepository,
    ChannelSnapshotRepository,
    ChannelStatisticsRepository,
    PlaylistRepository,
    SubscriptionRepository,
    VideoRepository,
    VideoSnapshotRepository,
    VideoStatisticsRepository,
    VideoTopCommentRepository,
)
from ytmirror.services.durations import DurationFields
from ytmirror.services.youtube import ChannelDetails, CommentThread, PlaylistDetails, VideoDetails

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return DEFAULT_PAGE_SIZE
    return min(max(1, limit), MAX_PAGE_SIZE)


class MetadataStore:
    def __init__(self, db: Session):
        self.db = db
        self.channels = ChannelRepository(db)
        self.channel_stats = ChannelStatisticsRepository(db)
        self.channel_snapshots = ChannelSnapshotRepository(db)
        self.playlists = PlaylistRepository(db)
        self.videos = VideoRepository(db)
        self.video_stats = VideoStatisticsRepository(db)
        self.video_snapshots = VideoSnapshotRepository(db)
        self.top_comments = VideoTopCommentRepository(db)
        self.subscriptions = SubscriptionRepository(db)

    @classmethod
    @contextmanager
    def transaction(cls, session_factory: Optional[Callable[[], Session]] = None) -> Iterator["MetadataStore"]:
        with get_db_session(session_factory) as db:
            yield cls(db)

    # -------------------------------------------------------------------------
    # Channels
    # -------------------------------------------------------------------------

    def write_channel(self, details: ChannelDetails, now: datetime) -> None:
        """Channel row plus its current statistics."""
        self.channels.upsert({
            "id": details.id,
            "title": details.title,
            "description": details.description,
            "custom_url": details.custom_url,
            "country": details.country,
            "published_at": details.published_at,
            "thumbnail_url": details.thumbnail_url,
            "uploads_playlist_id": details.uploads_playlist_id,
            "last_sync": now,
        })
        self.channel_stats.upsert({
            "channel_id": details.id,
            "subscriber_count": details.subscriber_count,
            "video_count": details.video_count,
            "view_count": details.view_count,
            "hidden_subscriber_count": details.hidden_subscriber_count,
            "last_update": now,
        })

    def write_channel_snapshot(self, details: ChannelDetails, snapshot_date: date, now: datetime) -> None:
        self.channel_snapshots.upsert({
            "channel_id": details.id,
            "snapshot_date": snapshot_date,
            "subscriber_count": details.subscriber_count or 0,
            "video_count": details.video_count or 0,
            "view_count": details.view_count or 0,
            "hidden_subscriber_count": details.hidden_subscriber_count,
            "captured_at": now,
        })

    def list_channels(self):
        return self.channels.list_all()

    def get_channel(self, channel_id: str):
        return self.channels.get_by_id(channel_id)

    def get_channel_by_custom_url(self, handle: str):
        return self.channels.get_by_custom_url(handle.strip())

    def channel_statistics_range(self, channel_id: str, start: date, end: date):
        return self.channel_snapshots.list_range(channel_id, start, end)

    # -------------------------------------------------------------------------
    # Playlists
    # -------------------------------------------------------------------------

    def write_playlist(self, details: PlaylistDetails, now: datetime, channel_id: Optional[str] = None) -> None:
        self.playlists.upsert({
            "id": details.id,
            "channel_id": details.channel_id or channel_id,
            "title": details.title,
            "description": details.description,
            "item_count": details.item_count,
            "published_at": details.published_at,
            "thumbnail_url": details.thumbnail_url,
            "last_sync": now,
        })

    def list_playlists(self, channel_id: str):
        return self.playlists.get_by_channel(channel_id)

    def get_playlist(self, playlist_id: str):
        return self.playlists.get_by_id(playlist_id)

    # -------------------------------------------------------------------------
    # Videos
    # -------------------------------------------------------------------------

    def write_video(
        self,
        details: VideoDetails,
        playlist_id: Optional[str],
        duration_fields: DurationFields,
        now: datetime,
        channel_id: Optional[str] = None,
    ) -> None:
        """
        Video row plus its current statistics. An already recorded
        originating playlist is kept; playlist_id only fills an empty one.
        """
        self.videos.upsert_video({
            "id": details.id,
            "channel_id": details.channel_id or channel_id,
            "playlist_id": playlist_id,
            "title": details.title,
            "description": details.description,
            "published_at": details.published_at,
            "duration": duration_fields.duration,
            "duration_seconds": duration_fields.duration_seconds,
            "is_short": duration_fields.is_short,
            "short_rule_version": duration_fields.short_rule_version,
            "dimension": details.dimension,
            "definition": details.definition,
            "caption": details.caption,
            "licensed_content": details.licensed_content,
            "thumbnail_url": details.thumbnail_url,
            "tags": details.tags,
            "default_language": details.default_language,
            "default_audio_language": details.default_audio_language,
            "privacy_status": details.privacy_status,
            "last_sync": now,
        })
        stats = details.statistics
        self.video_stats.upsert({
            "video_id": details.id,
            "view_count": stats.view_count,
            "like_count": stats.like_count,
            "favorite_count": stats.favorite_count,
            "comment_count": stats.comment_count,
            "last_update": now,
        })

    def reconcile_video_duration(self, video_id: str, duration_fields: DurationFields) -> int:
        return self.videos.update_duration_fields(
            video_id,
            duration=duration_fields.duration,
            duration_seconds=duration_fields.duration_seconds,
            is_short=duration_fields.is_short,
            short_rule_version=duration_fields.short_rule_version,
        )

    def write_video_snapshot(
        self,
        details: VideoDetails,
        snapshot_date: date,
        now: datetime,
        channel_id: Optional[str] = None,
    ) -> None:
        stats = details.statistics
        self.video_snapshots.upsert({
            "video_id": details.id,
            "snapshot_date": snapshot_date,
            "channel_id": details.channel_id or channel_id,
            "view_count": stats.view_count or 0,
            "like_count": stats.like_count or 0,
            "favorite_count": stats.favorite_count or 0,
            "comment_count": stats.comment_count or 0,
            "captured_at": now,
        })

    def list_videos_by_channel(self, channel_id: str, limit: Optional[int] = None, offset: int = 0):
        return self.videos.get_by_channel(channel_id, clamp_limit(limit), max(0, offset))

    def list_videos_by_playlist(self, playlist_id: str, limit: Optional[int] = None, offset: int = 0):
        return self.videos.get_by_playlist(playlist_id, clamp_limit(limit), max(0, offset))

    def get_video(self, video_id: str):
        return self.videos.get_by_id(video_id)

    def video_statistics_range(self, video_id: str, start: date, end: date):
        return self.video_snapshots.list_range(video_id, start, end)

    # -------------------------------------------------------------------------
    # Top comments
    # -------------------------------------------------------------------------

    def write_top_comment(self, video_id: str, channel_id: str, thread: CommentThread, now: datetime) -> None:
        self.top_comments.upsert({
            "video_id": video_id,
            "channel_id": channel_id,
            "comment_content": thread.text,
            "can_reply": thread.can_reply,
            "is_public": thread.is_public,
            "like_count": thread.like_count,
            "total_reply_count": thread.total_reply_count,
            "author_display_name": thread.author_display_name,
            "author_profile_image_url": thread.author_profile_image_url,
            "author_channel_url": thread.author_channel_url,
            "author_channel_id": thread.author_channel_id,
            "published_at": thread.published_at,
            "updated_at": thread.updated_at,
            "last_update": now,
        })

    def clear_top_comment(self, video_id: str) -> int:
        return self.top_comments.delete_for_video(video_id)

    def top_comments_for(self, video_ids: Iterable[str]) -> Dict[str, object]:
        return self.top_comments.get_for_videos(video_ids)

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def subscribe_user(self, user_id: str, channel_id: str, custom_url: Optional[str]) -> bool:
        return self.subscriptions.subscribe(user_id, channel_id, custom_url)

    def unsubscribe_user(self, user_id: str, channel_id: str) -> bool:
        return self.subscriptions.unsubscribe(user_id, channel_id)

    def is_subscribed(self, user_id: str, channel_id: str) -> bool:
        return self.subscriptions.is_subscribed(user_id, channel_id)

    def list_user_subscriptions(
        self,
        user_id: str,
        limit: Optional[int] = None,
        offset: int = 0,
        channel_id: Optional[str] = None,
        custom_url: Optional[str] = None,
        channel_name: Optional[str] = None,
        country: Optional[str] = None,
    ):
        return self.subscriptions.get_by_user(
            user_id,
            clamp_limit(limit),
            max(0, offset),
            channel_id=(channel_id or "").strip() or None,
            custom_url=(custom_url or "").strip() or None,
            channel_name=(channel_name or "").strip() or None,
            country=(country or "").strip() or None,
        )

    def list_user_channel_ids(self, user_id: str) -> List[str]:
        return self.subscriptions.channel_ids_for_user(user_id)

    def channel_snapshots_for(self, channel_ids: Iterable[str], start: date, end: date):
        return self.channel_snapshots.list_for_channels(channel_ids, start, end)

    def channels_by_id(self, channel_ids: Iterable[str]) -> Dict[str, object]:
        found = {}
        for cid in set(channel_ids):
            channel = self.channels.get_by_id(cid)
            if channel is not None:
                found[cid] = channel
        return found

    def list_subscribed_channel_ids(self) -> List[str]:
        return self.subscriptions.distinct_channel_ids()
