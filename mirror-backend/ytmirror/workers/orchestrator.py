"""
Sync Orchestrator - subscribe/refresh state machine for channel mirrors.

Subscribe seeds an unseen channel synchronously and defers the full crawl to
the task queue. Refresh runs the whole fetch -> diff -> write loop for one
channel inside a single transaction:

    seeding -> diffing-playlists -> diffing-videos -> done | failed

Any exception during Refresh rolls the run back and propagates; the next
scheduled run starts over from scratch.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from ytmirror.core.enums import ResourceType, SyncState
from ytmirror.core.errors import ChannelNotFoundError
from ytmirror.core.logging import log_fields
from ytmirror.core.settings import settings
from ytmirror.services.change_cache import ChangeCache
from ytmirror.services.durations import derive_duration_fields
from ytmirror.services.metadata_store import MetadataStore
from ytmirror.services.youtube import (
    CHANNEL_ID_REGEX,
    ChannelDetails,
    Found,
    NotFound,
    UpstreamFailure,
    VideoDetails,
    YouTubeDataClient,
    normalize_handle,
)

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Results
# =============================================================================

@dataclass
class SubscribeResult:
    channel_id: str
    subscribed: bool
    sync_scheduled: bool


@dataclass
class UnsubscribeResult:
    channel_id: str
    unsubscribed: bool


@dataclass
class RefreshResult:
    channel_id: str
    playlists_processed: int
    videos_processed: int


@dataclass
class RefreshAllSummary:
    channels_processed: int = 0
    channels_failed: int = 0
    playlists_processed: int = 0
    videos_processed: int = 0
    failed_channel_ids: List[str] = field(default_factory=list)


# =============================================================================
# Video -> originating playlist
# =============================================================================

class VideoPlaylistMap:
    """
    Ordered video id -> originating playlist id.

    Claims are insert-if-absent: the first playlist enumerated for a video
    keeps it, later playlists containing the same video do not overwrite.
    Iteration order is first-claim order.
    """

    def __init__(self):
        self._owner: Dict[str, str] = {}

    def claim(self, video_id: str, playlist_id: str) -> bool:
        if video_id in self._owner:
            return False
        self._owner[video_id] = playlist_id
        return True

    def claim_all(self, video_ids: Iterable[str], playlist_id: str) -> int:
        return sum(1 for video_id in video_ids if self.claim(video_id, playlist_id))

    def playlist_for(self, video_id: str) -> Optional[str]:
        return self._owner.get(video_id)

    def video_ids(self) -> List[str]:
        return list(self._owner)

    def __contains__(self, video_id: str) -> bool:
        return video_id in self._owner

    def __len__(self) -> int:
        return len(self._owner)


# =============================================================================
# Orchestrator
# =============================================================================

class SyncOrchestrator:
    def __init__(
        self,
        client: YouTubeDataClient,
        session_factory: Optional[Callable[[], Session]] = None,
        dispatch_refresh: Optional[Callable[[str], object]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        short_max_seconds: int = settings.short_max_seconds,
        short_rule_version: str = settings.short_rule_version,
    ):
        self.client = client
        self.session_factory = session_factory
        self.dispatch_refresh = dispatch_refresh
        self.clock = clock or utc_now
        self.short_max_seconds = short_max_seconds
        self.short_rule_version = short_rule_version

    def _transition(self, channel_id: str, state: SyncState) -> None:
        logger.info(
            f"[sync] {channel_id} -> {state.value}",
            extra=log_fields(channel_id=channel_id, state=state.value),
        )

    # -------------------------------------------------------------------------
    # Subscribe
    # -------------------------------------------------------------------------

    def subscribe(self, channel_id: str, user_id: str) -> SubscribeResult:
        channel_id = channel_id.strip()
        sync_scheduled = False

        with MetadataStore.transaction(self.session_factory) as store:
            channel = store.get_channel(channel_id)
            if channel is None:
                details = self._fetch_channel(channel_id)
                self._seed(store, details)
                custom_url = details.custom_url
                sync_scheduled = True
            else:
                custom_url = channel.custom_url

            created = store.subscribe_user(user_id, channel_id, custom_url)

        logger.info(
            f"[subscribe] User {user_id} subscribed to {channel_id}",
            extra=log_fields(
                user_id=user_id, channel_id=channel_id,
                membership_created=created, sync_scheduled=sync_scheduled,
            ),
        )

        if sync_scheduled:
            self._dispatch(channel_id)

        return SubscribeResult(channel_id=channel_id, subscribed=True, sync_scheduled=sync_scheduled)

    def subscribe_by_handle(self, handle: str, user_id: str) -> SubscribeResult:
        """Resolve a @handle (or a raw channel id) and subscribe to it."""
        value = handle.strip()
        if CHANNEL_ID_REGEX.match(value):
            return self.subscribe(value, user_id)

        with MetadataStore.transaction(self.session_factory) as store:
            channel = store.get_channel_by_custom_url(value)
            channel_id = channel.id if channel is not None else None

        if channel_id is None:
            result = self.client.fetch_channel_by_handle(value)
            if isinstance(result, NotFound):
                raise ChannelNotFoundError(normalize_handle(value))
            channel_id = result.unwrap().id

        return self.subscribe(channel_id, user_id)

    def unsubscribe(self, channel_id: str, user_id: str) -> UnsubscribeResult:
        """Drops the membership only; mirrored rows are kept."""
        channel_id = channel_id.strip()
        with MetadataStore.transaction(self.session_factory) as store:
            removed = store.unsubscribe_user(user_id, channel_id)
        logger.info(
            f"[subscribe] User {user_id} unsubscribed from {channel_id}",
            extra=log_fields(user_id=user_id, channel_id=channel_id, removed=removed),
        )
        return UnsubscribeResult(channel_id=channel_id, unsubscribed=removed)

    def _fetch_channel(self, channel_id: str) -> ChannelDetails:
        result = self.client.fetch_channel_by_id(channel_id)
        if isinstance(result, NotFound):
            raise ChannelNotFoundError(channel_id)
        # UpstreamFailure raises its error here
        return result.unwrap()

    def _seed(self, store: MetadataStore, details: ChannelDetails) -> None:
        self._transition(details.id, SyncState.SEEDING)
        now = self.clock()
        store.write_channel(details, now)
        ChangeCache(store.db).save(ResourceType.CHANNEL, details.id, details.etag, now)

    def _dispatch(self, channel_id: str) -> None:
        if self.dispatch_refresh is None:
            logger.warning(f"[subscribe] No refresh dispatcher configured, {channel_id} waits for the next scheduled run")
            return
        try:
            self.dispatch_refresh(channel_id)
        except Exception as e:
            logger.error(
                f"[subscribe] Failed to dispatch refresh for {channel_id}: {e}",
                extra=log_fields(channel_id=channel_id),
                exc_info=True,
            )

    # -------------------------------------------------------------------------
    # Refresh
    # -------------------------------------------------------------------------

    def refresh(self, channel_id: str) -> RefreshResult:
        channel_id = channel_id.strip()
        try:
            with MetadataStore.transaction(self.session_factory) as store:
                result = self._refresh(store, channel_id)
        except Exception as e:
            self._transition(channel_id, SyncState.FAILED)
            logger.error(
                f"[sync] Refresh of {channel_id} failed: {e}",
                extra=log_fields(channel_id=channel_id, error_type=type(e).__name__),
            )
            raise

        self._transition(channel_id, SyncState.DONE)
        logger.info(
            f"[sync] Refreshed {channel_id}: {result.playlists_processed} playlists, "
            f"{result.videos_processed} videos",
            extra=log_fields(
                channel_id=channel_id,
                playlists_processed=result.playlists_processed,
                videos_processed=result.videos_processed,
            ),
        )
        return result

    def _refresh(self, store: MetadataStore, channel_id: str) -> RefreshResult:
        cache = ChangeCache(store.db)
        now = self.clock()
        today = now.date()

        # 1-2. channel
        self._transition(channel_id, SyncState.SEEDING)
        channel = self._fetch_channel(channel_id)
        if cache.has_changed(ResourceType.CHANNEL, channel.id, channel.etag) or store.get_channel(channel.id) is None:
            store.write_channel(channel, now)
            cache.save(ResourceType.CHANNEL, channel.id, channel.etag, now)
        store.write_channel_snapshot(channel, today, now)

        # 3. secondary playlists, then 4. the uploads collection
        self._transition(channel_id, SyncState.DIFFING_PLAYLISTS)
        owners = VideoPlaylistMap()
        playlists_processed = 0
        for playlist in self.client.fetch_playlists_by_channel(channel.id):
            if not cache.has_changed(ResourceType.PLAYLIST, playlist.id, playlist.etag):
                continue
            store.write_playlist(playlist, now, channel_id=channel.id)
            cache.save(ResourceType.PLAYLIST, playlist.id, playlist.etag, now)
            owners.claim_all(self.client.fetch_playlist_video_ids(playlist.id), playlist.id)
            playlists_processed += 1

        if channel.uploads_playlist_id:
            owners.claim_all(
                self.client.fetch_playlist_video_ids(channel.uploads_playlist_id),
                channel.uploads_playlist_id,
            )

        # 5-6. videos
        self._transition(channel_id, SyncState.DIFFING_VIDEOS)
        videos_processed = 0
        for video in self.client.fetch_videos_by_ids(owners.video_ids()):
            if self._sync_video(store, cache, channel.id, video, owners.playlist_for(video.id), now):
                videos_processed += 1

        return RefreshResult(
            channel_id=channel.id,
            playlists_processed=playlists_processed,
            videos_processed=videos_processed,
        )

    def _sync_video(
        self,
        store: MetadataStore,
        cache: ChangeCache,
        channel_id: str,
        video: VideoDetails,
        playlist_id: Optional[str],
        now: datetime,
    ) -> bool:
        """Returns True when the video's current-state rows were written."""
        fields = derive_duration_fields(video.duration, self.short_max_seconds, self.short_rule_version)
        changed = cache.has_changed(ResourceType.VIDEO, video.id, video.etag)

        if changed:
            store.write_video(video, playlist_id, fields, now, channel_id=channel_id)
            self._sync_top_comment(store, video, channel_id, now)
            cache.save(ResourceType.VIDEO, video.id, video.etag, now)
        else:
            store.reconcile_video_duration(video.id, fields)

        store.write_video_snapshot(video, now.date(), now, channel_id=channel_id)
        return changed

    def _sync_top_comment(self, store: MetadataStore, video: VideoDetails, channel_id: str, now: datetime) -> None:
        owner_channel_id = video.channel_id or channel_id
        try:
            result = self.client.fetch_top_comment(video.id, owner_channel_id)
        except Exception as e:
            logger.warning(
                f"[sync] Top comment fetch failed for video {video.id}: {e}",
                extra=log_fields(video_id=video.id, channel_id=owner_channel_id),
            )
            return

        if isinstance(result, UpstreamFailure):
            logger.warning(
                f"[sync] Top comment unavailable for video {video.id}: {result.error.message}",
                extra=log_fields(video_id=video.id, kind=result.error.kind.value),
            )
        elif isinstance(result, Found):
            store.write_top_comment(video.id, owner_channel_id, result.record, now)
        else:
            store.clear_top_comment(video.id)

    # -------------------------------------------------------------------------
    # Scheduled re-sync
    # -------------------------------------------------------------------------

    def refresh_all(self) -> RefreshAllSummary:
        """Refresh every subscribed channel in turn; one failure does not stop the rest."""
        with MetadataStore.transaction(self.session_factory) as store:
            channel_ids = store.list_subscribed_channel_ids()

        logger.info(f"[sync] Refreshing {len(channel_ids)} subscribed channels")
        summary = RefreshAllSummary()
        for channel_id in channel_ids:
            try:
                result = self.refresh(channel_id)
            except Exception:
                summary.channels_failed += 1
                summary.failed_channel_ids.append(channel_id)
                continue
            summary.channels_processed += 1
            summary.playlists_processed += result.playlists_processed
            summary.videos_processed += result.videos_processed

        logger.info(
            f"[sync] Refresh pass complete: {summary.channels_processed} ok, {summary.channels_failed} failed",
            extra=log_fields(
                channels_processed=summary.channels_processed,
                channels_failed=summary.channels_failed,
                failed_channel_ids=summary.failed_channel_ids,
            ),
        )
        return summary


def build_orchestrator(dispatch_refresh: Optional[Callable[[str], object]] = None) -> SyncOrchestrator:
    from ytmirror.services.youtube import build_youtube_client

    if dispatch_refresh is None:
        from ytmirror.workers.queue import enqueue_refresh
        dispatch_refresh = enqueue_refresh

    return SyncOrchestrator(client=build_youtube_client(), dispatch_refresh=dispatch_refresh)
