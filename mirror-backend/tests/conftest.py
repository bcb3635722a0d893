"""
Shared fixtures: in-memory SQLite database and a scripted YouTube client.
"""
import os

# Required settings must exist before any ytmirror module is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("YOUTUBE_API_KEY", "test-key")

from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import ytmirror.models  # noqa: F401
from ytmirror.core.enums import UpstreamErrorKind
from ytmirror.core.errors import UpstreamError
from ytmirror.db.base import Base
from ytmirror.services.youtube import (
    ChannelDetails,
    CommentThread,
    Found,
    NotFound,
    PlaylistDetails,
    UpstreamFailure,
    VideoDetails,
    VideoStatisticsDetails,
    normalize_handle,
)

CHANNEL_ID = "UC" + "a" * 22
UPLOADS_ID = "UU" + "a" * 22
OTHER_CHANNEL_ID = "UC" + "b" * 22


def naive(dt: datetime) -> datetime:
    """SQLite hands datetimes back without tzinfo."""
    return dt.replace(tzinfo=None)


# =============================================================================
# Record factories
# =============================================================================

def make_channel(channel_id=CHANNEL_ID, etag="ch-etag-1", uploads=UPLOADS_ID, **overrides) -> ChannelDetails:
    values = dict(
        id=channel_id,
        etag=etag,
        title="Test Channel",
        description="About the channel",
        custom_url="@testchannel",
        country="US",
        published_at=datetime(2015, 3, 1, tzinfo=timezone.utc),
        thumbnail_url="https://img.example/ch.jpg",
        uploads_playlist_id=uploads,
        subscriber_count=1000,
        video_count=4,
        view_count=50000,
    )
    values.update(overrides)
    return ChannelDetails(**values)


def make_playlist(playlist_id, channel_id=CHANNEL_ID, etag=None, **overrides) -> PlaylistDetails:
    values = dict(
        id=playlist_id,
        etag=etag or f"{playlist_id}-etag-1",
        channel_id=channel_id,
        title=f"Playlist {playlist_id}",
        item_count=2,
    )
    values.update(overrides)
    return PlaylistDetails(**values)


def make_video(video_id, channel_id=CHANNEL_ID, etag=None, duration="PT10M", views=100, **overrides) -> VideoDetails:
    values = dict(
        id=video_id,
        etag=etag or f"{video_id}-etag-1",
        channel_id=channel_id,
        title=f"Video {video_id}",
        published_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        duration=duration,
        caption=False,
        tags=["tag"],
        statistics=VideoStatisticsDetails(view_count=views, like_count=10, favorite_count=0, comment_count=3),
    )
    values.update(overrides)
    return VideoDetails(**values)


def make_thread(author_channel_id, text="nice video", video_id="A") -> CommentThread:
    return CommentThread(
        id=f"thread-{author_channel_id}",
        video_id=video_id,
        text=text,
        like_count=5,
        author_display_name=f"author {author_channel_id}",
        author_channel_id=author_channel_id,
    )


# =============================================================================
# Fake remote client
# =============================================================================

class FakeYouTubeClient:
    """
    In-memory stand-in for YouTubeDataClient. Every method records its call;
    ``failures`` maps a method name to the exception it should raise.
    """

    def __init__(self):
        self.channels: Dict[str, ChannelDetails] = {}
        self.handles: Dict[str, str] = {}
        self.playlists: Dict[str, List[PlaylistDetails]] = {}
        self.playlist_items: Dict[str, List[str]] = {}
        self.videos: Dict[str, VideoDetails] = {}
        self.comments: Dict[str, object] = {}
        self.failures: Dict[str, Exception] = {}
        self.calls: List[tuple] = []

    def add_channel(self, details: ChannelDetails):
        self.channels[details.id] = details
        if details.custom_url:
            self.handles[details.custom_url.lower()] = details.id

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.failures:
            raise self.failures[name]

    def called(self, name) -> List[tuple]:
        return [c for c in self.calls if c[0] == name]

    def _lookup(self, channel_id: Optional[str]):
        if "lookup" in self.failures:
            return UpstreamFailure(self.failures["lookup"])
        if channel_id and channel_id in self.channels:
            return Found(self.channels[channel_id])
        return NotFound()

    def fetch_channel_by_id(self, channel_id):
        self.calls.append(("fetch_channel_by_id", channel_id))
        return self._lookup(channel_id)

    def fetch_channel_by_handle(self, handle):
        self.calls.append(("fetch_channel_by_handle", handle))
        return self._lookup(self.handles.get(normalize_handle(handle).lower()))

    def fetch_playlists_by_channel(self, channel_id):
        self._record("fetch_playlists_by_channel", channel_id)
        return list(self.playlists.get(channel_id, []))

    def fetch_playlist_video_ids(self, playlist_id):
        self._record("fetch_playlist_video_ids", playlist_id)
        return list(self.playlist_items.get(playlist_id, []))

    def fetch_videos_by_ids(self, video_ids):
        self._record("fetch_videos_by_ids", list(video_ids))
        return [self.videos[v] for v in dict.fromkeys(video_ids) if v in self.videos]

    def fetch_top_comment(self, video_id, exclude_channel_id):
        self._record("fetch_top_comment", video_id, exclude_channel_id)
        scripted = self.comments.get(video_id, [])
        if isinstance(scripted, UpstreamError):
            return UpstreamFailure(scripted)
        for thread in scripted:
            if exclude_channel_id and thread.author_channel_id == exclude_channel_id:
                continue
            return Found(thread)
        return NotFound()


def upstream_error(kind=UpstreamErrorKind.DEGRADED, status=503) -> UpstreamError:
    return UpstreamError(kind, "upstream trouble", upstream_status=status)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client():
    return FakeYouTubeClient()


class Clock:
    """Settable clock handed to the orchestrator."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return Clock(datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc))
