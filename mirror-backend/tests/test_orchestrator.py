from datetime import timedelta

import pytest

from conftest import (
    CHANNEL_ID,
    OTHER_CHANNEL_ID,
    UPLOADS_ID,
    make_channel,
    make_playlist,
    make_thread,
    make_video,
    naive,
    upstream_error,
)
from ytmirror.core.enums import UpstreamErrorKind
from ytmirror.core.errors import ChannelNotFoundError, UpstreamError
from ytmirror.models import (
    Channel,
    ChannelStatistics,
    ChannelStatisticsDaily,
    EtagCacheEntry,
    Playlist,
    SubscribedChannel,
    Video,
    VideoStatistics,
    VideoStatisticsDaily,
    VideoTopComment,
)
from ytmirror.workers.orchestrator import SyncOrchestrator, VideoPlaylistMap


def _count(session_factory, model):
    with session_factory() as s:
        return s.query(model).count()


def _get(session_factory, model, key):
    with session_factory() as s:
        return s.get(model, key)


@pytest.fixture
def dispatched():
    return []


@pytest.fixture
def orchestrator(client, session_factory, clock, dispatched):
    return SyncOrchestrator(
        client=client,
        session_factory=session_factory,
        dispatch_refresh=dispatched.append,
        clock=clock,
        short_max_seconds=180,
        short_rule_version="rule-a",
    )


@pytest.fixture
def channel_with_videos(client):
    """Uploads {A,B,C}; secondary playlist PL1 {B,D}."""
    client.add_channel(make_channel())
    client.playlists[CHANNEL_ID] = [make_playlist("PL1")]
    client.playlist_items["PL1"] = ["B", "D"]
    client.playlist_items[UPLOADS_ID] = ["A", "B", "C"]
    for vid in "ABCD":
        client.videos[vid] = make_video(vid)
    return client


class TestVideoPlaylistMap:
    def test_first_claim_wins(self):
        owners = VideoPlaylistMap()
        assert owners.claim("B", "PL1") is True
        assert owners.claim("B", "UU") is False
        assert owners.playlist_for("B") == "PL1"

    def test_keeps_first_claim_order(self):
        owners = VideoPlaylistMap()
        owners.claim_all(["B", "D"], "PL1")
        added = owners.claim_all(["A", "B", "C"], "UU")

        assert added == 2
        assert owners.video_ids() == ["B", "D", "A", "C"]
        assert len(owners) == 4
        assert "C" in owners
        assert owners.playlist_for("missing") is None


class TestSubscribe:
    def test_new_channel_is_seeded_and_refresh_deferred(self, orchestrator, client, session_factory, dispatched):
        client.add_channel(make_channel())

        result = orchestrator.subscribe(CHANNEL_ID, "user-1")

        assert result.subscribed is True
        assert result.sync_scheduled is True
        assert dispatched == [CHANNEL_ID]
        assert _count(session_factory, Channel) == 1
        assert _count(session_factory, ChannelStatistics) == 1
        assert _count(session_factory, SubscribedChannel) == 1
        assert _count(session_factory, Playlist) == 0
        assert _count(session_factory, Video) == 0
        assert _get(session_factory, EtagCacheEntry, ("channel", CHANNEL_ID)).etag == "ch-etag-1"
        assert client.called("fetch_playlists_by_channel") == []

    def test_membership_uses_channel_handle(self, orchestrator, client, session_factory):
        client.add_channel(make_channel())
        orchestrator.subscribe(CHANNEL_ID, "user-1")

        with session_factory() as s:
            assert s.query(SubscribedChannel).one().custom_url == "@testchannel"

    def test_known_channel_is_not_seeded_again(self, orchestrator, client, session_factory, dispatched):
        client.add_channel(make_channel())
        orchestrator.subscribe(CHANNEL_ID, "user-1")
        client.calls.clear()
        dispatched.clear()

        result = orchestrator.subscribe(CHANNEL_ID, "user-2")

        assert result.sync_scheduled is False
        assert client.calls == []
        assert dispatched == []
        assert _count(session_factory, SubscribedChannel) == 2

    def test_resubscribe_leaves_membership_as_is(self, orchestrator, client, session_factory):
        client.add_channel(make_channel())
        orchestrator.subscribe(CHANNEL_ID, "user-1")
        result = orchestrator.subscribe(CHANNEL_ID, "user-1")

        assert result.subscribed is True
        assert _count(session_factory, SubscribedChannel) == 1

    def test_unknown_channel_raises_and_writes_nothing(self, orchestrator, session_factory, dispatched):
        with pytest.raises(ChannelNotFoundError):
            orchestrator.subscribe(CHANNEL_ID, "user-1")

        assert _count(session_factory, Channel) == 0
        assert _count(session_factory, SubscribedChannel) == 0
        assert dispatched == []

    def test_upstream_failure_propagates(self, orchestrator, client, session_factory):
        client.failures["lookup"] = upstream_error(UpstreamErrorKind.UNAVAILABLE)

        with pytest.raises(UpstreamError) as exc_info:
            orchestrator.subscribe(CHANNEL_ID, "user-1")

        assert exc_info.value.kind == UpstreamErrorKind.UNAVAILABLE
        assert _count(session_factory, SubscribedChannel) == 0

    def test_dispatch_failure_is_swallowed(self, client, session_factory, clock):
        def broken_dispatch(channel_id):
            raise ConnectionError("redis down")

        orchestrator = SyncOrchestrator(client, session_factory, dispatch_refresh=broken_dispatch, clock=clock)
        client.add_channel(make_channel())

        result = orchestrator.subscribe(CHANNEL_ID, "user-1")

        assert result.sync_scheduled is True
        assert _count(session_factory, SubscribedChannel) == 1

    def test_subscribe_by_handle(self, orchestrator, client, session_factory):
        client.add_channel(make_channel())

        result = orchestrator.subscribe_by_handle("testchannel", "user-1")

        assert result.channel_id == CHANNEL_ID
        assert client.called("fetch_channel_by_handle") == [("fetch_channel_by_handle", "testchannel")]
        assert _count(session_factory, SubscribedChannel) == 1

    def test_subscribe_by_known_handle_skips_remote(self, orchestrator, client):
        client.add_channel(make_channel())
        orchestrator.subscribe(CHANNEL_ID, "user-1")
        client.calls.clear()

        result = orchestrator.subscribe_by_handle("@TestChannel", "user-2")

        assert result.channel_id == CHANNEL_ID
        assert client.calls == []

    def test_subscribe_by_unknown_handle(self, orchestrator):
        with pytest.raises(ChannelNotFoundError):
            orchestrator.subscribe_by_handle("@nobody", "user-1")

    def test_unsubscribe_keeps_mirror(self, orchestrator, client, session_factory):
        client.add_channel(make_channel())
        orchestrator.subscribe(CHANNEL_ID, "user-1")

        result = orchestrator.unsubscribe(CHANNEL_ID, "user-1")

        assert result.unsubscribed is True
        assert _count(session_factory, SubscribedChannel) == 0
        assert _count(session_factory, Channel) == 1
        assert orchestrator.unsubscribe(CHANNEL_ID, "user-1").unsubscribed is False


class TestRefresh:
    def test_processes_union_of_playlists_and_uploads(self, orchestrator, channel_with_videos, session_factory):
        result = orchestrator.refresh(CHANNEL_ID)

        assert result.channel_id == CHANNEL_ID
        assert result.playlists_processed == 1
        assert result.videos_processed == 4

        fetched = channel_with_videos.called("fetch_videos_by_ids")
        assert len(fetched) == 1
        assert sorted(fetched[0][1]) == ["A", "B", "C", "D"]

        with session_factory() as s:
            owners = {v.id: v.playlist_id for v in s.query(Video).all()}
        assert owners == {"A": UPLOADS_ID, "B": "PL1", "C": UPLOADS_ID, "D": "PL1"}

    def test_playlist_may_hold_videos_of_other_channels(self, orchestrator, channel_with_videos, session_factory, clock):
        channel_with_videos.playlist_items["PL1"] = ["A", "X"]
        channel_with_videos.videos["X"] = make_video("X", channel_id=OTHER_CHANNEL_ID)
        channel_with_videos.comments["X"] = [make_thread(OTHER_CHANNEL_ID, "owner"), make_thread("UCfan", "fan", "X")]

        result = orchestrator.refresh(CHANNEL_ID)

        assert result.videos_processed == 4
        foreign = _get(session_factory, Video, "X")
        assert foreign.channel_id == OTHER_CHANNEL_ID
        assert foreign.playlist_id == "PL1"
        assert _get(session_factory, VideoStatisticsDaily, ("X", clock.now.date())) is not None
        assert _get(session_factory, VideoTopComment, "X").author_channel_id == "UCfan"
        assert _get(session_factory, Channel, OTHER_CHANNEL_ID) is None

    def test_writes_current_state_and_snapshots(self, orchestrator, channel_with_videos, session_factory, clock):
        orchestrator.refresh(CHANNEL_ID)

        assert _count(session_factory, Channel) == 1
        assert _count(session_factory, Playlist) == 1
        assert _count(session_factory, VideoStatistics) == 4
        assert _count(session_factory, ChannelStatisticsDaily) == 1
        assert _count(session_factory, VideoStatisticsDaily) == 4
        snapshot = _get(session_factory, ChannelStatisticsDaily, (CHANNEL_ID, clock.now.date()))
        assert snapshot.view_count == 50000

    def test_second_run_is_idempotent(self, orchestrator, channel_with_videos, session_factory, clock):
        first_sync = clock.now
        orchestrator.refresh(CHANNEL_ID)

        clock.now = first_sync + timedelta(hours=2)
        result = orchestrator.refresh(CHANNEL_ID)

        assert result.playlists_processed == 0
        assert result.videos_processed == 0
        assert _count(session_factory, Video) == 4
        assert _count(session_factory, ChannelStatisticsDaily) == 1
        assert _count(session_factory, VideoStatisticsDaily) == 4

        # current-state rows untouched, snapshots re-captured
        assert _get(session_factory, Channel, CHANNEL_ID).last_sync == naive(first_sync)
        assert _get(session_factory, Video, "A").last_sync == naive(first_sync)
        snapshot = _get(session_factory, VideoStatisticsDaily, ("A", first_sync.date()))
        assert snapshot.captured_at == naive(clock.now)

        assert len(channel_with_videos.called("fetch_top_comment")) == 4

    def test_new_day_adds_snapshot_rows(self, orchestrator, channel_with_videos, session_factory, clock):
        orchestrator.refresh(CHANNEL_ID)
        clock.now = clock.now + timedelta(days=1)
        orchestrator.refresh(CHANNEL_ID)

        assert _count(session_factory, ChannelStatisticsDaily) == 2
        assert _count(session_factory, VideoStatisticsDaily) == 8

    def test_changed_video_is_rewritten(self, orchestrator, channel_with_videos, session_factory):
        orchestrator.refresh(CHANNEL_ID)
        channel_with_videos.videos["C"] = make_video("C", etag="C-etag-2", views=999)

        result = orchestrator.refresh(CHANNEL_ID)

        assert result.videos_processed == 1
        assert _get(session_factory, VideoStatistics, "C").view_count == 999

    def test_seeded_channel_is_not_rewritten(self, orchestrator, channel_with_videos, session_factory, clock):
        seeded_at = clock.now
        orchestrator.subscribe(CHANNEL_ID, "user-1")
        clock.now = seeded_at + timedelta(minutes=5)

        orchestrator.refresh(CHANNEL_ID)

        assert _get(session_factory, Channel, CHANNEL_ID).last_sync == naive(seeded_at)
        assert _count(session_factory, ChannelStatisticsDaily) == 1

    def test_unchanged_playlist_members_are_not_fetched(self, orchestrator, channel_with_videos):
        orchestrator.refresh(CHANNEL_ID)
        channel_with_videos.calls.clear()

        orchestrator.refresh(CHANNEL_ID)

        assert channel_with_videos.called("fetch_playlist_video_ids") == [("fetch_playlist_video_ids", UPLOADS_ID)]

    def test_unknown_channel_is_terminal(self, orchestrator, session_factory):
        with pytest.raises(ChannelNotFoundError):
            orchestrator.refresh(CHANNEL_ID)
        assert _count(session_factory, ChannelStatisticsDaily) == 0

    def test_failure_rolls_back_whole_run(self, orchestrator, channel_with_videos, session_factory):
        channel_with_videos.failures["fetch_videos_by_ids"] = upstream_error()

        with pytest.raises(UpstreamError):
            orchestrator.refresh(CHANNEL_ID)

        assert _count(session_factory, Channel) == 0
        assert _count(session_factory, Playlist) == 0
        assert _count(session_factory, EtagCacheEntry) == 0
        assert _count(session_factory, ChannelStatisticsDaily) == 0


class TestDurationClassification:
    @pytest.fixture
    def one_video(self, client):
        def _setup(duration):
            client.add_channel(make_channel())
            client.playlist_items[UPLOADS_ID] = ["A"]
            client.videos["A"] = make_video("A", duration=duration)
            return client
        return _setup

    @pytest.mark.parametrize("duration,seconds,is_short", [
        ("PT2M59S", 179, True),
        ("PT3M1S", 181, False),
        ("bogus", None, False),
    ])
    def test_classification(self, orchestrator, one_video, session_factory, duration, seconds, is_short):
        one_video(duration)
        orchestrator.refresh(CHANNEL_ID)

        video = _get(session_factory, Video, "A")
        assert video.duration_seconds == seconds
        assert video.is_short is is_short
        assert video.short_rule_version == "rule-a"

    def test_unchanged_video_picks_up_new_rule(self, orchestrator, one_video, client, session_factory, clock):
        one_video("PT2M30S")
        orchestrator.refresh(CHANNEL_ID)

        stricter = SyncOrchestrator(
            client, session_factory, clock=clock, short_max_seconds=60, short_rule_version="rule-b",
        )
        result = stricter.refresh(CHANNEL_ID)

        video = _get(session_factory, Video, "A")
        assert result.videos_processed == 0
        assert video.is_short is False
        assert video.short_rule_version == "rule-b"


class TestTopComment:
    def test_skips_comments_by_video_owner(self, orchestrator, channel_with_videos, session_factory):
        channel_with_videos.comments["A"] = [
            make_thread(CHANNEL_ID, "owner pinned"),
            make_thread("UCfanY", "from Y"),
            make_thread("UCfanZ", "from Z"),
        ]

        orchestrator.refresh(CHANNEL_ID)

        comment = _get(session_factory, VideoTopComment, "A")
        assert comment.author_channel_id == "UCfanY"
        assert comment.comment_content == "from Y"
        assert comment.channel_id == CHANNEL_ID
        assert ("fetch_top_comment", "A", CHANNEL_ID) in channel_with_videos.calls

    def test_fetch_error_does_not_fail_video(self, orchestrator, channel_with_videos, session_factory):
        channel_with_videos.failures["fetch_top_comment"] = RuntimeError("comment service exploded")

        result = orchestrator.refresh(CHANNEL_ID)

        assert result.videos_processed == 4
        assert _count(session_factory, Video) == 4
        assert _count(session_factory, VideoStatistics) == 4
        assert _count(session_factory, VideoTopComment) == 0

    def test_upstream_failure_is_swallowed(self, orchestrator, channel_with_videos, session_factory):
        channel_with_videos.comments["A"] = upstream_error(UpstreamErrorKind.REJECTED, 403)

        result = orchestrator.refresh(CHANNEL_ID)

        assert result.videos_processed == 4
        assert _get(session_factory, Video, "A") is not None

    def test_stale_comment_is_cleared(self, orchestrator, channel_with_videos, session_factory):
        channel_with_videos.comments["A"] = [make_thread("UCfanY")]
        orchestrator.refresh(CHANNEL_ID)
        assert _count(session_factory, VideoTopComment) == 1

        channel_with_videos.comments["A"] = []
        channel_with_videos.videos["A"] = make_video("A", etag="A-etag-2")
        orchestrator.refresh(CHANNEL_ID)

        assert _count(session_factory, VideoTopComment) == 0

    def test_failed_lookup_keeps_stored_comment(self, orchestrator, channel_with_videos, session_factory):
        channel_with_videos.comments["A"] = [make_thread("UCfanY", "kept")]
        orchestrator.refresh(CHANNEL_ID)

        channel_with_videos.comments["A"] = upstream_error(UpstreamErrorKind.DEGRADED, None)
        channel_with_videos.videos["A"] = make_video("A", etag="A-etag-2")
        orchestrator.refresh(CHANNEL_ID)

        assert _get(session_factory, VideoTopComment, "A").comment_content == "kept"


class TestRefreshAll:
    def test_continues_past_failures(self, orchestrator, channel_with_videos, session_factory):
        orchestrator.subscribe(CHANNEL_ID, "user-1")
        with session_factory() as s:
            s.add(SubscribedChannel(id="sub-2", user_id="user-1", channel_id=OTHER_CHANNEL_ID))
            s.commit()

        summary = orchestrator.refresh_all()

        assert summary.channels_processed == 1
        assert summary.channels_failed == 1
        assert summary.failed_channel_ids == [OTHER_CHANNEL_ID]
        assert summary.videos_processed == 4
        assert summary.playlists_processed == 1
