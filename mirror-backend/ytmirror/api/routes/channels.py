from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query

from ytmirror.api.deps import get_current_user_id, get_store
from ytmirror.schemas.channel import ChannelOut
from ytmirror.schemas.playlist import PlaylistOut
from ytmirror.schemas.statistics import ChannelTrendOut, TrendPointOut
from ytmirror.schemas.video import VideoOut, VideoTopCommentOut
from ytmirror.services.metadata_store import MetadataStore
from ytmirror.services.trends import (
    DEFAULT_WINDOW_DAYS,
    build_daily_series,
    parse_trend_metric,
    window_bounds,
)

router = APIRouter(prefix="/api/youtube", tags=["channels"])

def _require_channel(store: MetadataStore, channel_id: str):
    ch = store.get_channel(channel_id.strip())
    if not ch:
        raise HTTPException(status_code=404, detail="Channel not found")
    return ch

def videos_out(store: MetadataStore, videos, include_top_comment: bool) -> list[VideoOut]:
    items = [VideoOut.model_validate(v) for v in videos]
    if include_top_comment and items:
        comments = store.top_comments_for(v.id for v in items)
        for item in items:
            comment = comments.get(item.id)
            if comment is not None:
                item.top_comment = VideoTopCommentOut.model_validate(comment)
    return items

@router.get("/channels", response_model=list[ChannelOut])
def list_channels(store: MetadataStore = Depends(get_store)):
    return store.list_channels()

@router.get("/channels/custom/{handle}", response_model=ChannelOut)
def get_channel_by_handle(handle: str, store: MetadataStore = Depends(get_store)):
    ch = store.get_channel_by_custom_url(handle)
    if not ch:
        raise HTTPException(status_code=404, detail="Channel not found")
    return ch

@router.get("/channels/{channel_id}", response_model=ChannelOut)
def get_channel(channel_id: str, store: MetadataStore = Depends(get_store)):
    return _require_channel(store, channel_id)

@router.get("/channels/{channel_id}/playlists", response_model=list[PlaylistOut])
def list_channel_playlists(channel_id: str, store: MetadataStore = Depends(get_store)):
    ch = _require_channel(store, channel_id)
    return store.list_playlists(ch.id)

@router.get("/channels/{channel_id}/videos", response_model=list[VideoOut])
def list_channel_videos(
    channel_id: str,
    limit: int | None = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    include_top_comment: bool = False,
    store: MetadataStore = Depends(get_store),
):
    ch = _require_channel(store, channel_id)
    videos = store.list_videos_by_channel(ch.id, limit=limit, offset=offset)
    return videos_out(store, videos, include_top_comment)

@router.get("/channels/{channel_id}/statistics/daily", response_model=ChannelTrendOut)
def channel_daily_trend(
    channel_id: str,
    metric: str | None = None,
    days: int = Query(default=DEFAULT_WINDOW_DAYS, ge=1),
    user_id: str = Depends(get_current_user_id),
    store: MetadataStore = Depends(get_store),
):
    """
    Daily series of one channel counter over the last ``days`` UTC dates.
    Missing days repeat the previous value. Only subscribers may read it.
    """
    channel_id = channel_id.strip()
    if not store.is_subscribed(user_id, channel_id):
        raise HTTPException(status_code=403, detail="Subscribe to the channel to view its trends")

    trend_metric = parse_trend_metric(metric)
    start, end = window_bounds(days, datetime.now(timezone.utc).date())
    snapshots = store.channel_statistics_range(channel_id, start, end)
    points = build_daily_series(snapshots, trend_metric, start, end)

    return ChannelTrendOut(
        channel_id=channel_id,
        metric=trend_metric.value,
        window_days=(end - start).days + 1,
        start_date=start,
        end_date=end,
        points=[TrendPointOut.model_validate(p) for p in points],
    )

