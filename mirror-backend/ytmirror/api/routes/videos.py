from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query

from ytmirror.api.deps import get_store
from ytmirror.api.routes.channels import videos_out
from ytmirror.schemas.statistics import VideoDailyStatisticsOut
from ytmirror.schemas.video import VideoOut
from ytmirror.services.metadata_store import MetadataStore
from ytmirror.services.trends import DEFAULT_WINDOW_DAYS, window_bounds

router = APIRouter(prefix="/api/youtube/videos", tags=["videos"])


@router.get("/{video_id}", response_model=VideoOut)
def get_video(video_id: str, include_top_comment: bool = True, store: MetadataStore = Depends(get_store)):
    v = store.get_video(video_id.strip())
    if not v:
        raise HTTPException(status_code=404, detail="Video not found")
    return videos_out(store, [v], include_top_comment)[0]


@router.get("/{video_id}/statistics/daily", response_model=list[VideoDailyStatisticsOut])
def video_daily_statistics(
    video_id: str,
    days: int = Query(default=DEFAULT_WINDOW_DAYS, ge=1),
    store: MetadataStore = Depends(get_store),
):
    v = store.get_video(video_id.strip())
    if not v:
        raise HTTPException(status_code=404, detail="Video not found")
    start, end = window_bounds(days, datetime.now(timezone.utc).date())
    return store.video_statistics_range(v.id, start, end)
