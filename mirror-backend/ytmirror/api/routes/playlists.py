from fastapi import APIRouter, Depends, HTTPException, Query

from ytmirror.api.deps import get_store
from ytmirror.api.routes.channels import videos_out
from ytmirror.schemas.playlist import PlaylistOut
from ytmirror.schemas.video import VideoOut
from ytmirror.services.metadata_store import MetadataStore

router = APIRouter(prefix="/api/youtube/playlists", tags=["playlists"])


@router.get("/{playlist_id}", response_model=PlaylistOut)
def get_playlist(playlist_id: str, store: MetadataStore = Depends(get_store)):
    p = store.get_playlist(playlist_id.strip())
    if not p:
        raise HTTPException(status_code=404, detail="Playlist not found")
    return p


@router.get("/{playlist_id}/videos", response_model=list[VideoOut])
def list_playlist_videos(
    playlist_id: str,
    limit: int | None = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    include_top_comment: bool = False,
    store: MetadataStore = Depends(get_store),
):
    # Uploads collections have no playlist row; list by originating id either way
    videos = store.list_videos_by_playlist(playlist_id.strip(), limit=limit, offset=offset)
    return videos_out(store, videos, include_top_comment)
