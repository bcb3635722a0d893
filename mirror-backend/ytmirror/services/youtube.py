"""
YouTube Data API v3 client.

Fetches channels, playlists, playlist members, videos and comment threads.
Single-resource lookups return a tagged result (Found / NotFound /
UpstreamFailure); list operations raise UpstreamError so a failed page or
batch never yields a partial list. Nothing here touches the database.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Generic, Iterator, List, Optional, TypeVar, Union

import requests
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from ytmirror.core.enums import UpstreamErrorKind
from ytmirror.core.errors import UpstreamError
from ytmirror.core.settings import settings

logger = logging.getLogger(__name__)

CHANNEL_ID_REGEX = re.compile(r'^UC[\w-]{22}$')

PAGE_SIZE = 50
COMMENT_PAGE_SIZE = 100
THUMBNAIL_PREFERENCE = ("maxres", "standard", "high", "medium", "default")

T = TypeVar("T")


# =============================================================================
# Records
# =============================================================================

@dataclass
class ChannelDetails:
    id: str
    etag: Optional[str]
    title: str
    description: Optional[str] = None
    custom_url: Optional[str] = None
    country: Optional[str] = None
    published_at: Optional[datetime] = None
    thumbnail_url: Optional[str] = None
    uploads_playlist_id: Optional[str] = None
    subscriber_count: Optional[int] = None
    video_count: Optional[int] = None
    view_count: Optional[int] = None
    hidden_subscriber_count: bool = False


@dataclass
class PlaylistDetails:
    id: str
    etag: Optional[str]
    channel_id: str
    title: str
    description: Optional[str] = None
    item_count: Optional[int] = None
    published_at: Optional[datetime] = None
    thumbnail_url: Optional[str] = None


@dataclass
class VideoStatisticsDetails:
    view_count: Optional[int] = None
    like_count: Optional[int] = None
    favorite_count: Optional[int] = None
    comment_count: Optional[int] = None


@dataclass
class VideoDetails:
    id: str
    etag: Optional[str]
    channel_id: str
    title: str
    description: Optional[str] = None
    published_at: Optional[datetime] = None
    duration: Optional[str] = None
    dimension: Optional[str] = None
    definition: Optional[str] = None
    caption: Optional[bool] = None
    licensed_content: Optional[bool] = None
    thumbnail_url: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    default_language: Optional[str] = None
    default_audio_language: Optional[str] = None
    privacy_status: Optional[str] = None
    statistics: VideoStatisticsDetails = field(default_factory=VideoStatisticsDetails)


@dataclass
class CommentThread:
    id: str
    video_id: str
    text: Optional[str] = None
    can_reply: Optional[bool] = None
    is_public: Optional[bool] = None
    like_count: Optional[int] = None
    total_reply_count: Optional[int] = None
    author_display_name: Optional[str] = None
    author_profile_image_url: Optional[str] = None
    author_channel_url: Optional[str] = None
    author_channel_id: Optional[str] = None
    published_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# Tagged lookup results
# =============================================================================

@dataclass(frozen=True)
class Found(Generic[T]):
    record: T

    def unwrap(self) -> T:
        return self.record


@dataclass(frozen=True)
class NotFound:
    def unwrap(self) -> None:
        return None


@dataclass(frozen=True)
class UpstreamFailure:
    error: UpstreamError

    def unwrap(self):
        raise self.error


LookupResult = Union[Found[T], NotFound, UpstreamFailure]


# =============================================================================
# Helpers
# =============================================================================

def normalize_handle(handle: str) -> str:
    handle = handle.strip()
    return handle if handle.startswith("@") else f"@{handle}"


def _to_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _parse_datetime(s: Optional[str]) -> Optional[datetime]:
    if not s:
        return None
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        return None


def _pick_thumbnail(thumbnails: Optional[dict]) -> Optional[str]:
    thumbnails = thumbnails or {}
    for key in THUMBNAIL_PREFERENCE:
        url = (thumbnails.get(key) or {}).get("url")
        if url:
            return url
    return None


def _error_reason(resp: requests.Response) -> Optional[str]:
    try:
        errors = resp.json().get("error", {}).get("errors") or []
    except ValueError:
        return None
    return errors[0].get("reason") if errors else None


def _is_degraded(exc: BaseException) -> bool:
    return isinstance(exc, UpstreamError) and exc.kind == UpstreamErrorKind.DEGRADED


def _chunks(items: List[str], size: int) -> Iterator[List[str]]:
    for i in range(0, len(items), size):
        yield items[i:i + size]


# =============================================================================
# Item mapping
# =============================================================================

def _map_channel(item: dict) -> ChannelDetails:
    snippet = item.get("snippet") or {}
    stats = item.get("statistics") or {}
    related = (item.get("contentDetails") or {}).get("relatedPlaylists") or {}
    return ChannelDetails(
        id=item["id"],
        etag=item.get("etag"),
        title=snippet.get("title") or item["id"],
        description=snippet.get("description"),
        custom_url=snippet.get("customUrl"),
        country=snippet.get("country"),
        published_at=_parse_datetime(snippet.get("publishedAt")),
        thumbnail_url=_pick_thumbnail(snippet.get("thumbnails")),
        uploads_playlist_id=related.get("uploads"),
        subscriber_count=_to_int(stats.get("subscriberCount")),
        video_count=_to_int(stats.get("videoCount")),
        view_count=_to_int(stats.get("viewCount")),
        hidden_subscriber_count=bool(stats.get("hiddenSubscriberCount", False)),
    )


def _map_playlist(item: dict) -> PlaylistDetails:
    snippet = item.get("snippet") or {}
    return PlaylistDetails(
        id=item["id"],
        etag=item.get("etag"),
        channel_id=snippet.get("channelId", ""),
        title=snippet.get("title") or item["id"],
        description=snippet.get("description"),
        item_count=_to_int((item.get("contentDetails") or {}).get("itemCount")),
        published_at=_parse_datetime(snippet.get("publishedAt")),
        thumbnail_url=_pick_thumbnail(snippet.get("thumbnails")),
    )


def _map_video(item: dict) -> VideoDetails:
    snippet = item.get("snippet") or {}
    details = item.get("contentDetails") or {}
    status = item.get("status") or {}
    stats = item.get("statistics") or {}
    caption = details.get("caption")
    return VideoDetails(
        id=item["id"],
        etag=item.get("etag"),
        channel_id=snippet.get("channelId", ""),
        title=snippet.get("title") or item["id"],
        description=snippet.get("description"),
        published_at=_parse_datetime(snippet.get("publishedAt")),
        duration=details.get("duration"),
        dimension=details.get("dimension"),
        definition=details.get("definition"),
        # contentDetails.caption is the string "true"/"false"
        caption=None if caption is None else str(caption).lower() == "true",
        licensed_content=details.get("licensedContent"),
        thumbnail_url=_pick_thumbnail(snippet.get("thumbnails")),
        tags=list(snippet.get("tags") or []),
        default_language=snippet.get("defaultLanguage"),
        default_audio_language=snippet.get("defaultAudioLanguage"),
        privacy_status=status.get("privacyStatus"),
        statistics=VideoStatisticsDetails(
            view_count=_to_int(stats.get("viewCount")),
            like_count=_to_int(stats.get("likeCount")),
            favorite_count=_to_int(stats.get("favoriteCount")),
            comment_count=_to_int(stats.get("commentCount")),
        ),
    )


def _map_comment_thread(item: dict) -> CommentThread:
    thread = item.get("snippet") or {}
    top = (thread.get("topLevelComment") or {}).get("snippet") or {}
    author_channel = top.get("authorChannelId") or {}
    return CommentThread(
        id=item.get("id", ""),
        video_id=thread.get("videoId") or top.get("videoId", ""),
        text=top.get("textDisplay") or top.get("textOriginal"),
        can_reply=thread.get("canReply"),
        is_public=thread.get("isPublic"),
        like_count=_to_int(top.get("likeCount")),
        total_reply_count=_to_int(thread.get("totalReplyCount")),
        author_display_name=top.get("authorDisplayName"),
        author_profile_image_url=top.get("authorProfileImageUrl"),
        author_channel_url=top.get("authorChannelUrl"),
        author_channel_id=author_channel.get("value") if isinstance(author_channel, dict) else author_channel,
        published_at=_parse_datetime(top.get("publishedAt")),
        updated_at=_parse_datetime(top.get("updatedAt")),
    )


# =============================================================================
# Client
# =============================================================================

class YouTubeDataClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://www.googleapis.com/youtube/v3",
        timeout: float = 10,
        max_attempts: int = 3,
        max_pages: int = 1000,
        comment_max_pages: int = 5,
        batch_size: int = 50,
        backoff_seconds: float = 1,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.max_pages = max_pages
        self.comment_max_pages = comment_max_pages
        self.batch_size = min(max(1, batch_size), 50)
        self.backoff_seconds = backoff_seconds
        self.session = session or requests.Session()

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _get_once(self, resource: str, params: Dict[str, Any]) -> dict:
        url = f"{self.base_url}/{resource}"
        try:
            resp = self.session.get(url, params={**params, "key": self.api_key}, timeout=self.timeout)
        except requests.Timeout as e:
            raise UpstreamError(UpstreamErrorKind.DEGRADED, f"{resource}: request timed out") from e
        except requests.RequestException as e:
            raise UpstreamError(UpstreamErrorKind.UNAVAILABLE, f"{resource}: {e}") from e

        if resp.status_code >= 500:
            raise UpstreamError(
                UpstreamErrorKind.DEGRADED,
                f"{resource}: upstream returned {resp.status_code}",
                upstream_status=resp.status_code,
                reason=_error_reason(resp),
            )
        if resp.status_code >= 400:
            raise UpstreamError(
                UpstreamErrorKind.REJECTED,
                f"{resource}: upstream rejected request with {resp.status_code}",
                upstream_status=resp.status_code,
                reason=_error_reason(resp),
            )

        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError(
                UpstreamErrorKind.DEGRADED,
                f"{resource}: invalid JSON in response",
                upstream_status=resp.status_code,
            ) from e

    def _get(self, resource: str, params: Dict[str, Any]) -> dict:
        """GET with a bounded retry of degraded (5xx/timeout) responses."""
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_seconds, max=10),
            retry=retry_if_exception(_is_degraded),
            reraise=True,
        )
        return retrying(self._get_once, resource, params)

    def _paginate(self, resource: str, params: Dict[str, Any], max_pages: int) -> Iterator[dict]:
        """
        Yield items page by page until nextPageToken runs out. A cursor still
        pending after max_pages raises DEGRADED rather than returning a partial list.
        """
        page_token: Optional[str] = None
        for page in range(max_pages):
            page_params = dict(params)
            if page_token:
                page_params["pageToken"] = page_token
            body = self._get(resource, page_params)
            yield from body.get("items") or []

            page_token = body.get("nextPageToken")
            if not page_token:
                return
        logger.warning(
            f"[youtube] {resource} still paging after {max_pages} pages",
            extra={"extra_fields": {"params": {k: v for k, v in params.items() if k != "key"}}},
        )
        raise UpstreamError(
            UpstreamErrorKind.DEGRADED,
            f"{resource}: more than {max_pages} pages",
            reason="pageLimitExceeded",
        )

    # -------------------------------------------------------------------------
    # Channels
    # -------------------------------------------------------------------------

    def _lookup_channel(self, **filters) -> LookupResult[ChannelDetails]:
        try:
            body = self._get("channels", {"part": "snippet,statistics,contentDetails", **filters})
        except UpstreamError as e:
            return UpstreamFailure(e)

        items = body.get("items") or []
        if not items or not items[0].get("id"):
            return NotFound()
        return Found(_map_channel(items[0]))

    def fetch_channel_by_id(self, channel_id: str) -> LookupResult[ChannelDetails]:
        return self._lookup_channel(id=channel_id.strip())

    def fetch_channel_by_handle(self, handle: str) -> LookupResult[ChannelDetails]:
        return self._lookup_channel(forHandle=normalize_handle(handle))

    # -------------------------------------------------------------------------
    # Playlists
    # -------------------------------------------------------------------------

    def fetch_playlists_by_channel(self, channel_id: str) -> List[PlaylistDetails]:
        params = {"part": "snippet,contentDetails", "channelId": channel_id, "maxResults": PAGE_SIZE}
        return [_map_playlist(item) for item in self._paginate("playlists", params, self.max_pages)]

    def fetch_playlist_video_ids(self, playlist_id: str) -> List[str]:
        """Ordered member ids. A missing playlist (empty uploads collections 404) yields []."""
        params = {"part": "contentDetails", "playlistId": playlist_id, "maxResults": PAGE_SIZE}
        try:
            return [
                item["contentDetails"]["videoId"]
                for item in self._paginate("playlistItems", params, self.max_pages)
                if (item.get("contentDetails") or {}).get("videoId")
            ]
        except UpstreamError as e:
            if e.kind == UpstreamErrorKind.REJECTED and e.upstream_status == 404:
                logger.info(f"[youtube] Playlist {playlist_id} not found, treating as empty")
                return []
            raise

    # -------------------------------------------------------------------------
    # Videos
    # -------------------------------------------------------------------------

    def fetch_videos_by_ids(self, video_ids: List[str]) -> List[VideoDetails]:
        """
        Fetch full video details in batches of at most batch_size ids.
        Any failed batch fails the whole call.
        """
        unique_ids = list(dict.fromkeys(v for v in video_ids if v))
        videos: List[VideoDetails] = []
        for batch in _chunks(unique_ids, self.batch_size):
            body = self._get("videos", {
                "part": "snippet,contentDetails,statistics,status",
                "id": ",".join(batch),
            })
            videos.extend(_map_video(item) for item in body.get("items") or [] if item.get("id"))
        return videos

    # -------------------------------------------------------------------------
    # Comments
    # -------------------------------------------------------------------------

    def fetch_top_comment(self, video_id: str, exclude_channel_id: Optional[str]) -> LookupResult[CommentThread]:
        """First thread in relevance order not authored by exclude_channel_id."""
        params = {
            "part": "snippet",
            "videoId": video_id,
            "order": "relevance",
            "textFormat": "plainText",
            "maxResults": COMMENT_PAGE_SIZE,
        }
        try:
            for item in self._paginate("commentThreads", params, self.comment_max_pages):
                thread = _map_comment_thread(item)
                if exclude_channel_id and thread.author_channel_id == exclude_channel_id:
                    continue
                return Found(thread)
        except UpstreamError as e:
            return UpstreamFailure(e)
        return NotFound()


def build_youtube_client() -> YouTubeDataClient:
    return YouTubeDataClient(
        api_key=settings.youtube_api_key,
        base_url=settings.youtube_api_base_url,
        timeout=settings.youtube_http_timeout_seconds,
        max_attempts=settings.youtube_http_max_attempts,
        max_pages=settings.youtube_max_pages,
        comment_max_pages=settings.youtube_comment_max_pages,
        batch_size=settings.youtube_id_batch_size,
    )
