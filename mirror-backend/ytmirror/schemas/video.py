from datetime import datetime
from pydantic import BaseModel

class VideoStatisticsOut(BaseModel):
    view_count: int | None = None
    like_count: int | None = None
    favorite_count: int | None = None
    comment_count: int | None = None
    last_update: datetime | None = None

    class Config:
        from_attributes = True

class VideoTopCommentOut(BaseModel):
    comment_content: str | None = None
    can_reply: bool | None = None
    is_public: bool | None = None
    like_count: int | None = None
    total_reply_count: int | None = None
    author_display_name: str | None = None
    author_profile_image_url: str | None = None
    author_channel_url: str | None = None
    author_channel_id: str | None = None
    published_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True

class VideoOut(BaseModel):
    id: str
    channel_id: str
    playlist_id: str | None = None
    title: str
    description: str | None = None
    published_at: datetime | None = None
    duration: str | None = None
    duration_seconds: int | None = None
    is_short: bool | None = None
    short_rule_version: str | None = None
    dimension: str | None = None
    definition: str | None = None
    caption: bool | None = None
    licensed_content: bool | None = None
    thumbnail_url: str | None = None
    tags: list[str] | None = None
    default_language: str | None = None
    default_audio_language: str | None = None
    privacy_status: str | None = None
    last_sync: datetime | None = None
    statistics: VideoStatisticsOut | None = None
    # Filled by the route when include_top_comment is set
    top_comment: VideoTopCommentOut | None = None

    class Config:
        from_attributes = True
