from datetime import datetime
from pydantic import BaseModel

class ChannelStatisticsOut(BaseModel):
    subscriber_count: int | None = None
    video_count: int | None = None
    view_count: int | None = None
    hidden_subscriber_count: bool = False
    last_update: datetime | None = None

    class Config:
        from_attributes = True

class ChannelOut(BaseModel):
    id: str
    title: str
    description: str | None = None
    custom_url: str | None = None
    country: str | None = None
    published_at: datetime | None = None
    thumbnail_url: str | None = None
    uploads_playlist_id: str | None = None
    last_sync: datetime | None = None
    statistics: ChannelStatisticsOut | None = None

    class Config:
        from_attributes = True
