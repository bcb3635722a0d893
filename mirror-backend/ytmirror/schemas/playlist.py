from datetime import datetime
from pydantic import BaseModel

class PlaylistOut(BaseModel):
    id: str
    channel_id: str
    title: str
    description: str | None = None
    item_count: int | None = None
    published_at: datetime | None = None
    thumbnail_url: str | None = None
    last_sync: datetime | None = None

    class Config:
        from_attributes = True
