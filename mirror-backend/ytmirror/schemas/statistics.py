from datetime import date, datetime
from pydantic import BaseModel

class VideoDailyStatisticsOut(BaseModel):
    snapshot_date: date
    view_count: int
    like_count: int
    favorite_count: int
    comment_count: int
    captured_at: datetime | None = None

    class Config:
        from_attributes = True

class TrendPointOut(BaseModel):
    snapshot_date: date
    value: int | None = None

    class Config:
        from_attributes = True

class ChannelTrendOut(BaseModel):
    channel_id: str
    metric: str
    window_days: int
    start_date: date
    end_date: date
    points: list[TrendPointOut]
