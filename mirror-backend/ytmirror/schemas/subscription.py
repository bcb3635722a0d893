from datetime import date, datetime
from pydantic import BaseModel, Field, model_validator

class SubscribeRequest(BaseModel):
    channel_id: str | None = Field(default=None, description="Platform channel id (UC...)")
    handle: str | None = Field(default=None, description="Channel handle, with or without the leading @")

    @model_validator(mode="after")
    def require_target(self):
        if not (self.channel_id or "").strip() and not (self.handle or "").strip():
            raise ValueError("channel_id or handle is required")
        return self

class UnsubscribeRequest(BaseModel):
    channel_id: str = Field(..., min_length=1)

class SubscribeResultOut(BaseModel):
    channel_id: str
    subscribed: bool
    sync_scheduled: bool

    class Config:
        from_attributes = True

class UnsubscribeResultOut(BaseModel):
    channel_id: str
    unsubscribed: bool

    class Config:
        from_attributes = True

class RefreshQueuedOut(BaseModel):
    channel_id: str
    job_id: str | None = None

class SubscriptionChannelOut(BaseModel):
    id: str
    title: str
    custom_url: str | None = None
    country: str | None = None
    thumbnail_url: str | None = None
    uploads_playlist_id: str | None = None
    last_sync: datetime | None = None

    class Config:
        from_attributes = True

class SubscriptionOut(BaseModel):
    id: str
    user_id: str
    channel_id: str
    custom_url: str | None = None
    created_at: datetime | None = None
    channel: SubscriptionChannelOut | None = None

    class Config:
        from_attributes = True

class SubscriptionStatusOut(BaseModel):
    channel_id: str
    subscribed: bool

class CardChannelOut(BaseModel):
    id: str
    title: str
    custom_url: str | None = None
    thumbnail_url: str | None = None

class CardMetricOut(BaseModel):
    channel: CardChannelOut
    value: int
    growth_rate: float | None = None

class TopCardsOut(BaseModel):
    subscriber_growth: CardMetricOut | None = None
    traffic: CardMetricOut | None = None
    diligence: CardMetricOut | None = None

class SubscriptionCardsOut(BaseModel):
    window_days: int
    start_date: date
    end_date: date
    top1: TopCardsOut
