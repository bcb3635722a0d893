from datetime import date, datetime

from sqlalchemy import String, BigInteger, Boolean, Date, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column
from ytmirror.db.base import Base

class ChannelStatistics(Base):
    """Current counters, overwritten in place on every changed sync."""
    __tablename__ = "youtube_channel_statistics"

    channel_id: Mapped[str] = mapped_column(String, ForeignKey("youtube_channels.id"), primary_key=True)
    subscriber_count: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    video_count: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    view_count: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    hidden_subscriber_count: Mapped[bool] = mapped_column(Boolean, default=False)
    last_update: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), server_default=func.now())


class ChannelStatisticsDaily(Base):
    """One row per (channel, UTC date); a second capture on the same day overwrites it."""
    __tablename__ = "youtube_channel_statistics_daily"

    channel_id: Mapped[str] = mapped_column(String, ForeignKey("youtube_channels.id"), primary_key=True)
    snapshot_date: Mapped[date] = mapped_column(Date, primary_key=True)
    subscriber_count: Mapped[int] = mapped_column(BigInteger, default=0)
    video_count: Mapped[int] = mapped_column(BigInteger, default=0)
    view_count: Mapped[int] = mapped_column(BigInteger, default=0)
    hidden_subscriber_count: Mapped[bool] = mapped_column(Boolean, default=False)
    captured_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
