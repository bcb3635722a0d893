from datetime import date, datetime

from sqlalchemy import String, BigInteger, Date, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column
from ytmirror.db.base import Base

class VideoStatistics(Base):
    __tablename__ = "youtube_video_statistics"

    video_id: Mapped[str] = mapped_column(String, ForeignKey("youtube_videos.id"), primary_key=True)
    view_count: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    like_count: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    favorite_count: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    comment_count: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    last_update: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), server_default=func.now())


class VideoStatisticsDaily(Base):
    __tablename__ = "youtube_video_statistics_daily"

    video_id: Mapped[str] = mapped_column(String, ForeignKey("youtube_videos.id"), primary_key=True)
    snapshot_date: Mapped[date] = mapped_column(Date, primary_key=True)
    channel_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    view_count: Mapped[int] = mapped_column(BigInteger, default=0)
    like_count: Mapped[int] = mapped_column(BigInteger, default=0)
    favorite_count: Mapped[int] = mapped_column(BigInteger, default=0)
    comment_count: Mapped[int] = mapped_column(BigInteger, default=0)
    captured_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
