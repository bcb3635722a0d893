from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ytmirror.db.base import Base

class Channel(Base):
    __tablename__ = "youtube_channels"

    # Platform channel id (UC...)
    id: Mapped[str] = mapped_column(String, primary_key=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    custom_url: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    country: Mapped[str | None] = mapped_column(String(8), nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(String, nullable=True)

    # Platform-managed playlist holding every public upload
    uploads_playlist_id: Mapped[str | None] = mapped_column(String, nullable=True)

    last_sync: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), server_default=func.now())

    statistics: Mapped[Optional["ChannelStatistics"]] = relationship(
        "ChannelStatistics", uselist=False, lazy="selectin", viewonly=True
    )
