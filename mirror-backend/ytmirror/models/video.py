from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, Integer, Boolean, DateTime, func, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ytmirror.db.base import Base

class Video(Base):
    __tablename__ = "youtube_videos"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    # Owning channel as reported upstream; playlists may hold videos of channels
    # that are not mirrored, so this is not a foreign key.
    channel_id: Mapped[str] = mapped_column(String, nullable=False, index=True)

    # First playlist observed to contain the video; may be the uploads collection,
    # which has no row in youtube_playlists.
    playlist_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)

    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # ISO-8601 duration plus fields derived from it
    duration: Mapped[str | None] = mapped_column(String(32), nullable=True)
    duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_short: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    short_rule_version: Mapped[str | None] = mapped_column(String(64), nullable=True)

    dimension: Mapped[str | None] = mapped_column(String(8), nullable=True)
    definition: Mapped[str | None] = mapped_column(String(8), nullable=True)
    caption: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    licensed_content: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(String, nullable=True)
    tags: Mapped[list | None] = mapped_column(JSON, nullable=True)
    default_language: Mapped[str | None] = mapped_column(String(16), nullable=True)
    default_audio_language: Mapped[str | None] = mapped_column(String(16), nullable=True)
    privacy_status: Mapped[str | None] = mapped_column(String(16), nullable=True)

    last_sync: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), server_default=func.now())

    statistics: Mapped[Optional["VideoStatistics"]] = relationship(
        "VideoStatistics", uselist=False, lazy="selectin", viewonly=True
    )
