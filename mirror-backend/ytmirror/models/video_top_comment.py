from datetime import datetime

from sqlalchemy import String, Text, Integer, Boolean, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column
from ytmirror.db.base import Base

class VideoTopComment(Base):
    """Most relevant comment not written by the video's own channel."""
    __tablename__ = "youtube_video_top_comment"

    video_id: Mapped[str] = mapped_column(String, ForeignKey("youtube_videos.id"), primary_key=True)
    channel_id: Mapped[str] = mapped_column(String, nullable=False)

    comment_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    can_reply: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    is_public: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    like_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_reply_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    author_display_name: Mapped[str | None] = mapped_column(String, nullable=True)
    author_profile_image_url: Mapped[str | None] = mapped_column(String, nullable=True)
    author_channel_url: Mapped[str | None] = mapped_column(String, nullable=True)
    author_channel_id: Mapped[str | None] = mapped_column(String, nullable=True)

    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_update: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), server_default=func.now())
