from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ytmirror.db.base import Base

class SubscribedChannel(Base):
    """(user, channel) membership; owned by the subscription collaborator."""
    __tablename__ = "subscribed_channel_info"
    __table_args__ = (
        UniqueConstraint("user_id", "channel_id", name="uq_subscribed_channel_user_channel"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    # Not a FK: membership may be recorded before the channel row lands.
    channel_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    custom_url: Mapped[str | None] = mapped_column(String, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    channel: Mapped[Optional["Channel"]] = relationship(
        "Channel",
        primaryjoin="foreign(SubscribedChannel.channel_id) == Channel.id",
        uselist=False,
        lazy="selectin",
        viewonly=True,
    )
