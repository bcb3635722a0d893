from datetime import date, datetime
from typing import TypeVar, Generic, Type, Optional, Iterable, Any
from uuid import uuid4

from sqlalchemy import func, or_, select, delete, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from ytmirror.db.base import Base

T = TypeVar("T", bound=Base)

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class BaseRepository(Generic[T]):
    """Generic repository: lookups plus INSERT ... ON CONFLICT upserts."""

    # Primary-key / unique columns the upsert conflicts on
    conflict_columns: tuple[str, ...] = ("id",)

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model

    def get_by_id(self, id: Any) -> Optional[T]:
        return self.db.get(self.model, id)

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        try:
            return _DIALECT_INSERTS[dialect](self.model.__table__)
        except KeyError:
            raise NotImplementedError(f"Upsert is not supported on dialect '{dialect}'")

    def upsert(self, values: dict, overrides: Optional[dict] = None) -> int:
        """
        Insert a row or overwrite every non-key column of the existing one.
        ``overrides`` maps column name -> SQL expression(excluded) for columns
        that must not be a plain overwrite.
        """
        stmt = self._insert().values(**values)
        set_ = {
            name: stmt.excluded[name]
            for name in values
            if name not in self.conflict_columns
        }
        for name, build in (overrides or {}).items():
            set_[name] = build(stmt.excluded)
        stmt = stmt.on_conflict_do_update(index_elements=list(self.conflict_columns), set_=set_)
        return self.db.execute(stmt).rowcount


class ChannelRepository(BaseRepository):
    """Repository for youtube_channels."""

    def __init__(self, db: Session):
        from ytmirror.models import Channel
        super().__init__(db, Channel)

    def list_all(self):
        return self.db.scalars(
            select(self.model).order_by(
                self.model.published_at.desc().nulls_last(), self.model.title.asc()
            )
        ).all()

    def get_by_custom_url(self, custom_url: str):
        handle = custom_url if custom_url.startswith("@") else f"@{custom_url}"
        return self.db.scalars(
            select(self.model).where(func.lower(self.model.custom_url) == handle.lower())
        ).first()


class ChannelStatisticsRepository(BaseRepository):
    conflict_columns = ("channel_id",)

    def __init__(self, db: Session):
        from ytmirror.models import ChannelStatistics
        super().__init__(db, ChannelStatistics)


class ChannelSnapshotRepository(BaseRepository):
    """Daily channel counters; one row per (channel, date)."""
    conflict_columns = ("channel_id", "snapshot_date")

    def __init__(self, db: Session):
        from ytmirror.models import ChannelStatisticsDaily
        super().__init__(db, ChannelStatisticsDaily)

    def list_range(self, channel_id: str, start: date, end: date):
        return self.db.scalars(
            select(self.model)
            .where(
                self.model.channel_id == channel_id,
                self.model.snapshot_date >= start,
                self.model.snapshot_date <= end,
            )
            .order_by(self.model.snapshot_date.asc())
        ).all()

    def list_for_channels(self, channel_ids: Iterable[str], start: date, end: date):
        """Snapshots of several channels in [start, end], grouped by channel then date."""
        channel_ids = list(channel_ids)
        if not channel_ids:
            return []
        return self.db.scalars(
            select(self.model)
            .where(
                self.model.channel_id.in_(channel_ids),
                self.model.snapshot_date >= start,
                self.model.snapshot_date <= end,
            )
            .order_by(self.model.channel_id.asc(), self.model.snapshot_date.asc())
        ).all()


class PlaylistRepository(BaseRepository):
    def __init__(self, db: Session):
        from ytmirror.models import Playlist
        super().__init__(db, Playlist)

    def get_by_channel(self, channel_id: str):
        return self.db.scalars(
            select(self.model)
            .where(self.model.channel_id == channel_id)
            .order_by(self.model.published_at.desc().nulls_last(), self.model.title.asc())
        ).all()


class VideoRepository(BaseRepository):
    """Repository for youtube_videos."""

    def __init__(self, db: Session):
        from ytmirror.models import Video
        super().__init__(db, Video)

    def upsert_video(self, values: dict) -> int:
        # Keep the first originating playlist ever recorded; only fill it when empty.
        table = self.model.__table__
        return self.upsert(values, overrides={
            "playlist_id": lambda excluded: func.coalesce(table.c.playlist_id, excluded.playlist_id),
        })

    def update_duration_fields(
        self,
        video_id: str,
        duration: Optional[str],
        duration_seconds: Optional[int],
        is_short: Optional[bool],
        short_rule_version: Optional[str],
    ) -> int:
        """Targeted update that only touches the row when a derived field differs."""
        table = self.model.__table__
        stmt = (
            update(table)
            .where(
                table.c.id == video_id,
                or_(
                    table.c.duration.is_distinct_from(duration),
                    table.c.duration_seconds.is_distinct_from(duration_seconds),
                    table.c.is_short.is_distinct_from(is_short),
                    table.c.short_rule_version.is_distinct_from(short_rule_version),
                ),
            )
            .values(
                duration=duration,
                duration_seconds=duration_seconds,
                is_short=is_short,
                short_rule_version=short_rule_version,
            )
        )
        return self.db.execute(stmt).rowcount

    def _page(self, stmt, limit: int, offset: int):
        return self.db.scalars(
            stmt.order_by(self.model.published_at.desc().nulls_last(), self.model.title.asc())
            .limit(limit)
            .offset(offset)
        ).all()

    def get_by_channel(self, channel_id: str, limit: int, offset: int):
        return self._page(select(self.model).where(self.model.channel_id == channel_id), limit, offset)

    def get_by_playlist(self, playlist_id: str, limit: int, offset: int):
        return self._page(select(self.model).where(self.model.playlist_id == playlist_id), limit, offset)


class VideoStatisticsRepository(BaseRepository):
    conflict_columns = ("video_id",)

    def __init__(self, db: Session):
        from ytmirror.models import VideoStatistics
        super().__init__(db, VideoStatistics)


class VideoSnapshotRepository(BaseRepository):
    """Daily video counters; one row per (video, date)."""
    conflict_columns = ("video_id", "snapshot_date")

    def __init__(self, db: Session):
        from ytmirror.models import VideoStatisticsDaily
        super().__init__(db, VideoStatisticsDaily)

    def list_range(self, video_id: str, start: date, end: date):
        return self.db.scalars(
            select(self.model)
            .where(
                self.model.video_id == video_id,
                self.model.snapshot_date >= start,
                self.model.snapshot_date <= end,
            )
            .order_by(self.model.snapshot_date.asc())
        ).all()


class VideoTopCommentRepository(BaseRepository):
    conflict_columns = ("video_id",)

    def __init__(self, db: Session):
        from ytmirror.models import VideoTopComment
        super().__init__(db, VideoTopComment)

    def get_for_videos(self, video_ids: Iterable[str]) -> dict:
        ids = list(video_ids)
        if not ids:
            return {}
        rows = self.db.scalars(select(self.model).where(self.model.video_id.in_(ids))).all()
        return {row.video_id: row for row in rows}

    def delete_for_video(self, video_id: str) -> int:
        return self.db.execute(
            delete(self.model.__table__).where(self.model.__table__.c.video_id == video_id)
        ).rowcount


class EtagCacheRepository(BaseRepository):
    conflict_columns = ("resource_type", "resource_id")

    def __init__(self, db: Session):
        from ytmirror.models import EtagCacheEntry
        super().__init__(db, EtagCacheEntry)

    def get_etag(self, resource_type: str, resource_id: str) -> tuple[bool, Optional[str]]:
        """(entry exists, stored etag) without loading the ORM object."""
        row = self.db.execute(
            select(self.model.etag).where(
                self.model.resource_type == resource_type,
                self.model.resource_id == resource_id,
            )
        ).first()
        if row is None:
            return False, None
        return True, row[0]

    def save(self, resource_type: str, resource_id: str, etag: Optional[str], last_checked: datetime) -> int:
        return self.upsert({
            "resource_type": resource_type,
            "resource_id": resource_id,
            "etag": etag,
            "last_checked": last_checked,
        })


class SubscriptionRepository(BaseRepository):
    """Membership rows of the subscription collaborator."""

    def __init__(self, db: Session):
        from ytmirror.models import SubscribedChannel
        super().__init__(db, SubscribedChannel)

    def subscribe(self, user_id: str, channel_id: str, custom_url: Optional[str]) -> bool:
        """Insert the membership; an existing row is left as-is. True if created."""
        stmt = self._insert().values(
            id=str(uuid4()),
            user_id=user_id,
            channel_id=channel_id,
            custom_url=custom_url or channel_id,
        ).on_conflict_do_nothing(index_elements=["user_id", "channel_id"])
        return self.db.execute(stmt).rowcount > 0

    def unsubscribe(self, user_id: str, channel_id: str) -> bool:
        table = self.model.__table__
        result = self.db.execute(
            delete(table).where(table.c.user_id == user_id, table.c.channel_id == channel_id)
        )
        return result.rowcount > 0

    def is_subscribed(self, user_id: str, channel_id: str) -> bool:
        return self.db.scalar(
            select(func.count()).select_from(self.model).where(
                self.model.user_id == user_id,
                self.model.channel_id == channel_id,
            )
        ) > 0

    def get_by_user(
        self,
        user_id: str,
        limit: int,
        offset: int,
        channel_id: Optional[str] = None,
        custom_url: Optional[str] = None,
        channel_name: Optional[str] = None,
        country: Optional[str] = None,
    ):
        """
        The user's memberships, joined to the mirrored channel for filtering
        and ordering by title. channel_name is a case-insensitive substring.
        """
        from ytmirror.models import Channel

        stmt = (
            select(self.model)
            .outerjoin(Channel, Channel.id == self.model.channel_id)
            .where(self.model.user_id == user_id)
        )
        if channel_id:
            stmt = stmt.where(self.model.channel_id == channel_id)
        if custom_url:
            stmt = stmt.where(or_(self.model.custom_url == custom_url, Channel.custom_url == custom_url))
        if country:
            stmt = stmt.where(Channel.country == country)
        if channel_name:
            stmt = stmt.where(Channel.title.icontains(channel_name, autoescape=True))

        return self.db.scalars(
            stmt
            .order_by(func.coalesce(Channel.title, self.model.custom_url, self.model.channel_id).asc())
            .limit(limit)
            .offset(offset)
        ).all()

    def channel_ids_for_user(self, user_id: str) -> list[str]:
        return list(self.db.scalars(
            select(self.model.channel_id).where(self.model.user_id == user_id).distinct()
        ).all())

    def distinct_channel_ids(self) -> list[str]:
        return list(self.db.scalars(
            select(self.model.channel_id).distinct().order_by(self.model.channel_id.asc())
        ).all())
