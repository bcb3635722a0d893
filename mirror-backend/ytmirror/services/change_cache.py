"""
Etag-based change detection for remote resources.

Entries are a pure optimisation: losing them only causes extra writes on the
next refresh, never missed ones.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ytmirror.core.enums import ResourceType
from ytmirror.db.repositories import EtagCacheRepository


class ChangeCache:
    def __init__(self, db: Session):
        self.repo = EtagCacheRepository(db)

    def has_changed(self, resource_type: ResourceType, resource_id: str, latest_tag: Optional[str]) -> bool:
        # No tag to compare against: treat as changed
        if not latest_tag:
            return True
        exists, stored = self.repo.get_etag(ResourceType(resource_type).value, resource_id)
        if not exists:
            return True
        return stored != latest_tag

    def save(self, resource_type: ResourceType, resource_id: str, tag: Optional[str], timestamp: datetime) -> None:
        self.repo.save(ResourceType(resource_type).value, resource_id, tag, timestamp)
