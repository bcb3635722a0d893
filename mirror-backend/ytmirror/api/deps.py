from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from ytmirror.db.session import get_db
from ytmirror.services.metadata_store import MetadataStore

_services = {}


def get_current_user_id(x_user_id: str | None = Header(default=None, alias="X-User-Id")) -> str:
    """Authenticated user id, as forwarded by the auth layer in front of this service."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return user_id


def get_store(db: Session = Depends(get_db)) -> MetadataStore:
    return MetadataStore(db)


def get_orchestrator():
    if "orchestrator" not in _services:
        from ytmirror.workers.orchestrator import build_orchestrator
        _services["orchestrator"] = build_orchestrator()
    return _services["orchestrator"]


def get_refresh_dispatcher():
    from ytmirror.workers.queue import enqueue_refresh
    return enqueue_refresh
