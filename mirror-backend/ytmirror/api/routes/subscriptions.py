import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query

from ytmirror.api.deps import get_current_user_id, get_orchestrator, get_refresh_dispatcher, get_store
from ytmirror.core.errors import AppError
from ytmirror.schemas.subscription import (
    RefreshQueuedOut,
    SubscribeRequest,
    SubscribeResultOut,
    SubscriptionCardsOut,
    SubscriptionOut,
    SubscriptionStatusOut,
    UnsubscribeRequest,
    UnsubscribeResultOut,
)
from ytmirror.services.metadata_store import MetadataStore
from ytmirror.services.subscription_cards import build_subscription_cards
from ytmirror.services.trends import DEFAULT_WINDOW_DAYS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/youtube", tags=["subscriptions"])


@router.post("/subscribe", response_model=SubscribeResultOut, status_code=201)
def subscribe(
    body: SubscribeRequest,
    user_id: str = Depends(get_current_user_id),
    orchestrator=Depends(get_orchestrator),
):
    """
    Subscribe the caller to a channel by id or handle. Unseen channels are
    seeded immediately and fully synced in the background.
    """
    channel_id = (body.channel_id or "").strip()
    if channel_id:
        return orchestrator.subscribe(channel_id, user_id)
    return orchestrator.subscribe_by_handle(body.handle, user_id)


@router.delete("/subscribe", response_model=UnsubscribeResultOut)
def unsubscribe(
    body: UnsubscribeRequest,
    user_id: str = Depends(get_current_user_id),
    orchestrator=Depends(get_orchestrator),
):
    return orchestrator.unsubscribe(body.channel_id, user_id)


@router.get("/subscriptions", response_model=list[SubscriptionOut])
def list_subscriptions(
    limit: int | None = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    channel_id: str | None = None,
    custom_url: str | None = None,
    channel_name: str | None = None,
    country: str | None = None,
    user_id: str = Depends(get_current_user_id),
    store: MetadataStore = Depends(get_store),
):
    """Caller's subscriptions ordered by channel title, optionally filtered."""
    return store.list_user_subscriptions(
        user_id,
        limit=limit,
        offset=offset,
        channel_id=channel_id,
        custom_url=custom_url,
        channel_name=channel_name,
        country=country,
    )


@router.get("/subscriptions/cards", response_model=SubscriptionCardsOut)
def subscription_cards(
    days: int = Query(default=DEFAULT_WINDOW_DAYS, ge=1),
    user_id: str = Depends(get_current_user_id),
    store: MetadataStore = Depends(get_store),
):
    """Top subscribed channel by subscriber, view and upload growth over the window."""
    return build_subscription_cards(store, user_id, days, datetime.now(timezone.utc).date())


@router.get("/subscription-status", response_model=SubscriptionStatusOut)
def subscription_status(
    channel_id: str | None = None,
    user_id: str = Depends(get_current_user_id),
    store: MetadataStore = Depends(get_store),
):
    channel_id = (channel_id or "").strip()
    if not channel_id:
        raise AppError("channel_id is required", status_code=400, code="CHANNEL_ID_REQUIRED")
    return SubscriptionStatusOut(channel_id=channel_id, subscribed=store.is_subscribed(user_id, channel_id))


@router.post("/channels/{channel_id}/refresh", response_model=RefreshQueuedOut, status_code=202)
def queue_refresh(
    channel_id: str,
    user_id: str = Depends(get_current_user_id),
    dispatch=Depends(get_refresh_dispatcher),
):
    job = dispatch(channel_id.strip())
    job_id = getattr(job, "id", None)
    logger.info(f"[sync] Refresh of {channel_id} queued by {user_id} (job {job_id})")
    return RefreshQueuedOut(channel_id=channel_id.strip(), job_id=job_id)
