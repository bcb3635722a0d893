"""
Scheduler - daily re-sync of every subscribed channel.

Each tick enqueues one Refresh per subscribed channel; ticks run at UTC
midnight. ``--once`` runs every Refresh inline instead and exits.
"""
import argparse
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import ytmirror.core.logging  # noqa: F401  configures logging on import
from ytmirror.db.base import Base
from ytmirror.db.session import engine
from ytmirror.services.metadata_store import MetadataStore

logger = logging.getLogger(__name__)

DB_READY_ATTEMPTS = 10
DB_READY_DELAY_SECONDS = 3


def init_db():
    """Create tables if they don't exist"""
    import ytmirror.models  # noqa: F401  registers tables on Base.metadata

    logger.info("[scheduler] Initializing database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("[scheduler] Database tables ready.")


def wait_for_db(attempts: int = DB_READY_ATTEMPTS, delay: float = DB_READY_DELAY_SECONDS):
    for attempt in range(attempts):
        try:
            init_db()
            return
        except Exception as e:
            logger.warning(f"[scheduler] DB not ready (attempt {attempt + 1}/{attempts}): {e}")
            if attempt + 1 == attempts:
                raise
            time.sleep(delay)


def tick(enqueue: Optional[Callable[[str], object]] = None, session_factory=None) -> int:
    """Enqueue a Refresh for every subscribed channel. Returns how many were enqueued."""
    if enqueue is None:
        from ytmirror.workers.queue import enqueue_refresh
        enqueue = enqueue_refresh

    with MetadataStore.transaction(session_factory) as store:
        channel_ids = store.list_subscribed_channel_ids()

    enqueued = 0
    for channel_id in channel_ids:
        try:
            enqueue(channel_id)
            enqueued += 1
        except Exception as e:
            logger.error(f"[scheduler] Failed to enqueue refresh for {channel_id}: {e}")

    logger.info(f"[scheduler] Enqueued {enqueued}/{len(channel_ids)} channel refreshes")
    return enqueued


def seconds_until_next_utc_midnight(now: Optional[datetime] = None) -> float:
    now = now or datetime.now(timezone.utc)
    next_midnight = (now + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
    return (next_midnight - now).total_seconds()


def run_once():
    from ytmirror.workers.orchestrator import build_orchestrator

    summary = build_orchestrator().refresh_all()
    logger.info(
        f"[scheduler] Manual run finished: {summary.channels_processed} channels, "
        f"{summary.videos_processed} videos, {summary.channels_failed} failed"
    )
    return summary


def main(argv=None):
    parser = argparse.ArgumentParser(description="Daily re-sync of subscribed YouTube channels")
    parser.add_argument("--once", action="store_true", help="refresh every subscribed channel inline and exit")
    args = parser.parse_args(argv)

    wait_for_db()

    if args.once:
        run_once()
        return

    logger.info("[scheduler] Scheduler started. Refreshing subscribed channels at 00:00 UTC")
    while True:
        delay = seconds_until_next_utc_midnight()
        logger.info(f"[scheduler] Next run in {int(delay)}s")
        time.sleep(delay)
        try:
            tick()
        except Exception as e:
            logger.error(f"[scheduler] Error in tick: {e}", exc_info=True)


if __name__ == "__main__":
    main()
