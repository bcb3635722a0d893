"""
Queue Configuration - deferred channel refreshes with retry support
"""
from redis import Redis
from rq import Queue, Retry
from ytmirror.core.settings import settings

# Redis connection
redis_conn = Redis.from_url(settings.redis_url)

sync_queue = Queue(settings.rq_queue_name, connection=redis_conn)


# =============================================================================
# Retry Configuration
# =============================================================================

def get_retry_config(max_retries: int = 3) -> Retry:
    """
    Retry between runs with widening gaps.
    Intervals: 1m, 5m, 15m
    """
    return Retry(max=max_retries, interval=[60, 300, 900])


RETRY_SYNC = get_retry_config(3)


# =============================================================================
# Helper Functions
# =============================================================================

def enqueue_sync(func, *args, job_timeout=None, **kwargs):
    """Enqueue job to the sync queue with retry"""
    return sync_queue.enqueue(
        func, *args,
        job_timeout=job_timeout or settings.sync_job_timeout_seconds,
        retry=RETRY_SYNC,
        **kwargs
    )


def enqueue_refresh(channel_id: str):
    """Enqueue a full Refresh of one channel."""
    from ytmirror.workers.jobs import refresh_channel_job
    return enqueue_sync(refresh_channel_job, channel_id, description=f"refresh {channel_id}")
