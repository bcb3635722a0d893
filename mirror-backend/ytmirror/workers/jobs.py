import logging
from typing import Any, Dict

from rq import get_current_job

from ytmirror.core.enums import UpstreamErrorKind
from ytmirror.core.errors import ChannelNotFoundError, UpstreamError
from ytmirror.core.logging import JobContext

logger = logging.getLogger(__name__)

# Lazy loading: the orchestrator builds an HTTP session on first use
_services = {}


def get_orchestrator():
    if "orchestrator" not in _services:
        from ytmirror.workers.orchestrator import build_orchestrator
        _services["orchestrator"] = build_orchestrator()
    return _services["orchestrator"]


def refresh_channel_job(channel_id: str) -> Dict[str, Any]:
    """
    Full Refresh of one channel.

    Terminal failures (channel gone, request rejected upstream) are logged
    and reported in the result so rq does not retry them. Anything else is
    re-raised and the queue's retry policy applies.
    """
    job = get_current_job()
    job_id = job.id if job is not None else None

    with JobContext(job_id=job_id, channel_id=channel_id):
        logger.info(f"[sync] Refresh job started for {channel_id}")
        try:
            result = get_orchestrator().refresh(channel_id)
        except ChannelNotFoundError as e:
            logger.warning(f"[sync] {e.message}; not retrying")
            return {"channel_id": channel_id, "status": "not_found"}
        except UpstreamError as e:
            if e.kind == UpstreamErrorKind.REJECTED:
                logger.warning(f"[sync] Upstream rejected refresh of {channel_id}: {e.message}; not retrying")
                return {"channel_id": channel_id, "status": "rejected", "reason": e.reason}
            raise

        return {
            "channel_id": result.channel_id,
            "status": "done",
            "playlists_processed": result.playlists_processed,
            "videos_processed": result.videos_processed,
        }
