"""
Logging Configuration - one root handler, JSON or readable lines, with the
active sync context (job, channel, ...) stamped onto every record.
"""
import logging
import json
import sys
from datetime import datetime, timezone
from contextvars import ContextVar
from typing import Dict, Optional

from ytmirror.core.settings import settings

# Fields of the sync currently running in this context (job_id, channel_id, ...)
_sync_context: ContextVar[Dict[str, str]] = ContextVar("ytmirror_sync_context", default={})

READABLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Chatty at INFO; only their warnings are interesting here
QUIET_LOGGERS = ("urllib3", "requests", "tenacity")


def current_sync_context() -> Dict[str, str]:
    return dict(_sync_context.get())


class SyncContextFilter(logging.Filter):
    """Copies the active sync context onto the record as ``sync_context``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.sync_context = _sync_context.get()
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per line: base fields, sync context, then extra_fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(getattr(record, "sync_context", None) or {})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        entry.update(getattr(record, "extra_fields", None) or {})
        return json.dumps(entry, default=str)


class ReadableFormatter(logging.Formatter):
    """Plain text for local runs; sync context is appended as key=value pairs."""

    def __init__(self):
        super().__init__(READABLE_FORMAT)

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        context = getattr(record, "sync_context", None)
        if context:
            line += " | " + " ".join(f"{k}={v}" for k, v in context.items())
        return line


def setup_logging(level: str = "INFO", structured: bool = True) -> logging.Handler:
    """
    Replace the root handlers with a single stdout handler.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        structured: JSON lines (True) or human-readable (False)
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.addFilter(SyncContextFilter())
    handler.setFormatter(StructuredFormatter() if structured else ReadableFormatter())
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))
    return handler


def log_fields(**fields) -> dict:
    """Build the ``extra`` mapping picked up by both formatters."""
    return {"extra_fields": fields}


class JobContext:
    """
    Adds fields to the sync context for the duration of a block. Nested
    contexts merge; unset (None) fields are ignored.

    Usage:
        with JobContext(job_id=job.id, channel_id="UC..."):
            logger.info("[sync] Refreshing")
    """

    def __init__(self, job_id: Optional[str] = None, channel_id: Optional[str] = None, **fields):
        self.fields = {
            k: str(v)
            for k, v in {"job_id": job_id, "channel_id": channel_id, **fields}.items()
            if v is not None
        }
        self._token = None

    def __enter__(self):
        self._token = _sync_context.set({**_sync_context.get(), **self.fields})
        return self

    def __exit__(self, *args):
        if self._token is not None:
            _sync_context.reset(self._token)
            self._token = None


# Initialize logging on import
setup_logging(level=settings.log_level, structured=settings.log_structured)
