"""
Application errors raised below the route layer.

Routes translate request-level problems into HTTPException directly; anything
raised from services/workers derives from AppError and is rendered by the
handler registered in ytmirror.main.
"""
from __future__ import annotations

from typing import Any, Optional

from ytmirror.core.enums import UpstreamErrorKind


class AppError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.details = details

    def to_dict(self) -> dict:
        body = {"code": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return {"error": body}


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"


class ChannelNotFoundError(NotFoundError):
    code = "CHANNEL_NOT_FOUND"

    def __init__(self, channel_id: str):
        super().__init__(
            f"Channel not found: {channel_id}",
            details={"channel_id": channel_id},
        )
        self.channel_id = channel_id


_KIND_STATUS = {
    UpstreamErrorKind.UNAVAILABLE: 503,
    UpstreamErrorKind.REJECTED: 502,
    UpstreamErrorKind.DEGRADED: 503,
}


class UpstreamError(AppError):
    """Failure talking to the YouTube Data API."""

    def __init__(
        self,
        kind: UpstreamErrorKind,
        message: str,
        upstream_status: Optional[int] = None,
        reason: Optional[str] = None,
    ):
        super().__init__(
            message,
            status_code=_KIND_STATUS[kind],
            code=f"UPSTREAM_{kind.value}",
            details={"upstream_status": upstream_status, "reason": reason},
        )
        self.kind = kind
        self.upstream_status = upstream_status
        self.reason = reason

    @property
    def retryable(self) -> bool:
        return self.kind in (UpstreamErrorKind.UNAVAILABLE, UpstreamErrorKind.DEGRADED)
