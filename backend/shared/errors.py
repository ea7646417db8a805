"""
Error taxonomy shared by the ingest, store and API layers.

Each error carries a machine-readable ``kind`` and the HTTP status class the
API boundary reports it with.
"""
from __future__ import annotations

from typing import Optional


class MatchLogError(Exception):
    """Base class for all domain errors."""

    kind = "internal_error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, str]:
        return {"error": self.kind, "message": self.message}


class UpstreamUnavailable(MatchLogError):
    """The fixture feed was unreachable, timed out or answered with a non-success status."""

    kind = "upstream_unavailable"
    status_code = 502

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        league_id: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status
        self.league_id = league_id


class ValidationError(MatchLogError):
    kind = "validation_error"
    status_code = 400


class Unauthorized(MatchLogError):
    kind = "unauthorized"
    status_code = 401


class NotFound(MatchLogError):
    kind = "not_found"
    status_code = 404
