"""
Error taxonomy for LinkTrack.

    ValidationError -> 400 (missing or empty input)
    NotFoundError   -> 404 (unknown short id)
    StoreError      -> 500 (backing store failure; swallowed only while recording a visit)
"""

from typing import Optional

__all__ = ["LinkTrackError", "ValidationError", "NotFoundError", "StoreError"]


class LinkTrackError(Exception):
    """Base class for all LinkTrack errors."""


class ValidationError(LinkTrackError):
    """Input is missing, empty or malformed."""


class NotFoundError(LinkTrackError):
    def __init__(self, short_id: str):
        super().__init__(f"Short id not found: {short_id}")
        self.short_id = short_id


class StoreError(LinkTrackError):
    """
    The backing store failed (I/O error, timeout, id collision).

    Carries the failing operation and short id so operators can trace it in logs.
    """

    def __init__(self, operation: str, short_id: Optional[str] = None, reason: str = ""):
        message = f"Store operation {operation!r} failed"
        if short_id:
            message += f" for {short_id!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.operation = operation
        self.short_id = short_id
        self.reason = reason
