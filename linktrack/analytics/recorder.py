"""
Visit recorder for LinkTrack.

Responsibilities:
    - Classify the visitor's user agent
    - Build a VisitEvent and append it to the short id's visit log
    - Bump the click counter and the distinct-visitor set

Visitor keys:
    "ip" mode (default) keys uniqueness on the client IP and falls back to the
    user agent when no IP is known; "user_agent" mode does the reverse. A request
    carrying neither counts as the shared "anonymous" visitor.

Store errors propagate. Whether a failed recording should fail the request is
the caller's decision (the redirect handler lets the redirect through).
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from ..models import RequestMetadata, VisitEvent, utcnow
from ..storage.base import BaseStorage
from .useragent import UNKNOWN, describe

log = logging.getLogger("linktrack.recorder")

VISITOR_KEY_MODES = ("ip", "user_agent")
ANONYMOUS_VISITOR = "anonymous"


class VisitRecorder:
    def __init__(
        self,
        storage: BaseStorage,
        visitor_key_mode: str = "ip",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            storage (BaseStorage): Backend holding records, visitor sets and visit logs.
            visitor_key_mode (str): "ip" or "user_agent".
            clock (Callable): Returns the aware timestamp for new events (injectable for tests).
        """
        if visitor_key_mode not in VISITOR_KEY_MODES:
            raise ValueError(f"Unknown visitor key mode: {visitor_key_mode!r}")
        self.storage = storage
        self.visitor_key_mode = visitor_key_mode
        self.clock = clock or utcnow

    def visitor_key(self, metadata: RequestMetadata) -> str:
        if self.visitor_key_mode == "ip":
            return metadata.ip or metadata.user_agent or ANONYMOUS_VISITOR
        return metadata.user_agent or metadata.ip or ANONYMOUS_VISITOR

    def build_event(self, short_id: str, metadata: RequestMetadata) -> VisitEvent:
        device = describe(metadata.user_agent)
        return VisitEvent(
            short_id=short_id,
            timestamp=self.clock(),
            visitor_key=self.visitor_key(metadata),
            ip=metadata.ip,
            user_agent=metadata.user_agent,
            browser=device.browser,
            os=device.os,
            device_type=device.device_type,
            referrer=metadata.referrer or "direct",
            language=metadata.language or UNKNOWN,
            platform=metadata.platform or UNKNOWN,
            screen_resolution=metadata.screen_resolution or UNKNOWN,
            is_mobile=device.is_mobile,
        )

    def record(self, short_id: str, metadata: RequestMetadata) -> Optional[VisitEvent]:
        """
        Record one visit.

        Returns:
            Optional[VisitEvent]: The appended event, or None when `short_id`
            has no record (nothing is written in that case).

        Raises:
            StoreError: The backend failed part-way.
        """
        if self.storage.get_link(short_id) is None:
            log.debug("Skipping visit for unknown short id %s", short_id)
            return None
        event = self.build_event(short_id, metadata)
        self.storage.append_visit(event)
        clicks = self.storage.increment_click(short_id)
        uniques = self.storage.record_unique_visitor(short_id, event.visitor_key)
        log.debug("Visit recorded for %s (clicks=%d, unique=%d)", short_id, clicks, uniques)
        return event
