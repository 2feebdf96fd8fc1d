"""
LinkManager module for LinkTrack.

Responsibilities:
    - Shorten: delegate to the storage backend's `create`
    - Resolve (redirect handler): look up the record, record the visit, return the URL
    - Summarize: delegate to the analytics aggregator

Design notes:
    - Visit recording runs synchronously, before the URL is handed back, so a
      successful redirect implies the visit was written (or its failure logged).
    - Analytics is a side channel: a StoreError while recording is logged and
      swallowed, and the redirect still goes out. A StoreError on the lookup
      itself propagates; without the record there is nothing to redirect to.
    - Storage, recorder and aggregator are injected; the app factory wires them.

LLM Prompt Example:
    "Explain the availability-over-completeness tradeoff of best-effort click
    tracking on a redirect path, and how to keep the failures observable."
"""

import logging
from typing import Optional

from ..analytics.analytics import AnalyticsAggregator
from ..analytics.recorder import VisitRecorder
from ..analytics.useragent import describe
from ..errors import NotFoundError, StoreError
from ..models import AnalyticsReport, CreatorInfo, LinkRecord, RequestMetadata
from ..storage.base import BaseStorage

log = logging.getLogger("linktrack.manager")
redirect_log = logging.getLogger("linktrack.redirect")


class LinkManager:
    """Coordinates creation, redirects and analytics for short links."""

    def __init__(
        self,
        storage: BaseStorage,
        recorder: Optional[VisitRecorder] = None,
        aggregator: Optional[AnalyticsAggregator] = None,
    ):
        """
        Args:
            storage (BaseStorage): Backend storage instance.
            recorder (Optional[VisitRecorder]): Defaults to IP-keyed recording on `storage`.
            aggregator (Optional[AnalyticsAggregator]): Defaults to a 10-entry recent list.
        """
        self.storage = storage
        self.recorder = recorder or VisitRecorder(storage)
        self.aggregator = aggregator or AnalyticsAggregator(storage)

    def shorten(self, original_url, metadata: Optional[RequestMetadata] = None) -> LinkRecord:
        """
        Create a short link, remembering who asked for it when `metadata` is given.

        Raises:
            ValidationError: Missing or empty URL.
            StoreError: Id collision or backend failure.
        """
        creator = None
        if metadata is not None:
            device = describe(metadata.user_agent)
            creator = CreatorInfo(
                ip=metadata.ip,
                user_agent=metadata.user_agent,
                browser=device.browser,
                os=device.os,
                device_type=device.device_type,
                is_mobile=device.is_mobile,
            )
        record = self.storage.create(original_url, created_by=creator)
        log.info("Created short id %s", record.short_id)
        return record

    def resolve(self, short_id: str, metadata: Optional[RequestMetadata] = None) -> str:
        """
        Resolve a short id to its original URL and record the visit.

        Returns:
            str: The original URL to redirect to.

        Raises:
            NotFoundError: Unknown short id. Nothing is created or recorded.
            StoreError: The lookup failed.
        """
        record = self.storage.get_link(short_id)
        if record is None:
            raise NotFoundError(short_id)
        try:
            self.recorder.record(short_id, metadata or RequestMetadata())
        except StoreError:
            redirect_log.exception("Visit recording failed for %s; redirecting anyway", short_id)
        return record.original_url

    def summarize(self, short_id: str) -> AnalyticsReport:
        """Raises NotFoundError for unknown short ids."""
        return self.aggregator.summarize(short_id)
