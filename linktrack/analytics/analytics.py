"""
Analytics module for LinkTrack.

Responsibilities:
    - Summarize the visit log of one short id
    - Group visits by browser, operating system and device type
    - Bucket visits by local hour of day
    - List the most recent visitors (bounded, newest first)

The grouping itself is delegated to the storage backend, which either counts
in Python (in-memory) or pushes GROUP BY down to SQL (PostgreSQL).

LLM Prompt Example:
    "Suggest ways to extend this summary to include daily/weekly aggregation."
"""

from ..errors import NotFoundError
from ..models import AnalyticsReport
from ..storage.base import BaseStorage

DEFAULT_RECENT_LIMIT = 10


class AnalyticsAggregator:
    def __init__(self, storage: BaseStorage, recent_limit: int = DEFAULT_RECENT_LIMIT):
        self.storage = storage
        self.recent_limit = recent_limit

    def summarize(self, short_id: str) -> AnalyticsReport:
        """
        Build the analytics report for a short id.

        Returns:
            AnalyticsReport: Link info, totals, grouped counts, hourly clicks and
            at most `recent_limit` recent visits.

        Raises:
            NotFoundError: If the short id has no record.

        Example:
            report.browsers == {"Chrome": 3}
            report.hourly_clicks == {14: 2, 15: 1}
        """
        record = self.storage.get_link(short_id)
        if record is None:
            raise NotFoundError(short_id)
        return AnalyticsReport(
            short_id=record.short_id,
            original_url=record.original_url,
            created_at=record.created_at,
            click_count=record.click_count,
            unique_visitor_count=record.unique_visitor_count,
            browsers=self.storage.count_visits_by(short_id, "browser"),
            operating_systems=self.storage.count_visits_by(short_id, "os"),
            devices=self.storage.count_visits_by(short_id, "device_type"),
            hourly_clicks=self.storage.hourly_clicks(short_id),
            recent_visitors=self.storage.recent_visits(short_id, self.recent_limit),
            created_by=record.created_by,
        )
