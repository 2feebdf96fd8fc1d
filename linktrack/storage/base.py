"""
Base storage interface for LinkTrack.

Purpose:
    Define a small, stable contract that multiple storage backends
    (in-memory, PostgreSQL) implement without requiring changes to the
    recorder, the aggregator or the API.

    Backends provide the primitives (save, lookup, atomic counters, visit log).
    `create` and the aggregate helpers are implemented here once on top of
    them; a backend with a query engine may override the helpers.

Testing & Coverage:
    Abstract methods are not executed directly in tests. We annotate them
    with `# pragma: no cover` so coverage tools don't penalize the project
    for un-runnable abstract declarations.

LLM Prompt Example:
    "Show how a narrow, explicit storage interface enables dependency
    injection and easy backend swapping without touching service code."
"""

from abc import ABC, abstractmethod
from collections import Counter
from datetime import datetime
from typing import Dict, List, Optional
from urllib.parse import urlparse

from ..config import settings
from ..errors import StoreError, ValidationError
from ..manager.strategies import BaseStrategy, get_strategy_from_config
from ..models import CreatorInfo, LinkRecord, VisitEvent, utcnow

# Visit fields that may be grouped on.
GROUPABLE_FIELDS = ("browser", "os", "device_type")

# Ids that would be shadowed by fixed GET routes (health check, API docs).
RESERVED_IDS = frozenset({"health", "docs", "redoc"})
RESERVED_ID_DRAWS = 5


def local_hour(ts: datetime) -> int:
    """Hour of day (0-23) of `ts` in the process' local timezone."""
    return ts.astimezone().hour


class BaseStorage(ABC):
    """Abstract base class for storage backends."""

    def __init__(
        self,
        id_strategy: Optional[BaseStrategy] = None,
        id_length: Optional[int] = None,
        strict_urls: Optional[bool] = None,
    ):
        self.id_strategy = id_strategy or get_strategy_from_config()
        self.id_length = id_length
        self.strict_urls = settings.STRICT_URLS if strict_urls is None else strict_urls

    # ------------------------------------------------------------------
    # Creation (shared)
    # ------------------------------------------------------------------
    def _validate_url(self, original_url) -> str:
        """
        Reject missing, non-string and blank URLs. In strict mode also require
        an http/https scheme and a host.

        Raises:
            ValidationError: If the URL is unusable.
        """
        if original_url is None:
            raise ValidationError("Original URL is required")
        if not isinstance(original_url, str):
            raise ValidationError("Original URL must be a string")
        url = original_url.strip()
        if not url:
            raise ValidationError("Original URL is required")
        if self.strict_urls:
            parsed = urlparse(url)
            if parsed.scheme not in {"http", "https"} or not parsed.netloc:
                raise ValidationError("Invalid URL format")
        return url

    def _new_short_id(self) -> str:
        """Draw an id, redrawing ids that collide with fixed routes."""
        for _ in range(RESERVED_ID_DRAWS):
            short_id = self.id_strategy.generate(length=self.id_length)
            if short_id not in RESERVED_IDS:
                return short_id
        raise StoreError("create", short_id, "generator keeps returning a reserved id")

    def create(self, original_url, created_by: Optional[CreatorInfo] = None) -> LinkRecord:
        """
        Allocate a short id and persist a new record with zeroed counters.

        Args:
            original_url: Target URL; must be a non-empty string.
            created_by (Optional[CreatorInfo]): Client that asked for the link.

        Raises:
            ValidationError: Missing or empty URL.
            StoreError: The generated id is already taken, or the backend failed.
        """
        url = self._validate_url(original_url)
        short_id = self._new_short_id()
        record = LinkRecord(short_id=short_id, original_url=url, created_at=utcnow(), created_by=created_by)
        if not self.save_link(record):
            raise StoreError("create", short_id, "short id collision")
        return record

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------
    @abstractmethod  # pragma: no cover
    def save_link(self, record: LinkRecord) -> bool:
        """
        Insert a new record.

        Returns:
            bool: True on insert, False if the short id is already taken.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def get_link(self, short_id: str) -> Optional[LinkRecord]:
        """Return the record for `short_id`, or None."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def increment_click(self, short_id: str) -> int:
        """
        Atomically add one to the click counter.

        Returns:
            int: The new click count.

        Raises:
            NotFoundError: Unknown short id.

        LLM Prompt Example:
            "Explain how to make increments atomic with a mutex or SQL UPDATE ... RETURNING."
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def record_unique_visitor(self, short_id: str, visitor_key: str) -> int:
        """
        Add `visitor_key` to the visitor set if absent.

        Returns:
            int: Set cardinality after the call, whether or not the key was new.

        Raises:
            NotFoundError: Unknown short id.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def append_visit(self, event: VisitEvent) -> None:
        """Append to the visit log of `event.short_id`. NotFoundError if unknown."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def get_visits(self, short_id: str) -> List[VisitEvent]:
        """All visits for `short_id` in arrival order (empty if none)."""
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Aggregates (defaults computed from the visit log)
    # ------------------------------------------------------------------
    def count_visits_by(self, short_id: str, field: str) -> Dict[str, int]:
        """Visit counts grouped by one of GROUPABLE_FIELDS."""
        if field not in GROUPABLE_FIELDS:
            raise ValueError(f"Cannot group visits by {field!r}")
        return dict(Counter(getattr(v, field) for v in self.get_visits(short_id)))

    def hourly_clicks(self, short_id: str) -> Dict[int, int]:
        """Visit counts keyed by local hour of day; hours without visits are absent."""
        return dict(Counter(local_hour(v.timestamp) for v in self.get_visits(short_id)))

    def recent_visits(self, short_id: str, limit: int = 10) -> List[VisitEvent]:
        """
        The last `limit` visits, newest first.

        Sorting is stable, so visits sharing a timestamp keep arrival order
        (the later arrival comes first once reversed).
        """
        if limit <= 0:
            return []
        ordered = sorted(self.get_visits(short_id), key=lambda v: v.timestamp)
        return ordered[::-1][:limit]
