"""
Storage module for LinkTrack (in-memory implementation).

Responsibilities:
    - Save link records
    - Track click counts and distinct visitors per short id
    - Keep the append-only visit log

Design:
    - In-memory reference implementation of the BaseStorage contract.
    - A single lock guards every map, so concurrent requests served from
      FastAPI's threadpool never lose an increment.
    - Records handed out are copies; callers cannot mutate counters behind
      the lock's back.
"""

import threading
from dataclasses import replace
from typing import Dict, List, Optional, Set

from ..errors import NotFoundError
from ..models import LinkRecord, VisitEvent
from .base import BaseStorage


class Storage(BaseStorage):
    def __init__(self, **kwargs):
        """
        Initialize empty storage.

        Internal schema:
            self.links    = { short_id: LinkRecord }
            self.visitors = { short_id: {visitor_key, ...} }
            self.visits   = { short_id: [VisitEvent, ...] }
        """
        super().__init__(**kwargs)
        self._lock = threading.Lock()
        self.links: Dict[str, LinkRecord] = {}
        self.visitors: Dict[str, Set[str]] = {}
        self.visits: Dict[str, List[VisitEvent]] = {}

    def save_link(self, record: LinkRecord) -> bool:
        with self._lock:
            if record.short_id in self.links:
                return False
            self.links[record.short_id] = replace(record)
            self.visitors[record.short_id] = set()
            self.visits[record.short_id] = []
            return True

    def get_link(self, short_id: str) -> Optional[LinkRecord]:
        with self._lock:
            record = self.links.get(short_id)
            return replace(record) if record else None

    def increment_click(self, short_id: str) -> int:
        with self._lock:
            record = self.links.get(short_id)
            if record is None:
                raise NotFoundError(short_id)
            record.click_count += 1
            return record.click_count

    def record_unique_visitor(self, short_id: str, visitor_key: str) -> int:
        with self._lock:
            record = self.links.get(short_id)
            if record is None:
                raise NotFoundError(short_id)
            seen = self.visitors[short_id]
            seen.add(visitor_key)
            record.unique_visitor_count = len(seen)
            return record.unique_visitor_count

    def append_visit(self, event: VisitEvent) -> None:
        with self._lock:
            if event.short_id not in self.links:
                raise NotFoundError(event.short_id)
            self.visits[event.short_id].append(event)

    def get_visits(self, short_id: str) -> List[VisitEvent]:
        with self._lock:
            return list(self.visits.get(short_id, ()))
