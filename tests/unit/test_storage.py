"""
Unit tests for the in-memory Storage backend.

Covers:
    - create (validation, strict mode, id shape, collision)
    - get_link (found, not found, returned copies)
    - increment_click / record_unique_visitor / append_visit on known and unknown ids
    - thread safety of the counters
    - default aggregate helpers
"""

import re
import threading
from datetime import datetime, timedelta, timezone

import pytest

from linktrack.errors import NotFoundError, StoreError, ValidationError
from linktrack.manager.strategies import BaseStrategy
from linktrack.models import CreatorInfo, VisitEvent
from linktrack.storage.base import RESERVED_IDS
from linktrack.storage.storage import Storage

ID_PATTERN = re.compile(r"^[0-9a-zA-Z]{6,8}$")


def _event(short_id, minute=0, browser="Chrome", os_name="Windows", device="Desktop"):
    return VisitEvent(
        short_id=short_id,
        timestamp=datetime(2024, 1, 1, 12, minute, tzinfo=timezone.utc),
        visitor_key=f"v{minute}",
        ip="10.0.0.1",
        user_agent="ua",
        browser=browser,
        os=os_name,
        device_type=device,
    )


def test_create_and_get(storage):
    record = storage.create("http://example.com")
    assert ID_PATTERN.match(record.short_id)
    assert record.click_count == 0
    assert record.unique_visitor_count == 0

    fetched = storage.get_link(record.short_id)
    assert fetched.original_url == "http://example.com"
    assert fetched.created_at == record.created_at


def test_create_strips_whitespace(storage):
    assert storage.create("  http://example.com/a  ").original_url == "http://example.com/a"


@pytest.mark.parametrize("bad", [None, "", "   ", 42])
def test_create_rejects_missing_or_empty(storage, bad):
    with pytest.raises(ValidationError):
        storage.create(bad)
    assert storage.links == {}


def test_create_accepts_any_non_empty_string_by_default(storage):
    assert storage.create("not-a-valid-url").original_url == "not-a-valid-url"


@pytest.mark.parametrize("url", ["not-a-valid-url", "ftp://example.com", "https://"])
def test_strict_mode_rejects_non_http_urls(url):
    with pytest.raises(ValidationError, match="Invalid URL format"):
        Storage(strict_urls=True).create(url)


def test_create_collision_is_fatal(fixed_strategy):
    storage = Storage(id_strategy=fixed_strategy)
    storage.create("http://one.example")
    with pytest.raises(StoreError, match="collision"):
        storage.create("http://two.example")
    assert storage.get_link("fixed1").original_url == "http://one.example"


class ScriptedStrategy(BaseStrategy):
    def __init__(self, *ids):
        self.ids = list(ids)

    def generate(self, *, length=None):
        return self.ids.pop(0)


@pytest.mark.parametrize("reserved", sorted(RESERVED_IDS))
def test_create_redraws_route_names(reserved):
    storage = Storage(id_strategy=ScriptedStrategy(reserved, "abc123"))
    assert storage.create("http://example.com").short_id == "abc123"
    assert reserved not in storage.links


def test_create_gives_up_on_a_stuck_generator():
    storage = Storage(id_strategy=ScriptedStrategy(*["health"] * 10))
    with pytest.raises(StoreError, match="reserved"):
        storage.create("http://example.com")
    assert storage.links == {}


def test_create_keeps_creator(storage):
    creator = CreatorInfo(ip="10.0.0.1", browser="Chrome", os="Windows", device_type="Desktop")
    sid = storage.create("http://example.com", created_by=creator).short_id
    assert storage.get_link(sid).created_by == creator


def test_get_link_not_found(storage):
    assert storage.get_link("missing") is None


def test_get_link_returns_copy(storage):
    record = storage.create("http://example.com")
    copy = storage.get_link(record.short_id)
    copy.click_count = 99
    assert storage.get_link(record.short_id).click_count == 0


def test_increment_click(storage):
    sid = storage.create("http://example.com").short_id
    assert storage.increment_click(sid) == 1
    assert storage.increment_click(sid) == 2
    assert storage.get_link(sid).click_count == 2


def test_increment_click_unknown(storage):
    with pytest.raises(NotFoundError):
        storage.increment_click("nope")


def test_record_unique_visitor_returns_cardinality_either_way(storage):
    sid = storage.create("http://example.com").short_id
    assert storage.record_unique_visitor(sid, "a") == 1
    assert storage.record_unique_visitor(sid, "a") == 1
    assert storage.record_unique_visitor(sid, "b") == 2
    assert storage.get_link(sid).unique_visitor_count == 2


def test_record_unique_visitor_unknown(storage):
    with pytest.raises(NotFoundError):
        storage.record_unique_visitor("nope", "a")


def test_append_visit_and_get_visits(storage):
    sid = storage.create("http://example.com").short_id
    storage.append_visit(_event(sid, 1))
    storage.append_visit(_event(sid, 2))
    assert [v.visitor_key for v in storage.get_visits(sid)] == ["v1", "v2"]
    assert storage.get_visits("other") == []


def test_append_visit_unknown(storage):
    with pytest.raises(NotFoundError):
        storage.append_visit(_event("nope"))


def test_concurrent_increments_are_not_lost(storage):
    sid = storage.create("http://example.com").short_id
    threads, per_thread = 8, 500

    def worker(n):
        for i in range(per_thread):
            storage.increment_click(sid)
            storage.record_unique_visitor(sid, f"visitor-{i % 10}")

    pool = [threading.Thread(target=worker, args=(n,)) for n in range(threads)]
    for t in pool:
        t.start()
    for t in pool:
        t.join()

    record = storage.get_link(sid)
    assert record.click_count == threads * per_thread
    assert record.unique_visitor_count == 10


def test_count_visits_by(storage):
    sid = storage.create("http://example.com").short_id
    storage.append_visit(_event(sid, 1, browser="Chrome"))
    storage.append_visit(_event(sid, 2, browser="Firefox"))
    storage.append_visit(_event(sid, 3, browser="Chrome", device="Mobile"))
    assert storage.count_visits_by(sid, "browser") == {"Chrome": 2, "Firefox": 1}
    assert storage.count_visits_by(sid, "device_type") == {"Desktop": 2, "Mobile": 1}
    with pytest.raises(ValueError):
        storage.count_visits_by(sid, "user_agent")


def test_recent_visits_newest_first_and_bounded(storage):
    sid = storage.create("http://example.com").short_id
    for minute in (5, 1, 9, 3):  # out of order on purpose
        storage.append_visit(_event(sid, minute))
    recent = storage.recent_visits(sid, limit=3)
    assert [v.visitor_key for v in recent] == ["v9", "v5", "v3"]
    assert storage.recent_visits(sid, limit=0) == []


def test_recent_visits_same_timestamp_keeps_arrival_order(storage):
    sid = storage.create("http://example.com").short_id
    ts = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for key in ("first", "second"):
        storage.append_visit(
            VisitEvent(sid, ts, key, None, None, "Unknown", "Unknown", "Desktop")
        )
    assert [v.visitor_key for v in storage.recent_visits(sid)] == ["second", "first"]


def test_hourly_clicks_uses_local_hour(storage):
    sid = storage.create("http://example.com").short_id
    base = datetime(2024, 1, 1, 8, tzinfo=timezone.utc)
    stamps = [base, base + timedelta(minutes=30), base + timedelta(hours=5)]
    for i, ts in enumerate(stamps):
        storage.append_visit(VisitEvent(sid, ts, f"k{i}", None, None, "Chrome", "Windows", "Desktop"))

    expected = {}
    for ts in stamps:
        hour = ts.astimezone().hour
        expected[hour] = expected.get(hour, 0) + 1
    assert storage.hourly_clicks(sid) == expected
