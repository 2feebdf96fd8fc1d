"""
Data model for LinkTrack.

Plain dataclasses shared by the storage backends, the visit recorder and the
analytics aggregator. The HTTP layer converts them to camelCase JSON in `main.py`.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CreatorInfo:
    """Who asked for the short link: client address and classified device."""
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    browser: str = "Unknown"
    os: str = "Unknown"
    device_type: str = "Unknown Device"
    is_mobile: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["CreatorInfo"]:
        if not data:
            return None
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass
class LinkRecord:
    """
    One shortened link with its summary counters.

    Invariant: unique_visitor_count <= click_count. Only the visit recorder
    moves the counters, and only upwards.
    """
    short_id: str
    original_url: str
    created_at: datetime = field(default_factory=utcnow)
    click_count: int = 0
    unique_visitor_count: int = 0
    created_by: Optional[CreatorInfo] = None


@dataclass(frozen=True)
class VisitEvent:
    """One recorded resolution of a short id."""
    short_id: str
    timestamp: datetime
    visitor_key: str
    ip: Optional[str]
    user_agent: Optional[str]
    browser: str
    os: str
    device_type: str
    referrer: str = "direct"
    language: str = "Unknown"
    platform: str = "Unknown"
    screen_resolution: str = "Unknown"
    is_mobile: bool = False


@dataclass(frozen=True)
class RequestMetadata:
    """Client details pulled off the inbound HTTP request."""
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    referrer: Optional[str] = None
    language: Optional[str] = None
    platform: Optional[str] = None
    screen_resolution: Optional[str] = None


@dataclass(frozen=True)
class DeviceInfo:
    os: str = "Unknown"
    browser: str = "Unknown"
    device_type: str = "Desktop"
    is_mobile: bool = False


@dataclass
class AnalyticsReport:
    short_id: str
    original_url: str
    created_at: datetime
    click_count: int
    unique_visitor_count: int
    browsers: Dict[str, int] = field(default_factory=dict)
    operating_systems: Dict[str, int] = field(default_factory=dict)
    devices: Dict[str, int] = field(default_factory=dict)
    hourly_clicks: Dict[int, int] = field(default_factory=dict)
    recent_visitors: List[VisitEvent] = field(default_factory=list)
    created_by: Optional[CreatorInfo] = None
