"""
User-agent classification.

Maps a raw user-agent string to an operating system, a browser and a device
type by substring matching against ordered rule tables. The first matching
rule of each table wins, so the tables ARE the policy: reorder them and the
classification changes.

The browser order puts "Chrome" before "Safari" and "Edge", which labels most
Edge user agents (they also say "Chrome") as Chrome. Existing reports depend
on that; keep it.
"""

from typing import Optional, Tuple, Union

from ..models import DeviceInfo

UNKNOWN = "Unknown"
UNKNOWN_DEVICE = "Unknown Device"

# (needles, label, marks_mobile)
OS_RULES: Tuple[Tuple[Tuple[str, ...], str, bool], ...] = (
    (("Windows",), "Windows", False),
    (("Mac OS",), "MacOS", False),
    (("Linux",), "Linux", False),
    (("Android",), "Android", True),
    (("iPhone", "iPad"), "iOS", True),
)

BROWSER_RULES: Tuple[Tuple[str, str], ...] = (
    ("Chrome", "Chrome"),
    ("Firefox", "Firefox"),
    ("Safari", "Safari"),
    ("Edge", "Edge"),
)

DEVICE_RULES: Tuple[Tuple[str, str], ...] = (
    ("Mobile", "Mobile"),
    ("Tablet", "Tablet"),
)
DEFAULT_DEVICE = "Desktop"


def _match_os(user_agent: str) -> Tuple[str, bool]:
    for needles, label, mobile in OS_RULES:
        if any(n in user_agent for n in needles):
            return label, mobile
    return UNKNOWN, False


def _first_match(user_agent: str, rules, default: str) -> str:
    for needle, label in rules:
        if needle in user_agent:
            return label
    return default


def classify(user_agent: Optional[str]) -> Union[DeviceInfo, str]:
    """
    Classify a user agent.

    Returns:
        DeviceInfo for any non-empty string, or the UNKNOWN_DEVICE sentinel
        string when the user agent is missing or empty. Callers must handle
        both shapes.
    """
    if not user_agent:
        return UNKNOWN_DEVICE
    os_name, is_mobile = _match_os(user_agent)
    return DeviceInfo(
        os=os_name,
        browser=_first_match(user_agent, BROWSER_RULES, UNKNOWN),
        device_type=_first_match(user_agent, DEVICE_RULES, DEFAULT_DEVICE),
        is_mobile=is_mobile,
    )


def describe(user_agent: Optional[str]) -> DeviceInfo:
    """
    Like `classify`, but always a DeviceInfo. The sentinel becomes
    browser/os "Unknown" and device type "Unknown Device", which is how
    visits and link creators are stored.
    """
    info = classify(user_agent)
    if isinstance(info, str):
        return DeviceInfo(os=UNKNOWN, browser=UNKNOWN, device_type=UNKNOWN_DEVICE, is_mobile=False)
    return info
