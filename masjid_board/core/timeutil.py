"""
Wall-clock helpers: "HH:MM" strings <-> minutes since midnight, 12-hour display.
"""
from datetime import time
from typing import Optional, Tuple

PLACEHOLDER = "--:--"
MINUTES_PER_DAY = 24 * 60


def _split(value: str) -> Tuple[int, int]:
    parts = str(value).strip().split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid time (expected HH:MM): {value!r}")
    hour, minute = int(parts[0]), int(parts[1])
    if hour > 23 or minute > 59:
        raise ValueError(f"Time out of range: {value!r}")
    return hour, minute


def to_minutes(value: str) -> int:
    """Minutes since midnight for an "HH:MM" string. Raises ValueError on malformed input."""
    hour, minute = _split(value)
    return hour * 60 + minute


def parse_time(value: str) -> time:
    hour, minute = _split(value)
    return time(hour, minute)


def format_12h(value: Optional[str]) -> str:
    """"13:05" -> "1:05 PM". Empty input gives the "--:--" placeholder."""
    if not value:
        return PLACEHOLDER
    hour, minute = _split(value)
    suffix = "PM" if hour >= 12 else "AM"
    return f"{hour % 12 or 12}:{minute:02d} {suffix}"
