"""Shared time parsing and formatting helpers."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import time


def parse_hhmm_to_minutes(value: str | None) -> int | None:
    """Parse HH:MM (or HH:MM:SS) into minutes after midnight."""
    if not value or ":" not in str(value):
        return None
    parts = str(value).strip().split(":")
    try:
        h = int(parts[0])
        m = int(parts[1])
    except (TypeError, ValueError, IndexError):
        return None
    if h < 0 or h > 23 or m < 0 or m > 59:
        return None
    return h * 60 + m


def parse_hhmm(value: str | time | None) -> time | None:
    """Parse HH:MM into a ``datetime.time``; passes ``time`` values through."""
    if isinstance(value, time):
        return value
    minutes = parse_hhmm_to_minutes(value)
    if minutes is None:
        return None
    return time(minutes // 60, minutes % 60)


def format_hours(hours: float) -> str:
    """Format decimal hours as ``8h 30m``; 24h and above switch to days."""
    if hours <= 0:
        return "0h 0m"

    if hours >= 24:
        days = int(hours // 24)
        remaining = int(hours % 24)
        minutes = round((hours - int(hours)) * 60)
        parts = [f"{days}d"]
        if remaining:
            parts.append(f"{remaining}h")
        if minutes:
            parts.append(f"{minutes}m")
        return " ".join(parts)

    whole = int(hours)
    minutes = round((hours - whole) * 60)
    if minutes == 60:
        whole, minutes = whole + 1, 0
    if whole == 0:
        return f"{minutes}m"
    if minutes == 0:
        return f"{whole}h"
    return f"{whole}h {minutes}m"


def js_weekdays_to_python(days: Iterable[int]) -> frozenset[int]:
    """Convert JavaScript ``getDay()`` numbers (0 = Sunday) to Python weekdays (0 = Monday)."""
    return frozenset((int(d) - 1) % 7 for d in days)
